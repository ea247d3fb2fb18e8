"""Extract <script> and stylesheet <link> references from HTML content."""

from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import NamedTuple

from .exceptions import ResourceExtractionError

STYLESHEET_HREF = re.compile(r"(\.css$|\.css\?)", re.IGNORECASE)
APP_ATTRIBUTE = "ng-app"
STRICT_DI_ATTRIBUTE = "ng-strict-di"


class ResourceList(NamedTuple):
    """References found in an HTML document, in document order."""

    scripts: list[str]
    links: list[str]
    markup: str


class ResourceExtractor(HTMLParser):
    """HTML parser that collects script sources and stylesheet hrefs.

    Rebuilds the document as it goes so the normalized markup is the input
    with ``ng-strict-di`` added to every element carrying ``ng-app``.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self._scripts: list[str] = []
        self._links: list[str] = []
        self._output: list[str] = []

    @property
    def scripts(self) -> list[str]:
        return list(self._scripts)

    @property
    def links(self) -> list[str]:
        return list(self._links)

    def get_output(self) -> str:
        return "".join(self._output)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._collect(tag, attrs)
        self._output.append(self._starttag_text(attrs))

    def handle_startendtag(
        self, tag: str, attrs: list[tuple[str, str | None]]
    ) -> None:
        self._collect(tag, attrs)
        self._output.append(self._starttag_text(attrs))

    def handle_endtag(self, tag: str) -> None:
        self._output.append(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        self._output.append(data)

    def handle_entityref(self, name: str) -> None:
        self._output.append(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self._output.append(f"&#{name};")

    def handle_comment(self, data: str) -> None:
        self._output.append(f"<!--{data}-->")

    def handle_decl(self, decl: str) -> None:
        self._output.append(f"<!{decl}>")

    def handle_pi(self, data: str) -> None:
        self._output.append(f"<?{data}>")

    def unknown_decl(self, data: str) -> None:
        self._output.append(f"<![{data}]>")

    def _collect(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attr_dict = dict(attrs)
        if tag == "script" and attr_dict.get("src"):
            self._scripts.append(attr_dict["src"])  # type: ignore[arg-type]
        elif tag == "link":
            href = attr_dict.get("href") or ""
            if STYLESHEET_HREF.search(href):
                self._links.append(href)

    def _starttag_text(self, attrs: list[tuple[str, str | None]]) -> str:
        text = self.get_starttag_text() or ""
        names = {name for name, _ in attrs}
        if APP_ATTRIBUTE in names and STRICT_DI_ATTRIBUTE not in names:
            end = -2 if text.endswith("/>") else -1
            text = f'{text[:end].rstrip()} {STRICT_DI_ATTRIBUTE}="true"{text[end:]}'
        return text

    def finish(self) -> None:
        """Fail if the document ends inside an unterminated construct."""
        if "<" in self.rawdata or self.cdata_elem is not None:  # type: ignore[attr-defined]
            line, col = self.getpos()
            raise ResourceExtractionError(
                f"Unterminated markup at line {line}, column {col}"
            )
        self.close()


def extract_resources(markup: str) -> ResourceList:
    """Extract script and stylesheet references from HTML.

    Args:
        markup: HTML string to parse.

    Returns:
        ResourceList with scripts and links in document order and the
        normalized markup.

    Raises:
        ResourceExtractionError: if the markup cannot be parsed.
    """
    extractor = ResourceExtractor()
    try:
        extractor.feed(markup)
        extractor.finish()
    except ResourceExtractionError:
        raise
    except (AssertionError, ValueError, TypeError) as e:
        raise ResourceExtractionError(str(e)) from e
    return ResourceList(extractor.scripts, extractor.links, extractor.get_output())
