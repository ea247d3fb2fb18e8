"""HTML linting and minification."""

from __future__ import annotations

import logging
import re
from html.parser import HTMLParser

import minify_html

from ..reporting import ERROR, WARNING, LintMessage
from .base import BaseLinter, BaseMinifier

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input", "keygen",
        "link", "meta", "param", "source", "track", "wbr",
    }
)
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

# tag -> attribute that must not be empty
SOURCE_ATTRIBUTES = {
    "img": "src",
    "script": "src",
    "embed": "src",
    "bgsound": "src",
    "iframe": "src",
    "link": "href",
    "object": "data",
}

_QUOTED = re.compile(r"\"[^\"]*\"|'[^']*'")
_RAW_TAG_NAME = re.compile(r"<\s*([^\s/>]+)")
_RAW_ATTR_NAME = re.compile(r"\s([^\s=/>\"']+)")


class _HintParser(HTMLParser):
    """Collect HTMLHint style violations while parsing a template."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self.messages: list[LintMessage] = []
        self._stack: list[tuple[str, int, int]] = []
        self._ids: set[str] = set()
        self._raw_text = False

    def _report(self, severity: int, message: str, rule_id: str) -> None:
        line, col = self.getpos()
        self.messages.append(LintMessage(severity, line, col + 1, message, rule_id))

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._check_start(tag, attrs)
        if tag not in VOID_ELEMENTS:
            line, col = self.getpos()
            self._stack.append((tag, line, col + 1))
        self._raw_text = tag in RAW_TEXT_ELEMENTS

    def handle_startendtag(
        self, tag: str, attrs: list[tuple[str, str | None]]
    ) -> None:
        self._check_start(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        self._raw_text = False
        if tag in VOID_ELEMENTS:
            return
        open_tags = [name for name, _, _ in self._stack]
        if tag not in open_tags:
            self._report(
                ERROR, f"Tag must be paired, no start tag: [ </{tag}> ]", "tag-pair"
            )
            return
        while self._stack:
            name, line, col = self._stack.pop()
            if name == tag:
                break
            self.messages.append(
                LintMessage(
                    ERROR,
                    line,
                    col,
                    f"Tag must be paired, missing: [ </{name}> ]",
                    "tag-pair",
                )
            )

    def handle_data(self, data: str) -> None:
        if not self._raw_text and ("<" in data or ">" in data):
            self._report(
                ERROR,
                f"Special characters must be escaped : [ {data.strip()[:40]} ].",
                "spec-char-escape",
            )

    def _check_start(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        text = self.get_starttag_text() or ""
        raw_name = _RAW_TAG_NAME.match(text)
        if raw_name and raw_name.group(1) != raw_name.group(1).lower():
            self._report(
                ERROR,
                f"The html element name of [ {raw_name.group(1)} ] must be in lowercase.",
                "tagname-lowercase",
            )

        unquoted = _QUOTED.sub('""', text[raw_name.end() if raw_name else 0 :])
        for name in _RAW_ATTR_NAME.findall(unquoted):
            if name != name.lower():
                self._report(
                    ERROR,
                    f"The attribute name of [ {name} ] must be in lowercase.",
                    "attr-lowercase",
                )

        seen: set[str] = set()
        for name, value in attrs:
            if name in seen:
                self._report(
                    ERROR,
                    f"Duplicate of attribute name [ {name} ] was found.",
                    "attr-no-duplication",
                )
            seen.add(name)
            if name == "id" and value:
                if value in self._ids:
                    self._report(
                        WARNING,
                        f"The id value [ {value} ] must be unique.",
                        "id-unique",
                    )
                self._ids.add(value)

        required = SOURCE_ATTRIBUTES.get(tag)
        if required and required in seen:
            value = dict(attrs).get(required)
            if not value:
                self._report(
                    ERROR,
                    f"The attribute [ {required} ] of the tag [ {tag} ] must have a value.",
                    "src-not-empty",
                )

    def finish(self) -> None:
        self.close()
        for name, line, col in self._stack:
            self.messages.append(
                LintMessage(
                    ERROR, line, col, f"Tag must be paired, missing: [ </{name}> ]", "tag-pair"
                )
            )
        self._stack = []


class HTMLHintLinter(BaseLinter):
    """Lint HTML templates with the HTMLHint rule set used for templates.

    Rules: tagname-lowercase, attr-lowercase, tag-pair, spec-char-escape,
    id-unique, src-not-empty and attr-no-duplication.
    """

    def lint(self, code: str, path: str) -> list[LintMessage]:
        parser = _HintParser()
        parser.feed(code)
        parser.finish()
        return sorted(parser.messages, key=lambda m: (m.line, m.column))


class MarkupMinifier(BaseMinifier):
    """Minify HTML using minify-html.

    Comments are dropped. Closing tags, the html/head opening tags and
    ``{{ }}`` template expressions are kept so templates stay valid for
    AngularJS. If minification fails, the original markup is returned.
    """

    def minify(self, code: str) -> str:
        try:
            return minify_html.minify(
                code,
                minify_css=True,
                minify_js=True,
                keep_closing_tags=True,
                keep_html_and_head_opening_tags=True,
                preserve_brace_template_syntax=True,
            )
        except Exception:
            logger.warning("HTML minification failed, using original markup", exc_info=True)
            return code
