"""Build the template registry script.

Every HTML template below the source root is linted, preprocessed, minified
and registered in the AngularJS ``$templateCache`` by a single generated
script, so the app never fetches templates at runtime.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import NamedTuple

from .conf import BuildOptions, get_setting, log_file_progress, preprocess_context
from .exceptions import BuildError, TemplateBuildError
from .extractors import extract_resources
from .paths import copy_files, list_files
from .preprocess import preprocess
from .reporting import LintReport, basic_report, report_name, write_extended_report
from .tools.base import get_tool

logger = logging.getLogger(__name__)

ENTRY_DOCUMENT = "index.html"


class TemplateRegistry(NamedTuple):
    body: str
    clean: bool


def template_key(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def render_registry(templates: list[tuple[str, str]], module_name: str) -> str:
    """Render the script that fills the template cache."""
    puts = "".join(
        f"  $templateCache.put({json.dumps(key)}, {json.dumps(content)});\n"
        for key, content in templates
    )
    return (
        f"angular.module({json.dumps(module_name)}).run(['$templateCache', "
        f"function($templateCache) {{\n{puts}}}]);\n"
    )


def find_templates(root: Path) -> list[Path]:
    return [
        path
        for path in list_files(root)
        if path.suffix.lower() == ".html" and path != root / ENTRY_DOCUMENT
    ]


class _TemplateBuilder:
    def __init__(self, options: BuildOptions, root: Path, dest: Path) -> None:
        self.options = options
        self.root = root
        self.dest = dest
        self.report = LintReport()
        self.failed = False
        self.context = preprocess_context(options)
        self.linter = get_tool(options, "HTML_LINTER")
        self.minifier = get_tool(options, "HTML_MINIFIER")

    def _should_lint(self, path: Path) -> bool:
        return not self.options.skip_lint and not self.options.skip_lint_pattern.search(
            path.as_posix()
        )

    async def process(self, path: Path) -> tuple[str, str] | None:
        log_file_progress(self.options, "Processing template", path)
        content = await asyncio.to_thread(path.read_text, encoding="utf-8")

        if self._should_lint(path):
            log_file_progress(self.options, "Linting", path)
            messages = self.linter.lint(content, str(path))
            if messages:
                basic_report(messages, path)
                self.report.add(str(path), messages)
                if self.options.fail_on_lint:
                    self.failed = True
                    return None

        resources = extract_resources(content)
        await asyncio.gather(
            copy_files(self.options, resources.scripts, self.root, self.dest),
            copy_files(self.options, resources.links, self.root, self.dest),
        )

        log_file_progress(self.options, "Processing content of template", path)
        content = preprocess(content, self.context)
        if not self.options.skip_html_compression:
            content = self.minifier.minify(content)
        return template_key(path, self.root), content


async def build_template_registry(
    options: BuildOptions, root: Path, dest: Path
) -> TemplateRegistry:
    """Build the template registry script for every template below ``root``.

    Resources referenced inside templates are copied from ``root`` to
    ``dest``.

    Raises:
        TemplateBuildError: if a template failed lint while failing on lint
            is enabled, or could not be processed.
    """
    builder = _TemplateBuilder(options, root, dest)
    try:
        results = await asyncio.gather(
            *(builder.process(path) for path in find_templates(root))
        )
    except (OSError, BuildError) as e:
        raise TemplateBuildError(f"Template processing failed: {e}") from e

    name = report_name("htmllint", root, options.project_root)
    await asyncio.to_thread(write_extended_report, options, builder.report, name)

    if builder.failed:
        raise TemplateBuildError("HTML hint errors")

    templates = [result for result in results if result is not None]
    body = render_registry(templates, get_setting(options, "TEMPLATE_MODULE"))
    return TemplateRegistry(body=body, clean=builder.report.is_clean)
