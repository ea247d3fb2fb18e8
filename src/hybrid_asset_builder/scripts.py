"""Script pipeline: read -> preprocess -> lint -> rewrite -> annotate -> minify -> wrap."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .conf import BuildOptions, log_file_progress
from .exceptions import AnnotationError, LintFailedError, PreprocessError
from .paths import read_file
from .reporting import (
    LintMessage,
    LintReport,
    basic_report,
    report_name,
    write_extended_report,
)
from .tools.base import get_tool

logger = logging.getLogger(__name__)

# Captures everything up to the next comma or newline. Properties following
# templateUrl on the same line before that comma are not supported.
TEMPLATE_URL = re.compile(r"(templateUrl)[\s]*:[\s]*([^\n,]+)")
TEMPLATE_PROVIDER = r"templateProvider:function($templateCache){return $templateCache.get(\2)}"

MINIFIED_SCRIPT = re.compile(r"\.min\.js$", re.IGNORECASE)
TEMPLATE_REGISTRY_SCRIPT = re.compile(r"templates\.js$", re.IGNORECASE)


def rewrite_template_urls(code: str) -> str:
    """Turn ``templateUrl: <expr>`` into a ``$templateCache`` lookup."""
    return TEMPLATE_URL.sub(TEMPLATE_PROVIDER, code)


def wrap_scope(code: str) -> str:
    """Wrap code in its own function scope so bundles do not leak names."""
    return f"~(function(){{\n{code}\n}})()"


@dataclass
class FileResult:
    """Outcome of one file's pipeline: its code or the error that stopped it."""

    path: str
    code: str = ""
    messages: list[LintMessage] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ScriptPipeline:
    def __init__(self, options: BuildOptions, source_root: Path) -> None:
        self.options = options
        self.source_root = source_root
        self.report = LintReport()
        self.has_errors = False
        self.linter = get_tool(options, "JS_LINTER")
        self.annotator = get_tool(options, "ANNOTATOR")
        self.minifier = get_tool(options, "JS_MINIFIER")

    def _should_lint(self, full_name: Path, script: str) -> bool:
        return (
            not self.options.skip_lint
            and not self.options.skip_lint_pattern.search(full_name.as_posix())
            and not TEMPLATE_REGISTRY_SCRIPT.search(script)
        )

    def lint(self, code: str, full_name: Path, script: str) -> list[LintMessage]:
        if not self._should_lint(full_name, script):
            return []
        log_file_progress(self.options, "Linting", full_name)
        messages = self.linter.lint(code, str(full_name))
        if messages:
            basic_report(messages, full_name)
        return messages

    async def process(self, script: str) -> FileResult:
        full_name = self.source_root / script.split("?", 1)[0].lstrip("/")
        result = FileResult(path=str(full_name))
        try:
            code = await read_file(
                self.options, full_name, self.options.preprocess_resources
            )
            result.messages = self.lint(code, full_name, script)
            code = rewrite_template_urls(code)

            log_file_progress(self.options, "Annotating", full_name)
            code = self.annotator.annotate(code)

            if result.messages:
                self.report.add(str(full_name), result.messages)
                if self.options.fail_on_lint:
                    self.has_errors = True
                    raise LintFailedError("Linting failed")

            if (
                not self.options.skip_resource_compression
                and not self.has_errors
                and not MINIFIED_SCRIPT.search(script)
            ):
                log_file_progress(self.options, "Minifying", script)
                code = self.minifier.minify(code)

            result.code = wrap_scope(code)
        except AnnotationError as e:
            self.has_errors = True
            result.error = e
            log_file_progress(self.options, e, full_name, "error")
        except (OSError, UnicodeDecodeError, PreprocessError, LintFailedError) as e:
            result.error = e
            log_file_progress(self.options, e, full_name, "error")
        return result


async def process_scripts(
    options: BuildOptions, scripts: list[str], source_root: Path
) -> str:
    """Process every referenced script and concatenate them in reference order.

    A script that cannot be read contributes nothing; its siblings are
    unaffected.

    Raises:
        LintFailedError: if lint violations were found and failing on lint is
            enabled.
        AnnotationError: if any script could not be annotated.
    """
    pipeline = ScriptPipeline(options, source_root)
    results = await asyncio.gather(
        *(pipeline.process(script) for script in scripts if script)
    )

    name = report_name("eslint", source_root, options.project_root)
    await asyncio.to_thread(write_extended_report, options, pipeline.report, name)

    for result in results:
        if isinstance(result.error, AnnotationError):
            raise AnnotationError(f"{result.path}: {result.error}")
    if pipeline.has_errors:
        raise LintFailedError("JS lint errors")

    return "\n".join(result.code for result in results if result.ok)
