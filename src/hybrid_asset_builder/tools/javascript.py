"""Script capabilities backed by Node CLI tools."""

from __future__ import annotations

import json
import logging
import subprocess

import rjsmin  # type: ignore[import-untyped]

from ..conf import get_setting
from ..exceptions import AnnotationError
from ..reporting import ERROR, WARNING, LintMessage
from .base import BaseAnnotator, BaseLinter, BaseMinifier

logger = logging.getLogger(__name__)


class ESLintLinter(BaseLinter):
    """Lint scripts with the ESLint CLI.

    The project's own ESLint configuration applies since the code is passed
    through ``--stdin-filename``. Linting is skipped with a warning if
    ESLint cannot be found.
    """

    _missing_reported = False

    def _build_command(self, cli_path: str, path: str) -> list[str]:
        return [cli_path, "--format", "json", "--stdin", "--stdin-filename", path]

    def lint(self, code: str, path: str) -> list[LintMessage]:
        cli_path = self.find_binary("ESLINT_PATH", "eslint")
        if cli_path is None:
            if not self._missing_reported:
                logger.warning("eslint not found. JS linting skipped.")
                self._missing_reported = True
            return []

        try:
            result = subprocess.run(  # noqa: S603
                self._build_command(cli_path, path),
                input=code,
                capture_output=True,
                text=True,
                timeout=get_setting(self.options, "TOOL_TIMEOUT"),
                cwd=self.options.project_root,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.warning("eslint failed: %s. Skipping lint of %s", e, path)
            return []

        try:
            results = json.loads(result.stdout or "[]")
        except ValueError:
            logger.warning("eslint failed: %s", result.stderr.strip())
            return []

        messages: list[LintMessage] = []
        for file_result in results:
            for m in file_result.get("messages", []):
                messages.append(
                    LintMessage(
                        severity=ERROR if m.get("severity") == 2 else WARNING,
                        line=m.get("line", 0),
                        column=m.get("column", 0),
                        message=m.get("message", ""),
                        rule_id=m.get("ruleId") or "",
                    )
                )
        return messages


class ScriptMinifier(BaseMinifier):
    """Minify scripts using terser (preferred) or rjsmin (fallback)."""

    def minify(self, code: str) -> str:
        terser_path = self.find_binary("TERSER_PATH", "terser")
        if terser_path is not None:
            try:
                result = subprocess.run(  # noqa: S603
                    [terser_path, *get_setting(self.options, "TERSER_OPTIONS")],
                    input=code,
                    capture_output=True,
                    text=True,
                    timeout=get_setting(self.options, "TOOL_TIMEOUT"),
                    check=True,
                )
                if self.options.verbose and result.stderr:
                    logger.warning("terser: %s", result.stderr.strip())
                return result.stdout
            except (
                subprocess.CalledProcessError,
                subprocess.TimeoutExpired,
                OSError,
            ) as e:
                logger.warning("terser failed: %s. Falling back to rjsmin.", e)

        return rjsmin.jsmin(code, keep_bang_comments=True)  # type: ignore[no-any-return]


class NgAnnotateAnnotator(BaseAnnotator):
    """Add AngularJS dependency-injection annotations with ng-annotate.

    Code passes through unchanged if ng-annotate cannot be found.
    """

    _missing_reported = False

    def annotate(self, code: str) -> str:
        cli_path = self.find_binary("NG_ANNOTATE_PATH", "ng-annotate")
        if cli_path is None:
            if not self._missing_reported:
                logger.warning("ng-annotate not found. Annotation skipped.")
                self._missing_reported = True
            return code

        try:
            result = subprocess.run(  # noqa: S603
                [cli_path, "--add", "-"],
                input=code,
                capture_output=True,
                text=True,
                timeout=get_setting(self.options, "TOOL_TIMEOUT"),
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise AnnotationError(f"ng-annotate failed: {e}") from e

        if result.returncode != 0:
            raise AnnotationError(result.stderr.strip() or "ng-annotate failed")
        return result.stdout
