"""Lint messages, console reporting and extended HTML reports."""

from __future__ import annotations

import html
import logging
import webbrowser
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from .conf import BuildOptions

logger = logging.getLogger(__name__)

WARNING = 1
ERROR = 2


class LintMessage(NamedTuple):
    """A single lint violation."""

    severity: int  # WARNING or ERROR
    line: int
    column: int
    message: str
    rule_id: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity >= ERROR


@dataclass
class LintReport:
    """Lint messages collected for one pipeline run, grouped per file."""

    entries: list[tuple[str, list[LintMessage]]] = field(default_factory=list)

    def add(self, file_path: str, messages: list[LintMessage]) -> None:
        if messages:
            self.entries.append((file_path, list(messages)))

    @property
    def total(self) -> int:
        return sum(len(messages) for _, messages in self.entries)

    @property
    def is_clean(self) -> bool:
        return self.total == 0


def basic_report(messages: list[LintMessage], path: str | Path) -> int:
    """Log every message and a per-file summary. Returns the message count."""
    errors = 0
    warnings = 0
    for message in messages:
        location = f"Line: {message.line} Column: {message.column}: "
        if message.is_error:
            logger.error("%s%s", location, message.message)
            errors += 1
        else:
            logger.warning("%s%s", location, message.message)
            warnings += 1

    if errors + warnings:
        logger.error(
            "LINT: %5d Error(s) %5d Warning(s) at %s", errors, warnings, path
        )
    return errors + warnings


def report_name(prefix: str, path: Path, project_root: Path) -> str:
    """Build the report file name for a linted directory."""
    try:
        relative = path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        relative = path.as_posix()
    return f"{prefix}-report--{relative.replace('/', '-')}.html"


def render_html_report(report: LintReport, title: str) -> str:
    """Render a standalone HTML page listing every message."""
    rows: list[str] = []
    for file_path, messages in report.entries:
        rows.append(
            f'<tr class="file"><th colspan="4">{html.escape(file_path)} '
            f"({len(messages)})</th></tr>"
        )
        for m in messages:
            severity = "error" if m.is_error else "warning"
            rows.append(
                f'<tr class="{severity}"><td>{m.line}:{m.column}</td>'
                f"<td>{severity}</td><td>{html.escape(m.message)}</td>"
                f"<td>{html.escape(m.rule_id)}</td></tr>"
            )
    return (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title>"
        "<style>.error td{color:#b00}.warning td{color:#a60}"
        "th{text-align:left;padding-top:1em}</style></head><body>"
        f"<h1>{html.escape(title)}</h1>"
        f"<p>{report.total} problem(s) in {len(report.entries)} file(s)</p>"
        f"<table>{''.join(rows)}</table></body></html>\n"
    )


def write_extended_report(
    options: BuildOptions, report: LintReport, name: str
) -> bool:
    """Write and open the extended report when requested.

    Returns:
        True if the report contains violations.
    """
    if options.extended_report and not report.is_clean:
        logs_dir = options.project_root / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        target = logs_dir / name
        target.write_text(render_html_report(report, name), encoding="utf-8")
        logger.error("Extended report has been created: %s", target)
        webbrowser.open(target.resolve().as_uri())
    return not report.is_clean
