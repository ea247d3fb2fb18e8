"""Base classes for the linting, minifying and annotating capabilities."""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from importlib import import_module
from pathlib import Path
from typing import Any

from ..conf import BuildOptions, get_setting
from ..reporting import LintMessage


class BaseTool(ABC):
    """A capability configured from the build options.

    Tools receive the options at construction time and are otherwise
    stateless, so one instance can serve every file of a run.
    """

    def __init__(self, options: BuildOptions) -> None:
        self.options = options

    def find_binary(self, setting_key: str, name: str) -> str | None:
        """Find a Node CLI binary.

        Search order: setting -> node_modules/.bin/<name> -> PATH.
        """
        explicit: str | None = get_setting(self.options, setting_key)
        if explicit:
            return explicit
        local = Path(self.options.project_root) / "node_modules" / ".bin" / name
        if local.exists():
            return str(local)
        return shutil.which(name)


class BaseLinter(BaseTool):
    @abstractmethod
    def lint(self, code: str, path: str) -> list[LintMessage]:
        """Lint ``code`` read from ``path``.

        Returns:
            Messages found, empty if the code is clean.
        """
        ...


class BaseMinifier(BaseTool):
    @abstractmethod
    def minify(self, code: str) -> str:
        """Return the minified form of ``code``."""
        ...


class BaseAnnotator(BaseTool):
    @abstractmethod
    def annotate(self, code: str) -> str:
        """Add dependency-injection annotations to ``code``.

        Raises:
            AnnotationError: if the annotator reports errors.
        """
        ...


def import_class(dotted_path: str) -> type:
    """Import a class from a dotted path string."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = import_module(module_path)
    return getattr(module, class_name)  # type: ignore[no-any-return]


def get_tool(options: BuildOptions, setting_key: str) -> Any:
    """Import and instantiate the tool configured under ``setting_key``."""
    cls = import_class(get_setting(options, setting_key))
    return cls(options)
