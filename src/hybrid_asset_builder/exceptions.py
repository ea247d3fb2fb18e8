"""Exceptions raised by the build pipeline."""

from __future__ import annotations


class BuildError(Exception):
    """Base class for every error that aborts a build or a stage."""


class ResourceExtractionError(BuildError):
    """The entry document could not be parsed."""


class TemplateBuildError(BuildError):
    """The template registry could not be produced."""


class AnnotationError(BuildError):
    """The dependency-injection annotator reported errors for a script."""


class LintFailedError(BuildError):
    """Lint violations were found while failing on lint is enabled."""


class PreprocessError(BuildError):
    """A preprocessing directive block is unbalanced."""


class StageFailedError(BuildError):
    """One or both bundle stages failed during assembly.

    ``cause`` is one of ``"both"``, ``"script"`` or ``"style"``.
    """

    MESSAGES = {
        "both": "CSS and JS failed",
        "script": "JS failed",
        "style": "CSS failed",
    }

    def __init__(self, cause: str) -> None:
        self.cause = cause
        super().__init__(self.MESSAGES[cause])
