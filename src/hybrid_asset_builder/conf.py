"""Configuration and build options for hybrid-asset-builder."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    # Capability classes
    "JS_LINTER": "hybrid_asset_builder.tools.javascript.ESLintLinter",
    "HTML_LINTER": "hybrid_asset_builder.tools.markup.HTMLHintLinter",
    "JS_MINIFIER": "hybrid_asset_builder.tools.javascript.ScriptMinifier",
    "CSS_MINIFIER": "hybrid_asset_builder.tools.stylesheet.StylesheetMinifier",
    "HTML_MINIFIER": "hybrid_asset_builder.tools.markup.MarkupMinifier",
    "ANNOTATOR": "hybrid_asset_builder.tools.javascript.NgAnnotateAnnotator",
    # External tool binaries
    "TERSER_PATH": None,
    "TERSER_OPTIONS": ["-c", "-m", "--comments", "some"],
    "ESLINT_PATH": None,
    "NG_ANNOTATE_PATH": None,
    "TOOL_TIMEOUT": 30,
    # Project layout
    "DEFAULT_VENDOR_DIR": "bower_components",
    "TEMPLATE_MODULE": "templates",
    # Serve mode
    "WATCH_STABILITY_THRESHOLD": 2.0,
    "WATCH_POLL_INTERVAL": 0.1,
}

# Recognized raw flags, in lookup order. The first value that is not None wins.
FLAG_ALIASES: dict[str, tuple[str, ...]] = {
    "help": ("h", "help"),
    "production": ("p", "prod", "production"),
    "debug": ("d", "debug"),
    "angular_debug": ("ad", "angular-debug"),
    "skip_lint": ("sl", "skip-lint"),
    "no_fail_lint": ("nf", "no-fail-lint"),
    "skip_comp": ("sc", "skip-comp"),
    "verbose": ("vb", "verb", "verbose"),
    "extended_report": ("xr", "extended-report"),
    "skip_all": ("sa", "skip-all"),
    "preprocess_resources": ("ppr", "preprocess-resources"),
}

_UNSET = object()


def _first_set(raw: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def resolve_vendor_dir(project_root: Path, default: str | None = None) -> str:
    """Read the vendor directory from ``.bowerrc``.

    A leading ``www/`` segment is rewritten to ``src/`` since sources live in
    ``src``. Falls back to ``DEFAULT_VENDOR_DIR`` when the file is missing or
    unparsable.
    """
    fallback = default or DEFAULTS["DEFAULT_VENDOR_DIR"]
    try:
        data = json.loads((project_root / ".bowerrc").read_text(encoding="utf-8"))
        directory = data["directory"]
    except (OSError, ValueError, KeyError, TypeError):
        return fallback
    if not isinstance(directory, str) or not directory:
        return fallback
    return re.sub(r"(/?|^)www/", "src/", directory)


@dataclass(frozen=True)
class BuildOptions:
    """Immutable options for one invocation.

    Build with :meth:`from_flags`; every component receives the same instance.
    """

    project_root: Path = Path(".")
    help: bool = False
    production: bool = False
    debug: bool = False
    angular_debug: bool = False
    skip_lint: bool = False
    no_fail_lint: bool = False
    skip_compression: bool = True
    skip_html_compression: bool = True
    skip_resource_compression: bool = True
    verbose: bool = False
    extended_report: bool = False
    skip_all: bool = False
    preprocess_resources: bool = False
    destination_dir_name: str = "build"
    vendor_dir: str = "bower_components"
    settings: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_flags(
        cls,
        raw: Mapping[str, Any] | None = None,
        project_root: Path | str = ".",
        settings: Mapping[str, Any] | None = None,
    ) -> BuildOptions:
        raw = raw or {}
        settings = dict(settings or {})
        project_root = Path(project_root)
        flags = {name: _first_set(raw, aliases) for name, aliases in FLAG_ALIASES.items()}

        production = bool(flags["production"])
        skip_all = bool(flags["skip_all"])
        skip_comp = flags["skip_comp"]
        if skip_comp is None and skip_all:
            skip_comp = True
        # Compression defaults on in production and off in development.
        skip_compression = bool(skip_comp) if skip_comp is not None else not production

        html_override = raw.get("skipHtmlCompression")
        res_override = raw.get("skipResCompression")

        return cls(
            project_root=project_root,
            help=bool(flags["help"]),
            production=production,
            debug=bool(flags["debug"]),
            angular_debug=bool(flags["angular_debug"]),
            skip_lint=bool(flags["skip_lint"]) or skip_all,
            no_fail_lint=bool(flags["no_fail_lint"]),
            skip_compression=skip_compression,
            skip_html_compression=(
                bool(html_override) if html_override is not None else skip_compression
            ),
            skip_resource_compression=(
                bool(res_override) if res_override is not None else skip_compression
            ),
            verbose=bool(flags["verbose"]),
            extended_report=bool(flags["extended_report"]),
            skip_all=skip_all,
            preprocess_resources=bool(flags["preprocess_resources"]),
            destination_dir_name=raw.get("dest") or "build",
            vendor_dir=resolve_vendor_dir(
                project_root, settings.get("DEFAULT_VENDOR_DIR")
            ),
            settings=settings,
        )

    @property
    def environment(self) -> str:
        return "production" if self.production else "development"

    @property
    def fail_on_lint(self) -> bool:
        return not self.no_fail_lint

    @property
    def vendor_inner(self) -> str:
        """Vendor directory relative to ``src`` (used for font path rewrites)."""
        parts = self.vendor_dir.split("/")
        if "src" in parts:
            parts = parts[parts.index("src") + 1 :]
        return "/".join(parts)

    @property
    def skip_lint_pattern(self) -> re.Pattern[str]:
        return re.compile(f"({re.escape(self.vendor_dir)}/|node_modules/)", re.IGNORECASE)


def get_setting(options: BuildOptions, key: str, default: Any = _UNSET) -> Any:
    """Get a tool setting from ``options.settings`` or return default."""
    fallback = DEFAULTS.get(key) if default is _UNSET else default
    return options.settings.get(key, fallback)


def _debug_symbol(flag: bool, production: bool) -> bool | None:
    # Debug flags invert their meaning in production builds.
    return True if (flag and production) or (not flag and not production) else None


def preprocess_context(options: BuildOptions) -> dict[str, Any]:
    """Build the symbol table handed to the preprocessor.

    ``None`` marks a symbol as undefined, which removes ``@ifdef`` blocks.
    """
    return {
        "NODE_ENV": options.environment,
        "DEBUG": _debug_symbol(options.debug, options.production),
        "ANGULAR_DEBUG": _debug_symbol(options.angular_debug, options.production),
    }


def log_file_progress(
    options: BuildOptions,
    message: Any,
    filename: Any,
    level: str = "info",
) -> None:
    """Log per-file progress. Only errors are shown unless verbose is set."""
    if options.verbose or level == "error":
        getattr(logger, level)("%s: %s", message, filename)
