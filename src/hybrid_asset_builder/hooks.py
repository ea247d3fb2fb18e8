"""Lifecycle hooks called by the app packaging tool.

``before_prepare`` selects serve or build mode; ``after_plugin_add`` moves an
existing ``www`` folder to ``src`` so development happens there.
"""

from __future__ import annotations

import atexit
import logging
import re
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .build import build
from .conf import BuildOptions
from .exceptions import BuildError
from .paths import ProjectPaths, ensure_dir_exists
from .serve import remove_marker, serve, watch

logger = logging.getLogger(__name__)

MARKER_NAME = "is-serving.tmp"
SERVE_COMMANDS = (
    re.compile(r"\sserve", re.IGNORECASE),
    re.compile(r"-w", re.IGNORECASE),
    re.compile(r"-watch", re.IGNORECASE),
)


@dataclass(frozen=True)
class HookContext:
    """What the packaging tool hands to a hook."""

    project_root: Path
    plugin_dir: Path
    options: Mapping[str, Any] = field(default_factory=dict)
    cmd_line: str = ""


def is_serve_command(cmd_line: str) -> bool:
    return any(pattern.search(cmd_line) for pattern in SERVE_COMMANDS)


def marker_path(context: HookContext) -> Path:
    return Path(context.plugin_dir) / MARKER_NAME


async def before_prepare(
    context: HookContext, settings: Mapping[str, Any] | None = None
) -> None:
    """Process all sources from ``src`` to ``www``.

    Under a serve command the sources are mirrored and watched. Otherwise a
    full build runs, unless a serve session is already active.
    """
    options = BuildOptions.from_flags(context.options, context.project_root, settings)
    paths = ProjectPaths.for_root(context.project_root)
    marker = marker_path(context)
    is_serving = marker.exists()

    if is_serve_command(context.cmd_line):
        ensure_dir_exists(marker.parent)
        marker.write_text("true", encoding="utf-8")
        atexit.register(remove_marker, marker)
        try:
            await serve(options, paths)
        except (BuildError, OSError) as e:
            logger.error("There was an error while processing before_prepare: %s", e)
            remove_marker(marker)
            raise
        await watch(options, paths, marker)
        return

    if is_serving:
        logger.info("A serve session is active (%s). Build skipped.", marker)
        return

    await build(options, paths)


def after_plugin_add(context: HookContext) -> None:
    """Move ``www`` to ``src`` and leave an empty ``www`` behind."""
    paths = ProjectPaths.for_root(context.project_root)
    if paths.www.is_dir() and not paths.src.exists():
        try:
            shutil.move(str(paths.www), str(paths.src))
        except OSError as e:
            logger.warning("Could not move %s to %s: %s", paths.www, paths.src, e)
    ensure_dir_exists(paths.www)
    logger.warning("Remember that all development has to be done in `src` folder")
