"""Build orchestration for hybrid-asset-builder.

Pipeline: Templates -> Extract -> Scripts | Styles | Resources -> Assemble -> Publish
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, NamedTuple

from .conf import BuildOptions, log_file_progress
from .exceptions import BuildError, StageFailedError
from .extractors import ResourceList, extract_resources
from .paths import (
    ProjectPaths,
    clean,
    copy_resources,
    ensure_dir_exists,
    move_contents,
    read_file,
)
from .scripts import process_scripts, wrap_scope
from .storage.base import BaseAssetStorage
from .storage.local import LocalFileStorage
from .styles import process_styles
from .templates import ENTRY_DOCUMENT, TemplateRegistry, build_template_registry
from .tools.base import get_tool

logger = logging.getLogger(__name__)

SCRIPT_BUNDLE = "all.min.js"
STYLE_BUNDLE = "all.min.css"

SCRIPT_REGION = re.compile(r"<!--startsrc-->.*?<!--endsrc-->", re.IGNORECASE | re.DOTALL)
STYLE_REGION = re.compile(r"<!--startcss-->.*?<!--endcss-->", re.IGNORECASE | re.DOTALL)


class StageResult(NamedTuple):
    """Output of a bundle stage, or the reason it failed."""

    output: str | None
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.output is None


@dataclass(frozen=True)
class BuildResult:
    registry: TemplateRegistry
    resources: ResourceList
    scripts: StageResult
    styles: StageResult


def stage_result(outcome: Any, references: list[str]) -> StageResult:
    """Classify a stage outcome gathered with ``return_exceptions=True``.

    A stage with references that produced no output at all failed.
    """
    if isinstance(outcome, (BuildError, OSError)):
        return StageResult(None, outcome)
    if isinstance(outcome, BaseException):
        raise outcome
    if any(references) and not outcome:
        return StageResult(None, BuildError("no output produced"))
    return StageResult(outcome)


def failure_cause(scripts: StageResult, styles: StageResult) -> str | None:
    if scripts.failed and styles.failed:
        return "both"
    if scripts.failed:
        return "script"
    if styles.failed:
        return "style"
    return None


def replace_marker_regions(markup: str, timestamp: int) -> str:
    """Replace the marked script and stylesheet regions with bundle tags."""
    markup = STYLE_REGION.sub(
        lambda _m: f'<link href="{STYLE_BUNDLE}?v={timestamp}" rel="stylesheet">',
        markup,
    )
    return SCRIPT_REGION.sub(
        lambda _m: f'<script src="{SCRIPT_BUNDLE}?v={timestamp}"></script>', markup
    )


def assemble(
    options: BuildOptions,
    registry: TemplateRegistry,
    resources: ResourceList,
    scripts: StageResult,
    styles: StageResult,
    storage: BaseAssetStorage,
) -> None:
    """Write the entry document and both bundles.

    Raises:
        StageFailedError: naming the bundle stage(s) that failed.
    """
    cause = failure_cause(scripts, styles)
    if cause is not None:
        for name, result in (("JS", scripts), ("CSS", styles)):
            if result.failed:
                logger.error("%s stage failed: %s", name, result.error)
        raise StageFailedError(cause)

    script_data = f"{scripts.output}\n{wrap_scope(registry.body)}"
    index_data = replace_marker_regions(resources.markup, int(time.time() * 1000))
    if not options.skip_html_compression:
        index_data = get_tool(options, "HTML_MINIFIER").minify(index_data)

    storage.save_all(
        {
            ENTRY_DOCUMENT: index_data,
            SCRIPT_BUNDLE: script_data,
            STYLE_BUNDLE: styles.output or "",
        }
    )


def publish(options: BuildOptions, paths: ProjectPaths) -> None:
    """Replace the output directory with the assembled build."""
    clean(options, paths.www)
    ensure_dir_exists(paths.www)
    move_contents(paths.tmp, paths.www)
    clean(options, paths.tmp)


async def build(options: BuildOptions, paths: ProjectPaths) -> BuildResult:
    """Main entry point: build ``paths.src`` into ``paths.www``.

    Nothing is published unless every stage succeeded.
    """
    try:
        clean(options, paths.tmp)
        ensure_dir_exists(paths.tmp)

        log_file_progress(options, "Processing angular app", paths.src)
        registry = await build_template_registry(options, paths.src, paths.tmp)
        if not registry.clean:
            logger.warning("Templates were built with lint violations")

        index_data = await read_file(options, paths.src / ENTRY_DOCUMENT, True)
        resources = extract_resources(index_data)

        js_outcome, css_outcome, copy_outcome = await asyncio.gather(
            process_scripts(options, resources.scripts, paths.src),
            process_styles(options, resources.links, paths.src),
            copy_resources(options, paths.src, paths.tmp),
            return_exceptions=True,
        )
        if isinstance(copy_outcome, BaseException):
            raise copy_outcome
        scripts = stage_result(js_outcome, resources.scripts)
        styles = stage_result(css_outcome, resources.links)

        storage = LocalFileStorage(paths.tmp)
        await asyncio.to_thread(
            assemble, options, registry, resources, scripts, styles, storage
        )
        await asyncio.to_thread(publish, options, paths)
    except (BuildError, OSError) as e:
        logger.error("There was an error while processing the build: %s", e)
        raise

    logger.info("Build published to %s", paths.www)
    return BuildResult(registry, resources, scripts, styles)
