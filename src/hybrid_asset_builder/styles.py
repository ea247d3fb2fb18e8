"""Stylesheet pipeline: read -> preprocess -> rewrite asset paths -> minify."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from .conf import BuildOptions, log_file_progress
from .exceptions import PreprocessError
from .paths import read_file
from .tools.base import BaseMinifier, get_tool

logger = logging.getLogger(__name__)

MINIFIED_STYLESHEET = re.compile(r"(\.min\.css$|\.min\.css\?)", re.IGNORECASE)


def path_rewrites(options: BuildOptions) -> list[tuple[re.Pattern[str], str]]:
    """Relative asset paths used by vendor stylesheets and their bundle location.

    Applied in order: the specific font packages first, then generic image
    and font folders.
    """
    inner = options.vendor_inner
    return [
        (re.compile(r"\.\./fonts/ionicons"), f"{inner}/ionic/fonts/ionicons"),
        (
            re.compile(r"\.\./fonts/fontawesome"),
            f"{inner}/components-font-awesome/fonts/fontawesome",
        ),
        (re.compile(r"\.\./img/"), "img/"),
        (re.compile(r"\.\./fonts/"), "fonts/"),
    ]


def rewrite_asset_paths(options: BuildOptions, code: str) -> str:
    for pattern, replacement in path_rewrites(options):
        code = pattern.sub(lambda _m, r=replacement: r, code)
    return code


async def process_style(
    options: BuildOptions, link: str, source_root: Path, minifier: BaseMinifier
) -> str:
    """Process one stylesheet. Errors are logged and yield an empty result."""
    full_name = source_root / link.split("?", 1)[0].lstrip("/")
    try:
        code = await read_file(options, full_name, options.preprocess_resources)
        code = rewrite_asset_paths(options, code)
        if not options.skip_resource_compression and not MINIFIED_STYLESHEET.search(link):
            log_file_progress(options, "Minifying", link)
            code = minifier.minify(code)
        return code
    except (OSError, ValueError, PreprocessError) as e:
        log_file_progress(options, getattr(e, "strerror", None) or e, full_name, "error")
        return ""


async def process_styles(
    options: BuildOptions, links: list[str], source_root: Path
) -> str:
    """Process every referenced stylesheet and join them in reference order."""
    minifier = get_tool(options, "CSS_MINIFIER")
    results = await asyncio.gather(
        *(process_style(options, link, source_root, minifier) for link in links if link)
    )
    return "\n".join(results)
