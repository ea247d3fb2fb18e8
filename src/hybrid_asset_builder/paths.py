"""Path mapping and file copy helpers shared by build and serve modes."""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .conf import BuildOptions, log_file_progress, preprocess_context
from .preprocess import preprocess

logger = logging.getLogger(__name__)

# Scripts, stylesheets and templates are handled by their own pipelines.
PROCESSED_RESOURCES = (
    re.compile(r"\.js$", re.IGNORECASE),
    re.compile(r"\.css$", re.IGNORECASE),
    re.compile(r"\.html$", re.IGNORECASE),
)


def _strip_query(file: str) -> str:
    return file.split("?", 1)[0].split("#", 1)[0]


def map_path(file: str | Path, source_root: Path, dest_root: Path) -> tuple[Path, Path]:
    """Compute the origin and destination paths for a reference.

    ``file`` may already point below ``source_root`` (absolute, or relative
    to the working directory) or be relative to ``source_root``.
    """
    ref = Path(_strip_query(str(file)))
    try:
        relative = ref.relative_to(source_root)
    except ValueError:
        if ref.is_absolute():
            relative = Path(*ref.parts[1:])
        else:
            relative = Path(str(ref).lstrip("/"))
    return source_root / relative, dest_root / relative


def should_copy(
    file: str,
    include: Sequence[re.Pattern[str]] | None = None,
    exclude: Sequence[re.Pattern[str]] | None = None,
) -> bool:
    """Apply the include/exclude filters. Without filters everything is copied."""
    if exclude is not None:
        return not any(pattern.search(file) for pattern in exclude)
    if include is not None:
        return any(pattern.search(file) for pattern in include)
    return True


def ensure_dir_exists(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def clean(options: BuildOptions, path: Path) -> None:
    """Remove a directory tree (or file). Missing paths are ignored."""
    log_file_progress(options, "Cleaning", path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def move_contents(source: Path, dest: Path) -> None:
    """Move every entry of ``source`` into ``dest``."""
    ensure_dir_exists(dest)
    for entry in sorted(source.iterdir()):
        shutil.move(str(entry), str(dest / entry.name))


def list_files(root: Path) -> list[Path]:
    """Every regular file below ``root``, sorted."""
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file())


def _copy_file(origin: Path, to: Path) -> None:
    ensure_dir_exists(to.parent)
    shutil.copyfile(origin, to)


async def copy_files(
    options: BuildOptions,
    files: Iterable[str | Path],
    source_root: Path,
    dest_root: Path,
    include: Sequence[re.Pattern[str]] | None = None,
    exclude: Sequence[re.Pattern[str]] | None = None,
) -> list[Path]:
    """Copy files from ``source_root`` to the same relative place below ``dest_root``.

    All copies run concurrently. References whose origin does not exist are
    skipped. The first copy failure propagates.

    Returns:
        The destination paths that were written.
    """
    tasks = []
    targets: list[Path] = []
    for file in files:
        if not file or not should_copy(str(file), include, exclude):
            continue
        origin, to = map_path(file, source_root, dest_root)
        if not origin.is_file():
            continue
        log_file_progress(options, "Copying resource", f"from {origin} to {to}")
        tasks.append(asyncio.to_thread(_copy_file, origin, to))
        targets.append(to)

    await asyncio.gather(*tasks)
    return targets


async def copy_resources(
    options: BuildOptions, source_root: Path, dest_root: Path
) -> list[Path]:
    """Copy every file that is not a script, stylesheet or template."""
    files = await asyncio.to_thread(list_files, source_root)
    return await copy_files(
        options, files, source_root, dest_root, exclude=PROCESSED_RESOURCES
    )


async def read_file(options: BuildOptions, path: Path, is_preprocess: bool) -> str:
    """Read a file and resolve its preprocessing directives when requested."""
    log_file_progress(options, "Reading", path)
    data = await asyncio.to_thread(path.read_text, encoding="utf-8")
    if is_preprocess:
        log_file_progress(options, "Preprocessing", path)
        return preprocess(data, preprocess_context(options))
    return data


@dataclass(frozen=True)
class ProjectPaths:
    """Directory layout of a project."""

    root: Path
    src: Path
    tmp: Path
    www: Path

    @classmethod
    def for_root(cls, root: Path | str) -> ProjectPaths:
        root = Path(root).resolve()
        return cls(root=root, src=root / "src", tmp=root / "tmp", www=root / "www")
