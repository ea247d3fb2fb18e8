"""Serve mode: mirror the sources verbatim and keep them mirrored.

No transforms run here. The output directory is repopulated once, then every
change below the source directory is copied over as soon as the file has
stopped changing.
"""

from __future__ import annotations

import asyncio
import logging
import re
import signal
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .conf import BuildOptions, get_setting
from .paths import ProjectPaths, clean, copy_files, ensure_dir_exists, list_files

logger = logging.getLogger(__name__)

DOTFILE = re.compile(r"(^|[/\\])\.")


def is_dotfile(path: str, root: Path) -> bool:
    """True if any segment of ``path`` below ``root`` starts with a dot."""
    try:
        relative = Path(path).relative_to(root).as_posix()
    except ValueError:
        relative = path
    return DOTFILE.search(relative) is not None


def remove_marker(marker: Path) -> None:
    """Remove the serve session marker. A missing marker is fine."""
    try:
        marker.unlink()
    except FileNotFoundError:
        pass


def _snapshot(path: Path) -> tuple[int, int] | None:
    try:
        stat = path.stat()
    except OSError:
        return None
    return stat.st_size, stat.st_mtime_ns


class Mirror:
    """Copy changed files once they are stable.

    A file is stable when its size and mtime have not changed for
    ``threshold`` seconds, checked every ``interval`` seconds.
    """

    def __init__(
        self,
        options: BuildOptions,
        paths: ProjectPaths,
        threshold: float,
        interval: float,
    ) -> None:
        self.options = options
        self.paths = paths
        self.threshold = threshold
        self.interval = interval
        self._pending: dict[str, asyncio.Task[None]] = {}

    @property
    def pending(self) -> list[asyncio.Task[None]]:
        return list(self._pending.values())

    def schedule(self, path: str) -> None:
        # A path already settling picks up the newer content when it copies.
        if path in self._pending:
            return
        task = asyncio.get_running_loop().create_task(self._settle_and_copy(path))
        self._pending[path] = task
        task.add_done_callback(lambda _t: self._pending.pop(path, None))

    async def wait_until_stable(self, path: Path) -> tuple[int, int] | None:
        loop = asyncio.get_running_loop()
        last = _snapshot(path)
        stable_since = loop.time()
        while True:
            await asyncio.sleep(self.interval)
            current = _snapshot(path)
            if current != last:
                last = current
                stable_since = loop.time()
            elif loop.time() - stable_since >= self.threshold:
                return current

    async def _settle_and_copy(self, path: str) -> None:
        if await self.wait_until_stable(Path(path)) is None:
            return
        try:
            await copy_files(self.options, [path], self.paths.src, self.paths.www)
        except OSError as e:
            logger.error("Could not copy %s: %s", path, e)


class ChangeHandler(FileSystemEventHandler):
    """Forward file events from the observer thread to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, mirror: Mirror) -> None:
        self.loop = loop
        self.mirror = mirror

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = getattr(event, "dest_path", "") or event.src_path
        if isinstance(path, bytes):
            path = path.decode()
        if is_dotfile(path, self.mirror.paths.src):
            return
        logger.info("%s: %s", event.event_type, path)
        self.loop.call_soon_threadsafe(self.mirror.schedule, path)


async def serve(options: BuildOptions, paths: ProjectPaths) -> None:
    """Wipe the output directory and copy every source file into it."""
    clean(options, paths.www)
    ensure_dir_exists(paths.www)
    files = await asyncio.to_thread(list_files, paths.src)
    await copy_files(options, files, paths.src, paths.www)


async def watch(
    options: BuildOptions,
    paths: ProjectPaths,
    marker: Path,
    stop: asyncio.Event | None = None,
) -> None:
    """Mirror changes until ``stop`` is set or SIGINT/SIGTERM arrives.

    The serve marker is removed on the way out.
    """
    loop = asyncio.get_running_loop()
    stop = stop or asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass

    mirror = Mirror(
        options,
        paths,
        threshold=get_setting(options, "WATCH_STABILITY_THRESHOLD"),
        interval=get_setting(options, "WATCH_POLL_INTERVAL"),
    )
    observer = Observer()
    observer.schedule(ChangeHandler(loop, mirror), str(paths.src), recursive=True)
    observer.start()
    logger.info("Watching %s", paths.src)
    try:
        await stop.wait()
    finally:
        observer.stop()
        await asyncio.to_thread(observer.join)
        for task in mirror.pending:
            task.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
        remove_marker(marker)
