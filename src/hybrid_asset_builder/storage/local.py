from __future__ import annotations

from pathlib import Path

from .base import BaseAssetStorage


class LocalFileStorage(BaseAssetStorage):
    """Filesystem storage rooted at a build directory.

    Used to write the assembled artifacts into the temporary destination
    before they are published.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _get_full_path(self, path: str) -> Path:
        full_path = (self.root / path).resolve()
        root_resolved = self.root.resolve()
        if not full_path.is_relative_to(root_resolved):
            raise ValueError(
                f"Path traversal detected: {path!r} resolves outside {self.root}"
            )
        return full_path

    def save(self, path: str, content: str) -> Path:
        full_path = self._get_full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content, encoding="utf-8")
        return full_path
