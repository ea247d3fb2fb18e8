from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path


class BaseAssetStorage(ABC):
    """Where assembled build artifacts are written.

    Paths are relative to the storage root, e.g. ``"all.min.js"``.
    """

    @abstractmethod
    def save(self, path: str, content: str) -> Path:
        """Write ``content`` to ``path`` and return the written location."""
        ...

    def save_all(self, artifacts: Mapping[str, str]) -> list[Path]:
        """Save several artifacts in insertion order.

        Returns:
            The written locations, in the same order.
        """
        return [self.save(path, content) for path, content in artifacts.items()]
