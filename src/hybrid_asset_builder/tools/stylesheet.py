"""Stylesheet optimizer."""

from __future__ import annotations

import rcssmin  # type: ignore[import-untyped]

from .base import BaseMinifier


class StylesheetMinifier(BaseMinifier):
    """Minify CSS content using rcssmin. License (``/*!``) comments are kept."""

    def minify(self, code: str) -> str:
        return rcssmin.cssmin(code, keep_bang_comments=True)  # type: ignore[no-any-return]
