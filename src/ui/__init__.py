"""UI package - Window bookkeeping shared with the windowing toolkit.

Window creation, menus and chrome belong to the toolkit; this package only
tracks how many windows depend on the backend.
"""

from __future__ import annotations

from .window_registry import WindowReferenceCounter

__all__ = [
    "WindowReferenceCounter",
]
