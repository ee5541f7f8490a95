"""
Editor component port definitions.

The host (a UI toolkit binding, or a test double) implements these.
"""

from __future__ import annotations

from typing import Protocol

from markpanel.components.commands import ScreenPoint
from markpanel.domain.document import Position

from .models import EditorMode


class EditorHost(Protocol):
    """Port for the view hosting the editor."""

    def caret_coordinates(self, pos: Position) -> ScreenPoint | None:
        """Screen coordinates of a document position, if known."""
        ...

    def focus_view(self, mode: EditorMode) -> None:
        """Move keyboard focus to the rich or the source view."""
        ...


class ClipboardPort(Protocol):
    """Port for reading the system clipboard. The editor never writes to it."""

    async def read_html(self) -> str | None:
        """Read text/html; raise ClipboardUnavailable or PermissionError if denied."""
        ...

    async def read_text(self) -> str | None:
        """Read text/plain; raise ClipboardUnavailable or PermissionError if denied."""
        ...
