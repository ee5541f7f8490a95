"""
Fullscreen coordinator.

Escape leaves fullscreen, but only when no other handler has claimed it:
the command menu asserts suppress_exit while it is open.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class FullscreenCoordinator:
    """Fullscreen state for one editor instance."""

    def __init__(self) -> None:
        self._active = False
        self.suppress_exit = False
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def is_fullscreen(self) -> bool:
        return self._active

    def on_change(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def _set(self, active: bool) -> None:
        if active == self._active:
            return
        self._active = active
        logger.debug("Fullscreen %s", "entered" if active else "exited")
        for listener in self._listeners:
            listener(active)

    def enter(self) -> None:
        self._set(True)

    def exit(self) -> None:
        self._set(False)

    def toggle(self) -> bool:
        self._set(not self._active)
        return self._active

    def handle_escape(self) -> bool:
        """Exit fullscreen on Escape. Returns True if the key was consumed."""
        if not self._active or self.suppress_exit:
            return False
        self.exit()
        return True
