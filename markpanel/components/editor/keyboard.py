"""
Keyboard handling - a prioritized chain of handlers.

Each handler returns True when it consumed the event; dispatch stops at
the first consumer. Escape therefore reaches the fullscreen handler only
when the command menu, which sits earlier in the chain, did not take it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

KeyHandler = Callable[["KeyEvent"], bool]

# Combo -> action name. "mod" is Ctrl, or Cmd on macOS.
DEFAULT_KEYMAP: dict[str, str] = {
    "mod+b": "bold",
    "mod+i": "italic",
    "mod+u": "underline",
    "mod+shift+x": "strike",
    "mod+e": "code",
    "mod+alt+1": "heading1",
    "mod+alt+2": "heading2",
    "mod+alt+3": "heading3",
    "mod+shift+7": "orderedList",
    "mod+shift+8": "bulletList",
    "mod+shift+f": "fullscreen",
}

MODIFIERS = ("mod", "alt", "shift")


@dataclass(frozen=True)
class KeyEvent:
    """A key press as reported by the host."""

    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False

    @property
    def mod(self) -> bool:
        return self.ctrl or self.meta

    @property
    def combo(self) -> str:
        """Normalized combo string, e.g. "mod+shift+x"."""
        parts = [name for name, on in zip(MODIFIERS, (self.mod, self.alt, self.shift), strict=True) if on]
        return "+".join([*parts, self.key.lower()])

    @classmethod
    def parse(cls, combo: str) -> KeyEvent:
        """Build an event from a combo string such as "mod+alt+1"."""
        *mods, key = [part.strip() for part in combo.split("+")]
        names = {m.lower() for m in mods}
        unknown = names - {"mod", "ctrl", "meta", "cmd", "alt", "shift"}
        if unknown or not key:
            raise ValueError(f"Invalid key combo: {combo!r}")
        return cls(
            key=key,
            ctrl=bool(names & {"mod", "ctrl"}),
            meta=bool(names & {"meta", "cmd"}),
            shift="shift" in names,
            alt="alt" in names,
        )


def normalize_combo(combo: str) -> str:
    return KeyEvent.parse(combo).combo


class KeyDispatcher:
    """Runs registered handlers in priority order (lowest first)."""

    def __init__(self) -> None:
        self._handlers: list[tuple[int, str, KeyHandler]] = []

    def register(self, name: str, handler: KeyHandler, priority: int) -> None:
        self.unregister(name)
        self._handlers.append((priority, name, handler))
        self._handlers.sort(key=lambda entry: entry[0])

    def unregister(self, name: str) -> None:
        self._handlers = [entry for entry in self._handlers if entry[1] != name]

    @property
    def handler_names(self) -> list[str]:
        return [name for _, name, _ in self._handlers]

    def dispatch(self, event: KeyEvent) -> str | None:
        """Name of the handler that consumed the event, or None."""
        for _, name, handler in self._handlers:
            if handler(event):
                logger.debug("Key %s consumed by %s", event.combo, name)
                return name
        return None
