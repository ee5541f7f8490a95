"""
Slash command models.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from markpanel.domain.document import EditResult, Position, RichTextNode, Selection

CommandEffect = Callable[[RichTextNode, Selection], EditResult]


@dataclass(frozen=True)
class Command:
    """A slash command: catalog entry plus the edit it performs."""

    name: str
    title: str
    description: str
    effect: CommandEffect
    search_terms: tuple[str, ...] = ()

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match against name, title, description and terms."""
        needle = query.lower()
        if not needle:
            return True
        haystack = (self.name, self.title, self.description, *self.search_terms)
        return any(needle in value.lower() for value in haystack)


@dataclass(frozen=True)
class ScreenPoint:
    """Caret coordinates reported by the host, used to place the menu."""

    x: float
    y: float


@dataclass(frozen=True)
class TriggerConfig:
    """Trigger and auto-dismiss settings from rules."""

    trigger_char: str = "/"
    max_query_length: int = 20
    dismiss_chars: frozenset[str] = field(default_factory=lambda: frozenset(".!?,:;"))
    no_match_dismiss_length: int = 5


DEFAULT_TRIGGER_CONFIG = TriggerConfig()


@dataclass(frozen=True)
class MenuState:
    """
    Command menu state.

    Closed menus carry no anchor or trigger; `trigger` is the position of the
    trigger character in the document.
    """

    is_open: bool = False
    query: str = ""
    candidates: tuple[Command, ...] = ()
    selected_index: int = 0
    trigger: Position | None = None
    anchor: ScreenPoint | None = None

    @property
    def selected(self) -> Command | None:
        if not self.is_open or not self.candidates:
            return None
        return self.candidates[self.selected_index]


CLOSED = MenuState()


@dataclass(frozen=True)
class MenuKeyResult:
    """Outcome of a key press routed to the menu."""

    consumed: bool
    edit: EditResult | None = None
    command: str | None = None
