"""
Command menu - keyboard navigation and execution of slash commands.

While open the menu owns ArrowUp, ArrowDown, Enter and Escape. Every key it
handles is reported as consumed so no later handler (fullscreen exit in
particular) sees it.
"""

from __future__ import annotations

import logging

from markpanel.domain.document import EditResult, RichTextNode, Selection, clamp_selection
from markpanel.domain.transforms import delete_range

from .catalog import DEFAULT_COMMANDS
from .models import DEFAULT_TRIGGER_CONFIG, Command, MenuKeyResult, MenuState, TriggerConfig
from .trigger import CaretLocator, TriggerDetector

logger = logging.getLogger(__name__)

MENU_KEYS = frozenset({"ArrowUp", "ArrowDown", "Enter", "Escape"})


class CommandMenu:
    """Slash command menu for one editor."""

    def __init__(
        self,
        commands: tuple[Command, ...] = DEFAULT_COMMANDS,
        config: TriggerConfig = DEFAULT_TRIGGER_CONFIG,
        locate_caret: CaretLocator | None = None,
    ) -> None:
        self._commands = commands
        self._detector = TriggerDetector(commands, config, locate_caret)

    @property
    def commands(self) -> tuple[Command, ...]:
        return self._commands

    @property
    def state(self) -> MenuState:
        return self._detector.state

    @property
    def is_open(self) -> bool:
        return self._detector.state.is_open

    # --- Detector passthrough ---

    def on_text_input(self, root: RichTextNode, sel: Selection, typed: str) -> MenuState:
        return self._detector.on_text_input(root, sel, typed)

    def on_change(self, root: RichTextNode, sel: Selection) -> MenuState:
        return self._detector.update(root, sel)

    def close(self) -> MenuState:
        return self._detector.close()

    # --- Navigation ---

    def move(self, delta: int) -> MenuState:
        """Move the highlight by delta, clamped to the candidate range."""
        return self._detector.select(self.state.selected_index + delta)

    def execute(self, root: RichTextNode, command: Command | None = None) -> EditResult | None:
        """
        Run a command (the highlighted one by default).

        The trigger character and query are deleted first; the command then
        acts on the collapsed caret left behind. Closes the menu.
        """
        chosen = command or self.state.selected
        span = self._detector.query_selection()
        self._detector.close()
        if chosen is None or span is None:
            return None

        cleared = delete_range(root, clamp_selection(root, span))
        result = chosen.effect(cleared.document, cleared.selection)
        logger.debug("Ran slash command %s", chosen.name)
        return result

    def handle_key(self, key: str, root: RichTextNode) -> MenuKeyResult:
        """Handle a key press; keys are only consumed while the menu is open."""
        if not self.is_open or key not in MENU_KEYS:
            return MenuKeyResult(consumed=False)

        if key == "ArrowDown":
            self.move(1)
            return MenuKeyResult(consumed=True)
        if key == "ArrowUp":
            self.move(-1)
            return MenuKeyResult(consumed=True)
        if key == "Escape":
            self.close()
            return MenuKeyResult(consumed=True)

        chosen = self.state.selected
        edit = self.execute(root)
        return MenuKeyResult(consumed=True, edit=edit, command=chosen.name if chosen else None)
