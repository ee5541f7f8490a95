"""
Slash command trigger detection.

Two states: closed (Idle) and open. Typing the trigger character into a
text run opens the menu; every later update re-derives the query from the
document text between the trigger and the caret, so edits made by any
means (typing, deleting, pasting, moving the caret) are handled the same
way.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from markpanel.domain.document import (
    Position,
    RichTextNode,
    Selection,
    block_text,
    explode,
    has_mark,
    textblock,
    textblock_count,
)

from .catalog import filter_commands
from .models import CLOSED, DEFAULT_TRIGGER_CONFIG, Command, MenuState, ScreenPoint, TriggerConfig

logger = logging.getLogger(__name__)

CaretLocator = Callable[[Position], ScreenPoint | None]


def should_dismiss(query: str, candidates: tuple[Command, ...], config: TriggerConfig = DEFAULT_TRIGGER_CONFIG) -> bool:
    """Auto-dismiss rules for an open menu."""
    if " " in query:
        return True
    if len(query) > config.max_query_length:
        return True
    if any(ch in config.dismiss_chars for ch in query):
        return True
    return len(query) > config.no_match_dismiss_length and not candidates


def clamp_index(index: int, candidates: tuple[Command, ...]) -> int:
    if not candidates:
        return 0
    return max(0, min(index, len(candidates) - 1))


def can_trigger(root: RichTextNode, pos: Position) -> bool:
    """True if the character just before pos is plain text (not code)."""
    block = textblock(root, pos.block)
    if block.type == "codeBlock" or pos.offset == 0:
        return False
    chars = explode(block)
    if pos.offset > len(chars):
        return False
    _, marks = chars[pos.offset - 1]
    return not has_mark(marks, "code")


def scan_query(root: RichTextNode, sel: Selection, trigger: Position, trigger_char: str) -> str | None:
    """
    Text typed since the trigger, or None if the menu should close.

    Scans backward from the caret; a hard break or the start of the block
    before reaching the trigger closes the menu.
    """
    if not sel.is_collapsed:
        return None
    caret = sel.head
    if caret.block != trigger.block or caret.block >= textblock_count(root):
        return None
    value = block_text(textblock(root, caret.block))
    if caret.offset <= trigger.offset or caret.offset > len(value):
        return None

    index = caret.offset - 1
    while index > trigger.offset:
        if value[index] == "\n":
            return None
        index -= 1
    if value[trigger.offset] != trigger_char:
        return None
    return value[trigger.offset + 1 : caret.offset]


class TriggerDetector:
    """
    Tracks the trigger state for one editor.

    The caret locator is called once when the menu opens to anchor it on
    screen; it may return None when the host cannot report coordinates.
    """

    def __init__(
        self,
        commands: tuple[Command, ...],
        config: TriggerConfig = DEFAULT_TRIGGER_CONFIG,
        locate_caret: CaretLocator | None = None,
    ) -> None:
        self._commands = commands
        self._config = config
        self._locate_caret = locate_caret
        self._state = CLOSED

    @property
    def state(self) -> MenuState:
        return self._state

    @property
    def config(self) -> TriggerConfig:
        return self._config

    def on_text_input(self, root: RichTextNode, sel: Selection, typed: str) -> MenuState:
        """Call after typed text has been inserted and the caret moved past it."""
        if not self._state.is_open and typed == self._config.trigger_char:
            caret = sel.head
            if sel.is_collapsed and can_trigger(root, caret):
                trigger = Position(caret.block, caret.offset - 1)
                anchor = self._locate_caret(trigger) if self._locate_caret else None
                self._state = MenuState(
                    is_open=True,
                    query="",
                    candidates=self._commands,
                    selected_index=0,
                    trigger=trigger,
                    anchor=anchor,
                )
                logger.debug("Command menu opened at %s", trigger)
                return self._state
        return self.update(root, sel)

    def update(self, root: RichTextNode, sel: Selection) -> MenuState:
        """Re-derive the query after any document or caret change."""
        if not self._state.is_open or self._state.trigger is None:
            return self._state

        query = scan_query(root, sel, self._state.trigger, self._config.trigger_char)
        if query is None:
            return self.close()

        candidates = filter_commands(self._commands, query)
        if should_dismiss(query, candidates, self._config):
            logger.debug("Command menu dismissed on query %r", query)
            return self.close()

        self._state = replace(
            self._state,
            query=query,
            candidates=candidates,
            selected_index=clamp_index(self._state.selected_index, candidates),
        )
        return self._state

    def select(self, index: int) -> MenuState:
        if self._state.is_open:
            self._state = replace(self._state, selected_index=clamp_index(index, self._state.candidates))
        return self._state

    def close(self) -> MenuState:
        self._state = CLOSED
        return self._state

    def query_selection(self) -> Selection | None:
        """Selection covering the trigger character and the query."""
        trigger = self._state.trigger
        if not self._state.is_open or trigger is None:
            return None
        end = Position(trigger.block, trigger.offset + 1 + len(self._state.query))
        return Selection(trigger, end)
