"""
Commands component unit tests.

Tests for trigger detection, auto-dismiss and menu navigation.
"""

from __future__ import annotations

import pytest

from markpanel.components.commands import (
    DEFAULT_COMMANDS,
    CommandMenu,
    ScreenPoint,
    TriggerConfig,
    filter_commands,
    find_command,
    should_dismiss,
)
from markpanel.domain.document import (
    Position,
    RichTextNode,
    Selection,
    block_text,
    code_block,
    doc,
    paragraph,
    text,
    textblock,
)
from markpanel.domain.transforms import delete_backward, insert_text

# --- Helpers ---


class Typist:
    """Types characters one at a time, feeding the menu like the editor does."""

    def __init__(self, menu: CommandMenu, root: RichTextNode, sel: Selection) -> None:
        self.menu = menu
        self.root = root
        self.sel = sel

    def type(self, value: str) -> Typist:
        for ch in value:
            result = insert_text(self.root, self.sel, ch)
            self.root, self.sel = result.document, result.selection
            self.menu.on_text_input(self.root, self.sel, ch)
        return self

    def backspace(self) -> Typist:
        result = delete_backward(self.root, self.sel)
        self.root, self.sel = result.document, result.selection
        self.menu.on_change(self.root, self.sel)
        return self


@pytest.fixture
def menu() -> CommandMenu:
    return CommandMenu(locate_caret=lambda pos: ScreenPoint(x=10.0 * pos.offset, y=20.0))


@pytest.fixture
def typist(menu: CommandMenu) -> Typist:
    return Typist(menu, doc(paragraph()), Selection.caret(0, 0))


# --- Catalog Tests ---


class TestCatalog:
    """Test the built-in command catalog."""

    def test_catalog_order(self) -> None:
        """Catalog lists the block commands in menu order."""
        names = [c.name for c in DEFAULT_COMMANDS]
        assert names == [
            "text",
            "heading1",
            "heading2",
            "heading3",
            "bulletList",
            "numberedList",
            "quote",
            "codeBlock",
            "divider",
        ]

    def test_filter_is_case_insensitive(self) -> None:
        """Query matches titles regardless of case."""
        names = [c.name for c in filter_commands(DEFAULT_COMMANDS, "HEAD")]
        assert names == ["heading1", "heading2", "heading3"]

    def test_filter_matches_search_terms(self) -> None:
        """Search terms are matched as substrings."""
        assert [c.name for c in filter_commands(DEFAULT_COMMANDS, "h1")] == ["heading1"]
        assert [c.name for c in filter_commands(DEFAULT_COMMANDS, "hr")] == ["divider"]

    def test_empty_query_matches_all(self) -> None:
        assert filter_commands(DEFAULT_COMMANDS, "") == DEFAULT_COMMANDS

    def test_find_command(self) -> None:
        assert find_command(DEFAULT_COMMANDS, "quote") is not None
        assert find_command(DEFAULT_COMMANDS, "missing") is None


# --- Trigger Tests ---


class TestTrigger:
    """Test opening and closing the menu from typed input."""

    def test_slash_opens_menu(self, typist: Typist, menu: CommandMenu) -> None:
        """Typing the trigger opens the menu with every command."""
        typist.type("/")

        assert menu.is_open
        assert menu.state.query == ""
        assert menu.state.trigger == Position(0, 0)
        assert menu.state.candidates == DEFAULT_COMMANDS
        assert menu.state.anchor == ScreenPoint(x=0.0, y=20.0)

    def test_query_follows_typing(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("Hi /hea")

        assert menu.is_open
        assert menu.state.query == "hea"
        assert menu.state.trigger == Position(0, 3)

    def test_slash_in_code_block_does_not_open(self, menu: CommandMenu) -> None:
        """Code blocks never open the menu."""
        Typist(menu, doc(code_block("x")), Selection.caret(0, 1)).type("/")
        assert not menu.is_open

    def test_slash_in_inline_code_does_not_open(self, menu: CommandMenu) -> None:
        """Typing inside an inline code run never opens the menu."""
        root = doc(paragraph(text("ab", "code")))
        Typist(menu, root, Selection.caret(0, 1)).type("/")
        assert not menu.is_open

    def test_backspace_over_trigger_closes(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/h").backspace()
        assert menu.is_open
        typist.backspace()
        assert not menu.is_open

    def test_caret_leaving_block_closes(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/he")
        menu.on_change(typist.root, Selection.caret(0, 0))
        assert not menu.is_open

    def test_custom_trigger_character(self) -> None:
        menu = CommandMenu(config=TriggerConfig(trigger_char="!"))
        typist = Typist(menu, doc(paragraph()), Selection.caret(0, 0))
        typist.type("/")
        assert not menu.is_open
        typist.type("!")
        assert menu.is_open


# --- Auto-dismiss Tests ---


class TestAutoDismiss:
    """Test the auto-dismiss thresholds."""

    def test_space_dismisses(self, typist: Typist, menu: CommandMenu) -> None:
        """Typing a space after a partial query closes the menu."""
        typist.type("/bol")
        assert menu.is_open
        typist.type(" ")
        assert not menu.is_open

    @pytest.mark.parametrize("ch", list(".!?,:;"))
    def test_punctuation_dismisses(self, typist: Typist, menu: CommandMenu, ch: str) -> None:
        typist.type("/he" + ch)
        assert not menu.is_open

    def test_long_query_with_no_match_dismisses(self, typist: Typist, menu: CommandMenu) -> None:
        """Six characters with nothing matching closes the menu."""
        typist.type("/zzzzz")
        assert menu.is_open
        typist.type("z")
        assert not menu.is_open

    def test_short_query_with_no_match_stays_open(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/zzz")
        assert menu.is_open
        assert menu.state.candidates == ()

    def test_length_limit(self) -> None:
        long_query = "a" * 21
        assert should_dismiss(long_query, DEFAULT_COMMANDS)
        assert not should_dismiss("a" * 20, DEFAULT_COMMANDS)

    def test_thresholds_are_configurable(self) -> None:
        config = TriggerConfig(max_query_length=3, no_match_dismiss_length=1)
        assert should_dismiss("abcd", DEFAULT_COMMANDS, config)
        assert should_dismiss("zz", (), config)


# --- Menu Tests ---


class TestMenuNavigation:
    """Test keyboard navigation inside the menu."""

    def test_arrows_move_without_wraparound(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/head")

        assert menu.handle_key("ArrowUp", typist.root).consumed
        assert menu.state.selected_index == 0
        menu.handle_key("ArrowDown", typist.root)
        menu.handle_key("ArrowDown", typist.root)
        menu.handle_key("ArrowDown", typist.root)
        assert menu.state.selected_index == 2

    def test_index_clamped_when_candidates_shrink(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/")
        for _ in range(5):
            menu.move(1)
        assert menu.state.selected_index == 5
        typist.type("head")
        assert menu.state.selected_index == 2

    def test_escape_closes_without_edit(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/he")
        before = typist.root.to_dict()

        result = menu.handle_key("Escape", typist.root)

        assert result.consumed
        assert result.edit is None
        assert not menu.is_open
        assert typist.root.to_dict() == before

    def test_keys_not_consumed_when_closed(self, menu: CommandMenu) -> None:
        result = menu.handle_key("Escape", doc(paragraph()))
        assert not result.consumed

    def test_other_keys_pass_through(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/")
        assert not menu.handle_key("Tab", typist.root).consumed


class TestMenuExecution:
    """Test running commands from the menu."""

    def test_enter_applies_heading_and_removes_query(self, menu: CommandMenu) -> None:
        """The trigger and query are removed before the command runs."""
        typist = Typist(menu, doc(paragraph("Hello World")), Selection.caret(0, 6))
        typist.type("/h1")

        result = menu.handle_key("Enter", typist.root)

        assert result.consumed
        assert result.command == "heading1"
        assert result.edit is not None
        block = textblock(result.edit.document, 0)
        assert block.type == "heading"
        assert block.attrs["level"] == 1
        assert block_text(block) == "Hello World"
        assert result.edit.selection == Selection.caret(0, 6)
        assert not menu.is_open

    def test_enter_with_no_candidates(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/zz")
        result = menu.handle_key("Enter", typist.root)
        assert result.consumed
        assert result.edit is None

    def test_bullet_list_command(self, typist: Typist, menu: CommandMenu) -> None:
        typist.type("/bullet")
        result = menu.handle_key("Enter", typist.root)

        assert result.edit is not None
        assert result.edit.document.content[0].type == "bulletList"

    def test_divider_command(self, menu: CommandMenu) -> None:
        typist = Typist(menu, doc(paragraph("Intro")), Selection.caret(0, 5))
        typist.type("/divider")
        result = menu.handle_key("Enter", typist.root)

        assert result.edit is not None
        types = [b.type for b in result.edit.document.content]
        assert types == ["paragraph", "horizontalRule", "paragraph"]
