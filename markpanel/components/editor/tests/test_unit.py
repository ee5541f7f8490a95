"""
Editor component unit tests.

Tests for the session runtime: typing, keyboard chain, modes, fullscreen
and clipboard paste.
"""

from __future__ import annotations

import asyncio

import pytest

from markpanel.components.commands import ScreenPoint
from markpanel.components.editor import (
    ClipboardUnavailable,
    EditorMode,
    EditorSettings,
    FieldProps,
    FullscreenCoordinator,
    KeyDispatcher,
    KeyEvent,
    MarkdownEditor,
    ModeController,
    PastePayload,
    clean_pasted_content,
)
from markpanel.domain.document import Position, Selection, block_text, doc, heading, paragraph, textblock

# --- Test Doubles ---


class FakeHost:
    """Records focus changes and reports a fixed caret position."""

    def __init__(self) -> None:
        self.focused: list[EditorMode] = []

    def caret_coordinates(self, pos: Position) -> ScreenPoint | None:
        return ScreenPoint(x=float(pos.offset), y=float(pos.block))

    def focus_view(self, mode: EditorMode) -> None:
        self.focused.append(mode)


class FakeClipboard:
    """Clipboard whose reads can be held open until released."""

    def __init__(self, html: str | None = None, text: str | None = None, deny_html: bool = False) -> None:
        self.html = html
        self.text = text
        self.deny_html = deny_html
        self.gate: asyncio.Event | None = None

    async def read_html(self) -> str | None:
        if self.gate is not None:
            await self.gate.wait()
        if self.deny_html:
            raise PermissionError("clipboard-read denied")
        return self.html

    async def read_text(self) -> str | None:
        return self.text


class UnavailableClipboard:
    async def read_html(self) -> str | None:
        raise ClipboardUnavailable("no clipboard")

    async def read_text(self) -> str | None:
        raise ClipboardUnavailable("no clipboard")


class FailingClipboard:
    """Clipboard whose formatted read fails with a host error."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    async def read_html(self) -> str | None:
        raise self.error

    async def read_text(self) -> str | None:
        return "plain"


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def editor(host: FakeHost) -> MarkdownEditor:
    return MarkdownEditor(FieldProps(value=""), host=host)


def collect(editor: MarkdownEditor) -> list[str]:
    values: list[str] = []
    editor.on_value_changed(values.append)
    return values


# --- Typing ---


class TestTyping:
    """Test edits and value emission."""

    def test_typing_emits_markdown(self, editor: MarkdownEditor) -> None:
        values = collect(editor)

        editor.type_text("Hi")

        assert editor.value == "Hi"
        assert values == ["Hi"]

    def test_value_emitted_synchronously_per_edit(self, editor: MarkdownEditor) -> None:
        values = collect(editor)
        for ch in "abc":
            editor.type_text(ch)
        assert values == ["a", "ab", "abc"]

    def test_enter_and_backspace_keys(self, editor: MarkdownEditor) -> None:
        editor.type_text("one")
        assert editor.key_down(KeyEvent("Enter"))
        editor.type_text("two")
        assert editor.value == "one\n\ntwo"

        for _ in range(4):
            editor.key_down(KeyEvent("Backspace"))
        assert editor.value == "one"

    def test_shortcut_bold_then_type(self, editor: MarkdownEditor) -> None:
        editor.type_text("a ")
        assert editor.key_down(KeyEvent("b", ctrl=True))
        editor.type_text("bold")
        assert editor.value == "a **bold**"

    def test_heading_shortcut(self, editor: MarkdownEditor) -> None:
        editor.type_text("Title")
        editor.key_down(KeyEvent("2", ctrl=True, alt=True))
        assert editor.value == "## Title"

    def test_readonly_ignores_edits(self) -> None:
        editor = MarkdownEditor(FieldProps(value="fixed", readonly=True))
        values = collect(editor)

        assert editor.type_text("x") is False
        assert editor.format("bold") is False
        assert editor.value == "fixed"
        assert values == []
        assert not editor.toolbar_enabled

    def test_disabled_ignores_edits(self) -> None:
        editor = MarkdownEditor(FieldProps(value="fixed", disabled=True))
        editor.set_selection(Selection.caret(0, 5))
        assert editor.delete_backward() is False
        assert editor.value == "fixed"

    def test_refused_link_keeps_document(self, editor: MarkdownEditor) -> None:
        editor.type_text("x")
        editor.set_selection(Selection(Position(0, 0), Position(0, 1)))
        assert editor.format("link", url="javascript:alert(1)") is False
        assert editor.value == "x"

    def test_link_over_selected_text(self) -> None:
        editor = MarkdownEditor(FieldProps(value="Hello World"))
        editor.set_selection(Selection(Position(0, 0), Position(0, 5)))

        assert editor.selected_text == "Hello"
        assert editor.format("link", url="https://e.com", text=editor.selected_text)
        assert editor.value == "[Hello](https://e.com) World"

    def test_set_value_does_not_emit(self, editor: MarkdownEditor) -> None:
        values = collect(editor)
        editor.set_value("# Loaded")
        assert values == []
        assert textblock(editor.document, 0).type == "heading"


# --- Slash Commands ---


class TestSlashCommands:
    """Test the menu inside a session."""

    def test_heading_command_from_keyboard(self, host: FakeHost) -> None:
        editor = MarkdownEditor(FieldProps(value="Hello World"), host=host)
        editor.set_selection(Selection.caret(0, 6))
        for ch in "/h1":
            editor.type_text(ch)

        assert editor.menu.is_open
        assert editor.menu.anchor == ScreenPoint(x=6.0, y=0.0)
        assert editor.key_down(KeyEvent("Enter"))

        block = textblock(editor.document, 0)
        assert block.type == "heading"
        assert block_text(block) == "Hello World"
        assert editor.value == "# Hello World"

    def test_pointer_selection_runs_command(self, editor: MarkdownEditor) -> None:
        editor.type_text("/")
        editor.run_command("quote")
        assert editor.document.content[0].type == "blockquote"
        assert not editor.menu.is_open

    def test_slash_commands_can_be_disabled(self) -> None:
        editor = MarkdownEditor(settings=EditorSettings(slash_commands=False))
        editor.type_text("/")
        assert not editor.menu.is_open

    def test_blur_closes_menu(self, editor: MarkdownEditor) -> None:
        blurred: list[bool] = []
        editor.on_blur(lambda: blurred.append(True))
        editor.type_text("/")
        editor.blur()
        assert not editor.menu.is_open
        assert blurred == [True]


# --- Keyboard chain ---


class TestKeyboard:
    """Test the handler chain and key events."""

    def test_combo_normalization(self) -> None:
        assert KeyEvent("X", meta=True, shift=True).combo == "mod+shift+x"
        assert KeyEvent.parse("Ctrl+Alt+1").combo == "mod+alt+1"

    def test_invalid_combo(self) -> None:
        with pytest.raises(ValueError):
            KeyEvent.parse("hyper+x")

    def test_dispatch_stops_at_first_consumer(self) -> None:
        calls: list[str] = []
        dispatcher = KeyDispatcher()
        dispatcher.register("late", lambda e: calls.append("late") or True, 20)
        dispatcher.register("early", lambda e: calls.append("early") or True, 10)

        assert dispatcher.dispatch(KeyEvent("Escape")) == "early"
        assert calls == ["early"]

    def test_session_chain_order(self, editor: MarkdownEditor) -> None:
        assert editor.keys.handler_names == ["menu", "shortcuts", "fullscreen", "editing"]


# --- Fullscreen ---


class TestFullscreen:
    """Test fullscreen state and Escape arbitration."""

    def test_escape_exits(self) -> None:
        coordinator = FullscreenCoordinator()
        coordinator.enter()
        assert coordinator.handle_escape()
        assert not coordinator.is_fullscreen

    def test_escape_ignored_when_suppressed(self) -> None:
        coordinator = FullscreenCoordinator()
        coordinator.enter()
        coordinator.suppress_exit = True
        assert not coordinator.handle_escape()
        assert coordinator.is_fullscreen

    def test_listener_notified(self) -> None:
        seen: list[bool] = []
        coordinator = FullscreenCoordinator()
        coordinator.on_change(seen.append)
        coordinator.toggle()
        coordinator.toggle()
        assert seen == [True, False]

    def test_shortcut_toggles(self, editor: MarkdownEditor) -> None:
        editor.key_down(KeyEvent("f", ctrl=True, shift=True))
        assert editor.is_fullscreen

    def test_escape_closes_menu_before_fullscreen(self, editor: MarkdownEditor) -> None:
        editor.toggle_fullscreen()
        editor.type_text("/")
        assert editor.menu.is_open
        assert editor.fullscreen.suppress_exit

        assert editor.key_down(KeyEvent("Escape"))
        assert not editor.menu.is_open
        assert editor.is_fullscreen

        assert editor.key_down(KeyEvent("Escape"))
        assert not editor.is_fullscreen

    def test_escape_without_fullscreen_is_not_consumed(self, editor: MarkdownEditor) -> None:
        assert not editor.key_down(KeyEvent("Escape"))


# --- Modes ---


class TestModes:
    """Test switching between the rich and source views."""

    def test_mode_controller_round_trip(self) -> None:
        focused: list[EditorMode] = []
        controller = ModeController(doc(heading(1, "Title"), paragraph("Body")), on_focus=focused.append)

        assert controller.to_source() == "# Title\n\nBody"
        assert controller.mode is EditorMode.SOURCE
        controller.set_source("# Title\n\nChanged")
        controller.to_rich()

        assert block_text(textblock(controller.document, 1)) == "Changed"
        assert focused == [EditorMode.SOURCE, EditorMode.RICH]

    def test_rich_edits_frozen_in_source(self) -> None:
        controller = ModeController()
        controller.to_source()
        with pytest.raises(RuntimeError):
            controller.set_document(doc(paragraph("x")))

    def test_session_mode_switch(self, editor: MarkdownEditor, host: FakeHost) -> None:
        editor.type_text("Body")
        assert editor.toggle_mode() is EditorMode.SOURCE
        assert editor.source == "Body"
        assert not editor.toolbar_visible
        assert host.focused == [EditorMode.SOURCE]

        values = collect(editor)
        editor.edit_source("# New")
        assert values == ["# New"]

        editor.toggle_mode()
        assert textblock(editor.document, 0).type == "heading"
        assert host.focused == [EditorMode.SOURCE, EditorMode.RICH]

    def test_typing_ignored_in_source_mode(self, editor: MarkdownEditor) -> None:
        editor.toggle_mode()
        assert editor.type_text("x") is False

    def test_source_edit_ignored_in_rich_mode(self, editor: MarkdownEditor) -> None:
        assert editor.edit_source("x") is False


# --- Clipboard ---


class TestPaste:
    """Test paste through the sanitizer."""

    def test_paste_html_is_sanitized(self, editor: MarkdownEditor) -> None:
        editor.paste(PastePayload(html='<p onclick="x()">Hi <script>alert(1)</script><b>there</b></p>'))
        assert editor.value == "Hi alert(1)**there**"

    def test_paste_plain_text(self, editor: MarkdownEditor) -> None:
        editor.paste(PastePayload(text="plain *text*"))
        assert editor.value == "plain \\*text\\*"

    def test_paste_in_source_mode_inserts_markdown(self, editor: MarkdownEditor) -> None:
        editor.toggle_mode()
        editor.paste(PastePayload(html="<h2>Section</h2><p><em>note</em></p>"))
        assert editor.source == "## Section\n\n*note*"

    def test_clean_pasted_content_google_docs(self) -> None:
        html = '<b style="font-weight:normal;" id="docs-internal-guid"><span style="font-weight:700">Bold text</span></b>'
        assert clean_pasted_content(html) == "**Bold text**"

    def test_clean_pasted_content_word_classes(self) -> None:
        html = '<p class="MsoNormal">Word <i>text</i></p>'
        assert clean_pasted_content(html) == "Word *text*"

    def test_async_paste(self) -> None:
        editor = MarkdownEditor(clipboard=FakeClipboard(html="<p><u>under</u></p>", text="under"))
        assert asyncio.run(editor.paste_from_clipboard())
        assert editor.value == "<u>under</u>"

    def test_denied_html_falls_back_to_text(self) -> None:
        editor = MarkdownEditor(clipboard=FakeClipboard(html="<b>x</b>", text="plain", deny_html=True))
        asyncio.run(editor.paste_from_clipboard())
        assert editor.value == "plain"

    def test_unavailable_clipboard_pastes_nothing(self) -> None:
        editor = MarkdownEditor(clipboard=UnavailableClipboard())
        assert asyncio.run(editor.paste_from_clipboard()) is False
        assert editor.value == ""

    def test_edits_during_paste_are_queued(self) -> None:
        clipboard = FakeClipboard(html="<p>pasted</p>")
        editor = MarkdownEditor(clipboard=clipboard)

        async def scenario() -> None:
            clipboard.gate = asyncio.Event()
            task = asyncio.create_task(editor.paste_from_clipboard())
            await asyncio.sleep(0)
            assert editor.paste_pending
            editor.type_text("!")
            assert editor.value == ""
            clipboard.gate.set()
            await task

        asyncio.run(scenario())
        assert editor.value == "pasted!"

    @pytest.mark.parametrize("error", [OSError("clipboard gone"), TimeoutError("clipboard timed out")])
    def test_clipboard_errors_fall_back_to_text(self, error: Exception) -> None:
        editor = MarkdownEditor(clipboard=FailingClipboard(error))
        assert asyncio.run(editor.paste_from_clipboard())
        assert editor.value == "plain"

    def test_deeply_nested_html_pastes_its_text(self, editor: MarkdownEditor) -> None:
        html = "<i>" * 800 + "x" + "</i>" * 800
        assert editor.paste(PastePayload(html=html))
        assert editor.value == "x"

    def test_deeply_nested_html_in_source_mode(self, editor: MarkdownEditor) -> None:
        editor.toggle_mode()
        editor.paste(PastePayload(html="<b>" * 800 + "deep" + "</b>" * 800))
        assert editor.source == "deep"

    def test_menu_enter_during_paste_keeps_pasted_content(self) -> None:
        clipboard = FakeClipboard(html="<p>PASTED</p>")
        editor = MarkdownEditor(clipboard=clipboard)
        for ch in "/h":
            editor.type_text(ch)
        assert editor.menu.is_open

        async def scenario() -> None:
            clipboard.gate = asyncio.Event()
            task = asyncio.create_task(editor.paste_from_clipboard())
            await asyncio.sleep(0)
            assert editor.key_down(KeyEvent("Enter"))
            clipboard.gate.set()
            assert await task

        asyncio.run(scenario())
        assert "PASTED" in editor.value
        assert not editor.menu.is_open

    def test_menu_enter_dropped_when_paste_extends_query(self) -> None:
        clipboard = FakeClipboard(text="ab")
        editor = MarkdownEditor(clipboard=clipboard)
        for ch in "/h":
            editor.type_text(ch)

        async def scenario() -> None:
            clipboard.gate = asyncio.Event()
            task = asyncio.create_task(editor.paste_from_clipboard())
            await asyncio.sleep(0)
            editor.key_down(KeyEvent("Enter"))
            clipboard.gate.set()
            await task

        asyncio.run(scenario())
        assert editor.value == "/hab"
        assert not editor.menu.is_open
