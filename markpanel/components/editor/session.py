"""
Editor session - the runtime of one markdown field.

Owns the document (through the mode controller), the selection, the
command menu, the formatting executor, fullscreen state and the keyboard
chain. Every completed edit re-derives the markdown value and emits it to
value listeners before the call returns.

Keyboard chain, in priority order:
    menu        ArrowUp/ArrowDown/Enter/Escape while the menu is open
    shortcuts   formatting keymap (mod+b, mod+alt+1, ...)
    fullscreen  mod+shift+f toggles, Escape exits
    editing     Enter, Backspace, Delete in the rich view
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from markpanel.components.commands import DEFAULT_COMMANDS, Command, CommandMenu, MenuState
from markpanel.components.converter import to_rich
from markpanel.components.formatting import FormattingExecutor, UnsafeLinkError
from markpanel.domain import transforms
from markpanel.domain.document import (
    EditResult,
    RichTextNode,
    Selection,
    clamp_selection,
    end_position,
)

from .clipboard import paste_rich, paste_source, read_payload
from .fullscreen import FullscreenCoordinator
from .keyboard import KeyDispatcher, KeyEvent
from .mode import ModeController
from .models import DEFAULT_SETTINGS, EditorMode, EditorSettings, FieldProps, PastePayload
from .ports import ClipboardPort, EditorHost

logger = logging.getLogger(__name__)

ValueListener = Callable[[str], None]
Listener = Callable[[], None]

# Shortcut action -> (formatting action, args)
SHORTCUT_ACTIONS: dict[str, tuple[str, dict[str, object]]] = {
    "heading1": ("heading", {"level": 1}),
    "heading2": ("heading", {"level": 2}),
    "heading3": ("heading", {"level": 3}),
}

MENU_PRIORITY = 0
SHORTCUT_PRIORITY = 10
FULLSCREEN_PRIORITY = 20
EDITING_PRIORITY = 30


class MarkdownEditor:
    """
    One markdown field editor.

    Edits arriving while a clipboard read is pending are queued and
    replayed, in order, after the paste lands.
    """

    def __init__(
        self,
        props: FieldProps | None = None,
        *,
        settings: EditorSettings = DEFAULT_SETTINGS,
        host: EditorHost | None = None,
        clipboard: ClipboardPort | None = None,
        commands: tuple[Command, ...] = DEFAULT_COMMANDS,
    ) -> None:
        self._props = props or FieldProps()
        self._settings = settings
        self._host = host
        self._clipboard = clipboard

        self._mode = ModeController(
            to_rich(self._props.value, settings.converter),
            settings.converter,
            on_focus=self._focus_view,
        )
        self._selection = Selection.caret(0, 0)
        self._source_cursor = (0, 0)
        self._value = self._mode.value()

        self._formatting = FormattingExecutor(on_change=self._apply, sanitizer_config=settings.sanitizer)
        self._menu = CommandMenu(
            commands,
            settings.trigger,
            locate_caret=host.caret_coordinates if host is not None else None,
        )
        self._fullscreen = FullscreenCoordinator()

        self._keys = KeyDispatcher()
        self._keys.register("menu", self._menu_key, MENU_PRIORITY)
        self._keys.register("shortcuts", self._shortcut_key, SHORTCUT_PRIORITY)
        self._keys.register("fullscreen", self._fullscreen_key, FULLSCREEN_PRIORITY)
        self._keys.register("editing", self._editing_key, EDITING_PRIORITY)

        self._value_listeners: list[ValueListener] = []
        self._focus_listeners: list[Listener] = []
        self._blur_listeners: list[Listener] = []

        self._paste_pending = False
        self._queued: list[Callable[[], None]] = []

    # --- State ---

    @property
    def props(self) -> FieldProps:
        return self._props

    @property
    def value(self) -> str:
        """The markdown value last emitted."""
        return self._value

    @property
    def document(self) -> RichTextNode:
        return self._mode.document

    @property
    def source(self) -> str:
        return self._mode.source

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def selected_text(self) -> str:
        return transforms.text_between(self.document, self._selection)

    @property
    def mode(self) -> EditorMode:
        return self._mode.mode

    @property
    def menu(self) -> MenuState:
        return self._menu.state

    @property
    def formatting(self) -> FormattingExecutor:
        return self._formatting

    @property
    def keys(self) -> KeyDispatcher:
        return self._keys

    @property
    def is_fullscreen(self) -> bool:
        return self._fullscreen.is_fullscreen

    @property
    def fullscreen(self) -> FullscreenCoordinator:
        return self._fullscreen

    @property
    def editable(self) -> bool:
        return self._props.editable

    @property
    def toolbar_visible(self) -> bool:
        return self.mode is EditorMode.RICH

    @property
    def toolbar_enabled(self) -> bool:
        return self.editable and self.mode is EditorMode.RICH

    @property
    def paste_pending(self) -> bool:
        return self._paste_pending

    # --- Listeners ---

    def on_value_changed(self, listener: ValueListener) -> None:
        self._value_listeners.append(listener)

    def on_focus(self, listener: Listener) -> None:
        self._focus_listeners.append(listener)

    def on_blur(self, listener: Listener) -> None:
        self._blur_listeners.append(listener)

    def _emit(self) -> None:
        value = self._mode.value()
        if value == self._value:
            return
        self._value = value
        for listener in self._value_listeners:
            listener(value)

    # --- Internal plumbing ---

    def _focus_view(self, mode: EditorMode) -> None:
        if self._host is not None:
            self._host.focus_view(mode)

    def _sync_menu(self) -> None:
        self._fullscreen.suppress_exit = self._menu.is_open

    def _apply(self, result: EditResult) -> None:
        """Install an edit result and emit the new value."""
        document = result.document
        self._mode.set_document(document)
        self._selection = clamp_selection(document, result.selection)
        self._menu.on_change(document, self._selection)
        self._sync_menu()
        self._emit()

    def _edit(self, name: str, action: Callable[[], None]) -> bool:
        """Run an edit now, queue it behind a pending paste, or refuse it."""
        if not self.editable:
            logger.info("Ignored %s on a %s field", name, "disabled" if self._props.disabled else "readonly")
            return False
        if self._paste_pending:
            self._queued.append(action)
            return True
        action()
        return True

    def _rich_edit(self, name: str, action: Callable[[], None]) -> bool:
        if self.mode is not EditorMode.RICH:
            logger.info("Ignored %s while the source view is active", name)
            return False
        return self._edit(name, action)

    # --- Rich editing ---

    def type_text(self, value: str) -> bool:
        def action() -> None:
            marks = self._formatting.consume_stored_marks()
            result = transforms.insert_text(self.document, self._selection, value, marks)
            self._apply(result)
            if self._settings.slash_commands:
                self._menu.on_text_input(self.document, self._selection, value)
                self._sync_menu()

        return self._rich_edit("typing", action)

    def delete_backward(self) -> bool:
        return self._rich_edit(
            "delete", lambda: self._apply(transforms.delete_backward(self.document, self._selection))
        )

    def delete_forward(self) -> bool:
        return self._rich_edit("delete", lambda: self._apply(transforms.delete_forward(self.document, self._selection)))

    def split_block(self) -> bool:
        return self._rich_edit("enter", lambda: self._apply(transforms.split_block(self.document, self._selection)))

    def set_selection(self, selection: Selection) -> None:
        """Caret or selection moved by the user."""
        if self.mode is not EditorMode.RICH:
            return
        self._selection = clamp_selection(self.document, selection)
        self._formatting.reset_stored_marks()
        self._menu.on_change(self.document, self._selection)
        self._sync_menu()

    def format(self, action: str, **args: object) -> bool:
        """Toolbar entry point. Returns False if the action was refused."""
        done = False

        def run() -> None:
            nonlocal done
            try:
                self._formatting.run_action(action, self.document, self._selection, **args)
                done = True
            except UnsafeLinkError as e:
                logger.warning("Refused link: %s", e)

        if not self._rich_edit(action, run):
            return False
        return done or self._paste_pending

    def run_command(self, name: str) -> bool:
        """Run a slash command picked with the pointer instead of Enter."""
        command = next((c for c in self._menu.commands if c.name == name), None)
        if command is None:
            raise ValueError(f"Unknown command: {name}")
        return self._rich_edit(name, lambda: self._execute_command(command))

    def _execute_command(self, command: Command) -> None:
        result = self._menu.execute(self.document, command)
        self._sync_menu()
        if result is not None:
            self._apply(result)

    # --- Source editing ---

    def edit_source(self, text: str, cursor: tuple[int, int] | None = None) -> bool:
        """The source view's text changed."""

        def action() -> None:
            self._mode.set_source(text)
            self._source_cursor = cursor if cursor is not None else (len(text), len(text))
            self._emit()

        if self.mode is not EditorMode.SOURCE:
            logger.info("Ignored source edit while the rich view is active")
            return False
        return self._edit("source edit", action)

    def set_value(self, markdown: str) -> None:
        """Replace the content from the host form without emitting."""
        self._mode.load(markdown)
        self._selection = clamp_selection(self.document, self._selection)
        self._menu.close()
        self._sync_menu()
        self._value = self._mode.value()

    # --- Mode and fullscreen ---

    def toggle_mode(self) -> EditorMode:
        self._menu.close()
        self._sync_menu()
        self._formatting.reset_stored_marks()
        self._mode.toggle()
        if self.mode is EditorMode.RICH:
            self._selection = Selection(end_position(self.document), end_position(self.document))
        else:
            self._source_cursor = (len(self.source), len(self.source))
        self._emit()
        return self.mode

    def toggle_fullscreen(self) -> bool:
        return self._fullscreen.toggle()

    # --- Keyboard ---

    def key_down(self, event: KeyEvent) -> bool:
        """Route a key press through the handler chain. True if consumed."""
        return self._keys.dispatch(event) is not None

    def _menu_key(self, event: KeyEvent) -> bool:
        if not self._menu.is_open or event.mod or event.alt:
            return False
        chosen = self._menu.state.selected
        if event.key == "Enter" and chosen is not None:
            query = self._menu.state.query
            self._edit(chosen.name, lambda: self._run_menu_choice(chosen, query))
            return True
        result = self._menu.handle_key(event.key, self.document)
        self._sync_menu()
        return result.consumed

    def _run_menu_choice(self, command: Command, query: str) -> None:
        # A paste that landed after Enter may have grown the query.
        if self._menu.is_open and self._menu.state.query != query:
            logger.info("Dropped slash command %s: its query changed to %r", command.name, self._menu.state.query)
            self._menu.close()
            self._sync_menu()
            return
        self._execute_command(command)

    def _shortcut_key(self, event: KeyEvent) -> bool:
        action = self._settings.keymap.get(event.combo)
        if action is None or action == "fullscreen":
            return False
        if self.mode is not EditorMode.RICH or not self.editable:
            return False
        name, args = SHORTCUT_ACTIONS.get(action, (action, {}))
        self.format(name, **args)
        return True

    def _fullscreen_key(self, event: KeyEvent) -> bool:
        if self._settings.keymap.get(event.combo) == "fullscreen":
            self._fullscreen.toggle()
            return True
        if event.key == "Escape" and not (event.mod or event.alt or event.shift):
            return self._fullscreen.handle_escape()
        return False

    def _editing_key(self, event: KeyEvent) -> bool:
        if self.mode is not EditorMode.RICH or event.mod or event.alt:
            return False
        if event.key == "Enter" and not event.shift:
            return self.split_block()
        if event.key == "Enter" and event.shift:
            return self.type_text("\n")
        if event.key == "Backspace":
            return self.delete_backward()
        if event.key == "Delete":
            return self.delete_forward()
        return False

    # --- Focus ---

    def focus(self) -> None:
        for listener in self._focus_listeners:
            listener()

    def blur(self) -> None:
        self._menu.close()
        self._sync_menu()
        for listener in self._blur_listeners:
            listener()

    # --- Clipboard ---

    def paste(self, payload: PastePayload) -> bool:
        """Insert clipboard content; HTML is always sanitized first."""
        if payload.is_empty:
            return False

        if self.mode is EditorMode.SOURCE:

            def source_action() -> None:
                text, offset = paste_source(
                    self.source, self._source_cursor, payload, self._settings.sanitizer, self._settings.converter
                )
                self._mode.set_source(text)
                self._source_cursor = (offset, offset)
                self._emit()

            return self._edit("paste", source_action)

        def rich_action() -> None:
            self._apply(
                paste_rich(
                    self.document,
                    self._selection,
                    payload,
                    self._settings.sanitizer,
                    self._settings.converter,
                )
            )

        return self._edit("paste", rich_action)

    async def paste_from_clipboard(self) -> bool:
        """
        Read the clipboard and paste.

        The read is the only awaited call; edits made meanwhile are queued
        and replayed after the pasted content is inserted.
        """
        if self._clipboard is None:
            logger.info("No clipboard available for paste")
            return False
        if not self.editable:
            logger.info("Ignored paste on a read-only field")
            return False

        self._paste_pending = True
        try:
            payload = await read_payload(self._clipboard)
        except Exception:
            self._paste_pending = False
            self._replay()
            raise
        self._paste_pending = False

        pasted = self.paste(payload)
        self._replay()
        return pasted

    def _replay(self) -> None:
        queued, self._queued = self._queued, []
        for action in queued:
            self._edit("queued edit", action)
