"""
Flet binding for the markdown field.

The rich view renders the document with ft.Markdown and is driven from the
page keyboard: printable keys type at the caret, arrows move it, and every
key first goes through the editor's handler chain. The source view is a
plain multi-line TextField.
"""

import dataclasses
import logging
from collections.abc import Callable
from typing import Any

import flet as ft

from markpanel.components.commands import ScreenPoint
from markpanel.components.editor import ClipboardUnavailable, EditorMode, FieldProps, KeyEvent, MarkdownEditor
from markpanel.domain.document import Position, RichTextNode, Selection, block_text, textblock, textblock_count
from markpanel.domain.fields import MarkdownField
from markpanel.rules.models import EditorRules, FieldRules, default_rules
from markpanel.ui.theme import EditorTheme

logger = logging.getLogger(__name__)

# Flet key labels that differ from the names the editor uses
KEY_NAMES = {
    "Arrow Up": "ArrowUp",
    "Arrow Down": "ArrowDown",
    "Arrow Left": "ArrowLeft",
    "Arrow Right": "ArrowRight",
    "Space": " ",
}

# (action, icon, tooltip, args)
TOOLBAR_ACTIONS: tuple[tuple[str, str, str, dict[str, Any]], ...] = (
    ("bold", ft.Icons.FORMAT_BOLD, "Bold", {}),
    ("italic", ft.Icons.FORMAT_ITALIC, "Italic", {}),
    ("underline", ft.Icons.FORMAT_UNDERLINED, "Underline", {}),
    ("strike", ft.Icons.FORMAT_STRIKETHROUGH, "Strikethrough", {}),
    ("code", ft.Icons.CODE, "Inline code", {}),
    ("heading", ft.Icons.TITLE, "Heading", {"level": 2}),
    ("bulletList", ft.Icons.FORMAT_LIST_BULLETED, "Bullet list", {}),
    ("orderedList", ft.Icons.FORMAT_LIST_NUMBERED, "Numbered list", {}),
    ("blockquote", ft.Icons.FORMAT_QUOTE, "Quote", {}),
    ("codeBlock", ft.Icons.DATA_OBJECT, "Code block", {}),
    ("rule", ft.Icons.HORIZONTAL_RULE, "Divider", {}),
)


def translate_key_event(e: Any) -> KeyEvent:
    """Map a Flet keyboard event to an editor KeyEvent."""
    key = KEY_NAMES.get(e.key, e.key)
    return KeyEvent(key=key, ctrl=bool(e.ctrl), meta=bool(e.meta), shift=bool(e.shift), alt=bool(e.alt))


def typed_character(event: KeyEvent) -> str | None:
    """The character a plain key press types, if any."""
    if event.mod or event.alt or len(event.key) != 1:
        return None
    return event.key if event.shift else event.key.lower()


def step_position(root: RichTextNode, pos: Position, delta: int) -> Position:
    """Move one character left or right, crossing into neighbouring textblocks."""
    offset = pos.offset + delta
    if offset < 0:
        if pos.block == 0:
            return Position(0, 0)
        previous = pos.block - 1
        return Position(previous, len(block_text(textblock(root, previous))))

    length = len(block_text(textblock(root, pos.block)))
    if offset > length:
        if pos.block + 1 >= textblock_count(root):
            return Position(pos.block, length)
        return Position(pos.block + 1, 0)
    return Position(pos.block, offset)


@dataclasses.dataclass(frozen=True)
class FieldChrome:
    show_toolbar: bool
    height: int | None
    auto_resize: bool

    @property
    def body_height(self) -> int | None:
        return None if self.auto_resize else self.height


def resolve_chrome(field: MarkdownField, rules: FieldRules) -> FieldChrome:
    """
    Combine the project-wide field rules with one field's settings.

    The rules are defaults: a field can hide its toolbar or turn auto-resize
    off, and a height set on the field replaces the rules' height. A height
    from the rules fixes the body size like MarkdownField.height() does.
    """
    if field.height_px is not None:
        height, auto_resize = field.height_px, field.auto_resize_enabled
    else:
        height = rules.height
        auto_resize = field.auto_resize_enabled and rules.auto_resize and rules.height is None
    return FieldChrome(
        show_toolbar=field.show_toolbar and rules.show_toolbar,
        height=height,
        auto_resize=auto_resize,
    )


class FletClipboard:
    """ClipboardPort over the page clipboard. Flet exposes plain text only."""

    def __init__(self, control: ft.Control) -> None:
        self._control = control

    async def read_html(self) -> str | None:
        return None

    async def read_text(self) -> str | None:
        page = self._control.page
        if page is None:
            raise ClipboardUnavailable("Field is not attached to a page")
        return await page.get_clipboard_async()


class MarkdownFieldControl(ft.Column):  # type: ignore
    """
    A markdown field: toolbar, rich/source views and the slash menu.
    """

    def __init__(
        self,
        field: MarkdownField,
        rules: EditorRules | None = None,
        value: str = "",
        on_value_changed: Callable[[str], None] | None = None,
        readonly: bool = False,
        disabled: bool = False,
    ):
        super().__init__(spacing=0)
        self.field = field
        rules = rules or default_rules()
        self.chrome = resolve_chrome(field, rules.field)
        self._field_mounted = False

        settings = rules.to_settings()
        settings = dataclasses.replace(
            settings, slash_commands=settings.slash_commands and field.enable_slash_commands
        )
        props = FieldProps(
            value=value,
            placeholder=field.placeholder_text or "",
            height=self.chrome.height,
            disabled=disabled,
            readonly=readonly or field.readonly_flag,
        )
        self.editor = MarkdownEditor(props, settings=settings, host=self, clipboard=FletClipboard(self))
        if on_value_changed is not None:
            self.editor.on_value_changed(on_value_changed)
        self.editor.fullscreen.on_change(lambda _: self._refresh())

        # Toolbar
        self.toolbar_buttons = [
            ft.IconButton(
                icon=icon,
                tooltip=tooltip,
                on_click=lambda _, a=action, kw=args: self._run_format(a, **kw),
            )
            for action, icon, tooltip, args in TOOLBAR_ACTIONS
        ]
        self.link_button = ft.IconButton(icon=ft.Icons.LINK, tooltip="Link", on_click=self._open_link_dialog)
        self.mode_button = ft.IconButton(on_click=lambda _: self.toggle_mode())
        self.fullscreen_button = ft.IconButton(on_click=lambda _: self.toggle_fullscreen())
        self.toolbar = ft.Container(
            content=ft.Row([*self.toolbar_buttons, self.link_button], wrap=True, spacing=0),
            bgcolor=EditorTheme.toolbar_bgcolor,
            padding=ft.padding.symmetric(horizontal=8, vertical=4),
        )
        header = ft.Row(
            [ft.Container(self.toolbar, expand=True), self.mode_button, self.fullscreen_button],
            spacing=0,
        )

        # Views
        self.preview = ft.Markdown(
            "",
            selectable=True,
            extension_set=ft.MarkdownExtensionSet.GITHUB_WEB,
        )
        self.placeholder_label = ft.Text(props.placeholder, italic=True, color="onSurfaceVariant")
        self.source_field = ft.TextField(
            multiline=True,
            min_lines=8,
            border=ft.InputBorder.NONE,
            text_style=EditorTheme.code_style(),
            on_change=self._source_changed,
            on_focus=lambda _: self.editor.focus(),
            on_blur=lambda _: self.editor.blur(),
        )
        self.caret_label = ft.Text(size=12, color="onSurfaceVariant")

        # Slash menu
        self.menu_list = ft.Column(spacing=0, tight=True)
        self.menu_panel = ft.Container(
            content=self.menu_list,
            bgcolor=EditorTheme.menu_bgcolor,
            border=ft.border.all(1, EditorTheme.border_color),
            border_radius=ft.border_radius.all(EditorTheme.border_radius),
            width=280,
            visible=False,
        )

        self.body = ft.Container(
            content=ft.Column(
                [self.placeholder_label, self.preview, self.source_field, self.menu_panel],
                scroll=ft.ScrollMode.AUTO,
            ),
            padding=12,
            height=self.chrome.body_height,
        )
        self.frame = ft.Container(
            content=ft.Column([header, self.body, self.caret_label], spacing=0),
            border=ft.border.all(1, EditorTheme.border_color),
            border_radius=ft.border_radius.all(EditorTheme.border_radius),
        )

        self.controls = [
            ft.Text(field.name, weight=ft.FontWeight.BOLD),
            self.frame,
            ft.Text(field.help_text or "", size=12, visible=bool(field.help_text)),
        ]
        self._refresh(update=False)

    # --- EditorHost ---

    def caret_coordinates(self, pos: Position) -> ScreenPoint | None:
        # The menu renders inside the field body; Flet has no caret geometry.
        return None

    def focus_view(self, mode: EditorMode) -> None:
        if self._field_mounted and mode is EditorMode.SOURCE:
            self.source_field.focus()

    # --- Lifecycle ---

    def did_mount(self) -> None:
        self._field_mounted = True

    def will_unmount(self) -> None:
        self._field_mounted = False

    # --- Rendering ---

    def _refresh(self, update: bool = True) -> None:
        editor = self.editor
        rich = editor.mode is EditorMode.RICH

        self.toolbar.visible = self.chrome.show_toolbar and editor.toolbar_visible
        for button in [*self.toolbar_buttons, self.link_button]:
            button.disabled = not editor.toolbar_enabled

        self.mode_button.icon = ft.Icons.EDIT_NOTE if rich else ft.Icons.PREVIEW
        self.mode_button.tooltip = "Edit markdown" if rich else "Rich view"
        self.fullscreen_button.icon = ft.Icons.FULLSCREEN_EXIT if editor.is_fullscreen else ft.Icons.FULLSCREEN
        self.fullscreen_button.tooltip = "Exit fullscreen" if editor.is_fullscreen else "Fullscreen"
        self.expand = editor.is_fullscreen

        self.preview.visible = rich
        self.preview.value = editor.value
        self.placeholder_label.visible = rich and not editor.value and bool(self.placeholder_label.value)
        self.source_field.visible = not rich
        self.source_field.read_only = not editor.editable
        if rich or self.source_field.value != editor.source:
            self.source_field.value = editor.source

        pos = editor.selection.head
        self.caret_label.value = f"Block {pos.block + 1}, column {pos.offset + 1}" if rich else ""

        self._render_menu()
        if update and self._field_mounted:
            self.update()

    def _render_menu(self) -> None:
        state = self.editor.menu
        self.menu_panel.visible = state.is_open
        if not state.is_open:
            self.menu_list.controls = []
            return
        if not state.candidates:
            self.menu_list.controls = [ft.ListTile(title=ft.Text("No matching blocks"), dense=True)]
            return
        self.menu_list.controls = [
            ft.ListTile(
                title=ft.Text(command.title),
                subtitle=ft.Text(command.description, size=12),
                dense=True,
                selected=index == state.selected_index,
                bgcolor=EditorTheme.menu_selected_bgcolor if index == state.selected_index else None,
                on_click=lambda _, name=command.name: self._run_command(name),
            )
            for index, command in enumerate(state.candidates)
        ]

    # --- Actions ---

    def toggle_mode(self) -> None:
        self.editor.toggle_mode()
        self._refresh()

    def toggle_fullscreen(self) -> None:
        self.editor.toggle_fullscreen()
        self._refresh()

    def _run_format(self, action: str, **args: Any) -> None:
        self.editor.format(action, **args)
        self._refresh()

    def _run_command(self, name: str) -> None:
        self.editor.run_command(name)
        self._refresh()

    def _source_changed(self, e: ft.ControlEvent) -> None:
        self.editor.edit_source(self.source_field.value or "")
        self._refresh()

    def _open_link_dialog(self, e: ft.ControlEvent) -> None:
        text_field = ft.TextField(label="Text", value=self.editor.selected_text)
        url_field = ft.TextField(label="URL", autofocus=True)

        def apply(_: ft.ControlEvent) -> None:
            self.page.close(dialog)
            if not self.editor.format("link", url=url_field.value or "", text=text_field.value or None):
                logger.info("Link was not applied")
            self._refresh()

        dialog = ft.AlertDialog(
            title=ft.Text("Insert link"),
            content=ft.Column([text_field, url_field], tight=True),
            actions=[
                ft.TextButton("Cancel", on_click=lambda _: self.page.close(dialog)),
                ft.FilledButton("Apply", on_click=apply),
            ],
        )
        self.page.open(dialog)

    async def _paste(self) -> None:
        await self.editor.paste_from_clipboard()
        self._refresh()

    # --- Keyboard ---

    def handle_keyboard_event(self, e: Any) -> bool:
        """Page keyboard hook. Returns True if the field used the key."""
        event = translate_key_event(e)
        if self.editor.key_down(event):
            self._refresh()
            return True
        if self.editor.mode is not EditorMode.RICH:
            return False

        if event.combo == "mod+v" and self._field_mounted:
            self.page.run_task(self._paste)
            return True
        if event.key in ("ArrowLeft", "ArrowRight") and not (event.mod or event.alt):
            delta = -1 if event.key == "ArrowLeft" else 1
            pos = step_position(self.editor.document, self.editor.selection.head, delta)
            self.editor.set_selection(Selection(pos, pos))
            self._refresh()
            return True

        char = typed_character(event)
        if char is None:
            return False
        used = self.editor.type_text(char)
        self._refresh()
        return used


SAMPLE = """# Welcome

Type **/** in the rich view to insert a block, or switch to markdown.

- Ctrl+B, Ctrl+I, Ctrl+U for marks
- Ctrl+Shift+F for fullscreen"""


def main(page: ft.Page) -> None:
    from markpanel.app_shell.config import validate_editor_rules
    from markpanel.rules.loader import load_rules, resolve_rules_path

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    page.title = "markpanel"
    page.theme = EditorTheme.page_theme()
    page.theme_mode = ft.ThemeMode.LIGHT

    rules_path = resolve_rules_path()
    if rules_path.exists():
        rules = load_rules(rules_path)
        logger.info("Rules loaded from %s", rules_path)
    else:
        logger.info("No rules file at %s, using defaults", rules_path)
        rules = default_rules()
    validate_editor_rules(rules)

    field = (
        MarkdownField.make("Content")
        .placeholder("Start writing...")
        .help("Markdown is saved exactly as shown in the source view.")
    )
    output = ft.Text(selectable=True, font_family=EditorTheme.code_font_family, size=12)

    def value_changed(markdown: str) -> None:
        output.value = markdown
        page.update()

    control = MarkdownFieldControl(field, rules, value=SAMPLE, on_value_changed=value_changed)
    output.value = control.editor.value
    page.on_keyboard_event = control.handle_keyboard_event

    page.add(
        control,
        ft.Divider(),
        ft.Text("Field value", weight=ft.FontWeight.BOLD),
        output,
    )


if __name__ == "__main__":
    ft.app(target=main)
