"""
Editor component - the runtime of a markdown field.
"""

from .clipboard import (
    ClipboardUnavailable,
    clean_pasted_content,
    fragment_from_html,
    paste_rich,
    paste_source,
    read_payload,
)
from .fullscreen import FullscreenCoordinator
from .keyboard import DEFAULT_KEYMAP, KeyDispatcher, KeyEvent, KeyHandler, normalize_combo
from .mode import ModeController
from .models import DEFAULT_SETTINGS, EditorMode, EditorSettings, FieldProps, PastePayload
from .ports import ClipboardPort, EditorHost
from .session import SHORTCUT_ACTIONS, MarkdownEditor

__all__ = [
    # Session
    "MarkdownEditor",
    "SHORTCUT_ACTIONS",
    # Models
    "DEFAULT_SETTINGS",
    "EditorMode",
    "EditorSettings",
    "FieldProps",
    "PastePayload",
    # Ports
    "ClipboardPort",
    "EditorHost",
    # Mode
    "ModeController",
    # Fullscreen
    "FullscreenCoordinator",
    # Keyboard
    "DEFAULT_KEYMAP",
    "KeyDispatcher",
    "KeyEvent",
    "KeyHandler",
    "normalize_combo",
    # Clipboard
    "ClipboardUnavailable",
    "clean_pasted_content",
    "fragment_from_html",
    "paste_rich",
    "paste_source",
    "read_payload",
]
