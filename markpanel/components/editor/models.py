"""
Editor component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from markpanel.components.commands import DEFAULT_TRIGGER_CONFIG, TriggerConfig
from markpanel.components.converter import DEFAULT_CONFIG as CONVERTER_DEFAULTS
from markpanel.components.converter import ConverterConfig
from markpanel.components.sanitizer import DEFAULT_CONFIG as SANITIZER_DEFAULTS
from markpanel.components.sanitizer import SanitizerConfig

from .keyboard import DEFAULT_KEYMAP


class EditorMode(str, Enum):
    """Which view owns the document."""

    RICH = "rich"
    SOURCE = "source"


@dataclass(frozen=True)
class FieldProps:
    """Properties the host form passes to the field."""

    value: str = ""
    placeholder: str = ""
    height: int | None = None
    disabled: bool = False
    readonly: bool = False

    @property
    def editable(self) -> bool:
        return not (self.disabled or self.readonly)


@dataclass(frozen=True)
class PastePayload:
    """
    Clipboard content offered to the editor.

    Either part may be missing; html is never inserted without sanitizing.
    """

    html: str | None = None
    text: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.html and not self.text


@dataclass(frozen=True)
class EditorSettings:
    """Component configurations an editor session is built from."""

    sanitizer: SanitizerConfig = SANITIZER_DEFAULTS
    converter: ConverterConfig = CONVERTER_DEFAULTS
    trigger: TriggerConfig = DEFAULT_TRIGGER_CONFIG
    keymap: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KEYMAP))
    slash_commands: bool = True


DEFAULT_SETTINGS = EditorSettings()
