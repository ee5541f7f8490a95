from pydantic import BaseModel, ConfigDict, Field, field_validator

from markpanel.components.commands import TriggerConfig
from markpanel.components.converter import ConverterConfig
from markpanel.components.editor.keyboard import DEFAULT_KEYMAP, normalize_combo
from markpanel.components.editor.models import EditorSettings
from markpanel.components.sanitizer import SanitizerConfig

DEFAULT_ALLOWED_TAGS = [
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "br", "strong", "b", "em", "i", "u",
    "a", "ul", "ol", "li", "blockquote", "code", "pre",
]

class SanitizerRules(BaseModel):
    allowed_tags: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TAGS))
    allowed_attrs: dict[str, list[str]] = Field(default_factory=lambda: {"a": ["href", "title"]})
    forbidden_protocols: list[str] = Field(default_factory=lambda: ["javascript:", "vbscript:", "data:"])
    passthrough_classes: list[str] = Field(default_factory=list)
    drop_content_tags: list[str] = Field(default_factory=list)

    # RulesPort for the sanitizer component
    def get_allowed_tags(self) -> frozenset[str]:
        return frozenset(t.lower() for t in self.allowed_tags)

    def get_allowed_attrs(self) -> dict[str, frozenset[str]]:
        return {tag.lower(): frozenset(a.lower() for a in attrs) for tag, attrs in self.allowed_attrs.items()}

    def get_forbidden_protocols(self) -> frozenset[str]:
        return frozenset(p.lower() for p in self.forbidden_protocols)

    def get_passthrough_classes(self) -> frozenset[str]:
        return frozenset(self.passthrough_classes)

    def get_drop_content_tags(self) -> frozenset[str]:
        return frozenset(t.lower() for t in self.drop_content_tags)

    def to_config(self) -> SanitizerConfig:
        return SanitizerConfig(
            allow_tags=self.get_allowed_tags(),
            allow_attrs=self.get_allowed_attrs(),
            forbid_protocols=self.get_forbidden_protocols(),
            passthrough_classes=self.get_passthrough_classes(),
            drop_content_tags=self.get_drop_content_tags(),
        )

class CommandMenuRules(BaseModel):
    trigger_char: str = "/"
    max_query_length: int = Field(default=20, ge=1)
    dismiss_chars: str = ".!?,:;"
    no_match_dismiss_length: int = Field(default=5, ge=0)

    def to_config(self) -> TriggerConfig:
        return TriggerConfig(
            trigger_char=self.trigger_char,
            max_query_length=self.max_query_length,
            dismiss_chars=frozenset(self.dismiss_chars),
            no_match_dismiss_length=self.no_match_dismiss_length,
        )

class ConverterRules(BaseModel):
    max_list_depth: int = Field(default=3, ge=1)
    bullet_markers: list[str] = Field(default_factory=lambda: ["-", "*", "+"])
    ordered_delimiters: list[str] = Field(default_factory=lambda: [".", ")"])

    @field_validator("bullet_markers")
    @classmethod
    def check_bullets(cls, v: list[str]) -> list[str]:
        if len(v) < 2 or any(m not in ("-", "*", "+") for m in v):
            raise ValueError("bullet_markers needs at least two of '-', '*', '+'")
        return v

    @field_validator("ordered_delimiters")
    @classmethod
    def check_delimiters(cls, v: list[str]) -> list[str]:
        if len(v) < 2 or any(d not in (".", ")") for d in v):
            raise ValueError("ordered_delimiters must be '.' and ')'")
        return v

    # RulesPort for the converter component
    def get_max_list_depth(self) -> int:
        return self.max_list_depth

    def get_bullet_markers(self) -> tuple[str, ...]:
        return tuple(self.bullet_markers)

    def get_ordered_delimiters(self) -> tuple[str, ...]:
        return tuple(self.ordered_delimiters)

    def to_config(self) -> ConverterConfig:
        return ConverterConfig(
            max_list_depth=self.max_list_depth,
            bullet_markers=self.get_bullet_markers(),
            ordered_delimiters=self.get_ordered_delimiters(),
        )

class KeymapRules(BaseModel):
    bindings: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_KEYMAP))

    @field_validator("bindings")
    @classmethod
    def normalize(cls, v: dict[str, str]) -> dict[str, str]:
        return {normalize_combo(combo): action for combo, action in v.items()}

class FieldRules(BaseModel):
    show_toolbar: bool = True
    enable_slash_commands: bool = True
    auto_resize: bool = True
    height: int | None = Field(default=None, ge=50)

class EditorRules(BaseModel):
    version: str = "1"
    sanitizer: SanitizerRules = Field(default_factory=SanitizerRules)
    command_menu: CommandMenuRules = Field(default_factory=CommandMenuRules)
    converter: ConverterRules = Field(default_factory=ConverterRules)
    keymap: KeymapRules = Field(default_factory=KeymapRules)
    field: FieldRules = Field(default_factory=FieldRules)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> EditorSettings:
        return EditorSettings(
            sanitizer=self.sanitizer.to_config(),
            converter=self.converter.to_config(),
            trigger=self.command_menu.to_config(),
            keymap=dict(self.keymap.bindings),
            slash_commands=self.field.enable_slash_commands,
        )

def default_rules() -> EditorRules:
    return EditorRules()
