import logging
import re
from collections.abc import Callable, Mapping, MutableMapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# --- Field kinds ---

class FieldKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    MARKDOWN = "markdown"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    DATE = "date"
    DATETIME = "datetime"
    EMAIL = "email"
    PASSWORD = "password"
    FILE = "file"
    MEDIA_LIBRARY_FILE = "media_library_file"
    TAG = "tag"
    BELONGS_TO = "belongs_to"
    BELONGS_TO_MANY = "belongs_to_many"
    HAS_MANY = "has_many"
    HAS_MANY_THROUGH = "has_many_through"
    MORPH_TO = "morph_to"
    MORPH_MANY = "morph_many"
    MORPH_TO_MANY = "morph_to_many"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: "str | FieldKind") -> "FieldKind":
        if isinstance(value, FieldKind):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


FIELD_COMPONENTS: dict[FieldKind, str] = {
    FieldKind.TEXT: "TextField",
    FieldKind.TEXTAREA: "TextareaField",
    FieldKind.MARKDOWN: "MarkdownField",
    FieldKind.NUMBER: "NumberField",
    FieldKind.BOOLEAN: "BooleanField",
    FieldKind.SELECT: "SelectField",
    FieldKind.DATE: "DateField",
    FieldKind.DATETIME: "DateTimeField",
    FieldKind.EMAIL: "EmailField",
    FieldKind.PASSWORD: "PasswordField",
    FieldKind.FILE: "FileField",
    FieldKind.MEDIA_LIBRARY_FILE: "MediaLibraryFileField",
    FieldKind.TAG: "TagField",
    FieldKind.BELONGS_TO: "BelongsToField",
    FieldKind.BELONGS_TO_MANY: "BelongsToManyField",
    FieldKind.HAS_MANY: "HasManyField",
    FieldKind.HAS_MANY_THROUGH: "HasManyThroughField",
    FieldKind.MORPH_TO: "MorphToField",
    FieldKind.MORPH_MANY: "MorphManyField",
    FieldKind.MORPH_TO_MANY: "MorphToManyField",
}

# Unknown kinds render as plain text inputs
FALLBACK_COMPONENT = "TextField"


def resolve_component(kind: "str | FieldKind") -> str:
    """Component name for a field kind; unknown kinds fall back to a text input."""
    parsed = FieldKind.parse(kind)
    if parsed is FieldKind.UNKNOWN:
        logger.warning("Unknown field kind %r, rendering as %s", kind, FALLBACK_COMPONENT)
        return FALLBACK_COMPONENT
    return FIELD_COMPONENTS[parsed]


# --- Markdown field ---

FillCallback = Callable[[Mapping[str, Any], Any, str], None]


def attribute_for(name: str) -> str:
    """Default attribute for a field label: "Article Body" -> "article_body"."""
    return re.sub(r"\s+", "_", name.strip().lower())


def normalize_markdown(value: str) -> str:
    """Unix line endings, surrounding whitespace trimmed."""
    return value.replace("\r\n", "\n").replace("\r", "\n").strip()


def _assign(model: Any, attribute: str, value: Any) -> None:
    if isinstance(model, MutableMapping):
        model[attribute] = value
    else:
        setattr(model, attribute, value)


class MarkdownField(BaseModel):
    """
    Definition of a markdown field on an admin resource.

    Setters return the field so definitions read as one chain:
        MarkdownField.make("Body").without_toolbar().height(400).required()
    """

    name: str
    attribute: str
    component: str = FIELD_COMPONENTS[FieldKind.MARKDOWN]
    value: Any = None
    default: Any = None
    rules: list[str] = Field(default_factory=list)
    help_text: str | None = None
    placeholder_text: str | None = None
    readonly_flag: bool = False
    nullable: bool = False
    sortable: bool = False
    searchable: bool = False

    show_toolbar: bool = True
    enable_slash_commands: bool = True
    height_px: int | None = None
    auto_resize_enabled: bool = True

    fill_callback: FillCallback | None = Field(default=None, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def make(cls, name: str, attribute: str | None = None) -> "MarkdownField":
        return cls(name=name, attribute=attribute or attribute_for(name))

    # --- Fluent setters ---

    def with_toolbar(self, show: bool = True) -> "MarkdownField":
        self.show_toolbar = show
        return self

    def without_toolbar(self) -> "MarkdownField":
        return self.with_toolbar(False)

    def with_slash_commands(self, enable: bool = True) -> "MarkdownField":
        self.enable_slash_commands = enable
        return self

    def without_slash_commands(self) -> "MarkdownField":
        return self.with_slash_commands(False)

    def height(self, pixels: int) -> "MarkdownField":
        # A fixed height turns auto-resize off
        self.height_px = pixels
        self.auto_resize_enabled = False
        return self

    def auto_resize(self, enable: bool = True) -> "MarkdownField":
        self.auto_resize_enabled = enable
        return self

    def maxlength(self, length: int) -> "MarkdownField":
        self.rules = [r for r in self.rules if not r.startswith("max:")] + [f"max:{length}"]
        return self

    def required(self, required: bool = True) -> "MarkdownField":
        if required and "required" not in self.rules:
            self.rules.append("required")
        elif not required:
            self.rules = [r for r in self.rules if r != "required"]
        return self

    def help(self, text: str) -> "MarkdownField":
        self.help_text = text
        return self

    def placeholder(self, text: str) -> "MarkdownField":
        self.placeholder_text = text
        return self

    def readonly(self, readonly: bool = True) -> "MarkdownField":
        self.readonly_flag = readonly
        return self

    def fill_using(self, callback: FillCallback) -> "MarkdownField":
        self.fill_callback = callback
        return self

    # --- Hydration ---

    def fill(self, data: Mapping[str, Any], model: Any) -> None:
        """
        Copy the submitted value onto the model.

        Strings get unix line endings and are trimmed; None and non-string
        values are copied as-is; a missing key leaves the model untouched.
        """
        if self.fill_callback is not None:
            self.fill_callback(data, model, self.attribute)
            return
        if self.attribute not in data:
            return

        value = data[self.attribute]
        if isinstance(value, str):
            value = normalize_markdown(value)
        _assign(model, self.attribute, value)

    # --- Serialization ---

    def meta(self) -> dict[str, Any]:
        return {
            "showToolbar": self.show_toolbar,
            "enableSlashCommands": self.enable_slash_commands,
            "height": self.height_px,
            "autoResize": self.auto_resize_enabled,
        }

    def json_serialize(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "name": self.name,
            "attribute": self.attribute,
            "value": self.value,
            "sortable": self.sortable,
            "searchable": self.searchable,
            "nullable": self.nullable,
            "readonly": self.readonly_flag,
            "helpText": self.help_text,
            "placeholder": self.placeholder_text,
            "default": self.default,
            "rules": list(self.rules),
            **self.meta(),
        }
