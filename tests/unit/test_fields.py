from types import SimpleNamespace

import pytest

from markpanel.domain.fields import (
    FALLBACK_COMPONENT,
    FieldKind,
    MarkdownField,
    resolve_component,
)


def test_make_derives_attribute():
    assert MarkdownField.make("Content").attribute == "content"
    assert MarkdownField.make("Article Body").attribute == "article_body"


def test_make_with_explicit_attribute():
    field = MarkdownField.make("Body", "post_body")
    assert field.name == "Body"
    assert field.attribute == "post_body"


def test_defaults():
    field = MarkdownField.make("Content")
    assert field.component == "MarkdownField"
    assert field.show_toolbar is True
    assert field.enable_slash_commands is True
    assert field.height_px is None
    assert field.auto_resize_enabled is True


def test_toolbar_and_slash_toggles():
    field = MarkdownField.make("Content").without_toolbar().without_slash_commands()
    assert field.show_toolbar is False
    assert field.enable_slash_commands is False

    field.with_toolbar().with_slash_commands()
    assert field.show_toolbar is True
    assert field.enable_slash_commands is True


def test_height_disables_auto_resize():
    field = MarkdownField.make("Content").height(400)
    assert field.height_px == 400
    assert field.auto_resize_enabled is False

    field.auto_resize()
    assert field.auto_resize_enabled is True


def test_maxlength_and_required_rules():
    field = MarkdownField.make("Content").maxlength(5000).required().required()
    assert field.rules == ["max:5000", "required"]

    field.maxlength(100)
    assert field.rules == ["required", "max:100"]


def test_help_and_placeholder():
    field = MarkdownField.make("Content").help("Supports markdown").placeholder("Write...")
    data = field.json_serialize()
    assert data["helpText"] == "Supports markdown"
    assert data["placeholder"] == "Write..."


@pytest.mark.parametrize(
    "submitted,expected",
    [
        ("Line 1\r\nLine 2\rLine 3\n", "Line 1\nLine 2\nLine 3"),
        ("  \n\n# Heading\n\nContent\n\n  ", "# Heading\n\nContent"),
        (None, None),
        (123, 123),
    ],
)
def test_fill_normalizes_strings(submitted, expected):
    model = {}
    MarkdownField.make("Content").fill({"content": submitted}, model)
    assert model["content"] == expected


def test_fill_sets_attribute_on_objects():
    model = SimpleNamespace()
    MarkdownField.make("Article Body").fill({"article_body": "Hi\r\n"}, model)
    assert model.article_body == "Hi"


def test_fill_skips_missing_key():
    model = {}
    MarkdownField.make("Content").fill({"other": "x"}, model)
    assert "content" not in model


def test_fill_using_callback_wins():
    calls = []

    def fill(data, model, attribute):
        calls.append(attribute)
        model[attribute] = data[attribute].upper()

    model = {}
    MarkdownField.make("Content").fill_using(fill).fill({"content": "  hi  "}, model)

    assert calls == ["content"]
    assert model["content"] == "  HI  "


def test_meta():
    field = MarkdownField.make("Content").without_toolbar().height(300)
    assert field.meta() == {
        "showToolbar": False,
        "enableSlashCommands": True,
        "height": 300,
        "autoResize": False,
    }


def test_json_serialize_merges_meta():
    data = MarkdownField.make("Content").required().json_serialize()

    assert data["component"] == "MarkdownField"
    assert data["name"] == "Content"
    assert data["attribute"] == "content"
    assert data["rules"] == ["required"]
    assert data["readonly"] is False
    assert data["showToolbar"] is True
    assert data["autoResize"] is True
    assert "fill_callback" not in data


def test_resolve_component_for_known_kinds():
    assert resolve_component(FieldKind.MARKDOWN) == "MarkdownField"
    assert resolve_component("belongs_to_many") == "BelongsToManyField"
    assert resolve_component("Morph_To") == "MorphToField"


def test_resolve_component_unknown_falls_back():
    assert FieldKind.parse("sparkle") is FieldKind.UNKNOWN
    assert resolve_component("sparkle") == FALLBACK_COMPONENT
    assert resolve_component(FieldKind.UNKNOWN) == FALLBACK_COMPONENT


def test_every_known_kind_has_component():
    for kind in FieldKind:
        assert resolve_component(kind)
