"""
Tests for editor rules loading and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from markpanel.app_shell.config import check_editor_rules, validate_editor_rules
from markpanel.rules.loader import RULES_PATH_ENV, load_rules, resolve_rules_path
from markpanel.rules.models import EditorRules, default_rules

PROJECT_ROOT = Path(__file__).parent.parent.parent


class TestLoadRules:
    """Test rules file loading."""

    def test_load_project_rules_file(self) -> None:
        rules = load_rules(PROJECT_ROOT / "editor.yaml")
        assert rules.version == "1"
        assert rules.command_menu.trigger_char == "/"
        assert check_editor_rules(rules) == []

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "nope.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "editor.yaml"
        path.write_text("command_menu: [")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_rules(path)

    def test_schema_violation_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "editor.yaml"
        path.write_text("command_menu:\n  max_query_length: 0\n")
        with pytest.raises(ValueError, match="validation failed"):
            load_rules(path)

    def test_unknown_section_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "editor.yaml"
        path.write_text("themes: {}\n")
        with pytest.raises(ValueError):
            load_rules(path)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "editor.yaml"
        path.write_text("")
        assert load_rules(path) == default_rules()

    def test_strips_markdown_code_fences(self, tmp_path: Path) -> None:
        path = tmp_path / "editor.md"
        path.write_text("## Editor rules\n\n```yaml\ncommand_menu:\n  max_query_length: 12\n```\n\nNotes.\n")
        assert load_rules(path).command_menu.max_query_length == 12


class TestResolvePath:
    """Test where the rules file is looked up."""

    def test_explicit_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(RULES_PATH_ENV, "/from/env.yaml")
        assert resolve_rules_path(Path("given.yaml")) == Path("given.yaml")

    def test_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(RULES_PATH_ENV, "/from/env.yaml")
        assert resolve_rules_path() == Path("/from/env.yaml")

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(RULES_PATH_ENV, raising=False)
        assert resolve_rules_path() == Path("editor.yaml")


class TestModels:
    """Test rule models and their component configs."""

    def test_keymap_combos_are_normalized(self) -> None:
        rules = EditorRules.model_validate({"keymap": {"bindings": {"Ctrl+Shift+X": "strike"}}})
        assert rules.keymap.bindings == {"mod+shift+x": "strike"}

    def test_bad_bullet_markers(self) -> None:
        with pytest.raises(ValueError):
            EditorRules.model_validate({"converter": {"bullet_markers": ["-"]}})

    def test_field_height_minimum(self) -> None:
        with pytest.raises(ValueError):
            EditorRules.model_validate({"field": {"height": 10}})

    def test_to_settings(self) -> None:
        rules = EditorRules.model_validate(
            {
                "command_menu": {"max_query_length": 8, "dismiss_chars": "."},
                "sanitizer": {"allowed_tags": ["P", "EM"], "allowed_attrs": {}},
                "field": {"enable_slash_commands": False},
            }
        )
        settings = rules.to_settings()
        assert settings.trigger.max_query_length == 8
        assert settings.trigger.dismiss_chars == frozenset({"."})
        assert settings.sanitizer.allow_tags == frozenset({"p", "em"})
        assert settings.slash_commands is False

    def test_sanitizer_rules_port(self) -> None:
        port = default_rules().sanitizer
        assert "script" not in port.get_allowed_tags()
        assert port.get_allowed_attrs() == {"a": frozenset({"href", "title"})}
        assert "javascript:" in port.get_forbidden_protocols()


class TestValidateRules:
    """Test startup validation."""

    def test_defaults_are_valid(self) -> None:
        validate_editor_rules(default_rules())

    @pytest.mark.parametrize(
        "data,fragment",
        [
            ({"command_menu": {"trigger_char": "//"}}, "one character"),
            ({"command_menu": {"trigger_char": " "}}, "whitespace"),
            ({"command_menu": {"trigger_char": "."}}, "dismiss character"),
            ({"command_menu": {"max_query_length": 3, "no_match_dismiss_length": 5}}, "exceeds"),
            ({"keymap": {"bindings": {"mod+k": "explode"}}}, "unknown action"),
            ({"sanitizer": {"allowed_tags": ["em"], "allowed_attrs": {}}}, "'p'"),
            ({"sanitizer": {"allowed_tags": ["p"], "allowed_attrs": {"a": ["href"]}}}, "disallowed tag"),
        ],
    )
    def test_problems_are_reported(self, data: dict, fragment: str) -> None:
        problems = check_editor_rules(EditorRules.model_validate(data))
        assert len(problems) == 1
        assert fragment in problems[0]

    def test_validate_raises_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        rules = EditorRules.model_validate({"keymap": {"bindings": {"mod+k": "explode"}}})
        with pytest.raises(ValueError, match="Invalid editor rules"):
            validate_editor_rules(rules)
        assert "unknown action" in caplog.text
