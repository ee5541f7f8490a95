from pathlib import Path

import pytest

from markpanel.components.editor import FieldProps, MarkdownEditor
from markpanel.rules.loader import load_rules
from markpanel.rules.models import EditorRules

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def rules() -> EditorRules:
    """
    The project's editor rules, loaded the way the app loads them.
    """
    rules_path = PROJECT_ROOT / "editor.yaml"
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def rules_file(tmp_path):
    """Writes a rules file into tmp_path and returns its path."""

    def write(content: str, name: str = "editor.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return write


@pytest.fixture
def make_editor(rules):
    def build(value: str = "", **props) -> MarkdownEditor:
        return MarkdownEditor(FieldProps(value=value, **props), settings=rules.to_settings())

    return build
