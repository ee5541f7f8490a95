"""
Tests for the markpanel command line.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from markpanel.app_shell.cli import main
from markpanel.domain.document import bullet_list, doc
from markpanel.rules.loader import RULES_PATH_ENV

PROJECT_ROOT = Path(__file__).parent.parent.parent
RULES = str(PROJECT_ROOT / "editor.yaml")


def run_cli(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, str]:
    code = main(["--rules", RULES, *argv])
    return code, capsys.readouterr().out


def test_sanitize(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "paste.html"
    source.write_text('<p onclick="x()">Hi<script>a</script></p>')

    code, out = run_cli(capsys, "sanitize", str(source))

    assert code == 0
    assert out == "<p>Hia</p>\n"


def test_sanitize_as_markdown(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "paste.html"
    source.write_text("<h2>T</h2><p><strong>b</strong></p>")

    code, out = run_cli(capsys, "sanitize", "--markdown", str(source))

    assert code == 0
    assert out == "## T\n\n**b**\n"


def test_html_to_markdown(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "post.html"
    source.write_text("<h1>Title</h1><p>Some <strong>bold</strong> text</p>")

    code, out = run_cli(capsys, "to-markdown", str(source))

    assert code == 0
    assert out == "# Title\n\nSome **bold** text\n"


def test_json_to_markdown(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "doc.json"
    source.write_text(json.dumps(doc(bullet_list("one")).to_dict()))

    code, out = run_cli(capsys, "to-markdown", str(source))

    assert code == 0
    assert out == "- one\n"


def test_invalid_json_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "doc.json"
    source.write_text("{nope")

    code, out = run_cli(capsys, "to-markdown", str(source))

    assert code == 1
    assert out == ""


def test_malformed_json_document_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "bad.json"
    source.write_text(json.dumps({"type": "doc", "content": "abc"}))

    code, out = run_cli(capsys, "to-markdown", str(source))

    assert code == 1
    assert out == ""


def test_to_rich(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "post.md"
    source.write_text("## Hi")

    code, out = run_cli(capsys, "to-rich", str(source))

    assert code == 0
    document = json.loads(out)
    assert document["content"][0]["type"] == "heading"
    assert document["content"][0]["attrs"] == {"level": 2}


def test_check_rules(capsys: pytest.CaptureFixture[str]) -> None:
    code, out = run_cli(capsys, "check-rules")
    assert code == 0
    assert out == "Rules OK (version 1, 11 key bindings).\n"


def test_invalid_rules_fail(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rules = tmp_path / "editor.yaml"
    rules.write_text("command_menu:\n  trigger_char: '.'\n")

    assert main(["--rules", str(rules), "check-rules"]) == 1
    assert capsys.readouterr().out == ""


def test_missing_input_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, _ = run_cli(capsys, "sanitize", str(tmp_path / "missing.html"))
    assert code == 1


def test_missing_explicit_rules_fail(tmp_path: Path) -> None:
    assert main(["--rules", str(tmp_path / "none.yaml"), "check-rules"]) == 1


def test_default_rules_without_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(RULES_PATH_ENV, raising=False)

    assert main(["check-rules"]) == 0
    assert capsys.readouterr().out.startswith("Rules OK")


def test_rules_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    rules = tmp_path / "custom.yaml"
    rules.write_text("version: '7'\nkeymap:\n  bindings:\n    mod+b: bold\n")
    monkeypatch.setenv(RULES_PATH_ENV, str(rules))

    assert main(["check-rules"]) == 0
    assert capsys.readouterr().out == "Rules OK (version 7, 1 key bindings).\n"
