import argparse
import json
import logging
import sys
from pathlib import Path

from markpanel.app_shell.config import validate_editor_rules
from markpanel.components.converter import (
    HtmlToRichInput,
    ToMarkdownInput,
    ToRichInput,
    run_html_to_rich,
    run_to_markdown,
    run_to_rich,
)
from markpanel.components.editor import clean_pasted_content
from markpanel.components.sanitizer import SanitizeInput, run_sanitize
from markpanel.rules.loader import RULES_PATH_ENV, load_rules, resolve_rules_path
from markpanel.rules.models import EditorRules, default_rules

logger = logging.getLogger("markpanel.cli")


class CliError(Exception):
    pass


def get_rules(explicit: Path | None) -> EditorRules:
    path = resolve_rules_path(explicit)
    if not path.exists():
        if explicit is None and path == Path("editor.yaml"):
            logger.info("No editor.yaml found, using default rules.")
            return default_rules()
        raise CliError(f"Rules file {path} not found (set --rules or ${RULES_PATH_ENV}).")
    try:
        return load_rules(path)
    except ValueError as e:
        raise CliError(str(e)) from e


def read_input(name: str) -> str:
    if name == "-":
        return sys.stdin.read()
    path = Path(name)
    if not path.is_file():
        raise CliError(f"Input file {name} not found.")
    return path.read_text(encoding="utf-8")


def looks_like_json(name: str, content: str) -> bool:
    return name.endswith(".json") or content.lstrip().startswith("{")


def handle_sanitize(rules: EditorRules, args: argparse.Namespace) -> str:
    html = read_input(args.file)
    if args.markdown:
        return clean_pasted_content(html, rules.sanitizer.to_config(), rules.converter.to_config())

    out = run_sanitize(SanitizeInput(html=html), rules=rules.sanitizer)
    for issue in out.issues:
        logger.info("Removed: %s", issue.message)
    return out.html


def handle_to_markdown(rules: EditorRules, args: argparse.Namespace) -> str:
    content = read_input(args.file)

    if looks_like_json(args.file, content):
        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise CliError(f"Invalid JSON document: {e}") from e
        if not isinstance(document, dict):
            raise CliError("JSON input must be a document object.")
    else:
        clean = run_sanitize(SanitizeInput(html=content), rules=rules.sanitizer)
        for issue in clean.issues:
            logger.info("Removed: %s", issue.message)
        document = run_html_to_rich(HtmlToRichInput(html=clean.html, sanitized=True), rules=rules.converter).document

    out = run_to_markdown(ToMarkdownInput(document=document), rules=rules.converter)
    if not out.success:
        raise CliError("Input is not a document: " + "; ".join(issue.message for issue in out.issues))
    for issue in out.issues:
        logger.warning("%s: %s", issue.code, issue.message)
    return out.markdown


def handle_to_rich(rules: EditorRules, args: argparse.Namespace) -> str:
    out = run_to_rich(ToRichInput(markdown=read_input(args.file)), rules=rules.converter)
    for issue in out.issues:
        logger.warning("%s: %s", issue.code, issue.message)
    return json.dumps(out.document, indent=2)


def handle_check_rules(rules: EditorRules, args: argparse.Namespace) -> str:
    try:
        validate_editor_rules(rules)
    except ValueError as e:
        raise CliError(str(e)) from e
    bindings = len(rules.keymap.bindings)
    return f"Rules OK (version {rules.version}, {bindings} key bindings)."


HANDLERS = {
    "sanitize": handle_sanitize,
    "to-markdown": handle_to_markdown,
    "to-rich": handle_to_rich,
    "check-rules": handle_check_rules,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="markpanel", description="Markdown field editor tools")
    parser.add_argument("--rules", type=Path, help=f"Editor rules file (default: ${RULES_PATH_ENV} or editor.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # sanitize
    sanitize_parser = subparsers.add_parser("sanitize", help="Clean an HTML fragment")
    sanitize_parser.add_argument("file", help="HTML file, or - for stdin")
    sanitize_parser.add_argument("--markdown", action="store_true", help="Print the cleaned content as markdown")

    # to-markdown
    md_parser = subparsers.add_parser("to-markdown", help="Convert HTML or a JSON document to markdown")
    md_parser.add_argument("file", help="HTML or JSON file, or - for stdin")

    # to-rich
    rich_parser = subparsers.add_parser("to-rich", help="Convert markdown to a JSON document")
    rich_parser.add_argument("file", help="Markdown file, or - for stdin")

    # check-rules
    subparsers.add_parser("check-rules", help="Validate the editor rules")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)

    try:
        rules = get_rules(args.rules)
        output = HANDLERS[args.command](rules, args)
    except CliError as e:
        logger.error(str(e))
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
