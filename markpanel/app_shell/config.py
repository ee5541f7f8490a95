import logging

from markpanel.components.editor import SHORTCUT_ACTIONS
from markpanel.components.formatting import LIST_KINDS, MARK_ACTIONS
from markpanel.rules.models import EditorRules

logger = logging.getLogger(__name__)

KEYMAP_ACTIONS = frozenset(
    set(MARK_ACTIONS)
    | set(LIST_KINDS)
    | set(SHORTCUT_ACTIONS)
    | {"paragraph", "codeBlock", "blockquote", "rule", "fullscreen"}
)


def check_editor_rules(rules: EditorRules) -> list[str]:
    """Return a list of problems with the rules; empty when they are usable."""
    problems = []
    menu = rules.command_menu

    # 1. Trigger
    if len(menu.trigger_char) != 1:
        problems.append(f"command_menu.trigger_char must be one character, got {menu.trigger_char!r}")
    elif menu.trigger_char.isspace():
        problems.append("command_menu.trigger_char must not be whitespace")
    elif menu.trigger_char in menu.dismiss_chars:
        problems.append("command_menu.trigger_char must not be a dismiss character")

    # 2. Thresholds
    if menu.no_match_dismiss_length > menu.max_query_length:
        problems.append("command_menu.no_match_dismiss_length exceeds max_query_length")

    # 3. Keymap
    for combo, action in rules.keymap.bindings.items():
        if action not in KEYMAP_ACTIONS:
            problems.append(f"keymap binding {combo} -> unknown action {action!r}")

    # 4. Sanitizer
    allowed = rules.sanitizer.get_allowed_tags()
    if "p" not in allowed:
        problems.append("sanitizer.allowed_tags must include 'p'")
    for tag in rules.sanitizer.get_allowed_attrs():
        if tag not in allowed:
            problems.append(f"sanitizer.allowed_attrs lists attributes for disallowed tag {tag!r}")

    return problems


def validate_editor_rules(rules: EditorRules) -> None:
    """
    Validate the rules before startup.

    Raises:
        ValueError: Listing every problem found
    """
    problems = check_editor_rules(rules)
    if problems:
        for problem in problems:
            logger.error("Invalid editor rules: %s", problem)
        raise ValueError("Invalid editor rules:\n  " + "\n  ".join(problems))

    logger.info("Editor rules validated.")
