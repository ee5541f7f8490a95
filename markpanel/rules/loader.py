import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from markpanel.rules.models import EditorRules

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "MARKPANEL_RULES_PATH"
DEFAULT_RULES_FILE = "editor.yaml"


def resolve_rules_path(explicit: Path | None = None) -> Path:
    """Explicit path, else $MARKPANEL_RULES_PATH, else ./editor.yaml."""
    if explicit is not None:
        return explicit
    env = os.environ.get(RULES_PATH_ENV)
    if env:
        return Path(env)
    return Path(DEFAULT_RULES_FILE)


def _strip_fences(content: str) -> str:
    # A rules file may be a markdown document with one ```yaml block
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def load_rules(path: Path) -> EditorRules:
    """
    Load and validate the editor rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(_strip_fences(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if data is None:
        # Empty file: all defaults
        data = {}

    try:
        rules = EditorRules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e

    logger.debug("Loaded editor rules from %s", path)
    return rules
