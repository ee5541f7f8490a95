"""
Sanitizer component - allow-list cleaning of pasted HTML.

Invariants:
- Output contains only allow-listed tags
- No event-handler attributes, no javascript:/vbscript:/data: links
- Text of removed elements is kept
"""

from __future__ import annotations

from ._impl import DEFAULT_CONFIG, SanitizerConfig, sanitize_fragment
from .models import SanitizeInput, SanitizeOutput
from .ports import RulesPort


def build_config(rules: RulesPort | None) -> SanitizerConfig:
    """Build sanitizer config from rules port."""
    if rules is None:
        return DEFAULT_CONFIG

    return SanitizerConfig(
        allow_tags=rules.get_allowed_tags(),
        allow_attrs=rules.get_allowed_attrs(),
        forbid_protocols=rules.get_forbidden_protocols(),
        passthrough_classes=rules.get_passthrough_classes(),
        drop_content_tags=rules.get_drop_content_tags(),
    )


# --- Component Entry Points ---


def run_sanitize(
    inp: SanitizeInput,
    *,
    rules: RulesPort | None = None,
) -> SanitizeOutput:
    """
    Sanitize a pasted HTML fragment.

    Args:
        inp: Input containing the raw fragment.
        rules: Optional rules port for configuration.

    Returns:
        SanitizeOutput with clean HTML and what was removed.
    """
    config = build_config(rules)
    clean, issues = sanitize_fragment(inp.html, config)
    return SanitizeOutput(html=clean, issues=issues, success=True)


def run(inp: SanitizeInput, *, rules: RulesPort | None = None) -> SanitizeOutput:
    """Main entry point for the sanitizer component."""
    if isinstance(inp, SanitizeInput):
        return run_sanitize(inp, rules=rules)
    raise ValueError(f"Unknown input type: {type(inp)}")
