"""
Converter configuration.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConverterConfig:
    """Converter configuration from rules."""

    # Lists nested deeper than this are folded into the deepest allowed level
    max_list_depth: int = 3

    # Bullet markers by nesting level; consecutive sibling lists rotate too
    bullet_markers: tuple[str, ...] = ("-", "*", "+")

    # Ordered list delimiters; consecutive sibling lists alternate
    ordered_delimiters: tuple[str, ...] = (".", ")")

    hard_break: str = "\\\n"
    thematic_break: str = "---"


DEFAULT_CONFIG = ConverterConfig()
