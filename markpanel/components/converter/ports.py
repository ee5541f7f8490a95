"""
Converter component port definitions.
"""

from __future__ import annotations

from typing import Protocol


class RulesPort(Protocol):
    """Port for accessing converter rules configuration."""

    def get_max_list_depth(self) -> int:
        """Get the deepest list nesting kept on read."""
        ...

    def get_bullet_markers(self) -> tuple[str, ...]:
        """Get bullet markers by nesting level."""
        ...

    def get_ordered_delimiters(self) -> tuple[str, ...]:
        """Get ordered list delimiters."""
        ...
