"""
Sanitizer component port definitions.
"""

from __future__ import annotations

from typing import Protocol


class RulesPort(Protocol):
    """Port for accessing sanitizer rules configuration."""

    def get_allowed_tags(self) -> frozenset[str]:
        """Get allowed HTML tags."""
        ...

    def get_allowed_attrs(self) -> dict[str, frozenset[str]]:
        """Get allowed attributes per tag."""
        ...

    def get_forbidden_protocols(self) -> frozenset[str]:
        """Get forbidden URL protocols."""
        ...

    def get_passthrough_classes(self) -> frozenset[str]:
        """Get class names kept on allowed elements."""
        ...

    def get_drop_content_tags(self) -> frozenset[str]:
        """Get tags whose text is metadata rather than content."""
        ...
