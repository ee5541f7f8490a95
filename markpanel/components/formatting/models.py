"""
Formatting component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# --- Errors ---


@dataclass(frozen=True)
class FormattingError:
    """A formatting action that was refused."""

    code: str
    message: str
    path: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class FormatInput:
    """
    Input for applying one formatting action to a document.

    Selections are (block, offset) pairs for anchor and head.
    """

    document: dict[str, Any]
    action: str
    anchor: tuple[int, int] = (0, 0)
    head: tuple[int, int] | None = None
    args: dict[str, Any] = field(default_factory=dict)


# --- Output Models ---


@dataclass(frozen=True)
class FormatOutput:
    """Output for a formatting action."""

    document: dict[str, Any]
    anchor: tuple[int, int]
    head: tuple[int, int]
    errors: list[FormattingError] = field(default_factory=list)
    success: bool = True
