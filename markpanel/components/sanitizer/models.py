"""
Sanitizer component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# --- Issues ---


@dataclass(frozen=True)
class SanitizeIssue:
    """Something the sanitizer removed or rewrote."""

    code: str
    message: str
    path: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class SanitizeInput:
    """Input for sanitizing an externally supplied HTML fragment."""

    html: str


# --- Output Models ---


@dataclass(frozen=True)
class SanitizeOutput:
    """Output for a sanitized fragment."""

    html: str
    issues: list[SanitizeIssue] = field(default_factory=list)
    success: bool = True
