"""
Converter component input/output models.

Documents cross the component boundary as plain dicts (RichTextNode.to_dict)
so callers need not depend on the tree classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ConversionIssue:
    """A conversion that had to fall back or drop content."""

    code: str
    message: str


# --- Input Models ---


@dataclass(frozen=True)
class ToMarkdownInput:
    """Input for serializing a document to markdown."""

    document: dict[str, Any]


@dataclass(frozen=True)
class ToRichInput:
    """Input for parsing markdown into a document."""

    markdown: str


@dataclass(frozen=True)
class HtmlToRichInput:
    """Input for reading an HTML fragment into a document."""

    html: str
    sanitized: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class ToMarkdownOutput:
    """Output for markdown serialization."""

    markdown: str
    issues: list[ConversionIssue] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ToRichOutput:
    """Output for markdown or HTML parsing."""

    document: dict[str, Any]
    issues: list[ConversionIssue] = field(default_factory=list)
    success: bool = True
