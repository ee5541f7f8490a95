"""
Converter component - markdown and HTML to and from the document tree.

Invariants:
- to_markdown(to_rich(to_markdown(d))) == to_markdown(d)
- Conversions never raise on user content; they fall back to plain text
"""

from __future__ import annotations

import logging

from markpanel.components.sanitizer import sanitize_fragment
from markpanel.domain.document import RichTextNode

from ._config import DEFAULT_CONFIG, ConverterConfig
from ._markdown import MarkdownWriteError, write_markdown
from ._rich import MarkdownReadError, html_to_rich, plain_document, read_markdown
from .models import (
    ConversionIssue,
    HtmlToRichInput,
    ToMarkdownInput,
    ToMarkdownOutput,
    ToRichInput,
    ToRichOutput,
)
from .ports import RulesPort

logger = logging.getLogger(__name__)


def build_config(rules: RulesPort | None) -> ConverterConfig:
    """Build converter config from rules port."""
    if rules is None:
        return DEFAULT_CONFIG

    return ConverterConfig(
        max_list_depth=rules.get_max_list_depth(),
        bullet_markers=rules.get_bullet_markers(),
        ordered_delimiters=rules.get_ordered_delimiters(),
    )


# --- Component Entry Points ---


def run_to_markdown(
    inp: ToMarkdownInput,
    *,
    rules: RulesPort | None = None,
) -> ToMarkdownOutput:
    """
    Serialize a document to markdown.

    Args:
        inp: Input containing the document dict.
        rules: Optional rules port for configuration.

    Returns:
        ToMarkdownOutput with the markdown. A malformed document yields its
        plain text and a "plain_text_fallback" issue; a dict that is not a
        document at all yields success=False and an "invalid_document" issue.
    """
    config = build_config(rules)
    try:
        root = RichTextNode.from_dict(inp.document)
    except (AttributeError, KeyError, TypeError, ValueError, RecursionError) as e:
        logger.warning("Document could not be read: %s", e)
        return ToMarkdownOutput(
            markdown="",
            issues=[ConversionIssue(code="invalid_document", message=str(e))],
            success=False,
        )
    try:
        return ToMarkdownOutput(markdown=write_markdown(root, config))
    except MarkdownWriteError as e:
        logger.warning("Markdown serialization failed, using plain text: %s", e)
        return ToMarkdownOutput(
            markdown=root.plain_text(),
            issues=[ConversionIssue(code="plain_text_fallback", message=str(e))],
        )


def run_to_rich(
    inp: ToRichInput,
    *,
    rules: RulesPort | None = None,
) -> ToRichOutput:
    """
    Parse markdown into a document.

    Returns:
        ToRichOutput with the document dict. Markdown that cannot be parsed
        becomes one plain paragraph with a "plain_text_fallback" issue.
    """
    config = build_config(rules)
    try:
        return ToRichOutput(document=read_markdown(inp.markdown, config).to_dict())
    except MarkdownReadError as e:
        logger.warning("Markdown parsing failed, reading as plain text: %s", e)
        return ToRichOutput(
            document=plain_document(inp.markdown).to_dict(),
            issues=[ConversionIssue(code="plain_text_fallback", message=str(e))],
        )


def run_html_to_rich(
    inp: HtmlToRichInput,
    *,
    rules: RulesPort | None = None,
) -> ToRichOutput:
    """
    Read an HTML fragment into a document.

    Unless inp.sanitized is set the fragment is sanitized first; anything the
    sanitizer removed is reported as a "sanitized" issue.
    """
    config = build_config(rules)
    issues: list[ConversionIssue] = []
    clean = inp.html
    if not inp.sanitized:
        clean, removed = sanitize_fragment(inp.html)
        issues = [ConversionIssue(code="sanitized", message=issue.message) for issue in removed]
    return ToRichOutput(document=html_to_rich(clean, config).to_dict(), issues=issues)


def run(
    inp: ToMarkdownInput | ToRichInput | HtmlToRichInput,
    *,
    rules: RulesPort | None = None,
) -> ToMarkdownOutput | ToRichOutput:
    """Main entry point for the converter component."""
    if isinstance(inp, ToMarkdownInput):
        return run_to_markdown(inp, rules=rules)
    if isinstance(inp, ToRichInput):
        return run_to_rich(inp, rules=rules)
    if isinstance(inp, HtmlToRichInput):
        return run_html_to_rich(inp, rules=rules)
    raise ValueError(f"Unknown input type: {type(inp)}")
