"""
Clipboard boundary.

Reads what the clipboard offers and turns it into something safe to put in
the document: HTML always goes through the sanitizer. A clipboard that is
unavailable, refuses access or times out is treated as offering no
formatted content.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from markpanel.components.converter import ConverterConfig, html_to_rich, to_markdown
from markpanel.components.converter import DEFAULT_CONFIG as CONVERTER_DEFAULTS
from markpanel.components.sanitizer import DEFAULT_CONFIG as SANITIZER_DEFAULTS
from markpanel.components.sanitizer import SanitizerConfig, sanitize_fragment
from markpanel.domain.document import EditResult, RichTextNode, Selection, doc, paragraph
from markpanel.domain.transforms import insert_fragment, insert_text

from .models import PastePayload
from .ports import ClipboardPort

logger = logging.getLogger(__name__)

WHITESPACE = re.compile(r"\s+")


class ClipboardUnavailable(Exception):
    """The clipboard cannot be read in this environment."""


# OSError covers PermissionError and TimeoutError.
READ_ERRORS = (ClipboardUnavailable, OSError)


async def read_payload(clipboard: ClipboardPort) -> PastePayload:
    """
    Read html and plain text from the clipboard.

    Failures to read the html part fall back to plain text; failures to
    read either part give an empty payload.
    """
    html: str | None = None
    text: str | None = None
    try:
        html = await clipboard.read_html()
    except READ_ERRORS as e:
        logger.info("Formatted clipboard content unavailable: %s", e)
    try:
        text = await clipboard.read_text()
    except READ_ERRORS as e:
        logger.info("Plain clipboard content unavailable: %s", e)
    return PastePayload(html=html or None, text=text)


def fragment_from_html(
    html: str,
    sanitizer: SanitizerConfig = SANITIZER_DEFAULTS,
    converter: ConverterConfig = CONVERTER_DEFAULTS,
) -> RichTextNode:
    """Sanitize a pasted fragment and read it into a document."""
    try:
        clean, issues = sanitize_fragment(html, sanitizer)
        if issues:
            logger.debug("Paste sanitizer removed %d item(s)", len(issues))
        return html_to_rich(clean, converter)
    except RecursionError:
        logger.warning("Pasted HTML is nested too deeply, pasting its text only")
        text = WHITESPACE.sub(" ", BeautifulSoup(html, "html.parser").get_text()).strip()
        return doc(paragraph(text))


def clean_pasted_content(
    html: str,
    sanitizer: SanitizerConfig = SANITIZER_DEFAULTS,
    converter: ConverterConfig = CONVERTER_DEFAULTS,
) -> str:
    """Markdown for a pasted HTML fragment (used when pasting into the source view)."""
    return to_markdown(fragment_from_html(html, sanitizer, converter), converter)


def paste_rich(
    root: RichTextNode,
    sel: Selection,
    payload: PastePayload,
    sanitizer: SanitizerConfig = SANITIZER_DEFAULTS,
    converter: ConverterConfig = CONVERTER_DEFAULTS,
) -> EditResult:
    """Insert a payload into the tree at the selection."""
    if payload.html:
        fragment = fragment_from_html(payload.html, sanitizer, converter)
        if fragment.plain_text().strip() or not payload.text:
            return insert_fragment(root, sel, fragment)
    if payload.text:
        return insert_text(root, sel, payload.text)
    return EditResult(root, sel)


def paste_source(
    source: str,
    cursor: tuple[int, int],
    payload: PastePayload,
    sanitizer: SanitizerConfig = SANITIZER_DEFAULTS,
    converter: ConverterConfig = CONVERTER_DEFAULTS,
) -> tuple[str, int]:
    """
    Insert a payload into markdown source, replacing cursor (start, end).

    Returns:
        Tuple of (new source, new cursor offset)
    """
    insert = ""
    if payload.html:
        insert = clean_pasted_content(payload.html, sanitizer, converter)
    if not insert and payload.text:
        insert = payload.text.replace("\r\n", "\n").replace("\r", "\n")
    start, end = sorted(cursor)
    start = max(0, min(start, len(source)))
    end = max(start, min(end, len(source)))
    return source[:start] + insert + source[end:], start + len(insert)
