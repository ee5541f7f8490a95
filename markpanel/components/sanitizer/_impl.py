"""
Paste sanitizer - allow-list cleaning of external HTML fragments.

Pasted markup (from a browser, a word processor, an office suite) is the
only way outside HTML reaches the document, so everything passes through
here first.

Key behaviors:
- Text nodes are copied verbatim
- Allow-listed elements are rebuilt with allow-listed attributes only
- Other elements are unwrapped: the element goes, its content stays
- Unsafe URLs (javascript:, vbscript:, data:) lose their href
- Inline bold/italic/underline styles become strong/em/u
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .models import SanitizeIssue

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class SanitizerConfig:
    """Sanitizer configuration from rules."""

    allow_tags: frozenset[str] = field(
        default_factory=lambda: frozenset(
            [
                "h1",
                "h2",
                "h3",
                "h4",
                "h5",
                "h6",
                "p",
                "br",
                "strong",
                "b",
                "em",
                "i",
                "u",
                "a",
                "ul",
                "ol",
                "li",
                "blockquote",
                "code",
                "pre",
            ]
        )
    )

    allow_attrs: dict[str, frozenset[str]] = field(
        default_factory=lambda: {
            "a": frozenset(["href", "title"]),
        }
    )

    # Class names allowed through on any allowed element
    passthrough_classes: frozenset[str] = field(default_factory=frozenset)

    forbid_protocols: frozenset[str] = field(
        default_factory=lambda: frozenset(["javascript:", "vbscript:", "data:"])
    )

    # Elements whose text is document metadata (office clipboard <style>, <head>).
    # Empty by default: removed elements keep their text unless configured here.
    drop_content_tags: frozenset[str] = field(default_factory=frozenset)


DEFAULT_CONFIG = SanitizerConfig()

# Disallowed containers that separate blocks; their inline content becomes a paragraph.
BLOCKISH_TAGS = frozenset(
    [
        "div",
        "section",
        "article",
        "main",
        "header",
        "footer",
        "aside",
        "nav",
        "address",
        "figure",
        "figcaption",
        "center",
        "table",
        "tbody",
        "thead",
        "tfoot",
        "tr",
        "td",
        "th",
        "dl",
        "dt",
        "dd",
    ]
)
BLOCK_TAGS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6", "p", "ul", "ol", "li", "blockquote", "pre"]) | BLOCKISH_TAGS

CONTROL_CHARS = re.compile(r"[\x00-\x20]+")
BOLD_WEIGHTS = frozenset(["bold", "bolder", "600", "700", "800", "900"])
NORMAL_WEIGHTS = frozenset(["normal", "400", "lighter", "300"])


# --- URL Sanitization ---


def is_safe_url(url: str, config: SanitizerConfig = DEFAULT_CONFIG) -> bool:
    """
    Check if URL is safe (no forbidden protocols).

    Whitespace and control characters are ignored, so "java\\tscript:"
    is caught as well.
    """
    if not url:
        return True

    normalized = CONTROL_CHARS.sub("", url).lower()
    return not any(normalized.startswith(protocol) for protocol in config.forbid_protocols)


def sanitize_url(url: str, config: SanitizerConfig = DEFAULT_CONFIG) -> str | None:
    """Sanitize URL, returning None if unsafe."""
    if not is_safe_url(url, config):
        return None
    return url.strip()


# --- Inline styles ---


def parse_style(style: str) -> dict[str, str]:
    """Parse an inline style attribute into lowercase declarations."""
    declarations: dict[str, str] = {}
    for part in style.split(";"):
        if ":" not in part:
            continue
        name, _, value = part.partition(":")
        declarations[name.strip().lower()] = value.strip().lower()
    return declarations


def style_tags(style: str) -> list[str]:
    """Formatting tags implied by an inline style."""
    declarations = parse_style(style)
    tags = []
    if declarations.get("font-weight", "") in BOLD_WEIGHTS:
        tags.append("strong")
    if declarations.get("font-style", "") in ("italic", "oblique"):
        tags.append("em")
    decoration = declarations.get("text-decoration", "") + " " + declarations.get("text-decoration-line", "")
    if "underline" in decoration:
        tags.append("u")
    return tags


def _style_of(node: Tag) -> str:
    value = node.get("style", "")
    return value if isinstance(value, str) else " ".join(value)


# --- Fragment Sanitizer ---


def _has_block_child(node: Tag) -> bool:
    return any(isinstance(child, Tag) and child.name.lower() in BLOCK_TAGS for child in node.children)


def sanitize_fragment(
    html_content: str,
    config: SanitizerConfig = DEFAULT_CONFIG,
) -> tuple[str, list[SanitizeIssue]]:
    """
    Sanitize an HTML fragment against the allow-list.

    Returns:
        Tuple of (sanitized_html, list of issues)
    """
    issues: list[SanitizeIssue] = []
    if not html_content:
        return "", issues

    try:
        source = BeautifulSoup(html_content, "html.parser")
        output = BeautifulSoup("", "html.parser")
    except Exception as e:  # html.parser rejects some malformed declarations
        logger.warning("Could not parse pasted fragment, inserting as text: %s", e)
        issues.append(SanitizeIssue(code="unparseable_fragment", message=str(e)))
        return f"<p>{html.escape(html_content)}</p>", issues

    def copy_children(src: Tag, dst: Tag, path: str) -> None:
        for i, child in enumerate(list(src.children)):
            copy_node(child, dst, f"{path}[{i}]")

    def wrap_styles(node: Tag, dst: Tag) -> Tag:
        """Nest strong/em/u implied by the node's style inside dst."""
        inner = dst
        for tag_name in style_tags(_style_of(node)):
            if tag_name not in config.allow_tags:
                continue
            wrapper = output.new_tag(tag_name)
            inner.append(wrapper)
            inner = wrapper
        return inner

    def copy_node(node: object, dst: Tag, path: str) -> None:
        if isinstance(node, (Comment, Declaration, Doctype, ProcessingInstruction)):
            issues.append(
                SanitizeIssue(code="stripped_markup", message=f"{type(node).__name__} removed", path=path)
            )
            return

        if isinstance(node, (NavigableString, CData)):
            dst.append(NavigableString(str(node)))
            return

        if not isinstance(node, Tag):
            # Unknown node kinds are kept as text.
            dst.append(NavigableString(str(node)))
            return

        name = node.name.lower()
        node_path = f"{path}<{name}>"

        if name in config.drop_content_tags:
            issues.append(SanitizeIssue(code="stripped_tag", message=f"Tag '{name}' was stripped", path=node_path))
            return

        if name in ("b", "strong") and parse_style(_style_of(node)).get("font-weight", "") in NORMAL_WEIGHTS:
            # Google Docs wraps whole fragments in <b style="font-weight:normal">.
            copy_children(node, dst, node_path)
            return

        if name not in config.allow_tags:
            issues.append(SanitizeIssue(code="stripped_tag", message=f"Tag '{name}' was stripped", path=node_path))
            if name in BLOCKISH_TAGS and not _has_block_child(node):
                block = output.new_tag("p")
                dst.append(block)
                copy_children(node, wrap_styles(node, block), node_path)
            else:
                copy_children(node, wrap_styles(node, dst), node_path)
            return

        clean = output.new_tag(name)
        allowed = config.allow_attrs.get(name, frozenset())
        for attr, value in node.attrs.items():
            attr_name = attr.lower()
            if attr_name == "class":
                tokens = value if isinstance(value, list) else str(value).split()
                kept = [t for t in tokens if t in config.passthrough_classes]
                if kept:
                    clean["class"] = kept
                if len(kept) != len(tokens):
                    issues.append(
                        SanitizeIssue(
                            code="stripped_attribute",
                            message=f"Classes stripped from '{name}'",
                            path=node_path,
                        )
                    )
                continue

            if attr_name not in allowed:
                issues.append(
                    SanitizeIssue(
                        code="stripped_attribute",
                        message=f"Attribute '{attr_name}' stripped from '{name}'",
                        path=node_path,
                    )
                )
                continue

            text_value = value if isinstance(value, str) else " ".join(value)
            if attr_name == "href":
                safe = sanitize_url(text_value, config)
                if safe is None:
                    issues.append(
                        SanitizeIssue(
                            code="unsafe_url",
                            message=f"Unsafe URL protocol in href: {text_value[:50]}",
                            path=node_path,
                        )
                    )
                    continue
                text_value = safe
            clean[attr_name] = text_value

        dst.append(clean)
        copy_children(node, wrap_styles(node, clean), node_path)

    copy_children(source, output, "")
    if issues:
        logger.debug("Sanitized fragment with %d issue(s)", len(issues))
    return str(output), issues


def sanitize_html(html_content: str, config: SanitizerConfig = DEFAULT_CONFIG) -> str:
    """Sanitize and return only the clean HTML."""
    clean, _ = sanitize_fragment(html_content, config)
    return clean


def disallowed_tags(html_content: str, config: SanitizerConfig = DEFAULT_CONFIG) -> list[str]:
    """Names of tags in html_content that are not allow-listed."""
    soup = BeautifulSoup(html_content or "", "html.parser")
    return [tag.name for tag in soup.find_all(True) if tag.name.lower() not in config.allow_tags]


# --- Service Class ---


class SanitizerService:
    """
    Paste sanitizer service.

    Holds the configuration; all work is done by the module functions.
    """

    def __init__(self, config: SanitizerConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG

    @property
    def config(self) -> SanitizerConfig:
        return self._config

    def sanitize(self, html_content: str) -> tuple[str, list[SanitizeIssue]]:
        return sanitize_fragment(html_content, self._config)

    def is_safe_url(self, url: str) -> bool:
        return is_safe_url(url, self._config)


def create_sanitizer_service(config: SanitizerConfig | None = None) -> SanitizerService:
    """Create a SanitizerService with optional configuration."""
    return SanitizerService(config=config)
