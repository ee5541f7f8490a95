"""
Readers that build the document tree from markdown and from sanitized HTML.

Markdown is parsed with mistune in AST mode; the token stream is walked
into RichTextNodes. Underline has no markdown syntax, so the writer emits
<u>...</u>; bold, italic and strike fall back to <strong>, <em> and <s> where
their delimiters would not parse. The reader turns those inline HTML tokens
back into marks.
HTML input must already be sanitized; unknown elements are read as their
text.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import mistune
from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag

from markpanel.components.sanitizer import sanitize_html
from markpanel.domain.document import (
    Char,
    Mark,
    RichTextNode,
    blockquote,
    code_block,
    doc,
    horizontal_rule,
    implode,
    mark,
    normalize_list_styles,
    paragraph,
    sort_marks,
)

from ._config import DEFAULT_CONFIG, ConverterConfig

logger = logging.getLogger(__name__)

# Singleton parser; strikethrough is the only extension the writer emits.
_md_parser = mistune.create_markdown(renderer="ast", plugins=["strikethrough"])

WHITESPACE = re.compile(r"\s+")
HEADING_TAGS = {f"h{n}": n for n in range(1, 7)}
INLINE_MARK_TAGS = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
    "s": "strike",
    "del": "strike",
    "strike": "strike",
    "code": "code",
}
# Inline HTML the markdown writer emits for marks it cannot delimit.
HTML_MARK_TAGS = {tag: name for tag, name in INLINE_MARK_TAGS.items() if name != "code"}
HTML_TAG = re.compile(r"^<(/?)([a-zA-Z]+)\s*/?>$")


class MarkdownReadError(Exception):
    """Raised when markdown cannot be read into a tree."""


def _with(marks: tuple[Mark, ...], extra: Mark) -> tuple[Mark, ...]:
    return tuple(sort_marks(list(marks) + [extra]))


def _strip_edges(chars: list[Char], collapse: bool = False) -> list[Char]:
    """Trim whitespace at the block edges and around hard breaks."""
    result: list[Char] = []
    for ch, marks in chars:
        if ch == " " and (not result or result[-1][0] == "\n" or (collapse and result[-1][0] == " ")):
            continue
        if ch == "\n":
            while result and result[-1][0] == " ":
                result.pop()
        result.append((ch, marks))
    while result and result[-1][0] in (" ", "\n"):
        result.pop()
    while result and result[0][0] == "\n":
        result.pop(0)
    return result


# --- Markdown ---


class _MarkdownReader:
    def __init__(self, config: ConverterConfig) -> None:
        self.config = config
        self.html_marks: dict[str, int] = {}

    def read(self, source: str) -> RichTextNode:
        tokens = _md_parser(source)
        if not isinstance(tokens, list):
            raise MarkdownReadError("Parser did not return a token list")
        return normalize_list_styles(doc(*self.blocks(tokens, 0)))

    def blocks(self, tokens: list[dict[str, Any]], depth: int) -> list[RichTextNode]:
        result: list[RichTextNode] = []
        for token in tokens:
            result.extend(self.block(token, depth))
        return result

    def block(self, token: dict[str, Any], depth: int) -> list[RichTextNode]:
        kind = token.get("type", "")
        children = token.get("children") or []
        attrs = token.get("attrs") or {}

        if kind in ("paragraph", "block_text"):
            return [RichTextNode(type="paragraph", content=self.inline_nodes(children))]
        if kind == "heading":
            return [
                RichTextNode(
                    type="heading",
                    attrs={"level": int(attrs.get("level", 1))},
                    content=self.inline_nodes(children),
                )
            ]
        if kind == "block_code":
            raw = token.get("raw", "")
            if raw.endswith("\n"):
                raw = raw[:-1]
            info = (attrs.get("info") or "").strip()
            return [code_block(raw, info.split()[0] if info else None)]
        if kind == "block_quote":
            inner = self.blocks(children, depth)
            return [blockquote(*inner)] if inner else []
        if kind == "list":
            return self.list_block(token, depth)
        if kind == "list_item":
            return self.blocks(children, depth)
        if kind == "thematic_break":
            return [horizontal_rule()]
        if kind == "blank_line":
            return []
        if kind == "block_html":
            # Raw HTML blocks go through the paste sanitizer like any outside markup.
            raw_html = token.get("raw", "")
            if not raw_html.strip():
                return []
            converted = html_to_rich(sanitize_html(raw_html), self.config)
            return [block for block in converted.content if block.content or not block.is_textblock]

        logger.debug("Reading unknown markdown token %r as a paragraph", kind)
        if children:
            return [RichTextNode(type="paragraph", content=self.inline_nodes(children))]
        raw = token.get("raw") or token.get("text") or ""
        return [RichTextNode(type="paragraph", content=implode([(ch, ()) for ch in raw]))] if raw else []

    def list_block(self, token: dict[str, Any], depth: int) -> list[RichTextNode]:
        attrs = token.get("attrs") or {}
        items = [child for child in token.get("children") or [] if child.get("type") == "list_item"]

        if depth >= self.config.max_list_depth:
            # Too deep: the items' blocks join the enclosing item.
            folded: list[RichTextNode] = []
            for item in items:
                folded.extend(self.blocks(item.get("children") or [], depth))
            return folded

        list_type = "orderedList" if attrs.get("ordered") else "bulletList"
        node = RichTextNode(type=list_type)
        start = int(attrs.get("start", 1) or 1)
        if list_type == "orderedList" and start != 1:
            node.attrs["start"] = start
        for item in items:
            content = self.blocks(item.get("children") or [], depth + 1)
            node.content.append(RichTextNode(type="listItem", content=content or [paragraph()]))
        return [node]

    # --- Inline ---

    def inline_nodes(self, tokens: list[dict[str, Any]]) -> list[RichTextNode]:
        self.html_marks = {}
        chars: list[Char] = []
        self.inline(tokens, (), chars)
        return implode(_strip_edges(chars))

    def _marks(self, marks: tuple[Mark, ...]) -> tuple[Mark, ...]:
        for name, depth in self.html_marks.items():
            if depth > 0 and all(m.get("type") != name for m in marks):
                marks = _with(marks, mark(name))
        return marks

    def inline(self, tokens: list[dict[str, Any]], marks: tuple[Mark, ...], out: list[Char]) -> None:
        for token in tokens:
            kind = token.get("type", "")
            children = token.get("children") or []

            if kind == "text":
                active = self._marks(marks)
                out.extend((ch, active) for ch in token.get("raw", "").replace("\n", " "))
            elif kind == "codespan":
                active = _with(self._marks(marks), mark("code"))
                out.extend((ch, active) for ch in token.get("raw", "").replace("\n", " "))
            elif kind == "strong":
                self.inline(children, _with(marks, mark("bold")), out)
            elif kind == "emphasis":
                self.inline(children, _with(marks, mark("italic")), out)
            elif kind == "strikethrough":
                self.inline(children, _with(marks, mark("strike")), out)
            elif kind == "link":
                attrs = token.get("attrs") or {}
                link = mark("link", href=attrs.get("url", ""), title=attrs.get("title") or None)
                self.inline(children, _with(marks, link), out)
            elif kind == "image":
                # Images are not part of the document model; keep the alt text.
                self.inline(children, marks, out)
            elif kind == "linebreak":
                out.append(("\n", ()))
            elif kind == "softbreak":
                out.append((" ", self._marks(marks)))
            elif kind == "inline_html":
                raw = token.get("raw", "")
                tag = HTML_TAG.match(raw.strip())
                name = tag.group(2).lower() if tag else ""
                if name == "br":
                    out.append(("\n", ()))
                elif name in HTML_MARK_TAGS:
                    mark_type = HTML_MARK_TAGS[name]
                    depth = self.html_marks.get(mark_type, 0)
                    self.html_marks[mark_type] = max(0, depth - 1) if tag and tag.group(1) else depth + 1
                else:
                    active = self._marks(marks)
                    out.extend((ch, active) for ch in raw)
            elif children:
                self.inline(children, marks, out)
            else:
                raw = token.get("raw", "")
                out.extend((ch, self._marks(marks)) for ch in raw)


def read_markdown(source: str, config: ConverterConfig = DEFAULT_CONFIG) -> RichTextNode:
    """
    Parse markdown into a document.

    Raises:
        MarkdownReadError: If the parser output cannot be read
    """
    try:
        return _MarkdownReader(config).read(source or "")
    except MarkdownReadError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError, IndexError, RecursionError) as e:
        raise MarkdownReadError(str(e)) from e


def plain_document(source: str) -> RichTextNode:
    """A single paragraph holding source verbatim."""
    return doc(RichTextNode(type="paragraph", content=implode([(ch, ()) for ch in source])))


def to_rich(source: str, config: ConverterConfig = DEFAULT_CONFIG) -> RichTextNode:
    """Parse markdown into a document, falling back to one plain paragraph."""
    try:
        return read_markdown(source, config)
    except MarkdownReadError as e:
        logger.warning("Markdown parsing failed, reading as plain text: %s", e)
        return plain_document(source or "")


# --- HTML ---


class _HtmlReader:
    def __init__(self, config: ConverterConfig) -> None:
        self.config = config

    def blocks(self, parent: Tag, depth: int) -> list[RichTextNode]:
        result: list[RichTextNode] = []
        pending: list[Char] = []

        def flush() -> None:
            chars = _strip_edges(pending, collapse=True)
            if chars:
                result.append(RichTextNode(type="paragraph", content=implode(chars)))
            pending.clear()

        for child in parent.children:
            if isinstance(child, NavigableString):
                pending.extend((ch, ()) for ch in WHITESPACE.sub(" ", str(child)))
                continue
            if not isinstance(child, Tag):
                continue

            name = child.name.lower()
            if name in HEADING_TAGS:
                flush()
                result.append(
                    RichTextNode(type="heading", attrs={"level": HEADING_TAGS[name]}, content=self.inline_nodes(child))
                )
            elif name == "p":
                flush()
                if _has_block(child):
                    result.extend(self.blocks(child, depth))
                else:
                    result.append(RichTextNode(type="paragraph", content=self.inline_nodes(child)))
            elif name in ("ul", "ol"):
                flush()
                result.extend(self.list_block(child, depth))
            elif name == "li":
                flush()
                result.extend(self.blocks(child, depth))
            elif name == "blockquote":
                flush()
                inner = self.blocks(child, depth)
                if inner:
                    result.append(blockquote(*inner))
            elif name == "pre":
                flush()
                result.append(self.pre_block(child))
            elif name == "br":
                pending.append(("\n", ()))
            elif _has_block(child):
                flush()
                result.extend(self.blocks(child, depth))
            else:
                self.inline(child, (), pending)
        flush()
        return result

    def list_block(self, node: Tag, depth: int) -> list[RichTextNode]:
        items = [child for child in node.children if isinstance(child, Tag) and child.name.lower() == "li"]
        if depth >= self.config.max_list_depth:
            folded: list[RichTextNode] = []
            for item in items:
                folded.extend(self.blocks(item, depth))
            return folded

        list_type = "orderedList" if node.name.lower() == "ol" else "bulletList"
        result = RichTextNode(type=list_type)
        start = node.get("start")
        if list_type == "orderedList" and isinstance(start, str) and start.isdigit() and int(start) != 1:
            result.attrs["start"] = int(start)
        for item in items:
            content = self.blocks(item, depth + 1)
            result.content.append(RichTextNode(type="listItem", content=content or [paragraph()]))
        return [result] if result.content else []

    def pre_block(self, node: Tag) -> RichTextNode:
        language = None
        code = node.find("code")
        if isinstance(code, Tag):
            for cls in code.get("class") or []:
                if cls.startswith("language-"):
                    language = cls[len("language-") :]
        body = node.get_text()
        if body.endswith("\n"):
            body = body[:-1]
        return code_block(body, language)

    def inline_nodes(self, node: Tag) -> list[RichTextNode]:
        chars: list[Char] = []
        self.inline(node, (), chars, top=True)
        return implode(_strip_edges(chars, collapse=True))

    def inline(self, node: Tag, marks: tuple[Mark, ...], out: list[Char], top: bool = False) -> None:
        active = marks
        if not top:
            name = node.name.lower()
            if name == "br":
                out.append(("\n", ()))
                return
            if name in INLINE_MARK_TAGS:
                active = _with(marks, mark(INLINE_MARK_TAGS[name]))
            elif name == "a" and node.get("href"):
                active = _with(marks, mark("link", href=str(node.get("href")), title=node.get("title") or None))

        for child in node.children:
            if isinstance(child, NavigableString):
                out.extend((ch, active) for ch in WHITESPACE.sub(" ", str(child)))
            elif isinstance(child, Tag):
                self.inline(child, active, out)


def _has_block(node: Tag) -> bool:
    block_names = set(HEADING_TAGS) | {"p", "ul", "ol", "li", "blockquote", "pre"}
    return any(isinstance(child, Tag) and child.name.lower() in block_names for child in node.find_all(True))


def html_to_rich(clean_html: str, config: ConverterConfig = DEFAULT_CONFIG) -> RichTextNode:
    """Build a document from sanitized HTML."""
    soup = BeautifulSoup(clean_html or "", "html.parser")
    return normalize_list_styles(doc(*_HtmlReader(config).blocks(soup, 0)))
