"""
Markdown writer - serializes the document tree to CommonMark.

The output is chosen so that reading it back yields the same tree:
- marks open in MARK_ORDER and close in reverse, so nesting is stable
- whitespace at the edge of a marked run is moved outside the delimiters
- consecutive sibling lists of one type alternate their marker so they
  do not merge when read back
- text that would otherwise read as markup is backslash-escaped
- emphasis whose delimiters would not flank its text is written as HTML
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from markpanel.domain.document import Char, Mark, RichTextNode, explode

from ._config import DEFAULT_CONFIG, ConverterConfig

logger = logging.getLogger(__name__)

DELIMITERS: dict[str, tuple[str, str]] = {
    "bold": ("**", "**"),
    "italic": ("*", "*"),
    "strike": ("~~", "~~"),
    "underline": ("<u>", "</u>"),
}

# Used for emphasis whose delimiters would not flank the text they wrap.
HTML_DELIMITERS: dict[str, tuple[str, str]] = {
    "bold": ("<strong>", "</strong>"),
    "italic": ("<em>", "</em>"),
    "strike": ("<s>", "</s>"),
}

INLINE_ESCAPES = frozenset("\\*_`[]<~")
ENTITY_PATTERN = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")
LINE_START_PATTERN = re.compile(r"^(#|>|-|\+|=)")
ORDERED_START_PATTERN = re.compile(r"^(\d+)([.)])")
BACKTICK_RUN = re.compile(r"`+")


class MarkdownWriteError(Exception):
    """Raised when a tree cannot be serialized."""


# --- Inline ---


def _common_prefix(*mark_lists: tuple[Mark, ...]) -> tuple[Mark, ...]:
    shortest = min(len(m) for m in mark_lists)
    prefix: list[Mark] = []
    for i in range(shortest):
        candidate = mark_lists[0][i]
        if all(m[i] == candidate for m in mark_lists[1:]):
            prefix.append(candidate)
        else:
            break
    return tuple(prefix)


def _runs(chars: list[Char]) -> list[tuple[str, tuple[Mark, ...]]]:
    runs: list[tuple[str, tuple[Mark, ...]]] = []
    for ch, marks in chars:
        if runs and list(runs[-1][1]) == list(marks):
            runs[-1] = (runs[-1][0] + ch, runs[-1][1])
        else:
            runs.append((ch, tuple(marks)))
    return runs


def _hoist_whitespace(runs: list[tuple[str, tuple[Mark, ...]]]) -> list[tuple[str, tuple[Mark, ...]]]:
    """Give edge whitespace only the marks it shares with its neighbours."""
    result: list[tuple[str, tuple[Mark, ...]]] = []
    for i, (value, marks) in enumerate(runs):
        before = runs[i - 1][1] if i > 0 else ()
        after = runs[i + 1][1] if i + 1 < len(runs) else ()

        if not value.strip():
            result.append((value, _common_prefix(before, marks, after)))
            continue

        core = value.strip()
        lead = value[: len(value) - len(value.lstrip())]
        trail = value[len(value.rstrip()) :]
        if lead:
            result.append((lead, _common_prefix(before, marks)))
        result.append((core, marks))
        if trail:
            result.append((trail, _common_prefix(marks, after)))

    merged: list[tuple[str, tuple[Mark, ...]]] = []
    for value, marks in result:
        if merged and list(merged[-1][1]) == list(marks):
            merged[-1] = (merged[-1][0] + value, marks)
        else:
            merged.append((value, marks))
    return merged


def escape_text(value: str, line_start: bool) -> str:
    """Backslash-escape characters that would read as markdown."""
    out = []
    for ch in value:
        out.append("\\" + ch if ch in INLINE_ESCAPES else ch)
    escaped = ENTITY_PATTERN.sub(lambda m: "\\" + m.group(0), "".join(out))

    if line_start:
        ordered = ORDERED_START_PATTERN.match(escaped)
        if ordered:
            escaped = ordered.group(1) + "\\" + escaped[len(ordered.group(1)) :]
        elif LINE_START_PATTERN.match(escaped):
            escaped = "\\" + escaped
    return escaped


def code_span(value: str) -> str:
    longest = max((len(run) for run in BACKTICK_RUN.findall(value)), default=0)
    fence = "`" * (longest + 1)
    if value.startswith("`") or value.endswith("`"):
        value = f" {value} "
    return f"{fence}{value}{fence}"


def _open(m: Mark) -> str:
    if m.get("type") == "link":
        return "["
    return DELIMITERS.get(m.get("type", ""), ("", ""))[0]


def _close(m: Mark) -> str:
    if m.get("type") == "link":
        attrs = m.get("attrs", {})
        href = str(attrs.get("href", ""))
        if not href or re.search(r"[\s()<>]", href):
            href = "<" + href.replace("<", "%3C").replace(">", "%3E") + ">"
        title = attrs.get("title")
        if title:
            escaped_title = str(title).replace("\\", "\\\\").replace('"', '\\"')
            return f']({href} "{escaped_title}")'
        return f"]({href})"
    return DELIMITERS.get(m.get("type", ""), ("", ""))[1]


@dataclass
class _Piece:
    """A chunk of written inline output; emphasis delimiters carry their pair id."""

    text: str
    mark_type: str = ""
    closing: bool = False
    pair: int = -1

    def render(self, as_html: set[int]) -> str:
        if self.pair in as_html:
            return HTML_DELIMITERS[self.mark_type][1 if self.closing else 0]
        return self.text


def _is_space(ch: str | None) -> bool:
    return ch is None or ch.isspace()


def _is_punct(ch: str | None) -> bool:
    return ch is not None and not ch.isspace() and not ch.isalnum()


def _left_flanking(before: str | None, after: str | None) -> bool:
    if _is_space(after):
        return False
    return not _is_punct(after) or _is_space(before) or _is_punct(before)


def _right_flanking(before: str | None, after: str | None) -> bool:
    if _is_space(before):
        return False
    return not _is_punct(before) or _is_space(after) or _is_punct(after)


def _misplaced(pieces: list[_Piece], texts: list[str]) -> set[int]:
    """Pair ids whose markdown delimiters would be read back as literal text."""
    bad: set[int] = set()
    i = 0
    while i < len(pieces):
        if pieces[i].pair < 0 or texts[i].startswith("<"):
            i += 1
            continue
        # Adjacent delimiters of one character form a single run.
        j = i
        while j + 1 < len(pieces) and pieces[j + 1].pair >= 0 and texts[j + 1][0] == texts[i][0]:
            j += 1
        before = texts[i - 1][-1] if i > 0 else None
        after = texts[j + 1][0] if j + 1 < len(texts) else None
        left = _left_flanking(before, after)
        right = _right_flanking(before, after)
        for piece in pieces[i : j + 1]:
            fits = right if piece.closing else left
            # A mixed run inside a word is ambiguous to the parser.
            if not fits or (left and right and j > i):
                bad.add(piece.pair)
        i = j + 1
    return bad


def _render(pieces: list[_Piece]) -> str:
    as_html: set[int] = set()
    while True:
        texts = [piece.render(as_html) for piece in pieces]
        bad = _misplaced(pieces, texts)
        if not bad:
            return "".join(texts)
        as_html |= bad


def _delimiter(m: Mark, pair: int, closing: bool) -> _Piece:
    text = _close(m) if closing else _open(m)
    return _Piece(text, m.get("type", ""), closing, pair)


def _write_line(chars: list[Char]) -> str:
    """Serialize one line of inline content (no hard breaks)."""
    pieces: list[_Piece] = []
    stack: list[tuple[Mark, int]] = []
    pairs = 0
    for value, marks in _hoist_whitespace(_runs(chars)):
        keep = len(_common_prefix(tuple(m for m, _ in stack), marks))
        while len(stack) > keep:
            m, pair = stack.pop()
            if m.get("type") != "code":
                pieces.append(_delimiter(m, pair, closing=True))

        for m in marks[keep:]:
            pair = -1
            if m.get("type") in HTML_DELIMITERS:
                pair = pairs
                pairs += 1
            if m.get("type") != "code":
                pieces.append(_delimiter(m, pair, closing=False))
            stack.append((m, pair))

        if stack and stack[-1][0].get("type") == "code":
            pieces.append(_Piece(code_span(value)))
        else:
            pieces.append(_Piece(escape_text(value, line_start=not pieces)))

    while stack:
        m, pair = stack.pop()
        if m.get("type") != "code":
            pieces.append(_delimiter(m, pair, closing=True))
    return _render(pieces)


def write_inline(block: RichTextNode, config: ConverterConfig = DEFAULT_CONFIG, *, single_line: bool = False) -> str:
    chars = explode(block)
    if single_line:
        chars = [(" ", ()) if ch == "\n" else (ch, marks) for ch, marks in chars]

    lines: list[list[Char]] = [[]]
    for ch, marks in chars:
        if ch == "\n":
            lines.append([])
        else:
            lines[-1].append((ch, marks))

    written = []
    for line in lines:
        start = 0
        end = len(line)
        while start < end and line[start][0].isspace():
            start += 1
        while end > start and line[end - 1][0].isspace():
            end -= 1
        if start < end:
            written.append(_write_line(line[start:end]))
    return config.hard_break.join(written)


# --- Blocks ---


class _Writer:
    def __init__(self, config: ConverterConfig) -> None:
        self.config = config

    def blocks(self, nodes: list[RichTextNode], depth: int, tight: bool = False) -> str:
        parts: list[tuple[RichTextNode, str]] = []
        previous_list: str | None = None
        run = 0
        for node in nodes:
            if node.is_list:
                run = run + 1 if previous_list == node.type else 0
            out = self.block(node, depth, run)
            if not out:
                continue
            previous_list = node.type if node.is_list else None
            if not node.is_list:
                run = 0
            parts.append((node, out))

        text = ""
        for i, (node, out) in enumerate(parts):
            if i:
                # Inside a tight item a nested list hugs the paragraph above it.
                joiner = "\n" if tight and node.is_list and parts[i - 1][0].type == "paragraph" else "\n\n"
                text += joiner
            text += out
        return text

    def block(self, node: RichTextNode, depth: int, run: int) -> str:
        if node.type == "paragraph":
            return write_inline(node, self.config)
        if node.type == "heading":
            body = write_inline(node, self.config, single_line=True)
            if not body:
                return ""
            if body.endswith("#") and not body.endswith("\\#"):
                # A trailing run of '#' would read as a closing sequence.
                body = body[:-1] + "\\#"
            level = max(1, min(6, int(node.attrs.get("level", 1))))
            return "#" * level + " " + body
        if node.type == "codeBlock":
            return self.code_block(node)
        if node.type == "horizontalRule":
            return self.config.thematic_break
        if node.type == "blockquote":
            inner = self.blocks(node.content, depth)
            if not inner:
                return ""
            return "\n".join("> " + line if line else ">" for line in inner.split("\n"))
        if node.is_list:
            return self.list_block(node, depth, run)
        if node.type == "listItem":
            return self.blocks(node.content, depth)
        if node.content:
            logger.debug("Writing unknown block %r as its children", node.type)
            return self.blocks(node.content, depth)
        return escape_text(node.plain_text(), line_start=True)

    def code_block(self, node: RichTextNode) -> str:
        body = "".join(child.text or "" for child in node.content)
        longest = max((len(run) for run in BACKTICK_RUN.findall(body)), default=0)
        fence = "`" * max(3, longest + 1)
        language = str(node.attrs.get("language") or "")
        if body:
            return f"{fence}{language}\n{body}\n{fence}"
        return f"{fence}{language}\n{fence}"

    def list_block(self, node: RichTextNode, depth: int, run: int) -> str:
        markers = self.config.bullet_markers
        delimiters = self.config.ordered_delimiters
        number = int(node.attrs.get("start", 1))
        items = []
        for item in node.content:
            if node.type == "orderedList":
                marker = f"{number}{delimiters[run % len(delimiters)]} "
                number += 1
            else:
                marker = markers[(depth + run) % len(markers)] + " "
            body = self.blocks(item.content, depth + 1, tight=True)
            if not body:
                items.append(marker.rstrip())
                continue
            indent = " " * len(marker)
            lines = body.split("\n")
            rendered = [marker + lines[0]] + [indent + line if line else "" for line in lines[1:]]
            items.append("\n".join(rendered))
        return "\n".join(items)


def write_markdown(root: RichTextNode, config: ConverterConfig = DEFAULT_CONFIG) -> str:
    """
    Serialize a document to markdown.

    Raises:
        MarkdownWriteError: If the tree is malformed
    """
    try:
        return _Writer(config).blocks(root.content, 0)
    except (AttributeError, KeyError, TypeError, ValueError, IndexError) as e:
        raise MarkdownWriteError(str(e)) from e


def to_markdown(root: RichTextNode, config: ConverterConfig = DEFAULT_CONFIG) -> str:
    """Serialize a document to markdown, falling back to its plain text."""
    try:
        return write_markdown(root, config)
    except MarkdownWriteError as e:
        logger.warning("Markdown serialization failed, using plain text: %s", e)
        return root.plain_text()
