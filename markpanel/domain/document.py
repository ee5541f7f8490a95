"""
Document tree for the long-form text editor.

A ProseMirror-style tree of block and inline nodes. Textblocks
(paragraph, heading, codeBlock) hold the inline content and are addressed
by their ordinal in document order, so a Position stays valid while the
tree around a textblock is restructured (wrapped in a list, lifted out of
a quote, ...).

Invariants:
- doc always has at least one block
- inline content never holds a "\\n" outside a codeBlock (hardBreak instead)
- marks on a text node are kept in MARK_ORDER
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

TEXTBLOCK_TYPES = frozenset({"paragraph", "heading", "codeBlock"})
LIST_TYPES = frozenset({"bulletList", "orderedList"})
CONTAINER_TYPES = frozenset({"doc", "blockquote", "listItem"}) | LIST_TYPES
INLINE_TYPES = frozenset({"text", "hardBreak"})

# Outermost first; the markdown writer opens delimiters in this order.
MARK_ORDER: tuple[str, ...] = ("link", "bold", "italic", "strike", "underline", "code")

# Alternating list styles per nesting level (level 0 first).
LIST_STYLES: dict[str, tuple[str, ...]] = {
    "bulletList": ("disc", "circle", "square"),
    "orderedList": ("decimal", "lower-alpha", "lower-roman"),
}

Mark = dict[str, Any]
Char = tuple[str, tuple[Mark, ...]]


@dataclass
class RichTextNode:
    """
    A node in the document tree.

    Block nodes carry `content`; text nodes carry `text` and `marks`.
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    content: list[RichTextNode] = field(default_factory=list)
    text: str | None = None
    marks: list[Mark] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"type": self.type}
        if self.attrs:
            result["attrs"] = self.attrs
        if self.content:
            result["content"] = [node.to_dict() for node in self.content]
        if self.text is not None:
            result["text"] = self.text
        if self.marks:
            result["marks"] = self.marks
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RichTextNode:
        """Create from dictionary."""
        content = [cls.from_dict(child) for child in data.get("content", [])]
        return cls(
            type=data.get("type", ""),
            attrs=dict(data.get("attrs", {})),
            content=content,
            text=data.get("text"),
            marks=[dict(m) for m in data.get("marks", [])],
        )

    def clone(self) -> RichTextNode:
        return copy.deepcopy(self)

    @property
    def is_textblock(self) -> bool:
        return self.type in TEXTBLOCK_TYPES

    @property
    def is_list(self) -> bool:
        return self.type in LIST_TYPES

    def plain_text(self) -> str:
        """Concatenated text content; blocks are separated by newlines."""
        if self.type == "text":
            return self.text or ""
        if self.type == "hardBreak":
            return "\n"
        if self.is_textblock:
            return "".join(child.plain_text() for child in self.content)
        parts = [child.plain_text() for child in self.content]
        return "\n".join(p for p in parts if p)


# --- Builders ---


def mark(mark_type: str, **attrs: Any) -> Mark:
    """Build a mark dict, dropping empty attrs."""
    result: Mark = {"type": mark_type}
    clean = {k: v for k, v in attrs.items() if v is not None}
    if clean:
        result["attrs"] = clean
    return result


def text(value: str, *marks: Mark | str) -> RichTextNode:
    resolved = [mark(m) if isinstance(m, str) else m for m in marks]
    return RichTextNode(type="text", text=value, marks=sort_marks(resolved))


def hard_break() -> RichTextNode:
    return RichTextNode(type="hardBreak")


def _inline(children: tuple[RichTextNode | str, ...]) -> list[RichTextNode]:
    return [text(c) if isinstance(c, str) else c for c in children if c != ""]


def paragraph(*children: RichTextNode | str) -> RichTextNode:
    return RichTextNode(type="paragraph", content=_inline(children))


def heading(level: int, *children: RichTextNode | str) -> RichTextNode:
    return RichTextNode(type="heading", attrs={"level": level}, content=_inline(children))


def code_block(value: str = "", language: str | None = None) -> RichTextNode:
    attrs = {"language": language} if language else {}
    content = [RichTextNode(type="text", text=value)] if value else []
    return RichTextNode(type="codeBlock", attrs=attrs, content=content)


def horizontal_rule() -> RichTextNode:
    return RichTextNode(type="horizontalRule")


def blockquote(*blocks: RichTextNode) -> RichTextNode:
    return RichTextNode(type="blockquote", content=list(blocks))


def list_item(*blocks: RichTextNode | str) -> RichTextNode:
    content = [paragraph(b) if isinstance(b, str) else b for b in blocks]
    return RichTextNode(type="listItem", content=content)


def bullet_list(*items: RichTextNode | str) -> RichTextNode:
    content = [list_item(i) if isinstance(i, str) else i for i in items]
    return RichTextNode(type="bulletList", content=content)


def ordered_list(*items: RichTextNode | str, start: int = 1) -> RichTextNode:
    content = [list_item(i) if isinstance(i, str) else i for i in items]
    attrs = {"start": start} if start != 1 else {}
    return RichTextNode(type="orderedList", attrs=attrs, content=content)


def doc(*blocks: RichTextNode) -> RichTextNode:
    return RichTextNode(type="doc", content=list(blocks) or [paragraph()])


def empty_doc() -> RichTextNode:
    return doc(paragraph())


# --- Marks ---


def mark_rank(m: Mark) -> int:
    try:
        return MARK_ORDER.index(m.get("type", ""))
    except ValueError:
        return len(MARK_ORDER)


def sort_marks(marks: list[Mark]) -> list[Mark]:
    """Deduplicate by type and sort into MARK_ORDER."""
    by_type: dict[str, Mark] = {}
    for m in marks:
        by_type[m.get("type", "")] = m
    return sorted(by_type.values(), key=mark_rank)


def has_mark(marks: tuple[Mark, ...] | list[Mark], mark_type: str) -> bool:
    return any(m.get("type") == mark_type for m in marks)


# --- Positions ---


@dataclass(frozen=True, order=True)
class Position:
    """Caret position: textblock ordinal and character offset within it."""

    block: int
    offset: int


@dataclass(frozen=True)
class Selection:
    """Selection between an anchor and a head position."""

    anchor: Position
    head: Position

    @classmethod
    def caret(cls, block: int, offset: int) -> Selection:
        pos = Position(block, offset)
        return cls(pos, pos)

    @classmethod
    def between(cls, start: Position, end: Position) -> Selection:
        return cls(start, end)

    @property
    def start(self) -> Position:
        return min(self.anchor, self.head)

    @property
    def end(self) -> Position:
        return max(self.anchor, self.head)

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.head


@dataclass(frozen=True)
class EditResult:
    """A new document together with the selection after the edit."""

    document: RichTextNode
    selection: Selection


# --- Addressing ---

Path = tuple[int, ...]


def iter_textblocks(root: RichTextNode) -> Iterator[tuple[Path, RichTextNode]]:
    """Yield (path, node) for each textblock in document order."""

    def walk(node: RichTextNode, path: Path) -> Iterator[tuple[Path, RichTextNode]]:
        for i, child in enumerate(node.content):
            child_path = path + (i,)
            if child.is_textblock:
                yield child_path, child
            elif child.type in CONTAINER_TYPES:
                yield from walk(child, child_path)

    yield from walk(root, ())


def textblock_paths(root: RichTextNode) -> list[Path]:
    return [path for path, _ in iter_textblocks(root)]


def textblock_count(root: RichTextNode) -> int:
    return sum(1 for _ in iter_textblocks(root))


def node_at(root: RichTextNode, path: Path) -> RichTextNode:
    node = root
    for index in path:
        node = node.content[index]
    return node


def path_of(root: RichTextNode, ordinal: int) -> Path:
    """Path of the textblock with the given ordinal."""
    for i, (path, _) in enumerate(iter_textblocks(root)):
        if i == ordinal:
            return path
    raise IndexError(f"No textblock {ordinal} in document")


def textblock(root: RichTextNode, ordinal: int) -> RichTextNode:
    return node_at(root, path_of(root, ordinal))


def ancestors(root: RichTextNode, path: Path) -> list[tuple[Path, RichTextNode]]:
    """Ancestors of the node at path, innermost first (root excluded)."""
    result = []
    for depth in range(len(path) - 1, 0, -1):
        prefix = path[:depth]
        result.append((prefix, node_at(root, prefix)))
    return result


def enclosing(root: RichTextNode, path: Path, types: frozenset[str]) -> Path | None:
    """Path of the innermost ancestor whose type is in types."""
    for prefix, node in ancestors(root, path):
        if node.type in types:
            return prefix
    return None


def list_depth(root: RichTextNode, path: Path) -> int:
    """Number of list ancestors of the node at path."""
    return sum(1 for _, node in ancestors(root, path) if node.is_list)


def clamp_position(root: RichTextNode, pos: Position) -> Position:
    count = textblock_count(root)
    block = max(0, min(pos.block, count - 1))
    length = len(block_text(textblock(root, block)))
    return Position(block, max(0, min(pos.offset, length)))


def clamp_selection(root: RichTextNode, sel: Selection) -> Selection:
    return Selection(clamp_position(root, sel.anchor), clamp_position(root, sel.head))


def end_position(root: RichTextNode) -> Position:
    last = textblock_count(root) - 1
    return Position(last, len(block_text(textblock(root, last))))


# --- Inline content as characters ---


def explode(block: RichTextNode) -> list[Char]:
    """Flatten a textblock's inline content into (char, marks) pairs."""
    chars: list[Char] = []
    for child in block.content:
        if child.type == "hardBreak":
            chars.append(("\n", ()))
        elif child.type == "text" and child.text:
            marks = tuple(child.marks)
            chars.extend((ch, marks) for ch in child.text)
        else:
            # Unknown inline kinds keep their text.
            chars.extend((ch, ()) for ch in child.plain_text())
    return chars


def implode(chars: list[Char], code: bool = False) -> list[RichTextNode]:
    """Rebuild inline nodes from (char, marks) pairs, merging equal runs."""
    nodes: list[RichTextNode] = []
    buffer: list[str] = []
    current: tuple[Mark, ...] | None = None

    def flush() -> None:
        if buffer:
            nodes.append(
                RichTextNode(type="text", text="".join(buffer), marks=sort_marks(list(current or ())))
            )
            buffer.clear()

    for ch, marks in chars:
        if code:
            marks = ()
        if ch == "\n" and not code:
            flush()
            current = None
            nodes.append(hard_break())
            continue
        if current is not None and list(marks) != list(current):
            flush()
        current = marks
        buffer.append(ch)
    flush()
    return nodes


def block_text(block: RichTextNode) -> str:
    return "".join(ch for ch, _ in explode(block))


def list_style_for(list_type: str, depth: int) -> str:
    styles = LIST_STYLES[list_type]
    return styles[depth % len(styles)]


def normalize_list_styles(root: RichTextNode) -> RichTextNode:
    """Assign alternating listStyle attrs by nesting level (in place)."""

    def walk(node: RichTextNode, depth: int) -> None:
        for child in node.content:
            if child.is_list:
                child.attrs["listStyle"] = list_style_for(child.type, depth)
                walk(child, depth + 1)
            else:
                walk(child, depth)

    walk(root, 0)
    return root
