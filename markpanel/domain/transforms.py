"""
Edit primitives over the document tree.

Every operation takes a document and a selection and returns an
EditResult holding a new tree; the input tree is never mutated. These are
the only operations the editor uses to change a document, so any UI
toolkit can drive the engine by translating its input into these calls.
"""

from __future__ import annotations

from collections.abc import Callable

from .document import (
    CONTAINER_TYPES,
    Char,
    EditResult,
    Mark,
    Path,
    Position,
    RichTextNode,
    Selection,
    block_text,
    clamp_selection,
    enclosing,
    explode,
    has_mark,
    horizontal_rule,
    implode,
    node_at,
    normalize_list_styles,
    paragraph,
    path_of,
    sort_marks,
    textblock,
    textblock_count,
    textblock_paths,
)

BLOCKQUOTE = frozenset({"blockquote"})


def _set_chars(block: RichTextNode, chars: list[Char]) -> None:
    block.content = implode(chars, code=block.type == "codeBlock")


def _prune(root: RichTextNode, drop: set[int], rule_window: tuple[int, int] | None = None) -> None:
    """
    Remove textblocks by ordinal and drop containers left empty.

    Horizontal rules sitting between textblocks rule_window[0] and
    rule_window[1] are removed as well.
    """
    seen = 0

    def walk(node: RichTextNode) -> None:
        nonlocal seen
        kept: list[RichTextNode] = []
        for child in node.content:
            if child.is_textblock:
                ordinal = seen
                seen += 1
                if ordinal not in drop:
                    kept.append(child)
            elif child.type == "horizontalRule":
                if rule_window and rule_window[0] < seen <= rule_window[1]:
                    continue
                kept.append(child)
            elif child.type in CONTAINER_TYPES:
                walk(child)
                if child.content:
                    kept.append(child)
            else:
                kept.append(child)
        node.content = kept

    walk(root)
    if not textblock_paths(root):
        root.content.append(paragraph())


def marks_at(root: RichTextNode, pos: Position) -> tuple[Mark, ...]:
    """Marks that text typed at pos inherits."""
    block = textblock(root, pos.block)
    if block.type == "codeBlock":
        return ()
    chars = explode(block)
    if pos.offset == 0 or not chars:
        return ()
    ch, marks = chars[pos.offset - 1]
    if ch == "\n":
        return ()
    if has_mark(marks, "link"):
        following = chars[pos.offset][1] if pos.offset < len(chars) else ()
        if not has_mark(following, "link"):
            marks = tuple(m for m in marks if m.get("type") != "link")
    return marks


def text_between(root: RichTextNode, sel: Selection) -> str:
    start, end = sel.start, sel.end
    parts = []
    for ordinal in range(start.block, end.block + 1):
        value = block_text(textblock(root, ordinal))
        lo = start.offset if ordinal == start.block else 0
        hi = end.offset if ordinal == end.block else len(value)
        parts.append(value[lo:hi])
    return "\n".join(parts)


# --- Text edits ---


def delete_range(root: RichTextNode, sel: Selection) -> EditResult:
    start, end = sel.start, sel.end
    if start == end:
        return EditResult(root, sel)

    new = root.clone()
    if start.block == end.block:
        block = textblock(new, start.block)
        chars = explode(block)
        del chars[start.offset : end.offset]
        _set_chars(block, chars)
        return EditResult(new, Selection.caret(start.block, start.offset))

    first = textblock(new, start.block)
    last = textblock(new, end.block)
    _set_chars(first, explode(first)[: start.offset] + explode(last)[end.offset :])
    _prune(new, set(range(start.block + 1, end.block + 1)), (start.block, end.block))
    return EditResult(new, Selection.caret(start.block, start.offset))


def insert_text(
    root: RichTextNode,
    sel: Selection,
    value: str,
    marks: tuple[Mark, ...] | None = None,
) -> EditResult:
    """Replace the selection with value; newlines become hard breaks."""
    base = delete_range(root, sel)
    new = base.document.clone()
    pos = base.selection.head
    block = textblock(new, pos.block)

    use = marks_at(new, pos) if marks is None else tuple(sort_marks(list(marks)))
    if block.type == "codeBlock":
        use = ()
    normalized = value.replace("\r\n", "\n").replace("\r", "\n")
    chars = explode(block)
    chars[pos.offset : pos.offset] = [(ch, use) for ch in normalized]
    _set_chars(block, chars)
    return EditResult(new, Selection.caret(pos.block, pos.offset + len(normalized)))


def delete_backward(root: RichTextNode, sel: Selection) -> EditResult:
    """Backspace."""
    if not sel.is_collapsed:
        return delete_range(root, sel)

    pos = sel.head
    if pos.offset > 0:
        return delete_range(root, Selection(Position(pos.block, pos.offset - 1), pos))

    path = path_of(root, pos.block)
    block = node_at(root, path)
    if block.type != "paragraph":
        return set_block_type(root, sel, "paragraph")

    parent = node_at(root, path[:-1])
    if path[-1] == 0 and parent.type == "listItem":
        return lift_list_item(root, pos.block, sel)
    if path[-1] == 0 and parent.type == "blockquote":
        return toggle_blockquote(root, sel)
    if pos.block == 0:
        return EditResult(root, sel)

    previous = len(block_text(textblock(root, pos.block - 1)))
    return delete_range(root, Selection(Position(pos.block - 1, previous), pos))


def delete_forward(root: RichTextNode, sel: Selection) -> EditResult:
    """Delete key."""
    if not sel.is_collapsed:
        return delete_range(root, sel)

    pos = sel.head
    length = len(block_text(textblock(root, pos.block)))
    if pos.offset < length:
        return delete_range(root, Selection(pos, Position(pos.block, pos.offset + 1)))
    if pos.block + 1 >= textblock_count(root):
        return EditResult(root, sel)
    return delete_range(root, Selection(pos, Position(pos.block + 1, 0)))


def split_block(root: RichTextNode, sel: Selection) -> EditResult:
    """Enter: split the textblock at the caret."""
    base = delete_range(root, sel)
    pos = base.selection.head
    path = path_of(base.document, pos.block)
    if node_at(base.document, path).type == "codeBlock":
        return insert_text(base.document, base.selection, "\n")

    new = base.document.clone()
    block = node_at(new, path)
    parent = node_at(new, path[:-1])
    index = path[-1]
    chars = explode(block)

    if parent.type == "listItem" and index == 0 and not chars and len(parent.content) == 1:
        # Enter on an empty item leaves the list.
        return lift_list_item(new, pos.block, base.selection)

    _set_chars(block, chars[: pos.offset])
    right = chars[pos.offset :]
    if block.type == "heading" and not right:
        right_block = paragraph()
    else:
        right_block = RichTextNode(type=block.type, attrs=dict(block.attrs))
        _set_chars(right_block, right)

    if parent.type == "listItem" and index == 0:
        item_path = path[:-1]
        owner = node_at(new, item_path[:-1])
        moved = parent.content[index + 1 :]
        parent.content = parent.content[: index + 1]
        owner.content.insert(item_path[-1] + 1, RichTextNode(type="listItem", content=[right_block, *moved]))
    else:
        parent.content.insert(index + 1, right_block)
    return EditResult(new, Selection.caret(pos.block + 1, 0))


def insert_fragment(root: RichTextNode, sel: Selection, fragment: RichTextNode) -> EditResult:
    """Insert the blocks of a (sanitized) fragment document at the selection."""
    base = delete_range(root, sel)
    blocks = fragment.content
    if not blocks:
        return base

    pos = base.selection.head
    if len(blocks) == 1 and blocks[0].type == "paragraph":
        new = base.document.clone()
        block = textblock(new, pos.block)
        incoming = explode(blocks[0])
        chars = explode(block)
        chars[pos.offset : pos.offset] = incoming
        _set_chars(block, chars)
        return EditResult(new, Selection.caret(pos.block, pos.offset + len(incoming)))

    new = base.document.clone()
    path = path_of(new, pos.block)
    block = node_at(new, path)
    parent = node_at(new, path[:-1])
    chars = explode(block)

    pieces: list[RichTextNode] = []
    first = pos.block
    if chars[: pos.offset]:
        left = RichTextNode(type=block.type, attrs=dict(block.attrs))
        _set_chars(left, chars[: pos.offset])
        pieces.append(left)
        first += 1
    pieces.extend(b.clone() for b in blocks)
    if chars[pos.offset :]:
        right = RichTextNode(type=block.type, attrs=dict(block.attrs))
        _set_chars(right, chars[pos.offset :])
        pieces.append(right)
    inserted = textblock_count(fragment)
    if not inserted and not chars[pos.offset :]:
        pieces.append(paragraph())

    parent.content[path[-1] : path[-1] + 1] = pieces
    normalize_list_styles(new)
    if inserted:
        last = first + inserted - 1
        return EditResult(new, Selection.caret(last, len(block_text(textblock(new, last)))))
    return EditResult(new, Selection.caret(first, 0))


# --- Marks ---


def _mark_span(root: RichTextNode, sel: Selection) -> list[tuple[int, int, int]]:
    """(ordinal, lo, hi) spans covered by the selection, code blocks skipped."""
    spans = []
    start, end = sel.start, sel.end
    for ordinal in range(start.block, end.block + 1):
        block = textblock(root, ordinal)
        if block.type == "codeBlock":
            continue
        length = len(explode(block))
        lo = start.offset if ordinal == start.block else 0
        hi = end.offset if ordinal == end.block else length
        spans.append((ordinal, lo, hi))
    return spans


def range_has_mark(root: RichTextNode, sel: Selection, mark_type: str) -> bool:
    """True if every character in the selection carries the mark."""
    found = False
    for ordinal, lo, hi in _mark_span(root, sel):
        for ch, marks in explode(textblock(root, ordinal))[lo:hi]:
            if ch == "\n":
                continue
            if not has_mark(marks, mark_type):
                return False
            found = True
    return found


def _map_marks(
    root: RichTextNode,
    sel: Selection,
    fn: Callable[[tuple[Mark, ...]], tuple[Mark, ...]],
) -> EditResult:
    new = root.clone()
    for ordinal, lo, hi in _mark_span(new, sel):
        block = textblock(new, ordinal)
        chars = explode(block)
        for i in range(lo, hi):
            ch, marks = chars[i]
            if ch != "\n":
                chars[i] = (ch, fn(marks))
        _set_chars(block, chars)
    return EditResult(new, sel)


def add_mark(root: RichTextNode, sel: Selection, m: Mark) -> EditResult:
    mark_type = m.get("type")
    return _map_marks(
        root,
        sel,
        lambda marks: tuple(sort_marks([x for x in marks if x.get("type") != mark_type] + [m])),
    )


def remove_mark(root: RichTextNode, sel: Selection, mark_type: str) -> EditResult:
    return _map_marks(root, sel, lambda marks: tuple(x for x in marks if x.get("type") != mark_type))


def toggle_mark(root: RichTextNode, sel: Selection, m: Mark) -> EditResult:
    if range_has_mark(root, sel, m["type"]):
        return remove_mark(root, sel, m["type"])
    return add_mark(root, sel, m)


# --- Block structure ---


def set_block_type(
    root: RichTextNode,
    sel: Selection,
    block_type: str,
    attrs: dict[str, object] | None = None,
) -> EditResult:
    """Retype every textblock touched by the selection."""
    new = root.clone()
    for ordinal in range(sel.start.block, sel.end.block + 1):
        block = textblock(new, ordinal)
        chars = explode(block)
        block.type = block_type
        block.attrs = dict(attrs or {})
        _set_chars(block, chars)
    return EditResult(new, clamp_selection(new, sel))


def _wrap(root: RichTextNode, sel: Selection, make: Callable[[list[RichTextNode]], RichTextNode]) -> None:
    """Wrap the selected textblocks, grouped by parent, in place."""
    paths = textblock_paths(root)
    groups: dict[Path, list[int]] = {}
    for ordinal in range(sel.start.block, sel.end.block + 1):
        path = paths[ordinal]
        groups.setdefault(path[:-1], []).append(path[-1])

    for parent_path in sorted(groups, reverse=True):
        indices = groups[parent_path]
        lo, hi = min(indices), max(indices)
        parent = node_at(root, parent_path)
        parent.content[lo : hi + 1] = [make(parent.content[lo : hi + 1])]


def _item_list(root: RichTextNode, path: Path) -> Path | None:
    """Path of the list owning the item the textblock at path opens."""
    if len(path) < 3 or path[-1] != 0:
        return None
    if node_at(root, path[:-1]).type != "listItem":
        return None
    list_path = path[:-2]
    return list_path if node_at(root, list_path).is_list else None


def lift_list_item(root: RichTextNode, ordinal: int, sel: Selection | None = None) -> EditResult:
    """Move the list item opened by textblock `ordinal` out of its list."""
    selection = sel or Selection.caret(ordinal, 0)
    path = path_of(root, ordinal)
    list_path = _item_list(root, path)
    if list_path is None:
        return EditResult(root, selection)

    new = root.clone()
    lst = node_at(new, list_path)
    item_index = path[-2]
    item = lst.content[item_index]
    before = lst.content[:item_index]
    after = lst.content[item_index + 1 :]

    replacement: list[RichTextNode] = []
    if before:
        replacement.append(RichTextNode(type=lst.type, attrs=dict(lst.attrs), content=before))
    replacement.extend(item.content)
    if after:
        attrs = dict(lst.attrs)
        if lst.type == "orderedList":
            attrs["start"] = int(lst.attrs.get("start", 1)) + item_index + 1
        replacement.append(RichTextNode(type=lst.type, attrs=attrs, content=after))

    container = node_at(new, list_path[:-1])
    container.content[list_path[-1] : list_path[-1] + 1] = replacement
    normalize_list_styles(new)
    return EditResult(new, clamp_selection(new, selection))


def toggle_list(root: RichTextNode, sel: Selection, kind: str) -> EditResult:
    """
    Toggle a list of `kind` around the selection.

    Blocks already in a list of that kind are lifted out, blocks in a list
    of the other kind have that list retyped, other blocks are wrapped.
    """
    list_path = _item_list(root, path_of(root, sel.start.block))
    if list_path is not None and node_at(root, list_path).type == kind:
        result = root
        for ordinal in range(sel.start.block, sel.end.block + 1):
            result = lift_list_item(result, ordinal).document
        return EditResult(result, clamp_selection(result, sel))

    new = root.clone()
    if list_path is not None:
        for ordinal in range(sel.start.block, sel.end.block + 1):
            owner = _item_list(new, path_of(new, ordinal))
            if owner is None:
                continue
            lst = node_at(new, owner)
            lst.type = kind
            lst.attrs = {}
    else:
        _wrap(
            new,
            sel,
            lambda blocks: RichTextNode(
                type=kind, content=[RichTextNode(type="listItem", content=[b]) for b in blocks]
            ),
        )
    normalize_list_styles(new)
    return EditResult(new, clamp_selection(new, sel))


def toggle_blockquote(root: RichTextNode, sel: Selection) -> EditResult:
    new = root.clone()
    quote_path = enclosing(new, path_of(new, sel.start.block), BLOCKQUOTE)
    if quote_path is not None:
        quote = node_at(new, quote_path)
        container = node_at(new, quote_path[:-1])
        container.content[quote_path[-1] : quote_path[-1] + 1] = quote.content
    else:
        _wrap(new, sel, lambda blocks: RichTextNode(type="blockquote", content=blocks))
    return EditResult(new, clamp_selection(new, sel))


def insert_rule(root: RichTextNode, sel: Selection) -> EditResult:
    """Insert a horizontal rule after the caret's block (or in place of an empty one)."""
    base = delete_range(root, sel)
    pos = base.selection.head
    new = base.document.clone()
    path = path_of(new, pos.block)
    block = node_at(new, path)
    parent = node_at(new, path[:-1])
    index = path[-1]

    if block.type == "paragraph" and not block_text(block):
        parent.content.insert(index, horizontal_rule())
        return EditResult(new, Selection.caret(pos.block, 0))

    parent.content[index + 1 : index + 1] = [horizontal_rule(), paragraph()]
    return EditResult(new, Selection.caret(pos.block + 1, 0))
