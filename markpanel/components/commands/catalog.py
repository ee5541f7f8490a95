"""
Built-in slash command catalog.

Effects are pure (document, selection) -> EditResult functions built from
the edit primitives; catalog order is the order shown in the menu.
"""

from __future__ import annotations

from markpanel.domain.document import EditResult, RichTextNode, Selection, node_at, path_of
from markpanel.domain.transforms import insert_rule, set_block_type, toggle_blockquote, toggle_list

from .models import Command, CommandEffect


def _block(block_type: str, **attrs: object) -> CommandEffect:
    def effect(root: RichTextNode, sel: Selection) -> EditResult:
        return set_block_type(root, sel, block_type, attrs or None)

    return effect


def _list(kind: str) -> CommandEffect:
    def effect(root: RichTextNode, sel: Selection) -> EditResult:
        path = path_of(root, sel.start.block)
        if len(path) >= 3 and node_at(root, path[:-2]).type == kind:
            return EditResult(root, sel)
        return toggle_list(root, sel, kind)

    return effect


def _quote(root: RichTextNode, sel: Selection) -> EditResult:
    path = path_of(root, sel.start.block)
    if any(node_at(root, path[:depth]).type == "blockquote" for depth in range(1, len(path))):
        return EditResult(root, sel)
    return toggle_blockquote(root, sel)


DEFAULT_COMMANDS: tuple[Command, ...] = (
    Command(
        name="text",
        title="Text",
        description="Start writing with plain text",
        effect=_block("paragraph"),
        search_terms=("paragraph", "p", "plain"),
    ),
    Command(
        name="heading1",
        title="Heading 1",
        description="Big section heading",
        effect=_block("heading", level=1),
        search_terms=("h1", "title", "large"),
    ),
    Command(
        name="heading2",
        title="Heading 2",
        description="Medium section heading",
        effect=_block("heading", level=2),
        search_terms=("h2", "subtitle", "medium"),
    ),
    Command(
        name="heading3",
        title="Heading 3",
        description="Small section heading",
        effect=_block("heading", level=3),
        search_terms=("h3", "subheading", "small"),
    ),
    Command(
        name="bulletList",
        title="Bullet List",
        description="Create a simple bullet list",
        effect=_list("bulletList"),
        search_terms=("ul", "unordered", "point"),
    ),
    Command(
        name="numberedList",
        title="Numbered List",
        description="Create a list with numbering",
        effect=_list("orderedList"),
        search_terms=("ol", "ordered", "number"),
    ),
    Command(
        name="quote",
        title="Quote",
        description="Capture a quote",
        effect=_quote,
        search_terms=("blockquote", "citation"),
    ),
    Command(
        name="codeBlock",
        title="Code Block",
        description="Capture a code snippet",
        effect=_block("codeBlock"),
        search_terms=("code", "pre", "snippet"),
    ),
    Command(
        name="divider",
        title="Divider",
        description="Visually divide sections",
        effect=insert_rule,
        search_terms=("hr", "rule", "line", "separator"),
    ),
)


def filter_commands(commands: tuple[Command, ...], query: str) -> tuple[Command, ...]:
    """Commands matching query, in catalog order."""
    return tuple(command for command in commands if command.matches(query))


def find_command(commands: tuple[Command, ...], name: str) -> Command | None:
    for command in commands:
        if command.name == name:
            return command
    return None
