"""
Formatting component - toolbar and shortcut actions over the document tree.

Invariants:
- The input document is never mutated
- Unsafe link URLs never reach the document
"""

from __future__ import annotations

from markpanel.domain.document import Position, RichTextNode, Selection, clamp_selection

from ._impl import FormattingExecutor, UnsafeLinkError
from .models import FormatInput, FormatOutput, FormattingError


def _position(value: tuple[int, int]) -> Position:
    return Position(int(value[0]), int(value[1]))


# --- Component Entry Points ---


def run_format(inp: FormatInput, *, executor: FormattingExecutor | None = None) -> FormatOutput:
    """
    Apply one formatting action.

    Args:
        inp: Document, selection, action name and action arguments.
        executor: Optional executor (to share stored marks or a listener).

    Returns:
        FormatOutput with the new document and selection. Refused actions
        return the input unchanged with success=False.
    """
    root = RichTextNode.from_dict(inp.document)
    anchor = _position(inp.anchor)
    sel = clamp_selection(root, Selection(anchor, _position(inp.head) if inp.head else anchor))
    runner = executor or FormattingExecutor()

    try:
        result = runner.run_action(inp.action, root, sel, **inp.args)
    except UnsafeLinkError as e:
        return FormatOutput(
            document=inp.document,
            anchor=inp.anchor,
            head=inp.head or inp.anchor,
            errors=[FormattingError(code="unsafe_url", message=str(e), path="args.url")],
            success=False,
        )
    except ValueError as e:
        return FormatOutput(
            document=inp.document,
            anchor=inp.anchor,
            head=inp.head or inp.anchor,
            errors=[FormattingError(code="invalid_action", message=str(e), path="action")],
            success=False,
        )

    selection = result.selection
    return FormatOutput(
        document=result.document.to_dict(),
        anchor=(selection.anchor.block, selection.anchor.offset),
        head=(selection.head.block, selection.head.offset),
    )


def run(inp: FormatInput, *, executor: FormattingExecutor | None = None) -> FormatOutput:
    """Main entry point for the formatting component."""
    if isinstance(inp, FormatInput):
        return run_format(inp, executor=executor)
    raise ValueError(f"Unknown input type: {type(inp)}")
