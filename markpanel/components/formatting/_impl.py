"""
Formatting command executor.

Toolbar buttons, keyboard shortcuts and slash commands all end up here.
Every action takes the current document and selection, returns an
EditResult and synchronously notifies the change listener so the field
value is rederived before the call returns.

Mark toggles on a collapsed caret do not touch the document; they update
the stored marks that the next typed text picks up.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from markpanel.components.sanitizer import DEFAULT_CONFIG as SANITIZER_DEFAULTS
from markpanel.components.sanitizer import SanitizerConfig, is_safe_url
from markpanel.domain import transforms
from markpanel.domain.document import (
    EditResult,
    Mark,
    RichTextNode,
    Selection,
    has_mark,
    mark,
    sort_marks,
)

logger = logging.getLogger(__name__)

ChangeListener = Callable[[EditResult], None]

MARK_ACTIONS = {
    "bold": "bold",
    "italic": "italic",
    "underline": "underline",
    "strike": "strike",
    "code": "code",
}
LIST_KINDS = frozenset({"bulletList", "orderedList"})


class UnsafeLinkError(ValueError):
    """Raised by run_action when a link URL uses a forbidden protocol."""


class FormattingExecutor:
    """
    Applies formatting actions and tracks stored marks for one editor.
    """

    def __init__(
        self,
        on_change: ChangeListener | None = None,
        sanitizer_config: SanitizerConfig | None = None,
    ) -> None:
        self._on_change = on_change
        self._sanitizer_config = sanitizer_config or SANITIZER_DEFAULTS
        self._stored_marks: tuple[Mark, ...] | None = None

    # --- Stored marks ---

    @property
    def stored_marks(self) -> tuple[Mark, ...] | None:
        """Marks for the next typed text, or None to inherit from the caret."""
        return self._stored_marks

    def consume_stored_marks(self) -> tuple[Mark, ...] | None:
        marks = self._stored_marks
        self._stored_marks = None
        return marks

    def reset_stored_marks(self) -> None:
        self._stored_marks = None

    def _notify(self, result: EditResult) -> EditResult:
        if self._on_change is not None:
            self._on_change(result)
        return result

    # --- Marks ---

    def toggle_mark(self, root: RichTextNode, sel: Selection, mark_type: str) -> EditResult:
        if sel.is_collapsed:
            current = self._stored_marks
            if current is None:
                current = transforms.marks_at(root, sel.head)
            if has_mark(current, mark_type):
                self._stored_marks = tuple(m for m in current if m.get("type") != mark_type)
            else:
                self._stored_marks = tuple(sort_marks(list(current) + [mark(mark_type)]))
            logger.debug("Stored marks now %s", [m["type"] for m in self._stored_marks])
            return self._notify(EditResult(root, sel))
        return self._notify(transforms.toggle_mark(root, sel, mark(mark_type)))

    def toggle_bold(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self.toggle_mark(root, sel, "bold")

    def toggle_italic(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self.toggle_mark(root, sel, "italic")

    def toggle_underline(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self.toggle_mark(root, sel, "underline")

    def toggle_strike(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self.toggle_mark(root, sel, "strike")

    def toggle_code(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self.toggle_mark(root, sel, "code")

    def is_active(self, root: RichTextNode, sel: Selection, mark_type: str) -> bool:
        """Toolbar state: is the mark on for the selection or the caret."""
        if sel.is_collapsed:
            current = self._stored_marks
            if current is None:
                current = transforms.marks_at(root, sel.head)
            return has_mark(current, mark_type)
        return transforms.range_has_mark(root, sel, mark_type)

    # --- Blocks ---

    def set_block_type(
        self,
        root: RichTextNode,
        sel: Selection,
        block_type: str,
        level: int | None = None,
    ) -> EditResult:
        attrs = {"level": level} if block_type == "heading" else None
        if block_type == "heading" and not (level and 1 <= level <= 6):
            raise ValueError(f"Heading level must be 1-6, got {level}")
        return self._notify(transforms.set_block_type(root, sel, block_type, attrs))

    def toggle_list(self, root: RichTextNode, sel: Selection, kind: str) -> EditResult:
        if kind not in LIST_KINDS:
            raise ValueError(f"Unknown list kind: {kind}")
        return self._notify(transforms.toggle_list(root, sel, kind))

    def toggle_blockquote(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self._notify(transforms.toggle_blockquote(root, sel))

    def insert_rule(self, root: RichTextNode, sel: Selection) -> EditResult:
        return self._notify(transforms.insert_rule(root, sel))

    # --- Links ---

    def insert_link(
        self,
        root: RichTextNode,
        sel: Selection,
        url: str,
        text: str | None = None,
        title: str | None = None,
    ) -> EditResult:
        """
        Link the selection, or insert linked text at a collapsed caret.

        An empty url removes links from the selection. Unsafe urls are
        refused: the document is returned unchanged and nothing is notified.
        """
        url = (url or "").strip()
        if not url:
            return self._notify(transforms.remove_mark(root, sel, "link"))

        if not is_safe_url(url, self._sanitizer_config):
            logger.warning("Refused link with unsafe URL: %s", url[:50])
            return EditResult(root, sel)

        link = mark("link", href=url, title=title or None)
        if text and text == transforms.text_between(root, sel):
            # Unchanged display text keeps the selection and its marks.
            text = None
        if sel.is_collapsed or text:
            inherited = [m for m in transforms.marks_at(root, sel.start) if m.get("type") != "link"]
            inserted = transforms.insert_text(root, sel, text or url, tuple(sort_marks(inherited + [link])))
            return self._notify(inserted)
        return self._notify(transforms.add_mark(root, sel, link))

    # --- Dispatch ---

    def run_action(self, action: str, root: RichTextNode, sel: Selection, **args: object) -> EditResult:
        """
        Run an action by name (toolbar and keymap entry point).

        Actions: bold, italic, underline, strike, code, paragraph,
        heading (level), codeBlock, bulletList, orderedList, blockquote,
        link (url, text, title), rule.

        Raises:
            ValueError: For an unknown action
            UnsafeLinkError: For a link whose URL is refused
        """
        if action in MARK_ACTIONS:
            return self.toggle_mark(root, sel, MARK_ACTIONS[action])
        if action in ("paragraph", "codeBlock"):
            return self.set_block_type(root, sel, action)
        if action == "heading":
            level = args.get("level", 1)
            return self.set_block_type(root, sel, "heading", int(level) if isinstance(level, (int, str)) else 1)
        if action in LIST_KINDS:
            return self.toggle_list(root, sel, action)
        if action == "blockquote":
            return self.toggle_blockquote(root, sel)
        if action == "rule":
            return self.insert_rule(root, sel)
        if action == "link":
            url = str(args.get("url") or "")
            if url and not is_safe_url(url, self._sanitizer_config):
                raise UnsafeLinkError(f"Unsafe URL protocol in link: {url[:50]}")
            text = args.get("text")
            title = args.get("title")
            return self.insert_link(
                root,
                sel,
                url,
                str(text) if text else None,
                str(title) if title else None,
            )
        raise ValueError(f"Unknown formatting action: {action}")
