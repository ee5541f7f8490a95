"""
Mode controller - switches between the rich view and the markdown source.

Only the active form is authoritative. In RICH mode the tree is live and
the markdown is derived from it; in SOURCE mode the source text is live
and the tree is rebuilt from it when switching back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from markpanel.components.converter import DEFAULT_CONFIG, ConverterConfig, to_markdown, to_rich
from markpanel.domain.document import RichTextNode, empty_doc

from .models import EditorMode

logger = logging.getLogger(__name__)

FocusCallback = Callable[[EditorMode], None]


class ModeController:
    """Holds the document in whichever form the active mode owns."""

    def __init__(
        self,
        document: RichTextNode | None = None,
        config: ConverterConfig = DEFAULT_CONFIG,
        on_focus: FocusCallback | None = None,
    ) -> None:
        self._config = config
        self._on_focus = on_focus
        self._mode = EditorMode.RICH
        self._document = document or empty_doc()
        self._source = ""

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def document(self) -> RichTextNode:
        return self._document

    @property
    def source(self) -> str:
        return self._source

    def value(self) -> str:
        """The markdown value of the field in the current mode."""
        if self._mode is EditorMode.SOURCE:
            return self._source
        return to_markdown(self._document, self._config)

    def set_document(self, document: RichTextNode) -> None:
        if self._mode is not EditorMode.RICH:
            raise RuntimeError("Rich editing is frozen while the source view is active")
        self._document = document

    def set_source(self, source: str) -> None:
        if self._mode is not EditorMode.SOURCE:
            raise RuntimeError("Source editing requires the source view")
        self._source = source

    def load(self, markdown: str) -> None:
        """Replace the content from an external markdown value."""
        if self._mode is EditorMode.SOURCE:
            self._source = markdown
        else:
            self._document = to_rich(markdown, self._config)

    def to_source(self) -> str:
        if self._mode is EditorMode.SOURCE:
            return self._source
        self._source = to_markdown(self._document, self._config)
        self._mode = EditorMode.SOURCE
        logger.debug("Switched to source mode (%d chars)", len(self._source))
        self._focus()
        return self._source

    def to_rich(self) -> RichTextNode:
        if self._mode is EditorMode.RICH:
            return self._document
        self._document = to_rich(self._source, self._config)
        self._mode = EditorMode.RICH
        logger.debug("Switched to rich mode")
        self._focus()
        return self._document

    def toggle(self) -> EditorMode:
        if self._mode is EditorMode.RICH:
            self.to_source()
        else:
            self.to_rich()
        return self._mode

    def _focus(self) -> None:
        if self._on_focus is not None:
            self._on_focus(self._mode)
