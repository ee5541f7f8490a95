"""
Converter component - markdown and HTML to and from the document tree.
"""

from ._config import DEFAULT_CONFIG, ConverterConfig
from ._markdown import MarkdownWriteError, code_span, escape_text, to_markdown, write_inline, write_markdown
from ._rich import MarkdownReadError, html_to_rich, plain_document, read_markdown, to_rich
from .component import build_config, run, run_html_to_rich, run_to_markdown, run_to_rich
from .models import (
    ConversionIssue,
    HtmlToRichInput,
    ToMarkdownInput,
    ToMarkdownOutput,
    ToRichInput,
    ToRichOutput,
)
from .ports import RulesPort

__all__ = [
    # Entry points
    "run",
    "run_to_markdown",
    "run_to_rich",
    "run_html_to_rich",
    "build_config",
    # Models
    "ConversionIssue",
    "HtmlToRichInput",
    "ToMarkdownInput",
    "ToMarkdownOutput",
    "ToRichInput",
    "ToRichOutput",
    # Ports
    "RulesPort",
    # Implementation
    "DEFAULT_CONFIG",
    "ConverterConfig",
    "MarkdownReadError",
    "MarkdownWriteError",
    "code_span",
    "escape_text",
    "html_to_rich",
    "plain_document",
    "read_markdown",
    "to_markdown",
    "to_rich",
    "write_inline",
    "write_markdown",
]
