"""
Formatting component - toolbar and shortcut actions over the document tree.
"""

from ._impl import LIST_KINDS, MARK_ACTIONS, ChangeListener, FormattingExecutor, UnsafeLinkError
from .component import run, run_format
from .models import FormatInput, FormatOutput, FormattingError

__all__ = [
    # Entry points
    "run",
    "run_format",
    # Models
    "FormatInput",
    "FormatOutput",
    "FormattingError",
    # Implementation
    "LIST_KINDS",
    "MARK_ACTIONS",
    "ChangeListener",
    "FormattingExecutor",
    "UnsafeLinkError",
]
