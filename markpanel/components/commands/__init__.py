"""
Commands component - slash command trigger, menu and catalog.
"""

from .catalog import DEFAULT_COMMANDS, filter_commands, find_command
from .menu import MENU_KEYS, CommandMenu
from .models import (
    CLOSED,
    DEFAULT_TRIGGER_CONFIG,
    Command,
    CommandEffect,
    MenuKeyResult,
    MenuState,
    ScreenPoint,
    TriggerConfig,
)
from .trigger import TriggerDetector, can_trigger, clamp_index, scan_query, should_dismiss

__all__ = [
    # Catalog
    "DEFAULT_COMMANDS",
    "filter_commands",
    "find_command",
    # Menu
    "MENU_KEYS",
    "CommandMenu",
    # Models
    "CLOSED",
    "DEFAULT_TRIGGER_CONFIG",
    "Command",
    "CommandEffect",
    "MenuKeyResult",
    "MenuState",
    "ScreenPoint",
    "TriggerConfig",
    # Trigger
    "TriggerDetector",
    "can_trigger",
    "clamp_index",
    "scan_query",
    "should_dismiss",
]
