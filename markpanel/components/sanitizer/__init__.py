"""
Sanitizer component - allow-list cleaning of externally supplied HTML.
"""

from ._impl import (
    DEFAULT_CONFIG,
    SanitizerConfig,
    SanitizerService,
    create_sanitizer_service,
    disallowed_tags,
    is_safe_url,
    parse_style,
    sanitize_fragment,
    sanitize_html,
    sanitize_url,
    style_tags,
)
from .component import build_config, run, run_sanitize
from .models import SanitizeInput, SanitizeIssue, SanitizeOutput
from .ports import RulesPort

__all__ = [
    # Entry points
    "run",
    "run_sanitize",
    "build_config",
    # Models
    "SanitizeInput",
    "SanitizeOutput",
    "SanitizeIssue",
    # Ports
    "RulesPort",
    # Implementation
    "DEFAULT_CONFIG",
    "SanitizerConfig",
    "SanitizerService",
    "create_sanitizer_service",
    "disallowed_tags",
    "is_safe_url",
    "parse_style",
    "sanitize_fragment",
    "sanitize_html",
    "sanitize_url",
    "style_tags",
]
