"""Centralized color and style management for the clone-n8n CLI.

This module provides a unified color scheme and styling utilities for all CLI
output, plus the mirroring of console output into the per-run session log.

Design Philosophy:
- Semantic color names (success, error, warning) rather than direct colors
- Rich console markup helpers for inline styling
- Everything printed through :func:`echo` also lands in the session log
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from rich.console import Console
from rich.theme import Theme

# ============================================================================
# THEME CONFIGURATION
# ============================================================================


@dataclass
class ColorTheme:
    """Defines the color theme for the CLI.

    Fixed standard colors (error, warning, success) follow UI conventions;
    the remaining colors give the tool its identity.
    """

    error: str = "#ff0000"
    warning: str = "#ffaa00"
    success: str = "#3fb950"

    primary: str = "#ea4b71"  # n8n pink
    command: str = "#79c0ff"

    border_default: str = "#555555"


DEFAULT_THEME = ColorTheme()


def _build_rich_theme(theme: ColorTheme) -> Theme:
    """Build a Rich Theme from a ColorTheme."""
    return Theme(
        {
            # Status styles
            "success": f"bold {theme.success}",
            "error": f"bold {theme.error}",
            "warning": f"bold {theme.warning}",
            # Component-specific styles
            "header": f"bold {theme.primary}",
            "label": "bold",
            "value": theme.success,
            "command": theme.command,
            "border": theme.border_default,
        }
    )


rich_theme = _build_rich_theme(DEFAULT_THEME)

# ============================================================================
# CONSOLE INSTANCE
# ============================================================================

# On Windows, force UTF-8 encoding to support Unicode characters (✓, ✗, ⚠️, etc.)
if sys.platform == "win32":
    console = Console(theme=rich_theme, force_terminal=True, legacy_windows=False)
else:
    console = Console(theme=rich_theme)

# Plain-text console bound to the session log file, when one is attached
_session_console: Console | None = None
_session_file: IO[str] | None = None


def attach_session_console(log_file: Path) -> None:
    """Mirror everything printed with :func:`echo` into ``log_file``."""
    global _session_console, _session_file
    detach_session_console()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    _session_file = open(log_file, "a", encoding="utf-8")
    _session_console = Console(
        file=_session_file, theme=rich_theme, no_color=True, force_terminal=False, width=120
    )


def detach_session_console() -> None:
    global _session_console, _session_file
    if _session_file is not None:
        _session_file.close()
    _session_console = None
    _session_file = None


def echo(*objects: Any, **kwargs: Any) -> None:
    """Print to the terminal console and to the session log, if attached."""
    console.print(*objects, **kwargs)
    if _session_console is not None:
        _session_console.print(*objects, **kwargs)
        _session_file.flush()


# ============================================================================
# STYLE HELPERS
# ============================================================================


class Styles:
    """Collection of reusable style strings for Rich markup.

    These are string constants that reference styles defined in the Rich theme.
    """

    WARNING = "warning"
    HEADER = "header"
    LABEL = "label"
    VALUE = "value"
    BORDER = "border"


class Messages:
    """Pre-formatted message helpers for common patterns."""

    @staticmethod
    def success(text: str) -> str:
        """Format a success message with checkmark."""
        return f"[success]✓ {text}[/success]"

    @staticmethod
    def error(text: str) -> str:
        """Format an error message with X mark."""
        return f"[error]✗ {text}[/error]"

    @staticmethod
    def warning(text: str) -> str:
        """Format a warning message with warning symbol."""
        return f"[warning]⚠️  {text}[/warning]"

    @staticmethod
    def label_value(label: str, value: str) -> str:
        return f"[label]{label}:[/label] [value]{value}[/value]"

    @staticmethod
    def command(text: str) -> str:
        return f"[command]{text}[/command]"


__all__ = [
    "ColorTheme",
    "DEFAULT_THEME",
    "console",
    "echo",
    "attach_session_console",
    "detach_session_console",
    "Styles",
    "Messages",
]
