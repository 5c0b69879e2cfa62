"""
Component Logger Framework

Provides colored logging for clone-n8n components with:
- Unified API for all pipeline stages
- Rich terminal output with component-specific colors
- A plain-text session log file that mirrors every record of a run
- Graceful fallbacks when configuration is unavailable

Usage:
    logger = get_logger("fetcher")
    logger.key_info("Downloading site files")
    logger.info("Synced site files")
    logger.debug("Detailed trace")
    logger.success("Operation completed")
    logger.warning("Something to note")
    logger.error("Something went wrong")
    logger.timing("Containers ready after 4.2s")

    # Custom loggers with explicit parameters
    logger = get_logger(name="custom_component", color="blue")
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

# Component colors; overridable through the settings file (logging.colors)
DEFAULT_COLORS: dict[str, str] = {
    "cli": "white",
    "pipeline": "bright_blue",
    "infrastructure": "cyan",
    "ssh": "magenta",
    "fetcher": "green",
    "env_file": "yellow",
    "compose": "bright_cyan",
    "deployment": "blue",
    "runtime": "blue",
    "runner": "grey62",
    "reporting": "bright_green",
}

_component_colors: dict[str, str] = dict(DEFAULT_COLORS)


class ComponentLogger:
    """
    Rich-formatted logger for pipeline components with color coding and message hierarchy.

    Message Types:
    - key_info: Important operational information (step headers)
    - info: Normal operational messages
    - debug: Detailed tracing information
    - warning: Warning messages
    - error: Error messages
    - success: Success messages
    - timing: Timing information
    """

    def __init__(self, base_logger: logging.Logger, component_name: str, color: str | None = None):
        """
        Initialize component logger.

        Args:
            base_logger: Underlying Python logger
            component_name: Name of the component (e.g., 'fetcher', 'deployment')
            color: Rich color name; None follows the configured component colors
        """
        self.base_logger = base_logger
        self.component_name = component_name
        self._color = color

    @property
    def color(self) -> str:
        """Explicit color, else the configured color for this component."""
        return self._color or _component_colors.get(self.component_name, "white")

    def _format_message(self, message: str, style: str, emoji: str = "") -> str:
        """Format message with Rich markup and emoji prefix."""
        prefix = f"{emoji}{self.component_name.replace('_', ' ').title()}: "
        if style:
            return f"[{style}]{prefix}{message}[/{style}]"
        return f"{prefix}{message}"

    def key_info(self, message: str) -> None:
        style = f"bold {self.color}"
        self.base_logger.info(self._format_message(message, style))

    def info(self, message: str) -> None:
        self.base_logger.info(self._format_message(message, self.color))

    def debug(self, message: str) -> None:
        self.base_logger.debug(self._format_message(message, f"dim {self.color}", "🔍 "))

    def warning(self, message: str) -> None:
        self.base_logger.warning(self._format_message(message, "bold yellow", "⚠️  "))

    def error(self, message: str, exc_info: bool = False) -> None:
        self.base_logger.error(self._format_message(message, "bold red", "❌ "), exc_info=exc_info)

    def success(self, message: str) -> None:
        self.base_logger.info(self._format_message(message, "bold green", "✅ "))

    def timing(self, message: str) -> None:
        self.base_logger.info(self._format_message(message, "bold white", "🕒 "))


class PlainTextFormatter(logging.Formatter):
    """Formatter that strips Rich markup so the session log stays readable."""

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        try:
            return Text.from_markup(rendered).plain
        except Exception:
            # Messages that are not valid markup (e.g. raw tool output) are kept as-is
            return rendered


def _setup_rich_logging(level: int = logging.INFO) -> None:
    """Configure Rich logging for the root logger (called once)."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers:
        if isinstance(handler, RichHandler):
            return

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    root_logger.setLevel(level)

    console = Console(stderr=False, width=120)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=True,
        show_path=False,
        show_time=True,
        show_level=True,
        tracebacks_show_locals=False,
    )
    root_logger.addHandler(handler)


def configure_logging(level: int = logging.INFO, colors: dict[str, str] | None = None) -> None:
    """Set the root level and merge component color overrides."""
    _setup_rich_logging(level)
    logging.getLogger().setLevel(level)
    if colors:
        _component_colors.update(colors)


def attach_session_log(log_file: Path) -> logging.FileHandler:
    """Mirror every log record of this run into ``log_file`` as plain text.

    Returns the handler so the caller can detach it with
    :func:`detach_session_log`.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(PlainTextFormatter("%(asctime)s %(levelname)-8s %(message)s"))
    logging.getLogger().addHandler(handler)
    return handler


def detach_session_log(handler: logging.Handler) -> None:
    logging.getLogger().removeHandler(handler)
    handler.close()


def get_logger(
    component_name: str | None = None,
    level: int = logging.INFO,
    *,
    name: str | None = None,
    color: str | None = None,
) -> ComponentLogger:
    """
    Get a component logger.

    Primary API:
        component_name: Component name (e.g., 'fetcher', 'deployment')
        level: Logging level used when logging is first initialized

    Explicit API (for custom loggers or tests):
        name: Direct logger name (keyword-only)
        color: Direct color specification (keyword-only)

    Returns:
        ComponentLogger instance

    Examples:
        logger = get_logger("fetcher")
        logger.info("Synced site files")

        logger = get_logger(name="test_logger", color="blue")
    """
    _setup_rich_logging(level)

    if name is not None:
        return ComponentLogger(logging.getLogger(name), name, color or "white")

    if component_name is None:
        raise ValueError(
            "Component name is required. Usage: get_logger('component_name') or "
            "get_logger(name='custom_name', color='blue')"
        )

    base_logger = logging.getLogger(f"clone_n8n.{component_name}")
    return ComponentLogger(base_logger, component_name)
