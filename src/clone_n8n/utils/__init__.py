"""Shared utilities.

Modules:
    config: Settings file loading and the typed Settings record
    logger: Component logger and session log handling
"""

from . import config, logger

__all__ = ["config", "logger"]
