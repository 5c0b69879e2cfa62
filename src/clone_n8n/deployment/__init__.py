"""Container runtime handling for cloned sites.

This package detects the container runtime, renders the site compose file
and drives the site containers through their lifecycle.
"""

from .compose import render_compose, write_compose_file
from .container_manager import ContainerManager
from .runtime_helper import get_compose_command, get_runtime, verify_runtime_is_running

__all__ = [
    "ContainerManager",
    "render_compose",
    "write_compose_file",
    "get_compose_command",
    "get_runtime",
    "verify_runtime_is_running",
]
