"""Simple container runtime detection for Docker and Podman.

Detects the available container runtime and its compose command.
Prefers the compose plugin (``docker compose``) and falls back to the
standalone ``docker-compose`` binary.

Examples:
    Basic usage::

        from clone_n8n.deployment.runtime_helper import get_compose_command

        cmd = get_compose_command()
        # Returns: ['docker', 'compose'], ['docker-compose'] or ['podman', 'compose']
"""

import os
import platform
import shutil
import subprocess

# Module-level cache for the detected compose command
_cached_compose_cmd: list[str] | None = None


def _runtimes_to_try(preference: str | None) -> list[str]:
    """Priority: CONTAINER_RUNTIME env var > settings preference > auto."""
    env_runtime = os.getenv("CONTAINER_RUNTIME")
    if env_runtime:
        preference = env_runtime

    if preference and preference.lower() in ["docker", "podman"]:
        return [preference.lower()]
    # Auto-detect: Docker first, then Podman
    return ["docker", "podman"]


def get_compose_command(preference: str | None = None) -> list[str]:
    """Get container compose command.

    Result is cached after first detection.

    Args:
        preference: 'docker', 'podman' or 'auto' (from settings)

    Returns:
        Command list, e.g. ['docker', 'compose'] or ['docker-compose']

    Raises:
        RuntimeError: If no container runtime with compose support found
    """
    global _cached_compose_cmd

    if _cached_compose_cmd is not None:
        return _cached_compose_cmd.copy()

    for runtime in _runtimes_to_try(preference):
        if not shutil.which(runtime):
            continue

        try:
            # Verify daemon is actually running before looking at compose
            ps_result = subprocess.run([runtime, "ps"], capture_output=True, timeout=5)
            if ps_result.returncode != 0:
                continue

            result = subprocess.run([runtime, "compose", "version"], capture_output=True, timeout=5)
            if result.returncode == 0:
                _cached_compose_cmd = [runtime, "compose"]
                return _cached_compose_cmd.copy()

            legacy = f"{runtime}-compose"
            if shutil.which(legacy):
                _cached_compose_cmd = [legacy]
                return _cached_compose_cmd.copy()

        except (subprocess.TimeoutExpired, FileNotFoundError):
            continue

    docker_installed = shutil.which("docker") is not None
    podman_installed = shutil.which("podman") is not None

    if docker_installed or podman_installed:
        error_parts = ["Container runtime installed but not running or missing compose support:\n"]
        if docker_installed:
            error_parts.append("\n" + _get_docker_not_running_message())
        if podman_installed:
            error_parts.append("\n" + _get_podman_not_running_message())
        raise RuntimeError("".join(error_parts))

    raise RuntimeError(
        "No container runtime found. Install Docker (with compose) or Podman 4.0+\n"
        "Docker: https://docs.docker.com/get-docker/\n"
        "Podman: https://podman.io/getting-started/installation"
    )


def get_runtime(preference: str | None = None) -> str:
    """Return the runtime binary ('docker' or 'podman') behind the compose command."""
    compose = get_compose_command(preference)
    return compose[0].split("-")[0]


def verify_runtime_is_running(preference: str | None = None) -> tuple[bool, str]:
    """Verify that the detected container runtime is actually running.

    Returns:
        Tuple of (is_running: bool, error_message: str)
    """
    try:
        runtime = get_runtime(preference)
        result = subprocess.run([runtime, "ps"], capture_output=True, text=True, timeout=5)

        if result.returncode == 0:
            return True, ""

        stderr = result.stderr.lower()
        if "cannot connect to the docker daemon" in stderr or "docker daemon" in stderr:
            return False, _get_docker_not_running_message()
        if "cannot connect to podman" in stderr or "connection refused" in stderr:
            return False, _get_podman_not_running_message()

        return False, f"{runtime.capitalize()} is installed but not responding:\n{result.stderr}"

    except subprocess.TimeoutExpired:
        return False, "Container runtime command timed out. The service may not be running."
    except RuntimeError as e:
        return False, str(e)


def _get_docker_not_running_message() -> str:
    """Get platform-specific message for Docker not running."""
    if platform.system() == "Darwin":
        return (
            "Docker Desktop is not running.\n\n"
            "To fix this:\n"
            "1. Open Docker Desktop from Applications\n"
            "2. Wait for Docker to start (whale icon in menu bar should be steady)\n"
            "3. Try your command again"
        )
    return (
        "Docker daemon is not running.\n\n"
        "To fix this:\n"
        "1. Start Docker: sudo systemctl start docker\n"
        "2. Check status: sudo systemctl status docker\n\n"
        "If permission issues, add user to docker group:\n"
        "sudo usermod -aG docker $USER"
    )


def _get_podman_not_running_message() -> str:
    """Get platform-specific message for Podman not running."""
    if platform.system() in ["Darwin", "Windows"]:
        return (
            "Podman machine is not running.\n\n"
            "To fix this:\n"
            "1. Start Podman: podman machine start\n"
            "2. Check status: podman machine list"
        )
    return (
        "Podman service is not responding.\n\n"
        "To fix this:\n"
        "1. Check status: systemctl --user status podman.socket\n"
        "2. Start if needed: systemctl --user start podman.socket"
    )
