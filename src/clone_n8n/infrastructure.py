"""Infrastructure profile loading and precondition checks.

An infrastructure profile lives in ``~/.<name>`` and is created by a
separate tool. This module only reads it: the profile's ``.env`` is parsed
into an :class:`InfrastructureProfile` that later stages receive
explicitly, and the containers and networks the profile is expected to run
are verified against the container runtime.

All checks run before any remote transfer, file mutation or container start.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from dotenv import dotenv_values
from rich.markup import escape

from clone_n8n.commands import ListCommand
from clone_n8n.deployment.runtime_helper import verify_runtime_is_running
from clone_n8n.errors import PreconditionError
from clone_n8n.runner import CommandRunner
from clone_n8n.utils.config import Settings
from clone_n8n.utils.logger import get_logger

logger = get_logger("infrastructure")

REQUIRED_TOOLS = ("rsync", "ssh", "scp")


@dataclass(frozen=True)
class InfrastructureProfile:
    """Read-only view of a locally registered infrastructure.

    Attributes:
        name: Infrastructure name (e.g. ``dev-fi-01``)
        directory: Profile directory (``~/.dev-fi-01``)
        env_file: The profile's ``.env``
        values: Parsed key/value pairs of ``env_file``
    """

    name: str
    directory: Path
    env_file: Path
    values: Mapping[str, str | None] = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self.values.get(key)
        return default if value is None else value


def profile_directory(name: str, settings: Settings) -> Path:
    return settings.infrastructure_root / f".{name}"


def load_profile(name: str, settings: Settings) -> InfrastructureProfile:
    """Locate and parse the infrastructure profile.

    Raises:
        PreconditionError: Directory or ``.env`` missing
    """
    directory = profile_directory(name, settings)
    if not directory.is_dir():
        raise PreconditionError(
            f"Infrastructure '{name}' not found at {directory}",
            hint=(
                "Please clone the infrastructure first:\n"
                "  cd ../infrastructure\n"
                f"  ./clone-infrastructure.sh {name} <server-ip>"
            ),
        )

    env_file = directory / ".env"
    if not env_file.is_file():
        raise PreconditionError(f"Infrastructure .env file not found: {env_file}")

    values = MappingProxyType(dict(dotenv_values(env_file)))
    logger.info("✓ Infrastructure directory found")
    logger.info(f"✓ Configuration loaded from infrastructure ({len(values)} values)")
    return InfrastructureProfile(name=name, directory=directory, env_file=env_file, values=values)


def check_tooling(settings: Settings) -> None:
    """Verify the transfer tools are installed and the container runtime is up."""
    missing = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
    if missing:
        raise PreconditionError(
            f"Required tools not found on PATH: {', '.join(missing)}",
            hint="Install them with your package manager (e.g. apt-get install rsync openssh-client).",
        )

    is_running, error_msg = verify_runtime_is_running(settings.container_runtime)
    if not is_running:
        raise PreconditionError(error_msg)
    logger.info("✓ Container runtime is running")


def check_services(
    profile: InfrastructureProfile, settings: Settings, runner: CommandRunner, runtime: str
) -> None:
    """Verify required containers are running and required networks exist.

    Raises:
        PreconditionError: Listing every missing container or network
    """
    running = set(runner.capture(ListCommand(runtime=runtime, kind="containers")).lines())
    missing_containers = [c for c in settings.required_containers if c not in running]
    if missing_containers:
        raise PreconditionError(
            "Required infrastructure containers are not running:\n"
            + "\n".join(f"  - {c}" for c in missing_containers),
            hint=f"Please start the infrastructure:\n  cd {profile.directory}\n  docker compose up -d",
        )
    for container in settings.required_containers:
        logger.info(f"✓ {escape(container)}: running")

    networks = set(runner.capture(ListCommand(runtime=runtime, kind="networks")).lines())
    missing_networks = [n for n in settings.required_networks if n not in networks]
    if missing_networks:
        raise PreconditionError(
            "Required Docker networks do not exist:\n"
            + "\n".join(f"  - {n}" for n in missing_networks),
            hint=(
                "These should have been created by the infrastructure. "
                "Try restarting the infrastructure:\n"
                f"  cd {profile.directory}\n"
                "  docker compose down && docker compose up -d"
            ),
        )
    for network in settings.required_networks:
        logger.info(f"✓ {escape(network)} network: exists")


def verify_infrastructure(
    name: str, settings: Settings, runner: CommandRunner, runtime: str
) -> InfrastructureProfile:
    """Run every infrastructure check and return the loaded profile."""
    logger.key_info("Verifying infrastructure...")
    profile = load_profile(name, settings)
    check_services(profile, settings, runner, runtime)
    logger.success("Infrastructure verified")
    return profile
