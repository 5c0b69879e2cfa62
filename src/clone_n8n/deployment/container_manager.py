"""Container lifecycle for a cloned site.

Handles the site network, the compose project in the site directory, the
two named containers and the readiness wait that replaces a fixed sleep.
Teardown steps (compose down, stop/rm, network rm) tolerate failure because
their usual failure means the object is already gone; bringing the site up
must succeed.

Clean mode lives here as well: it removes every artifact a previous clone
of the same site left behind so the following clone starts from scratch.
"""

import shutil
import time
from pathlib import Path

from rich.markup import escape

from clone_n8n.commands import ComposeCommand, ContainerCommand, InspectCommand, NetworkCommand
from clone_n8n.deployment.compose import COMPOSE_FILE_NAME
from clone_n8n.errors import CommandError, ReadinessError
from clone_n8n.naming import SiteDescriptor
from clone_n8n.runner import CommandRunner
from clone_n8n.utils.config import ReadinessSettings
from clone_n8n.utils.logger import get_logger

logger = get_logger("deployment")

RUNNING = "running"
FAILED_STATES = ("exited", "dead")


class ContainerManager:
    """Drives the runtime for one site.

    Args:
        site: Names of the site
        site_dir: Local site directory holding ``docker-compose.yml``
        runner: Executes runtime commands
        compose: Compose command prefix (``['docker', 'compose']`` or ``['docker-compose']``)
        runtime: Runtime binary for plain container/network commands
        readiness: Polling parameters for :meth:`wait_until_ready`
    """

    def __init__(
        self,
        site: SiteDescriptor,
        site_dir: Path,
        runner: CommandRunner,
        compose: list[str],
        runtime: str = "docker",
        readiness: ReadinessSettings | None = None,
    ):
        self.site = site
        self.site_dir = site_dir
        self.runner = runner
        self.compose = compose
        self.runtime = runtime
        self.readiness = readiness or ReadinessSettings()

    def ensure_network(self) -> bool:
        """Create the site network. Returns False when it already existed.

        Raises:
            CommandError: Creation failed for any other reason
        """
        result = self.runner.capture(
            NetworkCommand(runtime=self.runtime, action="create", name=self.site.network_name),
            check=False,
        )
        if result.ok:
            logger.info(f"Created network {self.site.network_name}")
            return True
        if "already exists" in result.stderr.lower():
            logger.info("Network already exists")
            return False
        raise CommandError(result.argv, result.returncode, result.stderr)

    def compose_down(self) -> None:
        """Stop the compose project of the site directory, if there is one."""
        if not (self.site_dir / COMPOSE_FILE_NAME).is_file():
            logger.debug(f"No {COMPOSE_FILE_NAME} in {escape(str(self.site_dir))}, skipping compose down")
            return
        self.runner.capture(
            ComposeCommand(compose=self.compose, compose_file=COMPOSE_FILE_NAME, action="down"),
            check=False,
            cwd=str(self.site_dir),
        )

    def remove_named_containers(self) -> None:
        """Stop and remove both site containers, whatever created them."""
        for name in self.site.container_names:
            for action in ("stop", "rm"):
                result = self.runner.capture(
                    ContainerCommand(runtime=self.runtime, action=action, names=[name]),
                    check=False,
                )
                if not result.ok:
                    logger.debug(f"{self.runtime} {action} {name}: {escape(result.stderr.strip() or 'failed')}")

    def compose_up(self) -> None:
        """Start the site detached. Any failure aborts the run."""
        self.runner.run(
            ComposeCommand(compose=self.compose, compose_file=COMPOSE_FILE_NAME, action="up"),
            cwd=str(self.site_dir),
        )
        logger.info(f"Containers started: {', '.join(self.site.container_names)}")

    def container_status(self, name: str) -> str:
        """Return the runtime state of a container, or ``missing``."""
        result = self.runner.capture(InspectCommand(runtime=self.runtime, name=name), check=False)
        if not result.ok:
            return "missing"
        lines = result.lines()
        return lines[0].lower() if lines else "unknown"

    def wait_until_ready(self) -> float:
        """Poll both containers until they run, backing off between polls.

        Returns:
            Seconds spent waiting

        Raises:
            ReadinessError: A container exited or the timeout elapsed
        """
        settings = self.readiness
        start = time.monotonic()
        delay = settings.initial_delay

        while True:
            statuses = {name: self.container_status(name) for name in self.site.container_names}
            logger.debug(", ".join(f"{name}={status}" for name, status in statuses.items()))

            failed = [name for name, status in statuses.items() if status in FAILED_STATES]
            if failed:
                raise ReadinessError(
                    f"Container stopped while starting: {', '.join(failed)}",
                    hint="\n".join(f"Inspect its output with: {self.runtime} logs {name}" for name in failed),
                )

            elapsed = time.monotonic() - start
            if all(status == RUNNING for status in statuses.values()):
                logger.timing(f"Containers running after {elapsed:.1f}s")
                return elapsed

            remaining = settings.timeout - elapsed
            if remaining <= 0:
                pending = ", ".join(f"{name} ({status})" for name, status in statuses.items() if status != RUNNING)
                raise ReadinessError(
                    f"Containers not running after {settings.timeout:.0f}s: {pending}",
                    hint=f"Check the site with: cd {self.site_dir} && {' '.join(self.compose)} logs",
                )

            time.sleep(min(delay, remaining))
            delay = min(delay * settings.backoff_factor, settings.max_delay)

    def start(self) -> None:
        """Replace any previous instance of the site and start it fresh."""
        self.compose_down()
        self.remove_named_containers()
        self.compose_up()
        self.wait_until_ready()

    def clean(self, archive_path: Path) -> None:
        """Remove every artifact of a previous clone of this site.

        Each step tolerates the artifact being absent.
        """
        logger.key_info("Cleaning up existing installation...")

        if self.site_dir.is_dir():
            self.compose_down()
        self.remove_named_containers()
        logger.info("Removed containers")

        self.runner.capture(
            NetworkCommand(runtime=self.runtime, action="rm", name=self.site.network_name),
            check=False,
        )
        logger.info("Removed network")

        if self.site_dir.exists():
            try:
                shutil.rmtree(self.site_dir)
            except OSError as e:
                logger.warning(f"Could not fully remove {escape(str(self.site_dir))}: {escape(str(e))}")
        logger.info("Removed site directory")

        archive_path.unlink(missing_ok=True)
        logger.info("Removed temporary files")

        logger.success("Cleanup complete")
