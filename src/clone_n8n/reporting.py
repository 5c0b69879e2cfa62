"""Cleanup and end-of-run reporting.

After the containers are up the local data archive is deleted, the
infrastructure is probed for a tunnel container (advisory only, nothing is
configured automatically) and a summary of the cloned site is printed.
"""

import shlex
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from clone_n8n.cli.styles import Messages, Styles, echo
from clone_n8n.commands import ListCommand
from clone_n8n.deployment.compose import COMPOSE_FILE_NAME
from clone_n8n.infrastructure import InfrastructureProfile
from clone_n8n.naming import SiteDescriptor
from clone_n8n.runner import CommandRunner
from clone_n8n.utils.logger import get_logger

logger = get_logger("reporting")

DATABASE_PATH = "data/database.sqlite"


def remove_archive(archive_path: Path) -> bool:
    """Delete the local data archive. Returns True if there was one."""
    if not archive_path.is_file():
        return False
    archive_path.unlink()
    logger.info("Removed data archive")
    return True


def tunnel_is_running(runner: CommandRunner, runtime: str, tunnel_container: str) -> bool:
    """True if any running container name contains ``tunnel_container``."""
    result = runner.capture(ListCommand(runtime=runtime, kind="containers"), check=False)
    if not result.ok:
        logger.debug("Could not list running containers for the tunnel probe")
        return False
    return any(tunnel_container in name for name in result.lines())


def report_tunnel(site: SiteDescriptor, profile: InfrastructureProfile, running: bool, tunnel_container: str) -> None:
    """Log what to do to reach the site through the tunnel, if there is one."""
    if running:
        logger.info(f"✓ {escape(tunnel_container.capitalize())} is running in infrastructure")
        logger.info(f"Note: To add {site.local_domain} to the tunnel, update:")
        logger.info(f"     {escape(str(profile.directory / 'config' / tunnel_container / 'config.yml'))}")
        logger.info(f"Then restart: docker restart {escape(tunnel_container)}")
    else:
        logger.warning(f"{escape(tunnel_container.capitalize())} not found in infrastructure")
        logger.info("Site will be accessible via nginx-proxy on localhost")
        logger.info(f"For HTTPS access, configure {escape(tunnel_container)} in infrastructure")


@dataclass
class CloneSummary:
    """Everything the final report shows about a finished clone."""

    site: SiteDescriptor
    site_dir: Path
    log_file: Path | None
    tunnel_running: bool
    tunnel_container: str = "cloudflared"
    compose: str = "docker compose"
    folder: Path | None = None

    @property
    def reclone_command(self) -> str:
        words = ["clone-n8n", self.site.infrastructure, self.site.domain]
        if self.folder is not None:
            words.append(str(self.folder))
        words.append("--clean")
        return shlex.join(words)


def render_summary(summary: CloneSummary) -> None:
    """Print the final summary panel and follow-up commands."""
    site = summary.site

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Label", style=Styles.LABEL, no_wrap=True)
    table.add_column("Value", style=Styles.VALUE)
    table.add_row("Infrastructure", site.infrastructure)
    table.add_row("Production", f"https://{site.domain}")
    table.add_row("Local", f"https://{site.local_domain}")
    table.add_row("Site location", escape(str(summary.site_dir)))
    table.add_row("Containers", ", ".join(site.container_names))
    table.add_row("Database", f"SQLite (in {DATABASE_PATH})")

    echo()
    echo(Panel(table, title=Messages.success("Clone Complete!"), border_style=Styles.BORDER, expand=False))
    echo()

    echo(f"[{Styles.HEADER}]Manage the site:[/{Styles.HEADER}]")
    echo(f"  {Messages.command(f'cd {escape(str(summary.site_dir))}')}")
    echo(f"  {Messages.command(f'{summary.compose} -f {COMPOSE_FILE_NAME} up -d')}      # Start")
    echo(f"  {Messages.command(f'{summary.compose} -f {COMPOSE_FILE_NAME} down')}       # Stop")
    echo(f"  {Messages.command(f'{summary.compose} -f {COMPOSE_FILE_NAME} logs -f')}    # View logs")
    echo()
    echo(f"[{Styles.HEADER}]To re-clone this site:[/{Styles.HEADER}]")
    echo(f"  {Messages.command(escape(summary.reclone_command))}")
    echo()
    if summary.log_file is not None:
        echo(Messages.label_value("Log file", escape(str(summary.log_file))))
        echo()

    if summary.tunnel_running:
        echo(
            Messages.success(
                f"{escape(summary.tunnel_container.capitalize())} is running - "
                f"configure {site.local_domain} in infrastructure for HTTPS access"
            )
        )
    else:
        echo(
            Messages.warning(
                f"Note: {escape(summary.tunnel_container.capitalize())} not running. Site accessible via http://localhost"
            )
        )
    echo()
