"""Clone pipeline orchestration.

Runs the stages of a clone strictly in order and stops at the first
failure::

    preflight     tooling, container runtime, infrastructure profile,
                  required containers/networks, SSH endpoint
    [0/9]         clean previous installation (--clean only)
    [1/9]-[3/9]   mirror site files, fetch and extract the data bundle
    [4/9]         point .env at the local domain
    [5/9]         render docker-compose.yml
    [6/9]-[7/9]   site network, containers, readiness wait
    [8/9]         tunnel probe
    [9/9]         remove the data archive

Every preflight check runs before anything is transferred, written or
started, so a failing check leaves the machine untouched.
"""

import time
from datetime import datetime
from pathlib import Path

from rich.markup import escape

from clone_n8n.deployment.compose import write_compose_file
from clone_n8n.deployment.container_manager import ContainerManager
from clone_n8n.deployment.runtime_helper import get_compose_command, get_runtime
from clone_n8n.env_file import rewrite_env_file
from clone_n8n.errors import PreconditionError
from clone_n8n.fetcher import SnapshotFetcher
from clone_n8n.infrastructure import check_tooling, verify_infrastructure
from clone_n8n.naming import SiteDescriptor
from clone_n8n.reporting import CloneSummary, remove_archive, report_tunnel, tunnel_is_running
from clone_n8n.runner import CommandRunner
from clone_n8n.ssh_config import resolve_endpoint
from clone_n8n.utils.config import Settings
from clone_n8n.utils.logger import get_logger

logger = get_logger("pipeline")

TOTAL_STEPS = 9
CURRENT_DIR_TOKEN = "."


def resolve_base_dir(folder: str | None, settings: Settings, cwd: Path | None = None) -> Path:
    """Return the absolute directory that holds cloned sites, creating it.

    ``None`` selects the configured default, ``.`` the current working
    directory at call time; anything else is expanded and made absolute.
    """
    if folder is None:
        base = settings.base_dir
    elif folder == CURRENT_DIR_TOKEN:
        base = cwd or Path.cwd()
    else:
        base = Path(folder).expanduser()
        if not base.is_absolute():
            base = (cwd or Path.cwd()) / base

    base = base.expanduser().resolve()
    base.mkdir(parents=True, exist_ok=True)
    return base


def session_log_path(base_dir: Path, now: datetime | None = None) -> Path:
    """Timestamped log file for one run, e.g. ``clone-20250101-120000.log``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return base_dir / f"clone-{stamp}.log"


class ClonePipeline:
    """Clones one production n8n site into the local container runtime.

    Args:
        site: Names of the site to clone
        base_dir: Directory holding site directories (already resolved)
        settings: Settings for this run
        runner: Command runner, replaceable in tests
        clean: Remove a previous clone of the site before fetching
        log_file: Session log path, shown in the final summary
        folder: Folder argument as given, repeated in the re-clone hint
    """

    def __init__(
        self,
        site: SiteDescriptor,
        base_dir: Path,
        settings: Settings,
        runner: CommandRunner | None = None,
        clean: bool = False,
        log_file: Path | None = None,
        folder: Path | None = None,
    ):
        self.site = site
        self.base_dir = base_dir
        self.settings = settings
        self.runner = runner or CommandRunner()
        self.clean = clean
        self.log_file = log_file
        self.folder = folder

    def _step(self, number: int, title: str) -> None:
        logger.key_info(f"[{number}/{TOTAL_STEPS}] {title}")

    def _detect_runtime(self) -> tuple[list[str], str]:
        try:
            compose = get_compose_command(self.settings.container_runtime)
            runtime = get_runtime(self.settings.container_runtime)
        except RuntimeError as e:
            raise PreconditionError(str(e)) from e
        logger.debug(f"Compose command: {' '.join(compose)}")
        return compose, runtime

    def run(self) -> CloneSummary:
        """Execute every stage and return what the final report needs."""
        start = time.monotonic()
        site = self.site
        logger.key_info(f"Cloning n8n site {site.domain} from {site.infrastructure}")
        logger.info(f"Production site: https://{site.domain}")
        logger.info(f"Local site: https://{site.local_domain}")
        logger.info(f"Destination: {escape(str(self.base_dir))}")
        logger.info(f"Local directory: {escape(str(self.base_dir / site.local_directory))}")
        logger.info(f"Clean mode: {'yes' if self.clean else 'no'}")

        # Preflight: nothing below this block runs unless every check passed
        check_tooling(self.settings)
        compose, runtime = self._detect_runtime()
        profile = verify_infrastructure(site.infrastructure, self.settings, self.runner, runtime)
        endpoint = resolve_endpoint(site.infrastructure, self.settings.ssh_config, self.settings.production_user)

        fetcher = SnapshotFetcher(site, endpoint, self.base_dir, self.runner)
        manager = ContainerManager(
            site,
            fetcher.site_dir,
            self.runner,
            compose=compose,
            runtime=runtime,
            readiness=self.settings.readiness,
        )

        if self.clean:
            self._step(0, "Cleaning up existing installation...")
            manager.clean(fetcher.archive_path)

        self._step(1, "Downloading site files...")
        fetcher.mirror_site()

        self._step(2, "Downloading n8n data (database and workflows)...")
        fetcher.download_data_bundle()

        self._step(3, "Extracting n8n data...")
        fetcher.extract_data_bundle()

        self._step(4, "Updating local configuration...")
        report = rewrite_env_file(fetcher.site_dir / ".env", site)
        if report.is_noop:
            logger.warning(".env left unchanged: no key referenced the production domain")
        else:
            logger.info("Updated .env file for local domain")

        self._step(5, "Creating local docker-compose.yml...")
        write_compose_file(site, self.settings, fetcher.site_dir)

        self._step(6, "Creating site network...")
        manager.ensure_network()

        self._step(7, "Starting containers...")
        manager.start()

        self._step(8, "Checking tunnel access...")
        tunnel_running = tunnel_is_running(self.runner, runtime, self.settings.tunnel_container)
        report_tunnel(site, profile, tunnel_running, self.settings.tunnel_container)

        self._step(9, "Cleaning up temporary files...")
        remove_archive(fetcher.archive_path)

        logger.timing(f"Clone finished in {time.monotonic() - start:.1f}s")
        return CloneSummary(
            site=site,
            site_dir=fetcher.site_dir,
            log_file=self.log_file,
            tunnel_running=tunnel_running,
            tunnel_container=self.settings.tunnel_container,
            compose=" ".join(compose),
            folder=self.folder,
        )
