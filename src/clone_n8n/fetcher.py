"""Remote snapshot transfer.

Two transfers, in this order:

1. Mirror sync of ``~/<domain>/`` on the production host into the local site
   directory (``rsync --delete``: a one-way mirror, not a merge).
2. Data bundle: the remote ``data/`` directory (SQLite database, binary
   data, custom nodes, credentials) is archived remotely, copied down with
   ``scp``, deleted remotely and extracted into the freshly synced site
   directory.

Any failing transfer raises and aborts the run; nothing is retried.
"""

import tarfile
from pathlib import Path

from rich.filesize import decimal

from clone_n8n.commands import RemoteLocation, RemoteShell, RsyncMirror, SecureCopy
from clone_n8n.errors import CloneError
from clone_n8n.naming import SiteDescriptor
from clone_n8n.runner import CommandRunner
from clone_n8n.ssh_config import SSHEndpoint
from clone_n8n.utils.logger import get_logger

logger = get_logger("fetcher")

DATA_DIRECTORY = "data"


class SnapshotFetcher:
    """Pulls site files and the n8n data directory from production.

    Args:
        site: Names of the site being cloned
        endpoint: Resolved SSH endpoint of the production host
        base_dir: Local directory holding site directories and archives
        runner: Executes the transfer commands
    """

    def __init__(self, site: SiteDescriptor, endpoint: SSHEndpoint, base_dir: Path, runner: CommandRunner):
        self.site = site
        self.endpoint = endpoint
        self.base_dir = base_dir
        self.runner = runner

    @property
    def site_dir(self) -> Path:
        return self.base_dir / self.site.local_directory

    @property
    def archive_path(self) -> Path:
        return self.base_dir / self.site.local_archive_name

    def mirror_site(self) -> None:
        """Mirror the remote site directory into the local site directory."""
        request = RsyncMirror(
            remote=RemoteLocation(
                target=self.endpoint.target, path=f"~/{self.site.remote_directory}/"
            ),
            destination=f"{self.site_dir}/",
        )
        self.runner.run(request)
        logger.info("Synced site files")

    def download_data_bundle(self) -> Path:
        """Archive ``data/`` remotely, copy it down, then delete the remote copy.

        Returns:
            Path of the local archive
        """
        remote_archive = self.site.remote_archive

        self.runner.run(
            RemoteShell(
                target=self.endpoint.target,
                commands=[
                    ["cd", f"~/{self.site.remote_directory}"],
                    ["tar", "czf", remote_archive, f"{DATA_DIRECTORY}/"],
                ],
            )
        )
        self.runner.run(
            SecureCopy(
                source=RemoteLocation(target=self.endpoint.target, path=remote_archive),
                destination=str(self.archive_path),
            )
        )
        self.runner.run(RemoteShell(target=self.endpoint.target, commands=[["rm", "-f", remote_archive]]))

        logger.info(f"Downloaded n8n data: {decimal(self.archive_path.stat().st_size)}")
        return self.archive_path

    def extract_data_bundle(self, archive: Path | None = None) -> None:
        """Extract the data archive into the site directory.

        Must run after :meth:`mirror_site` so the static files are in place.
        Members that would land outside the site directory are rejected.
        """
        archive = archive or self.archive_path
        self.site_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive, "r:gz") as tar:
                tar.extractall(self.site_dir, filter="data")
        except (tarfile.TarError, OSError) as e:
            raise CloneError(f"Could not extract data archive {archive}: {e}") from e
        logger.info("Extracted n8n data")
