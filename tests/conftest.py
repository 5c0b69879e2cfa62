"""
Pytest configuration and shared test utilities.

No test in this suite talks to Docker, SSH or the network: commands are
answered by :class:`FakeRunner` or by patched ``subprocess`` calls.
"""

import io
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from clone_n8n.errors import CommandError
from clone_n8n.naming import derive_site
from clone_n8n.runner import CommandResult
from clone_n8n.utils.config import ReadinessSettings, Settings


class FakeRunner:
    """Stands in for CommandRunner: records argv lists and answers from a script.

    Responses are matched on an argv prefix; the most recently added
    matching response wins, anything unmatched succeeds with no output.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.cwds: list[str | None] = []
        self._responses: list[tuple[list[str], int, str, str]] = []

    def respond(self, prefix, returncode=0, output="", stderr=""):
        self._responses.append((list(prefix), returncode, output, stderr))

    def _answer(self, argv):
        for prefix, returncode, output, stderr in reversed(self._responses):
            if argv[: len(prefix)] == prefix:
                return CommandResult(argv, returncode, output, stderr)
        return CommandResult(argv, 0, "", "")

    def _execute(self, request, check, cwd, error_text):
        argv = request.argv()
        self.calls.append(argv)
        self.cwds.append(cwd)
        result = self._answer(argv)
        if check and not result.ok:
            raise CommandError(argv, result.returncode, error_text(result))
        return result

    def run(self, request, check=True, cwd=None):
        return self._execute(request, check, cwd, lambda r: r.output)

    def capture(self, request, check=True, cwd=None):
        return self._execute(request, check, cwd, lambda r: r.stderr)

    def commands_starting_with(self, *prefix):
        return [argv for argv in self.calls if argv[: len(prefix)] == list(prefix)]


@pytest.fixture
def fake_runner():
    """Provide a scripted command runner."""
    return FakeRunner()


@pytest.fixture
def site():
    """The reference site used throughout the suite."""
    return derive_site("dev-fi-01", "ai.refine.digital")


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary directory with fast readiness polling."""
    return Settings(
        base_dir=tmp_path / "sites",
        infrastructure_root=tmp_path / "home",
        ssh_config=tmp_path / "home" / ".ssh" / "config",
        readiness=ReadinessSettings(timeout=5.0, initial_delay=0.01, backoff_factor=2.0, max_delay=0.05),
    )


@pytest.fixture
def infrastructure_dir(settings):
    """A registered infrastructure profile for dev-fi-01."""
    directory = settings.infrastructure_root / ".dev-fi-01"
    directory.mkdir(parents=True)
    (directory / ".env").write_text("SERVER_IP=203.0.113.10\nDOMAIN_SUFFIX=refine.digital\n")
    return directory


@pytest.fixture
def ssh_config_file(settings):
    """An SSH client config with an entry for dev-fi-01."""
    settings.ssh_config.parent.mkdir(parents=True, exist_ok=True)
    settings.ssh_config.write_text(
        "Host github.com\n"
        "    User git\n"
        "\n"
        "Host dev-fi-01\n"
        "    HostName 203.0.113.10\n"
        "    User fly\n"
        "    IdentityFile ~/.ssh/dev-fi-01\n"
    )
    return settings.ssh_config


@pytest.fixture
def rich_log():
    """Route log records through a markup-enabled RichHandler, as the CLI does.

    Yields the buffer the handler renders into.
    """
    buffer = io.StringIO()
    handler = RichHandler(console=Console(file=buffer, width=200), markup=True, show_path=False)
    root = logging.getLogger()
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    try:
        yield buffer
    finally:
        root.removeHandler(handler)
        root.setLevel(previous_level)
