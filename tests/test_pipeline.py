"""Tests for the clone pipeline orchestration."""

import io
import logging
import tarfile
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from clone_n8n.errors import CommandError, PreconditionError, ResolutionError
from clone_n8n.pipeline import ClonePipeline, resolve_base_dir, session_log_path
from clone_n8n.runner import CommandResult

PRODUCTION_ENV = "N8N_HOST=ai.refine.digital\nWEBHOOK_URL=https://ai.refine.digital/\nN8N_ENCRYPTION_KEY=secret\n"


def _data_archive() -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        data = b"SQLite format 3"
        info = tarfile.TarInfo("data/database.sqlite")
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def production(fake_runner):
    """Make rsync and scp behave like a reachable production host."""
    original = fake_runner._answer

    def answer(argv):
        if argv[0] == "rsync":
            site_dir = Path(argv[-1])
            site_dir.mkdir(parents=True, exist_ok=True)
            (site_dir / ".env").write_text(PRODUCTION_ENV)
            (site_dir / "config" / "nginx").mkdir(parents=True, exist_ok=True)
            (site_dir / "config" / "nginx" / "default.conf").write_text("server {}\n")
            return CommandResult(argv, 0, "sending incremental file list\n")
        if argv[0] == "scp":
            with open(argv[-1], "wb") as f:
                f.write(_data_archive())
            return CommandResult(argv, 0)
        return original(argv)

    fake_runner._answer = answer
    fake_runner.respond(["docker", "ps"], output="nginx-proxy\n")
    fake_runner.respond(["docker", "network", "ls"], output="bridge\nwordpress-sites\n")
    fake_runner.respond(["docker", "inspect"], output="running\n")
    return fake_runner


@pytest.fixture
def detected_runtime():
    """Skip real tooling and runtime detection."""
    with patch("clone_n8n.pipeline.check_tooling"), patch(
        "clone_n8n.pipeline.get_compose_command", return_value=["docker", "compose"]
    ), patch("clone_n8n.pipeline.get_runtime", return_value="docker"):
        yield


@pytest.fixture
def base_dir(settings):
    settings.base_dir.mkdir(parents=True)
    return settings.base_dir


def _pipeline(site, base_dir, settings, runner, clean=False):
    return ClonePipeline(site, base_dir, settings, runner=runner, clean=clean)


def _tree(root):
    return sorted(
        (str(p.relative_to(root)), p.read_bytes() if p.is_file() else None) for p in root.rglob("*")
    )


@pytest.mark.usefixtures("detected_runtime", "infrastructure_dir", "ssh_config_file")
class TestClonePipeline:
    """End-to-end runs against a scripted runner."""

    def test_full_clone(self, site, base_dir, settings, production):
        summary = _pipeline(site, base_dir, settings, production).run()

        site_dir = base_dir / "local-ai-refine-digital"
        assert summary.site_dir == site_dir
        assert (site_dir / "data" / "database.sqlite").read_bytes() == b"SQLite format 3"
        env_text = (site_dir / ".env").read_text()
        assert "N8N_HOST=local-ai.refine.digital" in env_text
        assert "WEBHOOK_URL=https://local-ai.refine.digital/" in env_text
        assert "N8N_ENCRYPTION_KEY=secret" in env_text
        assert "local-ai-refine-digital-n8n-1" in (site_dir / "docker-compose.yml").read_text()
        assert not (base_dir / "local-ai-refine-digital-data.tar.gz").exists()
        assert summary.tunnel_running is False

    def test_stage_order(self, site, base_dir, settings, production):
        _pipeline(site, base_dir, settings, production).run()

        tools = [argv[0] if argv[0] != "docker" else " ".join(argv[:3]) for argv in production.calls]
        order = [
            tools.index("rsync"),
            tools.index("ssh"),
            tools.index("scp"),
            tools.index("docker network create"),
            tools.index("docker compose -f"),
        ]
        assert order == sorted(order)
        assert ["docker", "compose", "-f", "docker-compose.yml", "up", "-d"] in production.calls
        assert production.calls.index(["docker", "network", "create", "local-ai.refine.digital"]) < (
            production.calls.index(["docker", "compose", "-f", "docker-compose.yml", "up", "-d"])
        )

    def test_missing_infrastructure_has_no_side_effects(self, site, base_dir, settings, production, infrastructure_dir):
        (infrastructure_dir / ".env").unlink()
        infrastructure_dir.rmdir()

        with pytest.raises(PreconditionError):
            _pipeline(site, base_dir, settings, production, clean=True).run()

        assert production.calls == []
        assert list(base_dir.iterdir()) == []

    def test_missing_service_has_no_side_effects(self, site, base_dir, settings, production):
        production.respond(["docker", "ps"], output="cloudflared\n")

        with pytest.raises(PreconditionError):
            _pipeline(site, base_dir, settings, production).run()

        assert all(argv[0] == "docker" and argv[1] in ("ps", "network") for argv in production.calls)
        assert ["docker", "network", "create", "local-ai.refine.digital"] not in production.calls
        assert list(base_dir.iterdir()) == []

    def test_missing_ssh_alias_stops_before_remote_commands(self, site, base_dir, settings, production, ssh_config_file):
        ssh_config_file.write_text("Host github.com\n    HostName github.com\n")

        with pytest.raises(ResolutionError) as exc_info:
            _pipeline(site, base_dir, settings, production).run()

        assert exc_info.value.exit_code == 1
        assert not production.commands_starting_with("rsync")
        assert not production.commands_starting_with("ssh")

    def test_transfer_failure_aborts(self, site, base_dir, settings, production):
        production.respond(["ssh"], returncode=255, output="Connection refused")

        with pytest.raises(CommandError) as exc_info:
            _pipeline(site, base_dir, settings, production).run()

        assert exc_info.value.exit_code == 255
        assert not production.commands_starting_with("scp")
        assert not production.commands_starting_with("docker", "compose")

    def test_tunnel_detected(self, site, base_dir, settings, production):
        production.respond(["docker", "ps"], output="nginx-proxy\ncloudflared\n")

        summary = _pipeline(site, base_dir, settings, production).run()

        assert summary.tunnel_running is True

    def test_clean_removes_previous_clone_first(self, site, base_dir, settings, production):
        site_dir = base_dir / "local-ai-refine-digital"
        (site_dir / "data").mkdir(parents=True)
        (site_dir / "stale.txt").write_text("old")
        (site_dir / "docker-compose.yml").write_text("services: {}\n")
        (base_dir / "local-ai-refine-digital-data.tar.gz").write_bytes(b"stale")

        _pipeline(site, base_dir, settings, production, clean=True).run()

        assert not (site_dir / "stale.txt").exists()
        network_rm = production.calls.index(["docker", "network", "rm", "local-ai.refine.digital"])
        rsync = next(i for i, argv in enumerate(production.calls) if argv[0] == "rsync")
        assert network_rm < rsync

    def test_clean_then_clone_equals_fresh_clone(self, site, settings, production, tmp_path):
        fresh_base = tmp_path / "fresh"
        fresh_base.mkdir()
        _pipeline(site, fresh_base, settings, production).run()

        reused_base = tmp_path / "reused"
        reused_base.mkdir()
        _pipeline(site, reused_base, settings, production).run()
        (reused_base / "local-ai-refine-digital" / "leftover.txt").write_text("x")
        _pipeline(site, reused_base, settings, production, clean=True).run()

        assert _tree(reused_base / "local-ai-refine-digital") == _tree(fresh_base / "local-ai-refine-digital")

    def test_run_header_records_invocation(self, site, base_dir, settings, production, caplog):
        with caplog.at_level(logging.INFO):
            _pipeline(site, base_dir, settings, production, clean=True).run()

        assert "Production site: https://ai.refine.digital" in caplog.text
        assert "Local site: https://local-ai.refine.digital" in caplog.text
        assert f"Destination: {base_dir}" in caplog.text
        assert "Clean mode: yes" in caplog.text

    def test_bracketed_folder_logged_literally(self, site, settings, production, tmp_path, rich_log):
        bracketed = tmp_path / "sites[red]" / "x]"
        bracketed.mkdir(parents=True)

        summary = _pipeline(site, bracketed, settings, production).run()

        assert summary.site_dir == bracketed / "local-ai-refine-digital"
        assert "sites[red]" in rich_log.getvalue()


class TestResolveBaseDir:
    def test_default_from_settings(self, settings):
        base = resolve_base_dir(None, settings)

        assert base == settings.base_dir.resolve()
        assert base.is_dir()

    def test_dot_is_current_directory(self, settings, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert resolve_base_dir(".", settings) == tmp_path.resolve()

    def test_relative_folder_made_absolute(self, settings, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        base = resolve_base_dir("sites/n8n", settings)

        assert base == (tmp_path / "sites" / "n8n").resolve()
        assert base.is_dir()

    def test_home_expansion(self, settings, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))

        assert resolve_base_dir("~/n8n", settings) == (tmp_path / "n8n").resolve()


def test_session_log_path(tmp_path):
    path = session_log_path(tmp_path, datetime(2025, 1, 2, 3, 4, 5))

    assert path == tmp_path / "clone-20250102-030405.log"
