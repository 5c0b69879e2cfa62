"""Tests for settings loading."""

from pathlib import Path

import pytest
import yaml

from clone_n8n.utils.config import (
    CONFIG_ENV_VAR,
    DEFAULT_N8N_IMAGE,
    ConfigBuilder,
    ReadinessSettings,
    Settings,
    load_settings,
    resolve_settings_path,
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """No real settings file or environment override leaks into a test."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestConfigBuilder:
    def test_resolves_environment_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SITES_ROOT", "/srv/sites")
        monkeypatch.delenv("UNSET_USER", raising=False)
        path = tmp_path / "config.yml"
        path.write_text(
            "base_dir: ${SITES_ROOT}/n8n\n"
            "production_user: ${UNSET_USER:-deploy}\n"
            "ssh_config: $SITES_ROOT/ssh\n"
        )

        builder = ConfigBuilder(path)

        assert builder.get("base_dir") == "/srv/sites/n8n"
        assert builder.get("production_user") == "deploy"
        assert builder.get("ssh_config") == "/srv/sites/ssh"

    def test_unresolved_variable_kept(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NOT_THERE", raising=False)
        path = tmp_path / "config.yml"
        path.write_text("tunnel_container: ${NOT_THERE}\n")

        assert ConfigBuilder(path).get("tunnel_container") == "${NOT_THERE}"

    def test_dot_notation_get(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("images:\n  n8n: n8nio/n8n:1.0\n")

        builder = ConfigBuilder(path)

        assert builder.get("images.n8n") == "n8nio/n8n:1.0"
        assert builder.get("images.nginx", "default") == "default"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigBuilder(tmp_path / "missing.yml")

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="dictionary/mapping"):
            ConfigBuilder(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("base_dir: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            ConfigBuilder(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")

        assert ConfigBuilder(path).raw_config == {}


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.base_dir == Path.home() / "ProjectFiles" / "n8n"
        assert settings.production_user == "fly"
        assert settings.required_containers == ["nginx-proxy"]
        assert settings.required_networks == ["wordpress-sites"]
        assert settings.shared_network == "wordpress-sites"
        assert settings.tunnel_container == "cloudflared"
        assert settings.n8n_image == DEFAULT_N8N_IMAGE
        assert settings.readiness.timeout == 60.0
        assert settings.readiness.backoff_factor == 1.5

    def test_from_dict(self):
        settings = Settings.from_dict(
            {
                "base_dir": "~/sites",
                "production_user": "deploy",
                "required_containers": ["nginx-proxy", "acme"],
                "images": {"nginx": "nginx:alpine"},
                "readiness": {"timeout": 30},
                "logging": {"colors": {"fetcher": "red"}},
            }
        )

        assert settings.base_dir == Path.home() / "sites"
        assert settings.production_user == "deploy"
        assert settings.required_containers == ["nginx-proxy", "acme"]
        assert settings.nginx_image == "nginx:alpine"
        assert settings.n8n_image == DEFAULT_N8N_IMAGE
        assert settings.readiness.timeout == 30.0
        assert settings.readiness.max_delay == 10.0
        assert settings.logging_colors == {"fetcher": "red"}

    def test_single_name_becomes_list(self):
        settings = Settings.from_dict({"required_containers": "nginx-proxy", "required_networks": "shared"})

        assert settings.required_containers == ["nginx-proxy"]
        assert settings.required_networks == ["shared"]

    @pytest.mark.parametrize(
        "data",
        [
            {"required_containers": 5},
            {"required_networks": {"a": 1}},
            {"images": "nginx:alpine"},
            {"readiness": [1, 2]},
            {"logging": {"colors": "red"}},
        ],
    )
    def test_malformed_values_rejected(self, data):
        with pytest.raises(ValueError):
            Settings.from_dict(data)

    @pytest.mark.parametrize(
        "readiness",
        [
            {"initial_delay": 0},
            {"max_delay": -1},
            {"timeout": 0},
            {"backoff_factor": 0.5},
        ],
    )
    def test_readiness_must_make_progress(self, readiness):
        with pytest.raises(ValueError):
            ReadinessSettings.from_dict(readiness)


class TestLoadSettings:
    def test_defaults_without_file(self):
        assert resolve_settings_path() is None
        assert load_settings() == Settings()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("tunnel_container: tunnel\n")

        assert load_settings(path).tunnel_container == "tunnel"

    def test_explicit_missing_path_fails(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yml")

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yml"
        path.write_text("shared_network: proxy\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert resolve_settings_path() == path
        assert load_settings().shared_network == "proxy"

    def test_default_location(self, tmp_path):
        path = tmp_path / "home" / ".config" / "clone-n8n" / "config.yml"
        path.parent.mkdir(parents=True)
        path.write_text("production_user: admin\n")

        assert load_settings().production_user == "admin"

    def test_zero_initial_delay_in_file_rejected(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("readiness:\n  initial_delay: 0\n")

        with pytest.raises(ValueError, match="readiness"):
            load_settings(path)
