"""
Configuration System

Optional YAML settings for clone-n8n. Every key has a default, so the tool
runs without any settings file. Features:
- Single-file YAML loading with validation and error handling
- Environment variable resolution (${VAR}, ${VAR:-default}, $VAR)
- Dot-notation access to raw values
- Typed Settings record passed explicitly to the pipeline stages

Settings file lookup order: explicit path, CLONE_N8N_CONFIG, then
~/.config/clone-n8n/config.yml when it exists.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from rich.markup import escape

# Use standard logging (not get_logger) to avoid circular imports with logger.py
logger = logging.getLogger("CONFIG")

CONFIG_ENV_VAR = "CLONE_N8N_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/clone-n8n/config.yml")

DEFAULT_N8N_IMAGE = "docker.n8n.io/n8nio/n8n:latest"
DEFAULT_NGINX_IMAGE = "nginxinc/nginx-unprivileged:alpine"


class ConfigBuilder:
    """
    Loads a YAML settings file and resolves environment variables.

    Features:
    - Single-file YAML loading with validation and error handling
    - Environment variable resolution
    - Explicit fail-fast behavior for malformed files
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize configuration builder.

        Args:
            config_path: Path to the YAML settings file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        self.config_path = Path(config_path).expanduser()
        if not self.config_path.is_file():
            raise FileNotFoundError(f"Settings file not found: {self.config_path}")

        self.raw_config = self._resolve_env_vars(self._load_yaml_file(self.config_path))

    def _load_yaml_file(self, file_path: Path) -> dict[str, Any]:
        """Load and validate a YAML configuration file."""
        try:
            with open(file_path) as f:
                config = yaml.safe_load(f)

            if config is None:
                logger.warning(f"Configuration file is empty: {escape(str(file_path))}")
                return {}

            if not isinstance(config, dict):
                error_msg = f"Configuration file must contain a dictionary/mapping: {file_path}"
                logger.error(escape(error_msg))
                raise ValueError(error_msg)

            logger.debug(f"Loaded configuration from {escape(str(file_path))}")
            return config
        except yaml.YAMLError as e:
            error_msg = f"Error parsing YAML configuration: {e}"
            logger.error(escape(error_msg))
            raise yaml.YAMLError(error_msg) from e

    def _resolve_env_vars(self, data: Any) -> Any:
        """Recursively resolve environment variables in configuration data.

        Supports both simple and bash-style default value syntax:
        - ${VAR_NAME} - simple substitution
        - ${VAR_NAME:-default_value} - with default value
        - $VAR_NAME - simple substitution without braces
        """
        if isinstance(data, dict):
            return {key: self._resolve_env_vars(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [self._resolve_env_vars(item) for item in data]
        elif isinstance(data, str):

            def replace_env_var(match):
                if match.group(1):  # ${VAR_NAME:-default} or ${VAR_NAME}
                    var_name = match.group(1)
                    default_value = match.group(2)
                else:  # $VAR_NAME
                    var_name = match.group(3)
                    default_value = None

                env_value = os.environ.get(var_name)
                if env_value is None:
                    if default_value is not None:
                        return default_value
                    logger.info(f"Environment variable '{escape(var_name)}' not found, keeping original value")
                    return match.group(0)
                return env_value

            pattern = r"\$\{([^}:]+)(?::-(.*?))?\}|\$([A-Za-z_][A-Za-z0-9_]*)"
            return re.sub(pattern, replace_env_var, data)
        else:
            return data

    def get(self, path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation path."""
        value = self.raw_config
        try:
            for key in path.split("."):
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default


@dataclass
class ReadinessSettings:
    """Polling parameters used while waiting for containers to run.

    Attributes:
        timeout: Give up after this many seconds
        initial_delay: First delay between polls
        backoff_factor: Multiply the delay by this after each poll
        max_delay: Upper bound for a single delay
    """

    timeout: float = 60.0
    initial_delay: float = 1.0
    backoff_factor: float = 1.5
    max_delay: float = 10.0

    def __post_init__(self):
        if self.timeout <= 0 or self.initial_delay <= 0 or self.max_delay <= 0:
            raise ValueError("readiness timeout, initial_delay and max_delay must be positive")
        if self.backoff_factor < 1:
            raise ValueError("readiness backoff_factor must be at least 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReadinessSettings":
        return cls(
            timeout=float(data.get("timeout", 60.0)),
            initial_delay=float(data.get("initial_delay", 1.0)),
            backoff_factor=float(data.get("backoff_factor", 1.5)),
            max_delay=float(data.get("max_delay", 10.0)),
        )


@dataclass
class Settings:
    """Resolved settings for one run. Defaults mirror the stock infrastructure layout."""

    base_dir: Path = field(default_factory=lambda: Path.home() / "ProjectFiles" / "n8n")
    infrastructure_root: Path = field(default_factory=Path.home)
    ssh_config: Path = field(default_factory=lambda: Path.home() / ".ssh" / "config")
    production_user: str = "fly"
    required_containers: list[str] = field(default_factory=lambda: ["nginx-proxy"])
    required_networks: list[str] = field(default_factory=lambda: ["wordpress-sites"])
    shared_network: str = "wordpress-sites"
    tunnel_container: str = "cloudflared"
    container_runtime: str = "auto"
    n8n_image: str = DEFAULT_N8N_IMAGE
    nginx_image: str = DEFAULT_NGINX_IMAGE
    readiness: ReadinessSettings = field(default_factory=ReadinessSettings)
    logging_colors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Create Settings from a raw configuration mapping."""
        defaults = cls()
        images = _as_mapping(data.get("images"), "images")
        return cls(
            base_dir=_as_path(data.get("base_dir"), defaults.base_dir),
            infrastructure_root=_as_path(data.get("infrastructure_root"), defaults.infrastructure_root),
            ssh_config=_as_path(data.get("ssh_config"), defaults.ssh_config),
            production_user=str(data.get("production_user", defaults.production_user)),
            required_containers=_as_name_list(
                data.get("required_containers"), defaults.required_containers, "required_containers"
            ),
            required_networks=_as_name_list(
                data.get("required_networks"), defaults.required_networks, "required_networks"
            ),
            shared_network=str(data.get("shared_network", defaults.shared_network)),
            tunnel_container=str(data.get("tunnel_container", defaults.tunnel_container)),
            container_runtime=str(data.get("container_runtime", defaults.container_runtime)),
            n8n_image=str(images.get("n8n", defaults.n8n_image)),
            nginx_image=str(images.get("nginx", defaults.nginx_image)),
            readiness=ReadinessSettings.from_dict(_as_mapping(data.get("readiness"), "readiness")),
            logging_colors=dict(
                _as_mapping(_as_mapping(data.get("logging"), "logging").get("colors"), "logging.colors")
            ),
        )


def _as_mapping(value: Any, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Setting '{key}' must be a mapping, got {type(value).__name__}")
    return value


def _as_name_list(value: Any, default: list[str], key: str) -> list[str]:
    """Accept a single name or a list of names."""
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"Setting '{key}' must be a name or a list of names")
    return [str(item) for item in value]


def _as_path(value: Any, default: Path) -> Path:
    if value in (None, ""):
        return default
    return Path(str(value)).expanduser()


def resolve_settings_path(explicit: str | Path | None = None) -> Path | None:
    """Find the settings file to load, or None when running on defaults.

    Resolution priority:
    1. Explicit path (--settings), which must exist
    2. CLONE_N8N_CONFIG environment variable, which must exist
    3. ~/.config/clone-n8n/config.yml, only if present
    """
    if explicit:
        return Path(explicit).expanduser()

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    default_path = DEFAULT_CONFIG_PATH.expanduser()
    return default_path if default_path.is_file() else None


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load :class:`Settings`, falling back to defaults when no file applies.

    Raises:
        FileNotFoundError: An explicitly requested file is missing
        ValueError: The file is not a YAML mapping
        yaml.YAMLError: The file is not valid YAML
    """
    path = resolve_settings_path(config_path)
    if path is None:
        logger.debug("No settings file found, using defaults")
        return Settings()

    builder = ConfigBuilder(path)
    logger.info(f"Loaded settings from {escape(str(builder.config_path))}")
    return Settings.from_dict(builder.raw_config)
