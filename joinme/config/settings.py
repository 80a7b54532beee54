"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "JOINME_"
PATH_FIELDS = frozenset({"data_dir", "database_file", "config_file"})


class JoinMeSettings(BaseSettings):
    """Application settings.

    Priority order: explicit arguments > ``JOINME_*`` environment variables
    > YAML config file > ``.env`` file > defaults.
    """

    app_name: str = Field(default="JoinMe", description="Application name")

    # Paths
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "share" / "joinme",
        description="Directory holding the local cache database",
    )
    database_file: Optional[Path] = Field(
        default=None, description="SQLite cache file (defaults to data_dir/cache.db)"
    )
    config_file: Optional[Path] = Field(default=None, description="Optional YAML config file")

    # Remote store
    remote_base_url: Optional[str] = Field(
        default=None, description="Base URL of the remote document API"
    )
    remote_api_token: Optional[str] = Field(default=None, description="Bearer token for the API")
    remote_timeout_ms: int = Field(
        default=3000, gt=0, description="Budget for every remote call made by the cache"
    )
    request_timeout: float = Field(default=10.0, gt=0, description="HTTP read timeout in seconds")

    # Connectivity probing
    connectivity_host: str = Field(default="8.8.8.8", description="Host probed for connectivity")
    connectivity_port: int = Field(default=53, description="TCP port probed for connectivity")
    connectivity_timeout: float = Field(default=1.0, gt=0, description="Probe timeout in seconds")
    connectivity_poll_seconds: float = Field(
        default=5.0, gt=0, description="Seconds between background connectivity probes"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Console log level")
    log_file: Optional[str] = Field(default=None, description="Optional log file name")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    _explicit_args: set[str] = PrivateAttr(default_factory=set)
    _env_vars_set: set[str] = PrivateAttr(default_factory=set)

    def __init__(self, **kwargs: Any) -> None:
        # Track which environment variables are set before calling parent
        env_vars_set = {
            key[len(ENV_PREFIX) :].lower() for key in os.environ if key.startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set

        self._load_yaml_config()

        if self.database_file is None:
            self.database_file = self.data_dir / "cache.db"

    @property
    def remote_timeout_seconds(self) -> float:
        return self.remote_timeout_ms / 1000

    def _find_config_file(self) -> Optional[Path]:
        """Find config file, preferring an explicit path over the data directory."""
        if self.config_file is not None:
            return self.config_file

        candidate = self.data_dir / "config.yaml"
        return candidate if candidate.exists() else None

    def _load_yaml_config(self) -> None:
        """Overlay values from the YAML config file.

        Keys given explicitly or through the environment are left alone.
        Unknown keys are ignored with a warning.
        """
        config_path = self._find_config_file()
        if config_path is None:
            return

        try:
            with config_path.open(encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            return

        if not isinstance(config_data, dict):
            logger.warning(f"Ignoring config file {config_path}: expected a mapping")
            return

        # Nested sections are flattened: remote.timeout_ms -> remote_timeout_ms
        flat: dict[str, Any] = {}
        for key, value in config_data.items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    flat[f"{key}_{sub_key}"] = sub_value
            else:
                flat[key] = value

        for key, value in flat.items():
            if key not in type(self).model_fields:
                logger.warning(f"Unknown config key '{key}' in {config_path}")
                continue
            if key in self._explicit_args or key in self._env_vars_set:
                continue
            if key in PATH_FIELDS and value is not None:
                value = Path(value).expanduser()
            setattr(self, key, value)

        logger.debug(f"Loaded configuration from {config_path}")


def get_settings(**overrides: Any) -> JoinMeSettings:
    """Build settings, applying keyword overrides."""
    return JoinMeSettings(**overrides)
