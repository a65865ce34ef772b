"""
Configuration loader — reads the optional isoterm config.yml.

Settings are optional: with no file and no environment overrides every
field keeps its default. The YAML is validated against a pydantic model;
environment variables win over the file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yml"
DEFAULT_ENV_ROOT = "~/.local_shell"
DEFAULT_API_URL = "https://api.github.com"

ENV_CONFIG = "ISOTERM_CONFIG"

# environment variable → settings field
_ENV_OVERRIDES = {
    "ISOTERM_HOME": "env_root",
    "ISOTERM_API_URL": "api_url",
    "ISOTERM_HTTP_TIMEOUT": "http_timeout",
    "GITHUB_TOKEN": "github_token",
}


class ConfigError(Exception):
    """Raised when the isoterm configuration is invalid or unreadable."""


class IsotermSettings(BaseModel):
    """User-tunable settings for a provisioning run."""

    env_root: str = DEFAULT_ENV_ROOT
    api_url: str = DEFAULT_API_URL
    http_timeout: float = Field(default=60.0, gt=0)
    user_agent: str = "isoterm"
    github_token: str | None = None
    skip_tools: list[str] = Field(default_factory=list)

    def root_path(self) -> Path:
        return Path(self.env_root).expanduser().resolve()


def default_config_path() -> Path:
    """``$XDG_CONFIG_HOME/isoterm/config.yml`` (or ``~/.config/...``)."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "isoterm" / CONFIG_FILE


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Locate the config file.

    Order: explicit path, ``$ISOTERM_CONFIG``, the per-user default.
    An explicit or env-provided path must exist; the default is optional.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    from_env = os.environ.get(ENV_CONFIG)
    if from_env:
        path = Path(from_env).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path} (from ${ENV_CONFIG})")
        return path

    candidate = default_config_path()
    return candidate if candidate.is_file() else None


def load_settings(path: Path | None = None) -> IsotermSettings:
    """Load and validate settings.

    Args:
        path: Explicit config file. If None, the default locations are
            searched and a missing file is not an error.

    Returns:
        Validated IsotermSettings with environment overrides applied.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    data: dict = {}
    config_path = find_config_file(path)

    if config_path is not None:
        logger.debug("Loading isoterm config from %s", config_path)
        try:
            raw = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {config_path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(
                f"Expected a YAML mapping in {config_path}, got {type(loaded).__name__}"
            )
        # The YAML may wrap everything under an "isoterm" key or be flat
        data = dict(loaded.get("isoterm", loaded))

    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[field_name] = value

    try:
        settings = IsotermSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid isoterm configuration: {e}") from e

    logger.info("Environment root: %s", settings.env_root)
    return settings
