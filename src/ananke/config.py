"""Settings for ananke.

Values come from, in increasing priority: field defaults, an optional YAML file,
and ``ANANKE_*`` environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from ananke.core.exceptions import ContentEncodingError, InputValidationError

CONFIG_FILE_ENV = "ANANKE_CONFIG_FILE"
DEFAULT_CONFIG_FILENAME = "ananke.config.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ANANKE_", extra="ignore")

    home: Path | None = Field(
        default=None,
        description="Home directory used to locate tool installations (defaults to ~)",
    )
    github_api_url: str = Field(default="https://api.github.com")
    user_agent: str = Field(default="Ananke/0.1")
    request_timeout: float = Field(default=30.0, gt=0)
    fallback_branches: list[str] = Field(default_factory=lambda: ["main", "master"])

    def resolve_home(self) -> Path:
        if self.home is not None:
            return Path(self.home).expanduser()
        return Path.home()


_settings: Settings | None = None


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_FILE_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "ananke" / DEFAULT_CONFIG_FILENAME


def load_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except UnicodeDecodeError as exc:
        raise ContentEncodingError(f"Config file {path} is not valid UTF-8") from exc
    except yaml.YAMLError as exc:
        raise InputValidationError(f"Invalid YAML in {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InputValidationError(f"Config file {path} must contain a mapping")
    return payload


def get_settings(config_path: Path | None = None) -> Settings:
    """Return the process settings, loading them on first use."""
    global _settings
    if _settings is not None and config_path is None:
        return _settings

    file_values = load_config_file(config_path or default_config_path())
    try:
        # Environment variables win over file values.
        env_overrides = Settings().model_dump(exclude_unset=True)
        settings = Settings(**{**file_values, **env_overrides})
    except (ValidationError, SettingsError) as exc:
        raise InputValidationError(f"Invalid ananke settings: {exc}") from exc
    if config_path is None:
        _settings = settings
    return settings


def reset_settings() -> None:
    global _settings
    _settings = None
