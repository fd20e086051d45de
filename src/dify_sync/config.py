"""
Configuration via environment variables, overrides and a settings file.

Resolution order: environment (including .env) > explicit overrides >
settings file > defaults. The CLI resolves settings once and passes the
result down; nothing here is cached at module level.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from dify_sync.errors import ConfigError

DEFAULT_API_URL = "https://api.dify.ai/v1"
SETTINGS_FILE_ENV = "DIFY_SYNC_SETTINGS_FILE"


def get_settings_file_path() -> Path:
    """Location of the JSON settings file."""
    override = os.getenv(SETTINGS_FILE_ENV)
    if override:
        return Path(override)
    return Path.home() / ".config" / "dify-sync" / "settings.json"


class SettingsFile(BaseModel):
    """Values persisted by the settings screen."""

    api_url: str | None = None
    api_key: str | None = None
    dataset_id: str | None = None


class Settings(BaseSettings):
    """
    dify-sync settings.

    Every field can be set through a DIFY_-prefixed environment variable.
    Example: DIFY_DATASET_ID=0b5f...
    """

    model_config = SettingsConfigDict(
        env_prefix="DIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Dify connection
    api_url: str = Field(default=DEFAULT_API_URL, description="Dify API base URL")
    api_key: str | None = Field(default=None, description="Dataset API key")
    dataset_id: str | None = Field(default=None, description="Target dataset (knowledge base) ID")
    indexing_technique: str = Field(
        default="high_quality",
        description="Indexing technique for new documents: high_quality or economy",
    )
    request_timeout: float = Field(default=60.0, description="HTTP timeout in seconds")

    # Downloads
    conflict_timeout: float | None = Field(
        default=None,
        description="Seconds to wait for an overwrite decision before skipping",
    )

    # Observability
    log_level: str = Field(default="WARNING", description="DEBUG, INFO, WARNING, ERROR")
    log_json: bool = Field(default=False, description="Output logs as JSON")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: OS env > .env > overrides > settings file
        return (
            env_settings,
            dotenv_settings,
            init_settings,
            JsonConfigSettingsSource(settings_cls, json_file=get_settings_file_path()),
        )


@dataclass(frozen=True)
class DifyConfig:
    """Resolved connection settings handed to the sync engine."""

    api_url: str
    api_key: str
    dataset_id: str
    indexing_technique: str = "high_quality"
    request_timeout: float = 60.0


def resolve_settings(**overrides: Any) -> Settings:
    """
    Resolve settings from all sources.

    Args:
        **overrides: Explicit values (e.g. from CLI flags). None values are
            ignored so they never mask lower-priority sources.

    Returns:
        Resolved settings.

    """
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def build_config(settings: Settings, require_dataset: bool = True) -> DifyConfig:
    """
    Validate settings into a connection config.

    Raises:
        ConfigError: If the API key or dataset ID is missing.

    """
    if not settings.api_key:
        raise ConfigError(
            "DIFY_API_KEY is required. Set it in your environment, .env or settings file."
        )
    if require_dataset and not settings.dataset_id:
        raise ConfigError(
            "DIFY_DATASET_ID is required. Set it in your environment, .env, "
            "settings file or pass --dataset-id."
        )
    return DifyConfig(
        api_url=settings.api_url.rstrip("/"),
        api_key=settings.api_key,
        dataset_id=settings.dataset_id or "",
        indexing_technique=settings.indexing_technique,
        request_timeout=settings.request_timeout,
    )


def load_settings_file(path: Path | None = None) -> SettingsFile | None:
    """Load the settings file, or None if it is missing or invalid."""
    path = path or get_settings_file_path()
    try:
        return SettingsFile.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def save_settings_file(values: SettingsFile, path: Path | None = None) -> Path:
    """
    Write the settings file, creating its directory.

    Returns:
        Path written to.

    """
    path = path or get_settings_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(values.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
    return path
