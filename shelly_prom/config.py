"""
Runtime settings for the Shelly exporter.

Process-level knobs read from the environment. The plug list, listen
address and poll interval live in the exporter config file, see loader.py.
"""
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ExporterSettings(BaseSettings):
    """Main runtime configuration for the exporter."""

    model_config = SettingsConfigDict(
        env_prefix="SHELLY_PROM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="Shelly Prometheus Exporter")
    log_level: str = Field(default="INFO", description="Root and uvicorn log level")

    # Polling
    request_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Ceiling for one status fetch (seconds)",
    )

    # Config file resolution
    config_path: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("CONFIG_PATH", "SHELLY_PROM_CONFIG_PATH"),
        description="Explicit path to the exporter config file",
    )
    fallback_paths: List[Path] = Field(
        default_factory=lambda: [
            Path("/etc/shelly-prom/config.json"),
            Path("config.json"),
        ],
        description="Paths tried in order when no explicit path is set",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = str(value).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("config_path", mode="before")
    @classmethod
    def _empty_config_path(cls, value: Any) -> Any:
        # CONFIG_PATH= counts as unset.
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache()
def get_exporter_settings() -> ExporterSettings:
    """
    Get cached exporter settings.

    Uses LRU cache to avoid re-reading environment variables on every access.
    """
    return ExporterSettings()
