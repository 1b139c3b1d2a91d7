"""
Exporter configuration loader.

Locates the exporter config file, parses it (JSON, or YAML for .yaml/.yml
files) and expands environment references in plug passwords.
"""
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import ExporterSettings, get_exporter_settings
from .devices.descriptor import DeviceDescriptor
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z0-9_]+)")
_YAML_SUFFIXES = {".yaml", ".yml"}


def expand_env(value: str) -> str:
    """
    Replace $VAR and ${VAR} with their environment values.

    Unset variables expand to an empty string.
    """
    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        return os.environ.get(name, "")

    return _ENV_REFERENCE.sub(_replace, value)


class PlugConfig(BaseModel):
    """One plug entry of the config file."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    host: str = Field(min_length=1)
    username: str = ""
    password: str = ""

    def to_descriptor(self) -> DeviceDescriptor:
        """Build the immutable descriptor used by the poller."""
        return DeviceDescriptor(
            name=self.name,
            host=self.host,
            username=self.username or None,
            password=self.password or None,
        )


class ExporterConfig(BaseModel):
    """Exporter config file contents."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    listen_addr: str = "0.0.0.0"
    port: int = Field(ge=1, le=65535)
    interval_seconds: float = Field(gt=0)
    shelly_plugs: List[PlugConfig] = Field(default_factory=list)

    @field_validator("listen_addr")
    @classmethod
    def _default_listen_addr(cls, value: str) -> str:
        # An empty address means all interfaces.
        return value or "0.0.0.0"

    @property
    def devices(self) -> List[DeviceDescriptor]:
        """Descriptors for every configured plug, in file order."""
        return [plug.to_descriptor() for plug in self.shelly_plugs]


class ConfigLoader:
    """
    Loads the exporter configuration.

    Resolution order: explicit path from settings (CONFIG_PATH), then
    the first existing fallback path.
    """

    def __init__(self, settings: Optional[ExporterSettings] = None):
        """
        Initialize the config loader.

        Args:
            settings: Runtime settings holding the path candidates.
        """
        self.settings = settings or get_exporter_settings()

    def resolve_path(self) -> Path:
        """
        Determine which config file to read.

        Returns:
            Path of the config file.

        Raises:
            ConfigError: If no candidate exists.
        """
        if self.settings.config_path:
            return Path(self.settings.config_path)

        for candidate in self.settings.fallback_paths:
            if Path(candidate).is_file():
                return Path(candidate)

        raise ConfigError("no configuration file found")

    def load(self, file_path: Optional[Path] = None) -> ExporterConfig:
        """
        Resolve and load the exporter configuration.

        Args:
            file_path: Optional path overriding resolution.

        Returns:
            Parsed ExporterConfig with passwords expanded.
        """
        path = Path(file_path) if file_path else self.resolve_path()
        return self.load_from_file(path)

    def load_from_file(self, file_path: Path) -> ExporterConfig:
        """
        Load the exporter configuration from a single file.

        Args:
            file_path: Path to a JSON or YAML config file.

        Returns:
            Parsed ExporterConfig with passwords expanded.

        Raises:
            ConfigError: If the file cannot be read or is invalid.
        """
        logger.info(f"Loading config from {file_path}")

        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"config read error: {e}", path=str(file_path)) from e

        data = self._parse(raw, Path(file_path))

        try:
            config = ExporterConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"config parse error: {e}", path=str(file_path)) from e

        config = self._expand_passwords(config)
        self._warn_duplicates(config)

        logger.info(
            f"Loaded {len(config.shelly_plugs)} plugs from {file_path} "
            f"(interval={config.interval_seconds}s)"
        )
        return config

    def _parse(self, raw: str, file_path: Path) -> Dict[str, Any]:
        """Decode the raw file text into a mapping."""
        try:
            if file_path.suffix.lower() in _YAML_SUFFIXES:
                data = yaml.safe_load(raw)
            else:
                data = json.loads(raw)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"config parse error: {e}", path=str(file_path)) from e

        if not isinstance(data, dict):
            raise ConfigError(
                "config parse error: root must be an object",
                path=str(file_path),
            )
        return data

    def _expand_passwords(self, config: ExporterConfig) -> ExporterConfig:
        """Expand environment references in every plug password."""
        plugs = [
            plug.model_copy(update={"password": expand_env(plug.password)})
            for plug in config.shelly_plugs
        ]
        return config.model_copy(update={"shelly_plugs": plugs})

    def _warn_duplicates(self, config: ExporterConfig) -> None:
        """Plugs sharing a name and host would overwrite each other's metrics."""
        seen = set()
        for plug in config.shelly_plugs:
            key = (plug.name, plug.host)
            if key in seen:
                logger.warning(
                    f"Duplicate plug {plug.name} ({plug.host}) in config, "
                    f"metrics will be shared"
                )
            seen.add(key)
