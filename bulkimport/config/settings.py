"""
Run configuration for the bulk import pipeline.

Settings come from a YAML file. Keys live under a ``bulkimport`` mapping,
either nested or flattened with a ``bulkimport.`` prefix:

    bulkimport:
      collection: articles
      root: ./data
      max_volume_per_bulk_request: 5mb

    bulkimport.flush_interval: 5s
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bulkimport.models import Thresholds
from bulkimport.utils.validators import ValidationError as ValueParseError
from bulkimport.utils.validators import parse_byte_size, parse_duration, parse_endpoint

logger = logging.getLogger("bulk_import.config")

SETTINGS_PREFIX = "bulkimport"
ENV_CONFIG_PATH = "BULKIMPORT_CONFIG"
DEFAULT_CONFIG_FILE = Path("bulkimport.yml")


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be loaded or is invalid."""

    pass


class EmptyConfigurationError(ConfigurationError):
    """Raised when a configuration file holds no recognized options."""

    pass


class ImportSettings(BaseModel):
    """Validated options for one import run."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    collection: str = Field(min_length=1, description="Target collection name")
    doc_type: str | None = Field(default=None, alias="type", description="Document-type label")
    root: Path = Field(description="Folder to scan")
    fileext: str | None = Field(
        default="json", description='File suffix to import, "*" or null for all files'
    )
    linebyline: bool = Field(default=False, description="One document per non-blank line")

    max_bulk_actions: int = Field(default=1000, ge=1)
    max_concurrent_bulk_requests: int = Field(default=1, ge=0)
    max_volume_per_bulk_request: int = Field(default=10 * 1024 * 1024)
    flush_interval: float | None = None
    poll_interval: float = 1.0
    timeout: float | None = None

    mode: Literal["remote", "embedded"] = "remote"
    transport_addresses: list[str] = Field(
        default_factory=lambda: ["localhost:8000"], alias="transport.addresses"
    )
    embedded_path: Path = Field(default=Path(".chroma"), alias="embedded.path")
    embedding_function: Literal["default", "openai"] = "default"

    @field_validator("max_volume_per_bulk_request", mode="before")
    @classmethod
    def _parse_volume(cls, value: Any) -> int:
        try:
            return parse_byte_size(value)
        except ValueParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("flush_interval", "timeout", mode="before")
    @classmethod
    def _parse_optional_duration(cls, value: Any) -> float | None:
        if value is None:
            return None
        try:
            return parse_duration(value)
        except ValueParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("poll_interval", mode="before")
    @classmethod
    def _parse_poll_interval(cls, value: Any) -> float:
        try:
            return parse_duration(value)
        except ValueParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("transport_addresses", mode="before")
    @classmethod
    def _parse_addresses(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        if not value:
            raise ValueError("at least one host:port address is required")
        addresses = []
        for item in value:
            try:
                host, port = parse_endpoint(str(item))
            except ValueParseError as e:
                raise ValueError(str(e)) from e
            addresses.append(f"{host}:{port}")
        return addresses

    @property
    def endpoints(self) -> list[tuple[str, int]]:
        """Remote endpoints as (host, port) pairs."""
        return [parse_endpoint(address) for address in self.transport_addresses]

    def thresholds(self) -> Thresholds:
        """Batch bounds derived from the settings."""
        return Thresholds(
            max_count=self.max_bulk_actions,
            max_bytes=self.max_volume_per_bulk_request,
            max_concurrent_batches=self.max_concurrent_bulk_requests,
            flush_interval=self.flush_interval,
        )


RECOGNIZED_KEYS = frozenset(
    field.alias or name for name, field in ImportSettings.model_fields.items()
)


def _flatten(data: dict, prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat


def extract_options(data: dict) -> dict[str, Any]:
    """
    Collect recognized options from a parsed YAML document.

    Nested and dotted keys are both accepted; the ``bulkimport`` prefix is
    stripped and unknown keys are dropped.

    Args:
        data: Parsed YAML mapping

    Returns:
        Mapping of recognized option name to raw value
    """
    options: dict[str, Any] = {}
    for key, value in _flatten(data).items():
        if not key.startswith(f"{SETTINGS_PREFIX}."):
            continue
        name = key[len(SETTINGS_PREFIX) + 1 :]
        if name in RECOGNIZED_KEYS:
            options[name] = value
        else:
            logger.warning(f"Ignoring unknown setting: {key}")
    return options


def settings_from_dict(data: dict) -> ImportSettings:
    """
    Build validated settings from a parsed YAML mapping.

    Raises:
        EmptyConfigurationError: If no recognized option is present
        ConfigurationError: If validation fails
    """
    options = extract_options(data)
    if not options:
        raise EmptyConfigurationError("configuration contains no settings")

    try:
        return ImportSettings.model_validate(options)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from e


def load_settings(path: Path) -> ImportSettings:
    """
    Load and validate settings from a YAML file.

    Args:
        path: Configuration file

    Returns:
        Validated settings

    Raises:
        EmptyConfigurationError: If the file holds no recognized options
        ConfigurationError: If the file cannot be read, parsed or validated
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cannot parse {path}: {e}") from e

    if data is None:
        raise EmptyConfigurationError(f"{path} contains no settings")

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of settings")

    try:
        settings = settings_from_dict(data)
    except EmptyConfigurationError as e:
        raise EmptyConfigurationError(f"{path} contains no settings") from e

    logger.debug(f"Loaded settings from {path}: {settings.model_dump(by_alias=True)}")
    return settings


def resolve_config_path(argument: str | None = None) -> Path | None:
    """
    Find the configuration file for a run.

    Order: explicit argument, ``BULKIMPORT_CONFIG`` environment variable,
    ``bulkimport.yml`` in the working directory.

    Returns:
        Path to use, or None if nothing was given and no default file exists
    """
    if argument:
        return Path(argument)

    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        logger.info(f"Using configuration from environment: {env_path}")
        return Path(env_path)

    if DEFAULT_CONFIG_FILE.is_file():
        logger.info(f"Using default configuration file: {DEFAULT_CONFIG_FILE}")
        return DEFAULT_CONFIG_FILE

    return None
