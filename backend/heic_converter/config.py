"""HEIC converter application configuration.

Loads settings from a single YAML file:
  * converter.settings.yaml: non-secret configuration

The path can be overridden with the ``CONVERTER_SETTINGS`` environment
variable. A missing file is not an error; every setting has a default.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("converter.settings.yaml")
SETTINGS_ENV_VAR = "CONVERTER_SETTINGS"

MIB = 1024 * 1024


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 4545
    log_level:       str       = "info"
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    # Second mount point for the API routes, used by the bundled web client.
    # Empty string disables it.
    api_prefix:      str       = "/api"

    @field_validator("api_prefix")
    @classmethod
    def _normalise_prefix(cls, value: str) -> str:
        value = value.strip().strip("/")
        return f"/{value}" if value else ""


class StorageSettings(BaseModel):
    """Where uploads and converted artifacts live while in flight."""
    upload_dir:           str   = "uploads"
    output_dir:           str   = "output"
    grace_period_seconds: float = Field(5.0, ge=0)


class IntakeSettings(BaseModel):
    max_file_size_bytes: int       = Field(50 * MIB, gt=0)
    allowed_extensions:  List[str] = Field(default_factory=lambda: [".heic", ".heif"])
    allowed_mime_types:  List[str] = Field(default_factory=lambda: ["image/heic", "image/heif"])

    @field_validator("allowed_extensions")
    @classmethod
    def _normalise_extensions(cls, value: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]

    @field_validator("allowed_mime_types")
    @classmethod
    def _normalise_mime_types(cls, value: List[str]) -> List[str]:
        return [mime.lower() for mime in value]


class ConversionSettings(BaseModel):
    output_format: Literal["JPEG", "PNG"] = "JPEG"
    quality:       float = Field(0.9, gt=0, le=1)

    @field_validator("output_format", mode="before")
    @classmethod
    def _normalise_format(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value


class AnalyticsSettings(BaseModel):
    # Oldest dates are retired once the archive holds this many entries.
    archive_max_days: int = Field(90, ge=1)


class ClientSettings(BaseModel):
    """Location of the built web client served for unmatched routes."""
    dist_dir: str = "dist"


class AppConfig(BaseModel):
    server:     ServerSettings     = Field(default_factory=ServerSettings)
    storage:    StorageSettings    = Field(default_factory=StorageSettings)
    intake:     IntakeSettings     = Field(default_factory=IntakeSettings)
    conversion: ConversionSettings = Field(default_factory=ConversionSettings)
    analytics:  AnalyticsSettings  = Field(default_factory=AnalyticsSettings)
    client:     ClientSettings     = Field(default_factory=ClientSettings)


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def _resolve_dir(value: str, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if path.is_absolute():
        return str(path)
    return str((base_dir / path).resolve())


def _resolve_paths(config: AppConfig, base_dir: Path) -> AppConfig:
    """Make every configured directory absolute, relative to *base_dir*."""
    config.storage.upload_dir = _resolve_dir(config.storage.upload_dir, base_dir)
    config.storage.output_dir = _resolve_dir(config.storage.output_dir, base_dir)
    config.client.dist_dir = _resolve_dir(config.client.dist_dir, base_dir)
    return config


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load *AppConfig* from YAML.

    Args:
        settings_path: Explicit settings file. Falls back to
            ``$CONVERTER_SETTINGS`` and then ``converter.settings.yaml``
            in the working directory.

    Returns:
        Validated configuration with absolute storage paths.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    settings_path = Path(settings_path)

    data = _load_yaml(settings_path)
    config = AppConfig(**data)
    config = _resolve_paths(config, settings_path.parent.resolve())

    logger.info(
        "Settings loaded (server=%s:%s, max_upload=%d bytes, grace=%ss)",
        config.server.host,
        config.server.port,
        config.intake.max_file_size_bytes,
        config.storage.grace_period_seconds,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Replace (or with ``None``, forget) the cached config."""
    global _config
    _config = config
