"""
Configuration settings for the Untappd mirror.

This module handles loading and validating configuration from TOML files
and environment variables.

Configuration hierarchy (later overrides earlier):
1. Default values (built-in)
2. config/default.toml
3. config/local.toml (gitignored)
4. $MIRROR_CONFIG_PATH
5. Environment variables (MIRROR_* prefix)
6. Command-line arguments

Example:
    >>> from untappd_mirror.config import get_settings
    >>>
    >>> settings = get_settings()
    >>> print(f"Bucket: {settings.storage.bucket_name}")
    >>> print(f"Workers: {settings.pipeline.workers}")
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

ENV_PREFIX = "MIRROR_"
CONFIG_PATH_ENV = "MIRROR_CONFIG_PATH"

DEFAULT_PLACEHOLDER = Path(__file__).resolve().parent.parent / "assets" / "placeholder.jpg"


class UntappdSettings(BaseModel):
    """Untappd API settings."""

    model_config = ConfigDict(extra="ignore")

    access_token: SecretStr = Field(
        default=SecretStr(""),
        description="OAuth access token",
    )
    api_url: str = Field(
        default="https://api.untappd.com/v4",
        description="API base URL",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Feed request timeout",
    )


class StorageSettings(BaseModel):
    """Object storage settings.

    Cloudflare R2 is used when ``r2_account_id`` is set, AWS S3 when
    ``aws_region`` is set.
    """

    model_config = ConfigDict(extra="ignore")

    bucket_name: str = Field(default="", description="Target bucket")
    r2_account_id: str = Field(default="", description="Cloudflare account ID")
    r2_access_key_id: str = Field(default="", description="R2 access key ID")
    r2_access_key_secret: SecretStr = Field(
        default=SecretStr(""),
        description="R2 secret access key",
    )
    aws_region: str = Field(default="", description="AWS region for S3")
    endpoint_url: str = Field(default="", description="Custom S3 endpoint")
    max_attempts: int = Field(default=3, ge=1, description="botocore retry attempts")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Connect/read timeout")
    max_pool_connections: int = Field(
        default=20,
        ge=1,
        description="HTTP connection pool size (>= pipeline workers)",
    )

    @property
    def provider(self) -> str | None:
        """Configured provider name, or None."""
        if self.r2_account_id:
            return "r2"
        if self.aws_region:
            return "s3"
        return None


class PhotoSettings(BaseModel):
    """Photo download and transcode settings."""

    model_config = ConfigDict(extra="ignore")

    placeholder_path: Path = Field(
        default=DEFAULT_PLACEHOLDER,
        description="Image stored for check-ins without a photo",
    )
    timeout_seconds: float = Field(default=15.0, gt=0, description="Download timeout")
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0, description="Largest accepted photo")
    webp_quality: int = Field(default=75, ge=0, le=100, description="WebP quality")
    user_agent: str = Field(default="untappd-mirror/1.0")


class PipelineSettings(BaseModel):
    """Sync pipeline settings."""

    model_config = ConfigDict(extra="ignore")

    workers: int = Field(default=10, description="Worker pool width")
    page_size: int = Field(default=50, ge=1, description="Rows per page for file backfills")
    max_pages: int | None = Field(default=None, description="Page limit (None = unlimited)")


class LoggingSettings(BaseModel):
    """Logging settings."""

    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Output format")
    include_timestamp: bool = Field(default=True)
    include_location: bool = Field(default=False)


class Settings(BaseModel):
    """Main settings container."""

    model_config = ConfigDict(extra="ignore")

    # General
    name: str = Field(default="untappd-mirror")

    # Subsystems
    untappd: UntappdSettings = Field(default_factory=UntappdSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    photos: PhotoSettings = Field(default_factory=PhotoSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def missing_for_sync(self) -> list[str]:
        """Names of required settings that are unset for a feed sync."""
        missing = self.missing_for_storage()
        if not self.untappd.access_token.get_secret_value():
            missing.insert(0, "untappd.access_token")
        return missing

    def missing_for_storage(self) -> list[str]:
        """Names of required settings that are unset for any storage access."""
        missing = []
        if not self.storage.bucket_name:
            missing.append("storage.bucket_name")
        if self.storage.provider is None:
            missing.append("storage.r2_account_id or storage.aws_region")
        elif self.storage.provider == "r2":
            if not self.storage.r2_access_key_id:
                missing.append("storage.r2_access_key_id")
            if not self.storage.r2_access_key_secret.get_secret_value():
                missing.append("storage.r2_access_key_secret")
        return missing


def _find_config_files() -> list[Path]:
    """Find configuration files in standard locations.

    Returns:
        List of config file paths (in order of priority)
    """
    files = []

    cwd = Path.cwd()
    for name in ["config/default.toml", "config/local.toml"]:
        path = cwd / name
        if path.exists():
            files.append(path)

    env_config = os.environ.get(CONFIG_PATH_ENV)
    if env_config:
        path = Path(env_config)
        if path.exists():
            files.append(path)

    return files


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def _apply_env_overrides(
    config: dict[str, Any],
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables with the MIRROR_ prefix override config values.
    The first underscore-separated part that names a settings section
    selects it, the rest is the field name:

        MIRROR_UNTAPPD_ACCESS_TOKEN -> untappd.access_token
        MIRROR_STORAGE_BUCKET_NAME  -> storage.bucket_name
        MIRROR_NAME                 -> name

    Unknown names are ignored. Values stay strings; pydantic coerces them.

    Args:
        config: Configuration dictionary
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Modified configuration
    """
    environ = dict(os.environ) if environ is None else environ
    sections = {
        name: field.annotation
        for name, field in Settings.model_fields.items()
        if isinstance(field.annotation, type) and issubclass(field.annotation, BaseModel)
    }

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key == CONFIG_PATH_ENV:
            continue

        config_key = key[len(ENV_PREFIX) :].lower()
        section, _, field_name = config_key.partition("_")

        if section in sections and field_name in sections[section].model_fields:
            current = config.setdefault(section, {})
            if isinstance(current, dict):
                current[field_name] = value
        elif config_key in Settings.model_fields and config_key not in sections:
            config[config_key] = value

    return config


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from configuration files.

    Args:
        config_path: Optional explicit config file path

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If an explicit config path does not exist
        pydantic.ValidationError: If a value is invalid
    """
    config: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        files = [path]
    else:
        files = _find_config_files()

    for path in files:
        config = _merge_dicts(config, _load_toml(path))

    config = _apply_env_overrides(config)

    return Settings(**config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance (cached after first call)
    """
    return load_settings()


def reload_settings() -> Settings:
    """Reload settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
