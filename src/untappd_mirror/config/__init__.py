"""
Configuration management for the Untappd mirror.

Configuration hierarchy:
1. Default values (built-in)
2. config/default.toml (project defaults)
3. config/local.toml (user overrides, gitignored)
4. $MIRROR_CONFIG_PATH
5. Environment variables (MIRROR_* prefix)
6. Command-line arguments

Example:
    >>> from untappd_mirror.config import get_settings
    >>>
    >>> settings = get_settings()
    >>> print(f"Bucket: {settings.storage.bucket_name}")

Configuration files use TOML format. See config/default.toml for all options.
"""

from untappd_mirror.config.settings import (
    LoggingSettings,
    PhotoSettings,
    PipelineSettings,
    Settings,
    StorageSettings,
    UntappdSettings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    "LoggingSettings",
    "PhotoSettings",
    "PipelineSettings",
    "Settings",
    "StorageSettings",
    "UntappdSettings",
    "get_settings",
    "load_settings",
    "reload_settings",
]
