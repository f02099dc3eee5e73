"""
Configuration domain package.

This package contains the domain models for configuration management.
"""

from .app_config import AppConfig
from .device_config import DeviceConfig
from .sync_settings import RevisionFetchPolicy, SyncSettings, parse_duration

__all__ = [
    "AppConfig",
    "DeviceConfig",
    "RevisionFetchPolicy",
    "SyncSettings",
    "parse_duration",
]
