"""Configuration: TOML loading and config models.

Usage:
    >>> from schema_sync.config import load_config, SyncConfig
"""

from schema_sync.config.loader import load_config
from schema_sync.config.models import (
    CompareSettings,
    LoggingSettings,
    OutputSettings,
    SyncConfig,
)

__all__ = [
    "load_config",
    "SyncConfig",
    "CompareSettings",
    "OutputSettings",
    "LoggingSettings",
]
