"""Configuration loading from schema-sync.toml."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from schema_sync.config.models import SyncConfig

DEFAULT_CONFIG_FILE = "schema-sync.toml"


def load_config(config_path: Path | None = None) -> SyncConfig:
    """Load schema-sync configuration from a TOML file.

    Args:
        config_path: Path to the config file.  When omitted,
            ``schema-sync.toml`` in the current directory is used if it
            exists, and built-in defaults otherwise.

    Returns:
        SyncConfig with every section filled in

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE
        if not config_path.exists():
            return SyncConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    unknown = sorted(set(data) - set(SyncConfig.model_fields))
    if unknown:
        raise ValueError(f"Unknown config section(s) in {config_path}: {', '.join(unknown)}")

    try:
        return SyncConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid config in {config_path}: {e}") from e
