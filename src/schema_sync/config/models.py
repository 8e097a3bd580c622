"""Pydantic models for schema-sync configuration."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Configuration Models
# ============================================================================


class CompareSettings(BaseModel):
    """[compare] section of schema-sync.toml."""

    detect_renames: bool = True
    apply_renames: bool = False


class OutputSettings(BaseModel):
    """[output] section of schema-sync.toml."""

    format: Literal["text", "json"] = "text"
    show_sql: bool = True


class LoggingSettings(BaseModel):
    """[logging] section of schema-sync.toml."""

    level: str = "WARNING"

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level


class SyncConfig(BaseModel):
    """Complete configuration from schema-sync.toml."""

    compare: CompareSettings = Field(default_factory=CompareSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
