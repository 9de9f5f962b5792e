"""Store configuration.

Settings come from keyword arguments or ``VERSIONSTORE_*`` environment
variables, e.g. ``VERSIONSTORE_ROOT=/data/versions VERSIONSTORE_COMPRESS=1``.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Console log formats."""

    CONSOLE = "console"
    JSON = "json"


class StoreSettings(BaseSettings):
    """Configuration shared, read-only, by every component of an open store."""

    model_config = SettingsConfigDict(
        env_prefix="VERSIONSTORE_",
        case_sensitive=False,
        extra="ignore",
    )

    root: Path = Field(Path("versions"), description="Store root directory (blobs + catalog)")
    compress: bool = Field(False, description="Gzip blob content on write")
    wal_mode: bool = Field(True, description="Open the SQLite catalog in WAL journal mode")
    default_limit: int = Field(50, description="Result limit used when callers omit one", ge=1)
    log_level: LogLevel = Field(LogLevel.INFO, description="Root logging level")
    log_format: LogFormat = Field(LogFormat.CONSOLE, description="Pretty console or structured JSON")
    log_file: Optional[Path] = Field(None, description="Optional JSONL log file")

    @field_validator("root", mode="before")
    @classmethod
    def default_root(cls, v: Any) -> Any:
        """Fall back to ``versions`` for an empty root and expand user home."""
        if v is None or v == "":
            return Path("versions")
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v

    @field_validator("log_file", mode="before")
    @classmethod
    def expand_log_file(cls, v: Any) -> Any:
        """Expand user home; an empty value disables file logging."""
        if v is None or v == "":
            return None
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v
