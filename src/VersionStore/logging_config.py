"""
Structured Logging Utilities

Centralizes logging setup for the version store: a console handler for humans
and an optional JSONL file handler whose records carry the ``path`` and
``digest`` context attached via ``extra=``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from VersionStore.settings import LogFormat, StoreSettings

PACKAGE_LOGGER = "VersionStore"
_CONTEXT_FIELDS = ("path", "digest", "version_id")


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a logging record into a JSON line."""
        now = datetime.now(timezone.utc)
        log_obj = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_obj[key] = value
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def setup_logging(settings: Optional[StoreSettings] = None) -> logging.Logger:
    """Configure handlers on the package logger.

    Re-running replaces the handlers installed by a previous call.

    Args:
        settings: Store settings carrying level, format, and optional log file

    Returns:
        The configured ``VersionStore`` logger
    """
    settings = settings or StoreSettings()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, settings.log_level.value, logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_versionstore_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if settings.log_format is LogFormat.JSON:
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._versionstore_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(settings.log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(JSONFormatter())
        file_handler._versionstore_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    return logger


__all__ = ["JSONFormatter", "setup_logging"]
