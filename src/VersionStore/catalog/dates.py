"""Timestamp encoding for catalog rows.

Rows store timestamps as ``YYYY-MM-DD HH:MM:SS`` text without a timezone
component. The catalog clock is UTC wall time; decoded values are naive
:class:`~datetime.datetime` objects. Only this one format is accepted.
"""

from __future__ import annotations

from datetime import datetime, timezone

DB_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DB_DATE_LENGTH = 19


def encode_timestamp(value: datetime) -> str:
    """Format ``value`` for storage; aware datetimes are converted to UTC first."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(DB_DATE_FORMAT)


def decode_timestamp(text: str) -> datetime:
    """Parse a stored timestamp.

    Raises:
        ValueError: If ``text`` is not exactly in ``DB_DATE_FORMAT``.
    """
    # strptime tolerates unpadded fields, the stored format never has them
    if not isinstance(text, str) or len(text) != _DB_DATE_LENGTH:
        raise ValueError(f"invalid catalog date: {text!r}")
    return datetime.strptime(text, DB_DATE_FORMAT)


def utc_now() -> datetime:
    """Current catalog clock reading, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
