"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def epoch_millis(moment: dt.datetime) -> int:
    """Return ``moment`` as integer milliseconds since the Unix epoch."""
    if moment.tzinfo is None:
        msg = "moment must be timezone-aware"
        raise ValueError(msg)
    return int(moment.timestamp() * 1000)


def isoformat_z(moment: dt.datetime) -> str:
    """Render an aware timestamp as ISO-8601 with millisecond precision and ``Z``."""
    utc = moment.astimezone(dt.UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
