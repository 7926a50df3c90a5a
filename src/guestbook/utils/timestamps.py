"""
Clock helpers. Entries are ordered by epoch seconds (float); ISO strings
are only for display and for the JSONL log's audit field.
"""

from __future__ import annotations
import datetime as _dt
import time


def utc_now() -> _dt.datetime:
    return _dt.datetime.now(tz=_dt.timezone.utc)


def now_iso() -> str:
    """Current UTC time as ISO-8601 with a Z suffix."""
    return utc_now().isoformat().replace("+00:00", "Z")


def epoch_seconds() -> float:
    """Default clock for entry ordering."""
    return time.time()


def to_iso(seconds: float) -> str:
    return (
        _dt.datetime.fromtimestamp(seconds, tz=_dt.timezone.utc)
        .isoformat()
        .replace("+00:00", "Z")
    )
