"""Timestamp helpers shared by services and repositories."""

from __future__ import annotations

from datetime import UTC, datetime

# Fixed-width so lexical order equals chronological order in the DB.
_STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def now_utc() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (for tree timestamps)."""
    return now_utc().isoformat()


def to_storage_ts(moment: datetime) -> str:
    """Render *moment* in the sortable storage format (UTC, microseconds)."""
    return moment.astimezone(UTC).strftime(_STORAGE_FORMAT)


def from_storage_ts(raw: str) -> datetime:
    """Parse a timestamp written by :func:`to_storage_ts`."""
    return datetime.strptime(raw, _STORAGE_FORMAT).replace(tzinfo=UTC)
