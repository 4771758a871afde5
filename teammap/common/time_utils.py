"""UTC-focused helpers for run metadata."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def utc_timestamp_z() -> str:
    """ISO-8601 timestamp with a ``Z`` suffix, as browsers emit it."""
    return utc_timestamp_iso().replace("+00:00", "Z")
