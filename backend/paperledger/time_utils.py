from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utcnow_iso() -> str:
    """'now' as the ISO-8601 'Z' string stored on ledger records."""
    return to_utc_z(utcnow())


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a date stamp off a stored ledger record as a UTC-naive datetime.

    Offsets and a trailing 'Z' are folded into UTC; naive stamps are taken
    as UTC already. Missing, blank or unparseable stamps give None, so a
    hand-edited record drops out of date windows instead of breaking them.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC. Milliseconds are kept so records
    created in the same second still sort by creation.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
