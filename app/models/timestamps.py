"""
Timestamp parsing shared by the typed models and the analytics path.

Stored records span several writers: some timestamps end in ``Z``, some
carry an offset, legacy ones carry none.  Everything is read as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def as_utc(moment: datetime) -> datetime:
    """Offset-free values are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def coerce_datetime(value: Any) -> datetime | None:
    """Parse a stored timestamp into an aware UTC datetime, or None."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None
