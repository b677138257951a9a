"""
Event-log backfill for legacy reservations.

Records written before the event log existed carry only summary fields
(status, createdAt, updatedAt).  The backfill gives each of them a
best-effort two-point history:

  • a ``created`` event at createdAt with the record's status;
  • if the record moved on (status ≠ aguardando and updatedAt ≠ createdAt)
    a second event at updatedAt: ``cancelled`` for cancelada, otherwise
    ``status_changed``.

Records that already have events are left alone, so running the pass
twice changes nothing.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from app.core.timeline import coerce_datetime
from app.models.schemas import ReservationEvent
from app.models.status import EventType, ReservationStatus, normalize_status


def synthetic_event(kind: EventType, at: datetime, status: ReservationStatus) -> dict[str, Any]:
    """A system-authored event in its stored (wire) form."""
    event = ReservationEvent(type=kind, at=at, status=status, actor_role="system")
    return event.model_dump(mode="json", by_alias=True, exclude_none=True)


def needs_backfill(record: Mapping[str, Any]) -> bool:
    events = record.get("events")
    return not isinstance(events, list) or len(events) == 0


def synthesize_events(
    record: Mapping[str, Any],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Two-point (or one-point) event log reconstructed from summary fields."""
    status = normalize_status(record.get("status"))
    created_at = coerce_datetime(record.get("createdAt")) or now or datetime.now(timezone.utc)
    updated_at = coerce_datetime(record.get("updatedAt")) or created_at

    events = [synthetic_event(EventType.created, created_at, status)]

    if updated_at != created_at and status != ReservationStatus.aguardando:
        kind = EventType.cancelled if status == ReservationStatus.cancelada else EventType.status_changed
        events.append(synthetic_event(kind, updated_at, status))

    return events


def backfill_record(
    record: Mapping[str, Any],
    now: datetime | None = None,
) -> dict[str, Any] | None:
    """Copy of ``record`` with synthesized events, or None when it has events."""
    if not needs_backfill(record):
        return None
    repaired = dict(record)
    repaired["events"] = synthesize_events(record, now=now)
    return repaired
