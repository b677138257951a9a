"""
Reservation timeline reconstruction.

A reservation stores a sparse, append-only event log.  For analytics we
need "what was the status of this reservation at instant t" for many t,
so each record is turned into an ordered list of (at, status) points:

  1. Every event status goes through the legacy-status mapping.
  2. Events with an unparseable timestamp are dropped.
  3. Events are sorted by time (stable, so same-instant events keep
     their log order).
  4. No events at all → a single point at createdAt with the record's
     current status.
  5. First event later than createdAt → a baseline point at createdAt
     with the record's current status is prepended.

The result is never empty and always starts at or before createdAt.

Records are read as raw mappings (wire names, e.g. ``createdAt``) so that
messy historical data never has to pass strict model validation first.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from app.models.status import ReservationStatus, normalize_status
from app.models.timestamps import coerce_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelinePoint:
    at: datetime
    status: ReservationStatus


@dataclass
class ReservationTimeline:
    created_at: datetime
    updated_at: datetime
    current_status: ReservationStatus
    points: list[TimelinePoint]


# ── Field access ───────────────────────────────────────────────────────

def as_record(reservation: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    """Accept either a raw stored record or a pydantic Reservation."""
    if isinstance(reservation, BaseModel):
        return reservation.model_dump(by_alias=True)
    return reservation


def _field(record: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in record:
        return record[camel]
    return record.get(snake)


# ── Construction ───────────────────────────────────────────────────────

def build_timeline(
    reservation: Mapping[str, Any] | BaseModel,
    now: datetime | None = None,
) -> ReservationTimeline:
    """Reconstruct the ordered, gap-filled status history of one reservation."""
    record = as_record(reservation)
    now = now or datetime.now(timezone.utc)

    created_at = coerce_datetime(_field(record, "createdAt", "created_at")) or now
    updated_at = coerce_datetime(_field(record, "updatedAt", "updated_at")) or created_at
    fallback_status = normalize_status(record.get("status"))

    raw_events = record.get("events")
    if not isinstance(raw_events, Sequence) or isinstance(raw_events, (str, bytes)):
        raw_events = []

    points: list[TimelinePoint] = []
    for raw in raw_events:
        if not isinstance(raw, Mapping):
            continue
        at = coerce_datetime(raw.get("at"))
        if at is None:
            logger.debug("Dropping event with unparseable timestamp on %s", record.get("id"))
            continue
        status = raw.get("status")
        points.append(TimelinePoint(
            at=at,
            status=normalize_status(fallback_status if status is None else status),
        ))

    points.sort(key=lambda p: p.at)

    if not points:
        points.append(TimelinePoint(at=created_at, status=fallback_status))
    elif points[0].at > created_at:
        points.insert(0, TimelinePoint(at=created_at, status=fallback_status))

    return ReservationTimeline(
        created_at=created_at,
        updated_at=updated_at,
        current_status=fallback_status,
        points=points,
    )


# ── Queries ────────────────────────────────────────────────────────────

def status_at(points: Sequence[TimelinePoint], moment: datetime) -> ReservationStatus | None:
    """
    Status of the last point with ``at <= moment``.

    An event exactly at ``moment`` counts as applied.  Returns None when
    ``moment`` precedes every point (the reservation did not exist yet).
    """
    last: ReservationStatus | None = None
    for p in points:
        if p.at <= moment:
            last = p.status
        else:
            break
    return last


def entered_status_at(
    timeline: ReservationTimeline,
    status: ReservationStatus,
    until: datetime | None = None,
) -> datetime:
    """When the reservation most recently entered ``status`` (createdAt if never)."""
    for p in reversed(timeline.points):
        if until is not None and p.at > until:
            continue
        if p.status == status:
            return p.at
    return timeline.created_at


def first_reached(
    points: Sequence[TimelinePoint],
    status: ReservationStatus,
    since: datetime | None = None,
) -> datetime | None:
    """Timestamp of the first point with ``status`` at or after ``since``."""
    for p in points:
        if since is not None and p.at < since:
            continue
        if p.status == status:
            return p.at
    return None
