"""
Reservation lifecycle: creation and status transitions.

Every reservation starts at ``aguardando`` with a single ``created``
event.  Each accepted status change appends exactly one event and bumps
the record's ``version``; the event log is never rewritten.

Transition rules:
  • the new status must be a current status value (legacy aliases and
    unknown strings are rejected, nothing is appended);
  • ``entregue`` and ``cancelada`` are terminal, nothing leaves them;
  • re-applying the current status is a no-op;
  • when the caller passes ``expected_version`` it must match the stored
    version, so concurrent writers cannot silently overwrite each other.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from app.core.size_recommendation import recommend_size
from app.models.schemas import (
    Reservation,
    ReservationCreateRequest,
    ReservationEvent,
)
from app.models.status import (
    EventType,
    ReservationStatus,
    is_terminal,
    parse_status,
)

logger = logging.getLogger(__name__)


class InvalidStatusError(ValueError):
    """The requested status is not part of the current vocabulary."""


class StatusTransitionError(ValueError):
    """The reservation cannot move to the requested status."""


class VersionConflictError(ValueError):
    """The reservation changed since the caller last read it."""


class MissingSizeError(ValueError):
    """Neither a suggested size nor measurements were supplied."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def event_type_for(status: ReservationStatus) -> EventType:
    return EventType.cancelled if status == ReservationStatus.cancelada else EventType.status_changed


def new_reservation(
    req: ReservationCreateRequest,
    user_id: str,
    actor_role: str,
    now: datetime | None = None,
) -> Reservation:
    """Build a fresh reservation at ``aguardando`` with its ``created`` event."""
    now = now or _utcnow()

    suggested = (req.suggested_size or "").strip()
    if not suggested:
        if req.measurements is None:
            raise MissingSizeError("A suggested size or measurements are required")
        suggested = recommend_size(req.measurements).size

    status = ReservationStatus.aguardando
    return Reservation(
        id=uuid.uuid4().hex[:24],
        user_name=req.user_name.strip(),
        user_id=user_id,
        child_id=req.child_id,
        school_id=req.school_id,
        uniform_id=req.uniform_id,
        supplier_id=req.supplier_id,
        measurements=req.measurements,
        suggested_size=suggested,
        reservation_year=now.year,
        status=status,
        events=[ReservationEvent(
            type=EventType.created,
            at=now,
            status=status,
            actor_role=actor_role,
            actor_user_id=user_id,
        )],
        value=req.value,
        version=0,
        created_at=now,
        updated_at=now,
    )


def apply_status_change(
    reservation: Reservation,
    raw_status: object,
    actor_role: str,
    actor_user_id: str | None = None,
    expected_version: int | None = None,
    now: datetime | None = None,
) -> tuple[Reservation, bool]:
    """
    Return ``(updated_reservation, changed)``.

    The input model is not mutated.  Raises InvalidStatusError,
    StatusTransitionError or VersionConflictError without touching the
    event log.
    """
    status = parse_status(raw_status)
    if status is None:
        raise InvalidStatusError(f"Unknown reservation status {raw_status!r}")

    if expected_version is not None and expected_version != reservation.version:
        raise VersionConflictError(
            f"Reservation {reservation.id} is at version {reservation.version}, "
            f"expected {expected_version}"
        )

    if status == reservation.status:
        return reservation, False

    if is_terminal(reservation.status):
        raise StatusTransitionError(
            f"Reservation {reservation.id} is already {reservation.status.value}"
        )

    now = now or _utcnow()
    event = ReservationEvent(
        type=event_type_for(status),
        at=now,
        status=status,
        actor_role=actor_role,
        actor_user_id=actor_user_id,
    )

    updated = reservation.model_copy(update={
        "status": status,
        "events": [*reservation.events, event],
        "version": reservation.version + 1,
        "updated_at": now,
    })

    logger.debug(
        "Reservation %s: %s → %s by %s",
        reservation.id, reservation.status.value, status.value, actor_role,
    )
    return updated, True
