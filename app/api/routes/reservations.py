"""
Reservation endpoints.

  POST  /api/v1/reservations              — create (aguardando + created event)
  GET   /api/v1/reservations              — list, scoped by caller role
  PATCH /api/v1/reservations/{id}/status  — append one status event
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from app.api.middleware.auth import Identity, require_identity, supplier_scope
from app.core.reservation_lifecycle import (
    InvalidStatusError,
    MissingSizeError,
    StatusTransitionError,
    VersionConflictError,
    apply_status_change,
    new_reservation,
)
from app.models.schemas import (
    ErrorResponse,
    Reservation,
    ReservationCreateRequest,
    StatusUpdateRequest,
)
from app.models.status import parse_status
from app.storage import reservation_store
from app.storage.reservation_store import (
    DuplicateReservationError,
    ReservationNotFoundError,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "",
    response_model=Reservation,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_reservation(
    req: ReservationCreateRequest,
    identity: Annotated[Identity, Depends(require_identity)],
):
    """Reserve a uniform for one child."""
    try:
        reservation = new_reservation(req, user_id=identity.user_id, actor_role=identity.role)
    except MissingSizeError as exc:
        raise HTTPException(400, str(exc)) from exc

    try:
        reservation_store.create_reservation(reservation)
    except DuplicateReservationError as exc:
        raise HTTPException(409, str(exc)) from exc
    except OSError as exc:
        logger.exception("Could not persist reservation %s", reservation.id)
        raise HTTPException(500, "Reservation could not be saved") from exc

    logger.info(
        "Reservation created: id=%s, child=%s, size=%s",
        reservation.id, reservation.child_id, reservation.suggested_size,
    )
    return reservation


@router.get("", response_model=list[Reservation])
async def list_reservations(identity: Annotated[Identity, Depends(require_identity)]):
    """Admins see everything, suppliers their own, families their own."""
    if identity.is_admin:
        return reservation_store.list_reservations()
    if identity.is_supplier:
        supplier_id = supplier_scope(identity)
        if supplier_id is None:
            return []
        return reservation_store.list_reservations(supplier_id=supplier_id)
    return reservation_store.list_reservations(user_id=identity.user_id)


@router.patch(
    "/{reservation_id}/status",
    response_model=Reservation,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_status(
    reservation_id: str,
    req: StatusUpdateRequest,
    identity: Annotated[Identity, Depends(require_identity)],
):
    """Move a reservation to a new status, recording who did it."""
    if not (identity.is_admin or identity.is_supplier):
        raise HTTPException(403, "Forbidden")

    if parse_status(req.status) is None:
        raise HTTPException(400, f"Invalid reservation status '{req.status}'")

    scope = None
    if identity.is_supplier:
        scope = supplier_scope(identity)
        if scope is None:
            raise HTTPException(403, "Supplier account is not linked to a supplier")

    def mutate(current: Reservation):
        return apply_status_change(
            current,
            req.status,
            actor_role=identity.role,
            actor_user_id=identity.user_id,
            expected_version=req.expected_version,
        )

    try:
        updated = reservation_store.update_reservation(reservation_id, mutate, supplier_id=scope)
    except ReservationNotFoundError as exc:
        raise HTTPException(404, f"Reservation '{reservation_id}' not found") from exc
    except InvalidStatusError as exc:
        raise HTTPException(400, str(exc)) from exc
    except (StatusTransitionError, VersionConflictError) as exc:
        raise HTTPException(409, str(exc)) from exc
    except OSError as exc:
        logger.exception("Status update failed for %s", reservation_id)
        raise HTTPException(500, "Reservation could not be updated") from exc

    logger.info("Reservation %s status → %s (%s)", reservation_id, updated.status.value, identity.role)
    return updated
