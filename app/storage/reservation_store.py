"""
Local filesystem storage for reservation records.

One JSON document per reservation, stored under its wire names
(``createdAt``, ``events[].at`` ...).  Writes go to a temporary file that
is atomically renamed over the record, and every read-modify-write runs
under a process-wide lock, so a status change is a single atomic update
of one record.

In production, replace with a document database.  The interface is kept
minimal so swapping storage backends is straightforward.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from app.config import config
from app.core.analytics import AnalyticsWindow, has_activity_in_window
from app.models.schemas import Reservation

logger = logging.getLogger(__name__)

_lock = threading.RLock()
_VALID_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ReservationNotFoundError(LookupError):
    pass


class DuplicateReservationError(ValueError):
    """The child already has a reservation for that year."""


def _reservation_dir() -> Path:
    d = config.storage.reservation_dir
    d.mkdir(parents=True, exist_ok=True)
    return d


def _path(reservation_id: str) -> Path | None:
    if not _VALID_ID.match(reservation_id):
        return None
    return _reservation_dir() / f"{reservation_id}.json"


def _write_atomic(dest: Path, data: dict[str, Any]) -> None:
    fd, tmp = tempfile.mkstemp(dir=dest.parent, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2, default=str)
        os.replace(tmp, dest)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _to_record(reservation: Reservation) -> dict[str, Any]:
    return reservation.model_dump(mode="json", by_alias=True)


# ── Raw access ─────────────────────────────────────────────────────────

def load_raw(reservation_id: str) -> dict[str, Any] | None:
    """Stored document as-is, or None if missing / unreadable."""
    path = _path(reservation_id)
    if path is None or not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        logger.warning("Unreadable reservation record %s", path)
        return None


def iter_raw(
    supplier_id: str | None = None,
    user_id: str | None = None,
) -> Iterator[dict[str, Any]]:
    """All stored documents, optionally restricted to one supplier / user."""
    for path in sorted(_reservation_dir().glob("*.json")):
        try:
            record = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError):
            logger.warning("Skipping unreadable reservation record %s", path)
            continue
        if not isinstance(record, dict):
            continue
        if supplier_id is not None and record.get("supplierId") != supplier_id:
            continue
        if user_id is not None and record.get("userId") != user_id:
            continue
        yield record


def replace_raw(reservation_id: str, record: dict[str, Any]) -> Path:
    """Overwrite a stored document (maintenance passes only)."""
    path = _path(reservation_id)
    if path is None:
        raise ReservationNotFoundError(reservation_id)
    with _lock:
        _write_atomic(path, record)
    return path


# ── Typed access ───────────────────────────────────────────────────────

def _parse(record: dict[str, Any]) -> Reservation | None:
    try:
        return Reservation.model_validate(record)
    except ValidationError:
        logger.warning("Invalid reservation record %s", record.get("id"))
        return None


def get_reservation(reservation_id: str) -> Reservation | None:
    record = load_raw(reservation_id)
    return _parse(record) if record is not None else None


def list_reservations(
    supplier_id: str | None = None,
    user_id: str | None = None,
) -> list[Reservation]:
    """Valid reservations, newest first."""
    parsed = (_parse(r) for r in iter_raw(supplier_id=supplier_id, user_id=user_id))
    results = [r for r in parsed if r is not None]
    results.sort(key=lambda r: r.created_at, reverse=True)
    return results


def create_reservation(reservation: Reservation) -> Reservation:
    """Persist a new reservation; one per child and year."""
    path = _path(reservation.id)
    if path is None:
        raise ValueError(f"Invalid reservation id {reservation.id!r}")

    with _lock:
        for record in iter_raw():
            if (
                record.get("childId") == reservation.child_id
                and record.get("reservationYear") == reservation.reservation_year
            ):
                raise DuplicateReservationError(
                    f"Child {reservation.child_id} already has a reservation "
                    f"for {reservation.reservation_year}"
                )
        _write_atomic(path, _to_record(reservation))

    logger.info("Saved reservation %s", reservation.id)
    return reservation


def update_reservation(
    reservation_id: str,
    mutate: Callable[[Reservation], tuple[Reservation, bool]],
    supplier_id: str | None = None,
) -> Reservation:
    """
    Atomic read-modify-write of one reservation.

    ``mutate`` returns ``(new_reservation, changed)``; nothing is written
    when ``changed`` is False.  With ``supplier_id`` set, reservations of
    other suppliers are reported as not found.
    """
    with _lock:
        current = get_reservation(reservation_id)
        if current is None:
            raise ReservationNotFoundError(reservation_id)
        if supplier_id is not None and current.supplier_id != supplier_id:
            raise ReservationNotFoundError(reservation_id)

        updated, changed = mutate(current)
        if changed:
            _write_atomic(_path(reservation_id), _to_record(updated))
        return updated


# ── Analytics query ────────────────────────────────────────────────────

def find_for_analytics(
    window: AnalyticsWindow,
    supplier_id: str | None = None,
) -> list[dict[str, Any]]:
    """Raw documents with any activity inside ``window``."""
    return [r for r in iter_raw(supplier_id=supplier_id) if has_activity_in_window(r, window)]
