"""
Shared test fixtures.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import config
from app.api.middleware import auth

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Every test gets its own empty record store, auth in development mode."""
    monkeypatch.setattr(config.storage, "data_dir", tmp_path / "data")
    auth.load_keys("")
    yield tmp_path / "data"
    auth.load_keys("")


@pytest.fixture
def now() -> datetime:
    return NOW


def iso(moment: datetime) -> str:
    return moment.isoformat()


def make_record(
    created_at: datetime,
    events: list[tuple[datetime, str]] | None = None,
    status: str | None = None,
    updated_at: datetime | None = None,
    record_id: str = "r1",
    supplier_id: str | None = "sup-1",
) -> dict:
    """Stored-form reservation with the given (at, status) event log."""
    events = events or []
    status = status or (events[-1][1] if events else "aguardando")
    last = events[-1][0] if events else created_at
    return {
        "id": record_id,
        "userName": "Family",
        "userId": "user-1",
        "childId": f"child-{record_id}",
        "schoolId": "school-1",
        "uniformId": "uniform-1",
        "supplierId": supplier_id,
        "suggestedSize": "M",
        "reservationYear": created_at.year,
        "status": status,
        "events": [
            {
                "type": "created" if i == 0 else ("cancelled" if s == "cancelada" else "status_changed"),
                "at": iso(at),
                "status": s,
                "actorRole": "system",
            }
            for i, (at, s) in enumerate(events)
        ],
        "value": 120.0,
        "version": max(0, len(events) - 1),
        "createdAt": iso(created_at),
        "updatedAt": iso(updated_at or last),
    }


def days_ago(n: float, base: datetime = NOW) -> datetime:
    return base - timedelta(days=n)


@pytest.fixture
def generated_reservations(now):
    """Synthetic reservations from the generator script."""
    from scripts.generate_reservations import generate_reservations
    return generate_reservations(count=200, days=90, seed=3, now=now)
