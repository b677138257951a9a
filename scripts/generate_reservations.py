#!/usr/bin/env python3
"""
Synthetic reservation generator.

Produces reservations with realistic event logs for populating the
dashboard and for tests.  Every reservation starts at ``aguardando`` and
walks the operational flow with random gaps between stages:

    created → recebida         0–2 days
    recebida → em-processamento 1–5 days
    em-processamento → finalizada 1–6 days
    finalizada → entregue       0–4 days

A share of reservations is delivered, a share is cancelled at a random
stage, and the rest stop at a random work-in-progress status.

Usage:
    python scripts/generate_reservations.py --count 120 --days 180 --seed 7 \\
        --supplier-id sup-1 [--dry-run]
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import numpy as np

from app.models.status import EventType, ReservationStatus, WIP_STATUSES

STATUS_FLOW = (
    ReservationStatus.aguardando,
    ReservationStatus.recebida,
    ReservationStatus.em_processamento,
    ReservationStatus.finalizada,
    ReservationStatus.entregue,
)

# (low, high) days between consecutive stages, inclusive
STEP_DAYS = ((0, 2), (1, 5), (1, 6), (0, 4))

SIZES = ("PP", "P", "M", "G", "GG")


def _event(kind: EventType, at: datetime, status: ReservationStatus) -> dict:
    return {
        "type": kind.value,
        "at": at.isoformat(),
        "status": status.value,
        "actorRole": "system",
    }


def _walk(
    rng: np.random.Generator,
    created_at: datetime,
    final_status: ReservationStatus,
    cancel_at_stage: int | None = None,
) -> list[dict]:
    cursor = created_at
    events = [_event(EventType.created, cursor, ReservationStatus.aguardando)]
    if final_status == ReservationStatus.aguardando:
        return events

    for stage in range(1, len(STATUS_FLOW)):
        lo, hi = STEP_DAYS[stage - 1]
        cursor = cursor + timedelta(days=int(rng.integers(lo, hi + 1)))

        if cancel_at_stage is not None and stage == cancel_at_stage:
            events.append(_event(EventType.cancelled, cursor, ReservationStatus.cancelada))
            return events

        status = STATUS_FLOW[stage]
        events.append(_event(EventType.status_changed, cursor, status))
        if status == final_status:
            break

    return events


def generate_reservations(
    count: int = 80,
    days: int = 120,
    seed: int = 42,
    now: datetime | None = None,
    supplier_id: str | None = "sup-1",
    delivered_rate: float = 0.6,
    cancel_rate: float = 0.15,
) -> list[dict]:
    """Stored-form reservation documents with consistent event logs."""
    if delivered_rate < 0 or cancel_rate < 0 or delivered_rate + cancel_rate > 1:
        raise ValueError("delivered_rate + cancel_rate must lie in [0, 1]")

    rng = np.random.default_rng(seed)
    now = now or datetime.now(timezone.utc)
    records = []

    for i in range(count):
        created_at = now - timedelta(
            days=int(rng.integers(0, days + 1)),
            hours=int(rng.integers(0, 24)),
        )
        roll = rng.random()
        cancel_at = None
        if roll < delivered_rate:
            final = ReservationStatus.entregue
        elif roll < delivered_rate + cancel_rate:
            final = ReservationStatus.cancelada
            cancel_at = int(rng.integers(1, len(STATUS_FLOW)))
        else:
            final = WIP_STATUSES[int(rng.integers(0, len(WIP_STATUSES)))]

        events = _walk(rng, created_at, final, cancel_at)

        # Events that would land in the future have not happened yet
        events = [e for e in events if datetime.fromisoformat(e["at"]) <= now]
        status = ReservationStatus(events[-1]["status"])
        updated_at = datetime.fromisoformat(events[-1]["at"])

        records.append({
            "id": f"res{seed:04d}{i:05d}",
            "userName": f"Family {i}",
            "userId": f"user-{i % 17}",
            "childId": f"child-{seed}-{i}",
            "schoolId": f"school-{i % 3}",
            "uniformId": f"uniform-{i % 5}",
            "supplierId": supplier_id,
            "suggestedSize": SIZES[int(rng.integers(0, len(SIZES)))],
            "reservationYear": created_at.year,
            "status": status.value,
            "events": events,
            "value": float(rng.integers(80, 400)),
            "version": len(events) - 1,
            "createdAt": created_at.isoformat(),
            "updatedAt": updated_at.isoformat(),
        })

    return records


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic reservations with events.")
    parser.add_argument("--count", type=int, default=80)
    parser.add_argument("--days", type=int, default=120)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--supplier-id", default="sup-1")
    parser.add_argument("--delivered-rate", type=float, default=0.6)
    parser.add_argument("--cancel-rate", type=float, default=0.15)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    records = generate_reservations(
        count=max(1, args.count),
        days=min(365, max(7, args.days)),
        seed=args.seed,
        supplier_id=args.supplier_id,
        delivered_rate=args.delivered_rate,
        cancel_rate=args.cancel_rate,
    )

    by_status: dict[str, int] = {}
    for r in records:
        by_status[r["status"]] = by_status.get(r["status"], 0) + 1

    if not args.dry_run:
        from app.storage.reservation_store import replace_raw
        for r in records:
            replace_raw(r["id"], r)

    print(f"Generated {len(records)} reservations{' (dry-run)' if args.dry_run else ''}")
    for status, n in sorted(by_status.items()):
        print(f"    {status:<18} {n:>5}")


if __name__ == "__main__":
    main()
