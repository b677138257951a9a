"""
Operational analytics over the reservation pipeline.

Every in-scope reservation is first turned into a timeline (see
``app.core.timeline``); the views below are then pure aggregations over
those timelines.

Views
─────
• Cumulative flow (CFD): for every bucket, how many reservations sat in
  each status at the end of that bucket.  Reservations created after the
  bucket end are left out of that bucket.

• Throughput: first ``entregue`` and first ``cancelada`` point inside the
  window, counted per bucket.

• Cycle time: (deliveredAt − createdAt) in days, floored at 0, grouped
  by delivery bucket; count, median and p90 per bucket.  Quantiles use
  linear interpolation between order statistics, position (n − 1)·q,
  which is numpy's default ``linear`` method.

• Aging WIP: snapshot at the end of the window.  For each reservation in
  a non-terminal status, the whole days since it entered that status,
  bucketed as

        0-2 │ 3-7 │ 8-14 │ 15+

  plus a count of open reservations per status.

Buckets are UTC calendar days (``YYYY-MM-DD``) or, for short ranges, UTC
hours (``YYYY-MM-DDTHH:00Z``).
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import numpy as np
from pydantic import BaseModel

from app.config import config
from app.core.timeline import (
    ReservationTimeline,
    build_timeline,
    coerce_datetime,
    entered_status_at,
    first_reached,
    status_at,
)
from app.models.schemas import (
    AgingBucketCount,
    BucketUnit,
    CfdPoint,
    CycleTimePoint,
    DashboardAnalytics,
    StatusCount,
    ThroughputPoint,
)
from app.models.status import (
    OPERATIONS_STATUSES,
    WIP_STATUSES,
    ReservationStatus,
    is_terminal,
)

logger = logging.getLogger(__name__)

acfg = config.analytics

DAY = timedelta(days=1)
HOUR = timedelta(hours=1)

# (label, min_days, max_days) – inclusive on both ends
AGING_BUCKETS: tuple[tuple[str, int, float], ...] = (
    ("0-2", 0, 2),
    ("3-7", 3, 7),
    ("8-14", 8, 14),
    ("15+", 15, math.inf),
)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class WindowError(ValueError):
    """The requested analytics range cannot be evaluated."""


# ── Calendar helpers (UTC) ─────────────────────────────────────────────

def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999000)


def start_of_hour(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


def end_of_hour(moment: datetime) -> datetime:
    return moment.replace(minute=59, second=59, microsecond=999000)


def day_key(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")


def hour_key(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:00Z")


# ── Query parameter parsing ────────────────────────────────────────────

def _parse_positive(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed) or parsed <= 0:
        return None
    return int(math.floor(parsed))


def parse_days(value: Any) -> int:
    """Window length in days, clamped to [min_days, max_days]."""
    parsed = _parse_positive(value)
    if parsed is None:
        return acfg.default_days
    return min(acfg.max_days, max(acfg.min_days, parsed))


def parse_hours(value: Any) -> int:
    """Window length in hours, clamped to [min_hours, max_hours]."""
    parsed = _parse_positive(value)
    if parsed is None:
        return acfg.default_hours
    return min(acfg.max_hours, max(acfg.min_hours, parsed))


def parse_date_param(value: str | None) -> datetime | None:
    """YYYY-MM-DD (midnight UTC) or an ISO timestamp; None when unparseable."""
    if not value:
        return None
    text = value.strip()
    if _DATE_ONLY.match(text):
        text = f"{text}T00:00:00+00:00"
    return coerce_datetime(text)


# ── Window ─────────────────────────────────────────────────────────────

@dataclass
class AnalyticsWindow:
    start: datetime
    end: datetime  # also the "now" of the aging snapshot
    bucket_unit: BucketUnit
    range_value: int
    buckets: list[datetime] = field(default_factory=list)

    @property
    def range_unit(self) -> str:
        return "hours" if self.bucket_unit == BucketUnit.hour else "days"

    @property
    def range_days(self) -> int:
        if self.bucket_unit == BucketUnit.hour:
            return max(1, math.ceil(self.range_value / 24))
        return self.range_value

    def key(self, moment: datetime) -> str:
        return hour_key(moment) if self.bucket_unit == BucketUnit.hour else day_key(moment)

    def bucket_end(self, bucket: datetime) -> datetime:
        return end_of_hour(bucket) if self.bucket_unit == BucketUnit.hour else end_of_day(bucket)


def resolve_window(
    days: Any = None,
    hours: Any = None,
    bucket: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    now: datetime | None = None,
) -> AnalyticsWindow:
    """
    Turn dashboard query parameters into a concrete UTC window.

    Hour buckets are used when ``bucket == "hour"``, when ``hours`` is
    given, or when ``from`` / ``to`` carry a time part.  Otherwise the
    range is whole days: ``[to or now − days, to or now]``.
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    parsed_from = parse_date_param(date_from)
    parsed_to = parse_date_param(date_to)

    has_time = any(isinstance(p, str) and "T" in p for p in (date_from, date_to))
    hourly = bucket == BucketUnit.hour.value or hours is not None or has_time

    if hourly:
        end = parsed_to or now
        start = parsed_from or end - parse_hours(hours) * HOUR
        if start > end:
            raise WindowError("'from' must not be after 'to'")
        start = max(start, end - acfg.max_hours * HOUR)
        range_value = max(1, math.ceil((end - start) / HOUR))
        buckets = _walk(start_of_hour(start), start_of_hour(end), HOUR)
        unit = BucketUnit.hour
    else:
        end = end_of_day(parsed_to) if parsed_to else now
        start = start_of_day(parsed_from) if parsed_from else end - parse_days(days) * DAY
        if start > end:
            raise WindowError("'from' must not be after 'to'")
        start = max(start, end - acfg.max_days * DAY)
        span = (end_of_day(end) - start_of_day(start)) / DAY
        range_value = min(acfg.max_days, max(1, math.ceil(span)))
        buckets = _walk(start_of_day(start), start_of_day(end), DAY)
        unit = BucketUnit.day

    return AnalyticsWindow(
        start=start,
        end=end,
        bucket_unit=unit,
        range_value=range_value,
        buckets=buckets,
    )


def _walk(first: datetime, last: datetime, step: timedelta) -> list[datetime]:
    out = []
    cursor = first
    while cursor <= last:
        out.append(cursor)
        cursor += step
    return out


def has_activity_in_window(record: Mapping[str, Any], window: AnalyticsWindow) -> bool:
    """
    Created by the end of the window and touched on/after its start.

    "Touched" means createdAt, updatedAt or any event timestamp.
    """
    created_at = coerce_datetime(record.get("createdAt"))
    if created_at is not None and created_at > window.end:
        return False

    stamps = [created_at, coerce_datetime(record.get("updatedAt"))]
    events = record.get("events")
    if isinstance(events, list):
        stamps.extend(coerce_datetime(e.get("at")) for e in events if isinstance(e, Mapping))

    return any(s is not None and s >= window.start for s in stamps)


# ── Statistics ─────────────────────────────────────────────────────────

def quantile(values: Sequence[float], q: float) -> float:
    """Linear-interpolation quantile; 0 for no data, the value itself for n=1."""
    if len(values) == 0:
        return 0.0
    return float(np.quantile(np.asarray(values, dtype=float), q))


def round_half_up(value: float, places: int = 1) -> float:
    """Decimal rounding with halves going up (0.25 -> 0.3), unlike round()."""
    step = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(step, rounding=ROUND_HALF_UP))


def aging_bucket(age_days: int) -> str:
    for label, lo, hi in AGING_BUCKETS:
        if lo <= age_days <= hi:
            return label
    return AGING_BUCKETS[-1][0]


# ── Views ──────────────────────────────────────────────────────────────

def cumulative_flow(
    timelines: Sequence[ReservationTimeline],
    window: AnalyticsWindow,
) -> list[CfdPoint]:
    points = []
    for bucket in window.buckets:
        moment = window.bucket_end(bucket)
        counts = {s: 0 for s in OPERATIONS_STATUSES}

        for tl in timelines:
            if tl.created_at > moment:
                continue
            s = status_at(tl.points, moment)
            if s is None:
                continue
            counts[s] += 1

        points.append(CfdPoint.model_validate(
            {"date": window.key(bucket), **{s.value: n for s, n in counts.items()}}
        ))
    return points


def throughput_and_cycle_time(
    timelines: Sequence[ReservationTimeline],
    window: AnalyticsWindow,
) -> tuple[list[ThroughputPoint], list[CycleTimePoint]]:
    delivered: dict[str, int] = {}
    cancelled: dict[str, int] = {}
    cycle_days: dict[str, list[float]] = {}

    for tl in timelines:
        delivered_at = first_reached(tl.points, ReservationStatus.entregue, since=window.start)
        cancelled_at = first_reached(tl.points, ReservationStatus.cancelada, since=window.start)

        if delivered_at is not None:
            key = window.key(delivered_at)
            delivered[key] = delivered.get(key, 0) + 1
            elapsed = (delivered_at - tl.created_at) / DAY
            cycle_days.setdefault(key, []).append(max(0.0, elapsed))

        if cancelled_at is not None:
            key = window.key(cancelled_at)
            cancelled[key] = cancelled.get(key, 0) + 1

    throughput = []
    cycle_time = []
    for bucket in window.buckets:
        key = window.key(bucket)
        values = cycle_days.get(key, [])
        throughput.append(ThroughputPoint(
            date=key,
            entregues=delivered.get(key, 0),
            canceladas=cancelled.get(key, 0),
        ))
        cycle_time.append(CycleTimePoint(
            date=key,
            count=len(values),
            median_days=round_half_up(quantile(values, 0.5)),
            p90_days=round_half_up(quantile(values, 0.9)),
        ))
    return throughput, cycle_time


def aging_wip(
    timelines: Sequence[ReservationTimeline],
    now: datetime,
) -> tuple[list[AgingBucketCount], list[StatusCount]]:
    totals = {label: 0 for label, _, _ in AGING_BUCKETS}
    by_status = {s: 0 for s in WIP_STATUSES}

    for tl in timelines:
        current = status_at(tl.points, now)
        if current is None or is_terminal(current):
            continue

        entered_at = entered_status_at(tl, current, until=now)
        age_days = max(0, math.floor((now - entered_at) / DAY))
        totals[aging_bucket(age_days)] += 1
        by_status[current] += 1

    return (
        [AgingBucketCount(bucket=label, count=totals[label]) for label, _, _ in AGING_BUCKETS],
        [StatusCount(status=s, count=by_status[s]) for s in WIP_STATUSES],
    )


# ── Entry point ────────────────────────────────────────────────────────

def compute_dashboard(
    reservations: Iterable[Mapping[str, Any] | BaseModel],
    window: AnalyticsWindow | None,
    charts_enabled: bool,
) -> DashboardAnalytics:
    """
    Build every dashboard view for an already-scoped set of reservations.

    ``charts_enabled`` is checked first: when off, nothing is computed and
    only the flag is returned.
    """
    if not charts_enabled:
        return DashboardAnalytics(dashboard_charts_enabled=False)
    if window is None:
        raise WindowError("An analytics window is required")

    timelines = [build_timeline(r, now=window.end) for r in reservations]

    cfd = cumulative_flow(timelines, window)
    throughput, cycle_time = throughput_and_cycle_time(timelines, window)
    aging, stale = aging_wip(timelines, window.end)

    logger.info(
        "Dashboard computed: %d reservations, %d %s buckets",
        len(timelines), len(window.buckets), window.bucket_unit.value,
    )

    return DashboardAnalytics(
        dashboard_charts_enabled=True,
        range_unit=window.range_unit,
        range_value=window.range_value,
        bucket_unit=window.bucket_unit,
        range_days=window.range_days,
        cfd=cfd,
        throughput=throughput,
        cycle_time=cycle_time,
        aging_wip=aging,
        stale_by_status=stale,
    )
