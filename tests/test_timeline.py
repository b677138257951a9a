"""
Tests for reservation timeline reconstruction.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.timeline import (
    TimelinePoint,
    build_timeline,
    coerce_datetime,
    entered_status_at,
    first_reached,
    status_at,
)
from app.models.schemas import Reservation
from app.models.status import ReservationStatus, normalize_status

from conftest import NOW, days_ago, make_record

S = ReservationStatus


class TestNormalizeStatus:

    @pytest.mark.parametrize("raw, expected", [
        ("aguardando", S.aguardando),
        ("em-processamento", S.em_processamento),
        ("em-producao", S.em_processamento),
        ("enviado", S.entregue),
        ("cancelada", S.cancelada),
        ("shipped", S.aguardando),
        (None, S.aguardando),
        (42, S.aguardando),
    ])
    def test_mapping(self, raw, expected):
        assert normalize_status(raw) == expected


class TestCoerceDatetime:

    def test_z_suffix(self):
        assert coerce_datetime("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        parsed = coerce_datetime("2024-05-01T10:00:00-03:00")
        assert parsed == datetime(2024, 5, 1, 13, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert coerce_datetime(datetime(2024, 5, 1)).tzinfo is not None

    @pytest.mark.parametrize("raw", ["not a date", "", None, 12345, {}])
    def test_garbage(self, raw):
        assert coerce_datetime(raw) is None


class TestBuildTimeline:

    def test_no_events_synthesizes_single_point(self):
        record = make_record(days_ago(5), status="em-producao")
        tl = build_timeline(record, now=NOW)
        assert tl.points == [TimelinePoint(at=days_ago(5), status=S.em_processamento)]

    def test_missing_events_key(self):
        record = make_record(days_ago(5), status="recebida")
        del record["events"]
        tl = build_timeline(record, now=NOW)
        assert len(tl.points) == 1
        assert tl.points[0].status == S.recebida

    def test_baseline_prepended_when_log_starts_late(self):
        created = days_ago(10)
        record = make_record(created, events=[(days_ago(8), "recebida")])
        tl = build_timeline(record, now=NOW)
        assert tl.points[0] == TimelinePoint(at=created, status=S.recebida)
        assert tl.points[1].at == days_ago(8)

    def test_no_baseline_when_log_starts_at_creation(self):
        created = days_ago(10)
        record = make_record(created, events=[(created, "aguardando"), (days_ago(8), "recebida")])
        tl = build_timeline(record, now=NOW)
        assert len(tl.points) == 2

    def test_events_sorted_by_time(self):
        created = days_ago(10)
        record = make_record(created, events=[
            (days_ago(2), "finalizada"),
            (created, "aguardando"),
            (days_ago(6), "recebida"),
        ])
        tl = build_timeline(record, now=NOW)
        assert [p.status for p in tl.points] == [S.aguardando, S.recebida, S.finalizada]

    def test_legacy_statuses_in_events(self):
        created = days_ago(10)
        record = make_record(created, events=[(created, "aguardando"), (days_ago(3), "enviado")])
        tl = build_timeline(record, now=NOW)
        assert tl.points[-1].status == S.entregue

    def test_unparseable_events_are_dropped(self):
        created = days_ago(10)
        record = make_record(created, events=[(created, "aguardando"), (days_ago(3), "recebida")])
        record["events"].append({"type": "status_changed", "at": "garbage", "status": "entregue"})
        record["events"].append({"type": "status_changed", "status": "cancelada"})
        tl = build_timeline(record, now=NOW)
        assert [p.status for p in tl.points] == [S.aguardando, S.recebida]

    def test_all_events_unparseable_falls_back_to_creation(self):
        record = make_record(days_ago(4), status="recebida")
        record["events"] = [{"type": "created", "at": "??", "status": "aguardando"}]
        tl = build_timeline(record, now=NOW)
        assert tl.points == [TimelinePoint(at=days_ago(4), status=S.recebida)]

    def test_event_without_status_uses_record_status(self):
        created = days_ago(4)
        record = make_record(created, status="finalizada")
        record["events"] = [{"type": "created", "at": created.isoformat()}]
        tl = build_timeline(record, now=NOW)
        assert tl.points[0].status == S.finalizada

    def test_unparseable_created_at_falls_back_to_now(self):
        record = make_record(days_ago(4))
        record["createdAt"] = "broken"
        tl = build_timeline(record, now=NOW)
        assert tl.created_at == NOW

    def test_accepts_reservation_model(self):
        record = make_record(days_ago(4), events=[(days_ago(4), "aguardando"), (days_ago(1), "recebida")])
        tl = build_timeline(Reservation.model_validate(record), now=NOW)
        assert [p.status for p in tl.points] == [S.aguardando, S.recebida]

    @pytest.mark.parametrize("events", [
        [],
        [(days_ago(9), "recebida")],
        [(days_ago(12), "aguardando"), (days_ago(1), "entregue")],
        [(days_ago(3), "cancelada"), (days_ago(7), "recebida")],
    ])
    def test_never_empty_and_starts_by_creation(self, events):
        created = days_ago(10)
        tl = build_timeline(make_record(created, events=events), now=NOW)
        assert tl.points
        assert tl.points[0].at <= tl.created_at


class TestStatusAt:

    @pytest.fixture
    def points(self):
        return [
            TimelinePoint(at=days_ago(10), status=S.aguardando),
            TimelinePoint(at=days_ago(6), status=S.recebida),
            TimelinePoint(at=days_ago(2), status=S.finalizada),
        ]

    def test_before_first_point(self, points):
        assert status_at(points, days_ago(11)) is None

    def test_exact_timestamp_counts_as_applied(self, points):
        assert status_at(points, days_ago(6)) == S.recebida

    def test_between_points(self, points):
        assert status_at(points, days_ago(4)) == S.recebida

    def test_after_last_point(self, points):
        assert status_at(points, NOW + timedelta(days=30)) == S.finalizada

    def test_same_instant_events_last_wins(self):
        at = days_ago(3)
        points = [TimelinePoint(at=at, status=S.recebida), TimelinePoint(at=at, status=S.cancelada)]
        assert status_at(points, at) == S.cancelada

    def test_empty(self):
        assert status_at([], NOW) is None


class TestQueries:

    def test_entered_status_at_most_recent_match(self):
        created = days_ago(10)
        record = make_record(created, events=[
            (created, "aguardando"),
            (days_ago(8), "recebida"),
            (days_ago(6), "aguardando"),
        ])
        tl = build_timeline(record, now=NOW)
        assert entered_status_at(tl, S.aguardando) == days_ago(6)

    def test_entered_status_at_falls_back_to_creation(self):
        tl = build_timeline(make_record(days_ago(10), events=[(days_ago(10), "aguardando")]), now=NOW)
        assert entered_status_at(tl, S.recebida) == days_ago(10)

    def test_first_reached_respects_since(self):
        points = [
            TimelinePoint(at=days_ago(40), status=S.entregue),
            TimelinePoint(at=days_ago(5), status=S.entregue),
        ]
        assert first_reached(points, S.entregue) == days_ago(40)
        assert first_reached(points, S.entregue, since=days_ago(30)) == days_ago(5)
        assert first_reached(points, S.cancelada) is None
