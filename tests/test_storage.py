"""
Tests for the JSON record stores and the maintenance scripts that use them.
"""

import json
import sys

import pytest

from app.config import config
from app.core.analytics import resolve_window
from app.core.reservation_lifecycle import apply_status_change, new_reservation
from app.models.schemas import ReservationCreateRequest, SettingsUpdateRequest
from app.storage import directory_store, reservation_store, settings_store

from conftest import NOW, days_ago, make_record


def _create(child_id="child-1", supplier_id="sup-1", user_id="user-1", now=NOW):
    req = ReservationCreateRequest(
        user_name="Family",
        child_id=child_id,
        school_id="school-1",
        uniform_id="uniform-1",
        supplier_id=supplier_id,
        suggested_size="M",
    )
    return reservation_store.create_reservation(new_reservation(req, user_id, "user", now=now))


class TestReservationStore:

    def test_create_and_get(self):
        created = _create()
        loaded = reservation_store.get_reservation(created.id)
        assert loaded == created
        stored = json.loads((config.storage.reservation_dir / f"{created.id}.json").read_text())
        assert stored["childId"] == "child-1"
        assert stored["events"][0]["type"] == "created"

    def test_missing_and_invalid_ids(self):
        assert reservation_store.get_reservation("nope") is None
        assert reservation_store.get_reservation("../etc/passwd") is None

    def test_one_reservation_per_child_and_year(self):
        _create()
        with pytest.raises(reservation_store.DuplicateReservationError):
            _create()
        # Another year is fine
        _create(now=NOW.replace(year=2025))

    def test_list_scoping_and_order(self):
        older = _create(child_id="c1", now=days_ago(5))
        newer = _create(child_id="c2", now=days_ago(1))
        other = _create(child_id="c3", supplier_id="sup-2", user_id="user-2")

        assert [r.id for r in reservation_store.list_reservations()] == [other.id, newer.id, older.id]
        assert {r.id for r in reservation_store.list_reservations(supplier_id="sup-1")} == {older.id, newer.id}
        assert [r.id for r in reservation_store.list_reservations(user_id="user-2")] == [other.id]

    def test_unreadable_file_is_skipped(self):
        created = _create()
        (config.storage.reservation_dir / "broken.json").write_text("{not json")
        assert [r.id for r in reservation_store.list_reservations()] == [created.id]

    def test_event_with_unreadable_time_is_dropped(self):
        record = make_record(days_ago(2), events=[(days_ago(2), "aguardando")])
        record["events"].append({"type": "status_changed", "at": "garbage", "status": "recebida"})
        reservation_store.replace_raw(record["id"], record)

        loaded = reservation_store.get_reservation(record["id"])
        assert loaded is not None
        assert len(loaded.events) == 1

        updated = reservation_store.update_reservation(
            record["id"],
            lambda r: apply_status_change(r, "recebida", actor_role="admin", now=NOW),
        )
        assert updated.status.value == "recebida"
        assert len(updated.events) == 2

    @pytest.mark.parametrize("created_text", ["2024-05-18T12:00:00", "2024-05-18T15:00:00+03:00"])
    def test_times_normalized_to_utc(self, created_text):
        aware = make_record(days_ago(1), events=[(days_ago(1), "aguardando")], record_id="aware")
        naive = make_record(days_ago(2), events=[(days_ago(2), "aguardando")], record_id="naive")
        naive["createdAt"] = created_text
        naive["updatedAt"] = created_text
        naive["events"][0]["at"] = created_text
        for record in (aware, naive):
            reservation_store.replace_raw(record["id"], record)

        listed = reservation_store.list_reservations()
        assert [r.id for r in listed] == ["aware", "naive"]
        loaded = listed[1]
        assert loaded.created_at == days_ago(2)
        assert loaded.created_at.utcoffset().total_seconds() == 0
        assert loaded.events[0].at.utcoffset().total_seconds() == 0

    def test_update_writes_one_event(self):
        created = _create()
        updated = reservation_store.update_reservation(
            created.id,
            lambda r: apply_status_change(r, "recebida", actor_role="admin", now=NOW),
        )
        assert updated.version == 1
        reloaded = reservation_store.get_reservation(created.id)
        assert reloaded.status.value == "recebida"
        assert len(reloaded.events) == 2

    def test_update_noop_does_not_write(self):
        created = _create()
        path = config.storage.reservation_dir / f"{created.id}.json"
        before = path.read_text()
        reservation_store.update_reservation(
            created.id,
            lambda r: apply_status_change(r, "aguardando", actor_role="admin", now=NOW),
        )
        assert path.read_text() == before

    def test_update_failure_leaves_record_untouched(self):
        created = _create()
        with pytest.raises(ValueError):
            reservation_store.update_reservation(
                created.id,
                lambda r: apply_status_change(r, "shipped", actor_role="admin", now=NOW),
            )
        assert len(reservation_store.get_reservation(created.id).events) == 1

    def test_update_other_supplier_is_not_found(self):
        created = _create(supplier_id="sup-2")
        with pytest.raises(reservation_store.ReservationNotFoundError):
            reservation_store.update_reservation(
                created.id,
                lambda r: apply_status_change(r, "recebida", actor_role="supplier", now=NOW),
                supplier_id="sup-1",
            )

    def test_update_missing(self):
        with pytest.raises(reservation_store.ReservationNotFoundError):
            reservation_store.update_reservation("missing", lambda r: (r, False))

    def test_find_for_analytics(self):
        window = resolve_window(date_from="2024-05-01", date_to="2024-05-10", now=NOW)
        active = make_record(days_ago(15), record_id="active", events=[(days_ago(15), "aguardando")])
        stale = make_record(days_ago(60), record_id="stale", events=[(days_ago(60), "aguardando")])
        other = make_record(days_ago(15), record_id="other", supplier_id="sup-2",
                            events=[(days_ago(15), "aguardando")])
        for record in (active, stale, other):
            reservation_store.replace_raw(record["id"], record)

        assert {r["id"] for r in reservation_store.find_for_analytics(window)} == {"active", "other"}
        assert [r["id"] for r in reservation_store.find_for_analytics(window, supplier_id="sup-1")] == ["active"]


class TestSettingsStore:

    def test_defaults(self):
        settings = settings_store.load_settings()
        assert settings.dashboard_charts_enabled is False
        assert settings.max_children_per_user == 7

    def test_update_is_partial_upsert(self):
        settings_store.update_settings(SettingsUpdateRequest(dashboard_charts_enabled=True))
        settings_store.update_settings(SettingsUpdateRequest(max_children_per_user=3))
        settings = settings_store.load_settings()
        assert settings.dashboard_charts_enabled is True
        assert settings.max_children_per_user == 3
        assert settings_store.dashboard_charts_enabled()

    def test_corrupt_document_falls_back(self):
        path = config.storage.settings_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("[[[")
        assert settings_store.load_settings().dashboard_charts_enabled is False


class TestDirectoryStore:

    def test_link_and_lookup(self):
        assert directory_store.get_linked_supplier_id("s-user") is None
        directory_store.link_supplier("s-user", "sup-1")
        assert directory_store.get_linked_supplier_id("s-user") == "sup-1"


class TestScripts:

    def test_backfill_run(self):
        from scripts.backfill_reservation_events import run

        legacy = make_record(days_ago(10), record_id="legacy", status="recebida", updated_at=days_ago(4))
        modern = make_record(days_ago(10), record_id="modern", events=[(days_ago(10), "aguardando")])
        reservation_store.replace_raw("legacy", legacy)
        reservation_store.replace_raw("modern", modern)

        assert run(dry_run=True) == (2, 1)
        assert reservation_store.load_raw("legacy")["events"] == []

        assert run() == (2, 1)
        assert len(reservation_store.load_raw("legacy")["events"]) == 2
        # Second pass finds nothing left to do
        assert run() == (2, 0)

    def test_generated_reservations_are_valid(self, generated_reservations):
        from app.models.schemas import Reservation

        assert len(generated_reservations) == 200
        for record in generated_reservations:
            parsed = Reservation.model_validate(record)
            assert parsed.events[0].type.value == "created"
            assert all(e.at <= NOW for e in parsed.events)
            assert parsed.status == parsed.events[-1].status

    def test_charts_flag_script(self, monkeypatch):
        from scripts import set_dashboard_charts_flag

        monkeypatch.setattr(sys, "argv", ["set_dashboard_charts_flag.py", "--enable"])
        set_dashboard_charts_flag.main()
        assert settings_store.dashboard_charts_enabled()

        monkeypatch.setattr(sys, "argv", ["set_dashboard_charts_flag.py", "--disable"])
        set_dashboard_charts_flag.main()
        assert not settings_store.dashboard_charts_enabled()
