"""Tests for taskflow.data.store — DataStore CRUD, seeding and date rebuild."""

import sqlite3
from dataclasses import replace
from datetime import datetime

import pytest

from taskflow.data.models import UNKNOWN_EVENT_TYPE, Event, EventType, Permission, Recurrence, User
from taskflow.data.storage import StorageCorruptError
from taskflow.data.store import (
    EVENT_TYPES_KEY,
    EVENTS_KEY,
    PERMISSIONS_KEY,
    USERS_KEY,
    DataStore,
    generate_id,
    resolve_event_type,
)


def _event(**overrides) -> Event:
    fields = dict(
        id="",
        title="Window cleaning",
        start_time=datetime(2026, 1, 5, 9, 0),
        end_time=datetime(2026, 1, 5, 10, 0),
        event_type_id="1",
    )
    fields.update(overrides)
    return Event(**fields)


class TestSeeding:
    def test_first_run_seeds_all_collections(self, store):
        assert [u.role for u in store.get_users()] == ["admin", "manager", "staff"]
        assert len(store.get_permissions()) == 3
        assert len(store.get_event_types()) == 5
        assert [e.id for e in store.get_events()] == ["1", "2", "3"]

    def test_seeded_events_have_datetimes(self, store):
        for ev in store.get_events():
            assert isinstance(ev.start_time, datetime)
            assert isinstance(ev.end_time, datetime)
            assert ev.end_time > ev.start_time

    def test_no_reseed_when_users_emptied(self, kv):
        store = DataStore(kv)
        for u in store.get_users():
            store.delete_user(u.id)
        assert store.get_users() == []

        again = DataStore(kv)
        assert again.ensure_seeded() is False
        assert again.get_users() == []

    def test_no_reseed_when_other_collection_emptied(self, kv):
        store = DataStore(kv)
        for e in store.get_events():
            store.delete_event(e.id)
        assert DataStore(kv).get_events() == []

    def test_seeds_when_users_key_never_written(self, kv):
        kv.write(EVENTS_KEY, [])
        store = DataStore(kv)
        assert kv.contains(USERS_KEY)
        assert len(store.get_events()) == 3


class TestGenerateId:
    def test_ids_are_unique_and_non_empty(self):
        ids = {generate_id() for _ in range(500)}
        assert len(ids) == 500
        assert all(ids)


class TestSaveEvent:
    def test_empty_id_appends_with_new_id(self, store):
        before = store.get_events()
        saved = store.save_event(_event())
        after = store.get_events()
        assert len(after) == len(before) + 1
        assert saved.id
        assert saved.id not in {e.id for e in before}
        assert after[-1].id == saved.id

    def test_existing_id_replaces_in_place(self, store):
        before = store.get_events()
        target = before[1]
        changed = replace(target, title="HVAC Overhaul", status="completed", assigned_to=["1"])
        store.save_event(changed)
        after = store.get_events()
        assert len(after) == len(before)
        assert after[1] == changed
        assert [e.id for e in after] == [e.id for e in before]

    def test_unknown_id_appended_as_is(self, store):
        saved = store.save_event(_event(id="client-42"))
        assert saved.id == "client-42"
        assert store.get_events()[-1].id == "client-42"

    def test_round_trip_rebuilds_datetimes_and_recurrence(self, store):
        saved = store.save_event(_event(
            description="North side",
            location="Lobby",
            assigned_to=["3", "1"],
            recurrence=Recurrence(pattern="monthly", interval=2, end_date=datetime(2026, 6, 30)),
        ))
        loaded = store.get_event(saved.id)
        assert loaded == saved
        assert loaded.recurrence.end_date == datetime(2026, 6, 30)
        assert loaded.assigned_to == ["3", "1"]

    def test_recurrence_without_end_date(self, store):
        saved = store.save_event(_event(recurrence=Recurrence(pattern="daily")))
        assert store.get_event(saved.id).recurrence.end_date is None

    def test_save_does_not_touch_input(self, store):
        draft = _event()
        store.save_event(draft)
        assert draft.id == ""

    def test_corrupt_timestamp_raises(self, store, kv):
        raw = kv.read(EVENTS_KEY)
        raw[0]["start_time"] = "yesterday-ish"
        kv.write(EVENTS_KEY, raw)
        with pytest.raises(StorageCorruptError):
            store.get_events()


class TestDeleteEvent:
    def test_delete_existing(self, store):
        assert store.delete_event("1") is True
        assert store.get_event("1") is None

    def test_delete_missing(self, store):
        assert store.delete_event("nope") is False


class TestUsers:
    def test_save_new_user(self, store):
        saved = store.save_user(User(id="", name="Dana", phone="+1555000111", role="staff"))
        assert saved.id
        assert store.get_user(saved.id).name == "Dana"

    def test_update_user(self, store):
        user = store.get_user("3")
        store.save_user(replace(user, role="manager"))
        assert store.get_user("3").role == "manager"
        assert len(store.get_users()) == 3

    def test_find_by_phone(self, store):
        assert store.find_user_by_phone("+1234567890").id == "1"
        assert store.find_user_by_phone("+10000000000") is None

    def test_user_name_fallback(self, store):
        assert store.user_name("1") == "Admin User"
        assert store.user_name("ghost") == "Unknown"

    def test_delete_user(self, store):
        assert store.delete_user("2") is True
        assert [u.id for u in store.get_users()] == ["1", "3"]


class TestEventTypes:
    def test_save_new_type(self, store):
        saved = store.save_event_type(EventType(id="", name="Window Wash", category="cleaning", color="#123456"))
        assert saved.id
        assert store.get_event_type(saved.id).name == "Window Wash"

    def test_delete_type_orphans_events(self, store):
        assert store.delete_event_type("1") is True
        event = store.get_event("1")
        assert event is not None
        assert event.event_type_id == "1"
        assert resolve_event_type(event, store.get_event_types()) == UNKNOWN_EVENT_TYPE


class TestPermissions:
    def test_save_and_delete_permission(self, store):
        saved = store.save_permission(Permission(id="", name="Reports", description="Read reports", can_read=True))
        assert saved.id in {p.id for p in store.get_permissions()}
        assert store.delete_permission(saved.id) is True
        assert len(store.get_permissions()) == 3


class TestResolveEventType:
    def test_known_type(self, store):
        ev = store.get_event("2")
        assert resolve_event_type(ev, store.get_event_types()).category == "maintenance"

    def test_unknown_type(self):
        ev = _event(event_type_id="missing")
        resolved = resolve_event_type(ev, [])
        assert resolved.name == "Unknown"
        assert resolved.category is None


class TestStartupValidation:
    def test_reopening_clean_store(self, store, kv):
        reopened = DataStore(kv)
        assert len(reopened.get_events()) == 3

    def test_undecodable_events_stop_construction(self, store, kv, tmp_db_path):
        with sqlite3.connect(tmp_db_path) as conn:
            conn.execute("UPDATE kv SET value = ? WHERE key = ?", ("{not json", EVENTS_KEY))
        with pytest.raises(StorageCorruptError):
            DataStore(kv)

    @pytest.mark.parametrize("key, value", [
        (USERS_KEY, [{"id": "1"}]),
        (PERMISSIONS_KEY, [{"id": "1", "name": "Calendar", "description": "", "colour": "red"}]),
        (EVENT_TYPES_KEY, {"id": "1"}),
        (EVENTS_KEY, ["just a string"]),
        (EVENTS_KEY, [{"id": "9", "start_time": "2026-01-05T09:00:00", "end_time": "2026-01-05T10:00:00"}]),
        (EVENTS_KEY, [{"id": "9", "title": "x", "start_time": None, "end_time": "2026-01-05T10:00:00"}]),
    ])
    def test_malformed_records_stop_construction(self, store, kv, key, value):
        kv.write(key, value)
        with pytest.raises(StorageCorruptError):
            DataStore(kv)

    def test_malformed_record_raised_on_read(self, store, kv):
        kv.write(USERS_KEY, [{"id": "1", "name": "No phone"}])
        with pytest.raises(StorageCorruptError):
            store.get_users()
