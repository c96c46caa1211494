"""
TaskFlow Calendar — Domain Store.

Typed list/save/delete operations for users, event types, events and
permissions, layered on the key-value store. Every read goes back to
storage, so concurrent writers race with last-write-wins semantics.

References between collections are soft: deleting an event type leaves
its events in place, and they resolve to UNKNOWN_EVENT_TYPE.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, replace
from datetime import datetime
from typing import Callable, TypeVar

from taskflow.data.models import (
    UNKNOWN_EVENT_TYPE,
    Event,
    EventType,
    Permission,
    Recurrence,
    User,
)
from taskflow.data.seed import (
    default_event_types,
    default_permissions,
    default_users,
    sample_events,
)
from taskflow.data.storage import KeyValueStore, StorageCorruptError

logger = logging.getLogger(__name__)

USERS_KEY = "users"
PERMISSIONS_KEY = "permissions"
EVENT_TYPES_KEY = "event-types"
EVENTS_KEY = "events"

_T = TypeVar("_T", User, EventType, Event, Permission)


def generate_id() -> str:
    """Return a short random id, unique per call."""
    return uuid.uuid4().hex[:12]


def _upsert(items: list[_T], entity: _T) -> tuple[list[_T], _T]:
    """Insert or replace entity in items.

    No id → new id, appended. Known id → replaced in place.
    Unknown id → appended as-is (client-supplied id).
    """
    if not entity.id:
        entity = replace(entity, id=generate_id())
        items.append(entity)
        return items, entity

    for i, existing in enumerate(items):
        if existing.id == entity.id:
            items[i] = entity
            return items, entity

    items.append(entity)
    return items, entity


# ---------------------------------------------------------------------------
# (De)serialization
# ---------------------------------------------------------------------------


def _parse_datetime(raw: str | None) -> datetime | None:
    if raw is None:
        return None
    try:
        return datetime.fromisoformat(raw)
    except (TypeError, ValueError) as exc:
        raise StorageCorruptError(f"Invalid timestamp in stored event: {raw!r}") from exc


def _event_to_dict(event: Event) -> dict:
    data = asdict(event)
    data["start_time"] = event.start_time.isoformat()
    data["end_time"] = event.end_time.isoformat()
    if event.recurrence is not None:
        end_date = event.recurrence.end_date
        data["recurrence"]["end_date"] = end_date.isoformat() if end_date else None
    return data


def _dict_to_event(data: dict) -> Event:
    recurrence = None
    raw_rec = data.get("recurrence")
    if raw_rec:
        recurrence = Recurrence(
            pattern=raw_rec["pattern"],
            interval=raw_rec.get("interval", 1),
            end_date=_parse_datetime(raw_rec.get("end_date")),
        )
    start, end = _parse_datetime(data["start_time"]), _parse_datetime(data["end_time"])
    if start is None or end is None:
        raise StorageCorruptError(f"Stored event {data.get('id')!r} has no start or end time")
    return Event(
        id=data["id"],
        title=data["title"],
        start_time=start,
        end_time=end,
        event_type_id=data.get("event_type_id", ""),
        status=data.get("status", "scheduled"),
        created_by=data.get("created_by", ""),
        assigned_to=list(data.get("assigned_to") or []),
        description=data.get("description"),
        location=data.get("location"),
        recurrence=recurrence,
    )


def _load(raw: object, key: str, build: Callable[[dict], _T]) -> list[_T]:
    """Build typed records from a stored list, rejecting malformed entries."""
    if not isinstance(raw, list):
        raise StorageCorruptError(f"Stored value for {key!r} is not a list")
    try:
        return [build(item) for item in raw]
    except (TypeError, KeyError, AttributeError) as exc:
        raise StorageCorruptError(f"Malformed record in {key!r}: {exc}") from exc


class DataStore:
    """Domain-level CRUD over a KeyValueStore. Seeds defaults on first run."""

    def __init__(self, kv: KeyValueStore | None = None) -> None:
        self._kv = kv if kv is not None else KeyValueStore()
        self.ensure_seeded()
        self.validate()

    @property
    def kv(self) -> KeyValueStore:
        return self._kv

    def ensure_seeded(self) -> bool:
        """Write default records once, when the users key has never been written.

        An emptied collection is never reseeded.
        """
        if self._kv.contains(USERS_KEY):
            return False
        self._kv.write(USERS_KEY, [asdict(u) for u in default_users()])
        self._kv.write(PERMISSIONS_KEY, [asdict(p) for p in default_permissions()])
        self._kv.write(EVENT_TYPES_KEY, [asdict(t) for t in default_event_types()])
        self._kv.write(EVENTS_KEY, [_event_to_dict(e) for e in sample_events()])
        logger.info("Seeded default users, permissions, event types and events")
        return True

    def validate(self) -> None:
        """Decode every collection once. Raises StorageCorruptError on bad data."""
        self.get_users()
        self.get_permissions()
        self.get_event_types()
        self.get_events()
        logger.debug("Stored collections decoded cleanly")

    # -- users ---------------------------------------------------------------

    def get_users(self) -> list[User]:
        return _load(self._kv.read(USERS_KEY, []), USERS_KEY, lambda u: User(**u))

    def get_user(self, user_id: str) -> User | None:
        return next((u for u in self.get_users() if u.id == user_id), None)

    def find_user_by_phone(self, phone: str) -> User | None:
        """Exact match on the stored phone number."""
        return next((u for u in self.get_users() if u.phone == phone), None)

    def save_user(self, user: User) -> User:
        users, saved = _upsert(self.get_users(), user)
        self._kv.write(USERS_KEY, [asdict(u) for u in users])
        logger.info("User saved: %s '%s' (%s)", saved.id, saved.name, saved.role)
        return saved

    def delete_user(self, user_id: str) -> bool:
        users = self.get_users()
        remaining = [u for u in users if u.id != user_id]
        self._kv.write(USERS_KEY, [asdict(u) for u in remaining])
        deleted = len(remaining) < len(users)
        if deleted:
            logger.info("User %s deleted", user_id)
        return deleted

    def user_name(self, user_id: str) -> str:
        user = self.get_user(user_id)
        return user.name if user else "Unknown"

    # -- event types ---------------------------------------------------------

    def get_event_types(self) -> list[EventType]:
        return _load(self._kv.read(EVENT_TYPES_KEY, []), EVENT_TYPES_KEY, lambda t: EventType(**t))

    def get_event_type(self, event_type_id: str) -> EventType | None:
        return next((t for t in self.get_event_types() if t.id == event_type_id), None)

    def save_event_type(self, event_type: EventType) -> EventType:
        types, saved = _upsert(self.get_event_types(), event_type)
        self._kv.write(EVENT_TYPES_KEY, [asdict(t) for t in types])
        logger.info("Event type saved: %s '%s' [%s]", saved.id, saved.name, saved.category)
        return saved

    def delete_event_type(self, event_type_id: str) -> bool:
        """Remove an event type. Events referencing it are left orphaned."""
        types = self.get_event_types()
        remaining = [t for t in types if t.id != event_type_id]
        self._kv.write(EVENT_TYPES_KEY, [asdict(t) for t in remaining])
        deleted = len(remaining) < len(types)
        if deleted:
            logger.info("Event type %s deleted", event_type_id)
        return deleted

    # -- events --------------------------------------------------------------

    def get_events(self) -> list[Event]:
        """All events, with timestamps rebuilt into datetimes."""
        return _load(self._kv.read(EVENTS_KEY, []), EVENTS_KEY, _dict_to_event)

    def get_event(self, event_id: str) -> Event | None:
        return next((e for e in self.get_events() if e.id == event_id), None)

    def save_event(self, event: Event) -> Event:
        events, saved = _upsert(self.get_events(), event)
        self._kv.write(EVENTS_KEY, [_event_to_dict(e) for e in events])
        logger.info("Event saved: %s '%s' [%s]", saved.id, saved.title, saved.status)
        return saved

    def delete_event(self, event_id: str) -> bool:
        events = self.get_events()
        remaining = [e for e in events if e.id != event_id]
        self._kv.write(EVENTS_KEY, [_event_to_dict(e) for e in remaining])
        deleted = len(remaining) < len(events)
        if deleted:
            logger.info("Event %s deleted", event_id)
        return deleted

    # -- permissions ---------------------------------------------------------

    def get_permissions(self) -> list[Permission]:
        return _load(self._kv.read(PERMISSIONS_KEY, []), PERMISSIONS_KEY, lambda p: Permission(**p))

    def save_permission(self, permission: Permission) -> Permission:
        permissions, saved = _upsert(self.get_permissions(), permission)
        self._kv.write(PERMISSIONS_KEY, [asdict(p) for p in permissions])
        logger.info("Permission saved: %s '%s'", saved.id, saved.name)
        return saved

    def delete_permission(self, permission_id: str) -> bool:
        permissions = self.get_permissions()
        remaining = [p for p in permissions if p.id != permission_id]
        self._kv.write(PERMISSIONS_KEY, [asdict(p) for p in remaining])
        return len(remaining) < len(permissions)


def resolve_event_type(event: Event, event_types: list[EventType]) -> EventType:
    """Look up the event's type, falling back to UNKNOWN_EVENT_TYPE."""
    for et in event_types:
        if et.id == event.event_type_id:
            return et
    return UNKNOWN_EVENT_TYPE
