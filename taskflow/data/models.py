"""
TaskFlow Calendar — Data Models.

Users, event types, events and permissions live in the local key-value
store as JSON. Events carry real datetimes in memory; the store converts
them to ISO strings on write and back on read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

ROLES = ("admin", "manager", "staff", "guest")
EVENT_CATEGORIES = ("cleaning", "maintenance", "general", "meeting")
EVENT_STATUSES = ("scheduled", "in-progress", "completed", "cancelled")
RECURRENCE_PATTERNS = ("daily", "weekly", "monthly", "custom")

CATEGORY_LABELS = {
    "cleaning": "Cleaning",
    "maintenance": "Maintenance",
    "general": "General",
    "meeting": "Meeting",
}


@dataclass
class User:
    """A person who can log in with their phone number."""

    id: str
    name: str
    phone: str             # login key, e.g. "+1234567890"
    role: str              # admin | manager | staff | guest
    avatar: str | None = None


@dataclass
class EventType:
    """A named, colored label applied to events."""

    id: str
    name: str
    category: str | None   # None only for the "Unknown" fallback
    color: str             # display hex, e.g. "#22c55e"


@dataclass
class Recurrence:
    """Stored recurrence rule. Never expanded into instances."""

    pattern: str           # daily | weekly | monthly | custom
    interval: int = 1
    end_date: datetime | None = None


@dataclass
class Event:
    """A scheduled task or activity."""

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    event_type_id: str     # soft reference to EventType.id
    status: str = "scheduled"
    created_by: str = ""
    assigned_to: list[str] = field(default_factory=list)
    description: str | None = None
    location: str | None = None
    recurrence: Recurrence | None = None


@dataclass
class Permission:
    """A declared capability record. Not consulted for access checks."""

    id: str
    name: str
    description: str
    can_create: bool = False
    can_read: bool = False
    can_update: bool = False
    can_delete: bool = False


UNKNOWN_EVENT_TYPE = EventType(id="", name="Unknown", category=None, color="#888")
