"""Default records written to a fresh store on first run."""

from __future__ import annotations

from datetime import datetime, timedelta

from taskflow.data.models import Event, EventType, Permission, Recurrence, User

_AVATAR_URL = "https://api.dicebear.com/6.x/avataaars/svg?seed={seed}"


def default_users() -> list[User]:
    return [
        User(id="1", name="Admin User", phone="+1234567890", role="admin",
             avatar=_AVATAR_URL.format(seed="admin")),
        User(id="2", name="Manager User", phone="+1987654321", role="manager",
             avatar=_AVATAR_URL.format(seed="manager")),
        User(id="3", name="Staff User", phone="+1555123456", role="staff",
             avatar=_AVATAR_URL.format(seed="staff")),
    ]


def default_permissions() -> list[Permission]:
    return [
        Permission(id="1", name="Calendar", description="Access to calendar features",
                   can_create=True, can_read=True, can_update=True, can_delete=True),
        Permission(id="2", name="Tasks", description="Access to cleaning and maintenance tasks",
                   can_read=True),
        Permission(id="3", name="Users", description="Access to user management",
                   can_read=True),
    ]


def default_event_types() -> list[EventType]:
    return [
        EventType(id="1", name="Regular Cleaning", category="cleaning", color="#22c55e"),
        EventType(id="2", name="Deep Cleaning", category="cleaning", color="#3b82f6"),
        EventType(id="3", name="Routine Maintenance", category="maintenance", color="#f59e0b"),
        EventType(id="4", name="Emergency Repair", category="maintenance", color="#ef4444"),
        EventType(id="5", name="Team Meeting", category="meeting", color="#8b5cf6"),
    ]


def sample_events(now: datetime | None = None) -> list[Event]:
    """Three sample events: today, tomorrow and a week from today."""
    today = (now or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=7)

    return [
        Event(
            id="1",
            title="Office Cleaning",
            description="Regular weekly cleaning of the main office area",
            start_time=today.replace(hour=9),
            end_time=today.replace(hour=11),
            event_type_id="1",
            status="scheduled",
            created_by="1",
            assigned_to=["3"],
            location="Main Office",
            recurrence=Recurrence(pattern="weekly", interval=1),
        ),
        Event(
            id="2",
            title="HVAC Maintenance",
            description="Regular check of the HVAC system",
            start_time=tomorrow.replace(hour=14),
            end_time=tomorrow.replace(hour=16),
            event_type_id="3",
            status="scheduled",
            created_by="1",
            assigned_to=["2", "3"],
            location="Mechanical Room",
        ),
        Event(
            id="3",
            title="Team Status Update",
            description="Weekly team meeting to discuss ongoing tasks",
            start_time=next_week.replace(hour=10),
            end_time=next_week.replace(hour=11),
            event_type_id="5",
            status="scheduled",
            created_by="1",
            assigned_to=["1", "2", "3"],
            location="Conference Room",
            recurrence=Recurrence(pattern="weekly", interval=1),
        ),
    ]
