"""
TaskFlow Calendar — Form validation.

Turns partially filled form input into domain records, raising
ValidationError when a required field is missing. Submission is aborted
on error and the caller re-prompts for the same form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from urllib.parse import quote

from taskflow.core.errors import ValidationError
from taskflow.data.models import (
    EVENT_CATEGORIES,
    EVENT_STATUSES,
    ROLES,
    Event,
    EventType,
    Recurrence,
    User,
)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass
class EventDraft:
    """Event form state. Every field may still be blank."""

    id: str = ""
    title: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    event_type_id: str = ""
    status: str = ""
    created_by: str = ""
    assigned_to: list[str] = field(default_factory=list)
    description: str | None = None
    location: str | None = None
    recurrence: Recurrence | None = None

    @classmethod
    def from_event(cls, event: Event) -> EventDraft:
        return cls(
            id=event.id,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            event_type_id=event.event_type_id,
            status=event.status,
            created_by=event.created_by,
            assigned_to=list(event.assigned_to),
            description=event.description,
            location=event.location,
            recurrence=event.recurrence,
        )


def validate_event(draft: EventDraft, reject_inverted: bool | None = None) -> Event:
    """Build an Event from a draft. Status defaults to 'scheduled'."""
    if reject_inverted is None:
        from taskflow.config import settings
        reject_inverted = settings.REJECT_INVERTED_TIMES

    title = draft.title.strip()
    if not title or draft.start_time is None or draft.end_time is None or not draft.event_type_id:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    if reject_inverted and draft.end_time < draft.start_time:
        raise ValidationError("End time must not be before start time")

    status = draft.status or "scheduled"
    if status not in EVENT_STATUSES:
        raise ValidationError(f"Unknown status: {status}")

    # Keep insertion order, drop repeats
    assigned = list(dict.fromkeys(draft.assigned_to))

    return Event(
        id=draft.id,
        title=title,
        start_time=draft.start_time,
        end_time=draft.end_time,
        event_type_id=draft.event_type_id,
        status=status,
        created_by=draft.created_by,
        assigned_to=assigned,
        description=draft.description or None,
        location=draft.location or None,
        recurrence=draft.recurrence,
    )


def avatar_url(name: str) -> str:
    return f"https://api.dicebear.com/6.x/avataaars/svg?seed={quote(name, safe='')}"


def validate_user(
    name: str,
    phone: str,
    role: str,
    user_id: str = "",
    avatar: str | None = None,
) -> User:
    """Build a User from form input. Generates an avatar when none is given."""
    name = name.strip()
    phone = phone.strip()
    role = role.strip().lower()
    if not name or not phone or not role:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    return User(
        id=user_id,
        name=name,
        phone=format_phone_number(phone),
        role=role,
        avatar=avatar or avatar_url(name),
    )


def validate_event_type(
    name: str, category: str, color: str, event_type_id: str = "",
) -> EventType:
    name = name.strip()
    category = category.strip().lower()
    color = color.strip()
    if not name or not category or not color:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    if category not in EVENT_CATEGORIES:
        raise ValidationError(f"Unknown category: {category}")
    if not _HEX_COLOR.match(color):
        raise ValidationError("Color must be a hex value like #3b82f6")
    return EventType(id=event_type_id, name=name, category=category, color=color)


# ---------------------------------------------------------------------------
# Phone numbers
# ---------------------------------------------------------------------------


def format_phone_number(text: str) -> str:
    """Normalize typed input: keep digits and make sure it starts with '+'."""
    digits = re.sub(r"\D", "", text)
    if not digits:
        return text.strip()
    return "+" + digits


def is_valid_phone(text: str) -> bool:
    return bool(text) and len(text.strip()) >= 10


# ---------------------------------------------------------------------------
# New-event drafts
# ---------------------------------------------------------------------------


def draft_for_day(day: date, created_by: str = "") -> EventDraft:
    """Draft for a clicked calendar day: 09:00–10:00."""
    return EventDraft(
        start_time=datetime.combine(day, time(9, 0)),
        end_time=datetime.combine(day, time(10, 0)),
        status="scheduled",
        created_by=created_by,
    )


def draft_for_now(now: datetime | None = None, created_by: str = "") -> EventDraft:
    """Draft for the 'new event' button: now until an hour from now."""
    start = now or datetime.now()
    return EventDraft(
        start_time=start,
        end_time=start + timedelta(hours=1),
        status="scheduled",
        created_by=created_by,
    )
