"""
TaskFlow Calendar — Task lifecycle and filtering.

Two ways to change an event's status:

- quick actions ("Start", "Mark Complete"), offered only from certain
  statuses and rejected otherwise;
- the edit form, which may set any known status (override).

Category filtering resolves each event's type; events whose type was
deleted match only the "all" filter.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from taskflow.core.errors import TransitionError, ValidationError
from taskflow.data.models import EVENT_CATEGORIES, EVENT_STATUSES, Event, EventType
from taskflow.data.store import resolve_event_type

if TYPE_CHECKING:
    from taskflow.data.store import DataStore

logger = logging.getLogger(__name__)

FILTER_TABS = ("all", "cleaning", "maintenance")

# status -> statuses reachable by a quick action
QUICK_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "scheduled": ("in-progress", "completed"),
    "in-progress": ("completed",),
    "cancelled": ("completed",),
    "completed": (),
}

QUICK_ACTION_LABELS = {
    "in-progress": "Start",
    "completed": "Mark Complete",
}

STATUS_LABELS = {
    "scheduled": "Scheduled",
    "in-progress": "In Progress",
    "completed": "Completed",
    "cancelled": "Cancelled",
}


def available_quick_actions(status: str) -> list[str]:
    """Target statuses offered as buttons, "Mark Complete" first."""
    targets = QUICK_TRANSITIONS.get(status, ())
    return sorted(targets, key=lambda s: 0 if s == "completed" else 1)


def can_quick_transition(current: str, target: str) -> bool:
    return target in QUICK_TRANSITIONS.get(current, ())


def apply_quick_action(store: DataStore, event: Event, target: str) -> Event:
    """Guarded status change. Raises TransitionError if not offered."""
    if not can_quick_transition(event.status, target):
        raise TransitionError(
            f"Cannot change '{event.title}' from {event.status} to {target}"
        )
    updated = store.save_event(replace(event, status=target))
    logger.info("Event %s: %s -> %s (quick action)", event.id, event.status, target)
    return updated


def override_status(store: DataStore, event: Event, status: str) -> Event:
    """Unrestricted status change, as allowed by the edit form."""
    if status not in EVENT_STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    updated = store.save_event(replace(event, status=status))
    logger.info("Event %s: %s -> %s (edit)", event.id, event.status, status)
    return updated


def filter_events(
    events: list[Event], event_types: list[EventType], tab: str = "all",
) -> list[Event]:
    """Events whose resolved type is in the tab's category ("all" keeps everything)."""
    if tab == "all":
        return list(events)
    if tab not in EVENT_CATEGORIES:
        raise ValidationError(f"Unknown category: {tab}")
    return [ev for ev in events if resolve_event_type(ev, event_types).category == tab]
