"""
TaskFlow Calendar — Month Grid.

Pure calendar arithmetic: builds the full-week grid of dates covering a
month, bins events onto days by their local start date, and tracks the
navigation state (anchor month, selected day, view mode).

No I/O: this module only transforms data.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TypeVar

from taskflow.core.errors import UnsupportedViewError, ValidationError
from taskflow.data.models import Event, EventType
from taskflow.data.store import resolve_event_type

logger = logging.getLogger(__name__)

VIEW_MODES = ("month", "week", "day")
MAX_VISIBLE_EVENTS = 3
SUNDAY = 6

_D = TypeVar("_D", date, datetime)


def add_months(d: _D, months: int) -> _D:
    """Shift d by whole calendar months, clamping the day to the month length.

    Jan 31 + 1 month -> Feb 28 (or Feb 29 in a leap year).
    """
    index = d.month - 1 + months
    year = d.year + index // 12
    month = index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def start_of_week(d: date, week_start: int = SUNDAY) -> date:
    """First day of the week containing d. week_start: 0=Monday .. 6=Sunday."""
    return d - timedelta(days=(d.weekday() - week_start) % 7)


def end_of_week(d: date, week_start: int = SUNDAY) -> date:
    return start_of_week(d, week_start) + timedelta(days=6)


def month_bounds(anchor: date) -> tuple[date, date]:
    first = anchor.replace(day=1)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    return first, last


def month_grid(anchor: date, week_start: int = SUNDAY) -> list[list[date]]:
    """Rows of 7 dates from the week holding the 1st to the week holding the last day."""
    first, last = month_bounds(anchor)
    day = start_of_week(first, week_start)
    end = end_of_week(last, week_start)

    rows: list[list[date]] = []
    while day <= end:
        rows.append([day + timedelta(days=i) for i in range(7)])
        day += timedelta(days=7)
    return rows


def weekday_labels(week_start: int = SUNDAY) -> list[str]:
    return [calendar.day_abbr[(week_start + i) % 7] for i in range(7)]


def bin_events_by_day(events: list[Event]) -> dict[date, list[Event]]:
    """Group events by the calendar day of their start time, keeping input order."""
    bins: dict[date, list[Event]] = {}
    for ev in events:
        bins.setdefault(ev.start_time.date(), []).append(ev)
    return bins


# ---------------------------------------------------------------------------
# Rendered view
# ---------------------------------------------------------------------------


@dataclass
class EventChip:
    """One event as shown inside a day cell."""

    event: Event
    label: str             # "HH:MM title"
    color: str


@dataclass
class DayCell:
    day: date
    in_month: bool
    is_today: bool
    is_selected: bool
    chips: list[EventChip] = field(default_factory=list)
    hidden_count: int = 0

    @property
    def more_label(self) -> str | None:
        if self.hidden_count <= 0:
            return None
        return f"+{self.hidden_count} more"


@dataclass
class MonthView:
    title: str             # e.g. "January 2026"
    weekday_labels: list[str]
    weeks: list[list[DayCell]]

    def cells(self) -> list[DayCell]:
        return [cell for week in self.weeks for cell in week]


def build_month_view(
    anchor: date,
    events: list[Event],
    event_types: list[EventType],
    selected: date | None = None,
    today: date | None = None,
    week_start: int = SUNDAY,
    max_visible: int = MAX_VISIBLE_EVENTS,
) -> MonthView:
    """Lay out the month around anchor with up to max_visible events per day."""
    today = today or date.today()
    bins = bin_events_by_day(events)

    weeks: list[list[DayCell]] = []
    for row in month_grid(anchor, week_start):
        cells: list[DayCell] = []
        for day in row:
            day_events = bins.get(day, [])
            chips = [
                EventChip(
                    event=ev,
                    label=f"{ev.start_time:%H:%M} {ev.title}",
                    color=resolve_event_type(ev, event_types).color,
                )
                for ev in day_events[:max_visible]
            ]
            in_month = day.month == anchor.month and day.year == anchor.year
            cells.append(DayCell(
                day=day,
                in_month=in_month,
                is_today=day == today,
                is_selected=in_month and day == selected,
                chips=chips,
                hidden_count=max(0, len(day_events) - max_visible),
            ))
        weeks.append(cells)

    return MonthView(
        title=f"{calendar.month_name[anchor.month]} {anchor.year}",
        weekday_labels=weekday_labels(week_start),
        weeks=weeks,
    )


# ---------------------------------------------------------------------------
# Navigation state
# ---------------------------------------------------------------------------


@dataclass
class CalendarState:
    """Anchor month, selected day and view mode for one calendar screen."""

    current_month: date
    selected_date: date
    view: str = "month"
    week_start: int = SUNDAY

    @classmethod
    def for_today(cls, today: date | None = None, week_start: int = SUNDAY) -> CalendarState:
        today = today or date.today()
        return cls(current_month=today, selected_date=today, week_start=week_start)

    def next_month(self) -> date:
        self.current_month = add_months(self.current_month, 1)
        return self.current_month

    def prev_month(self) -> date:
        self.current_month = add_months(self.current_month, -1)
        return self.current_month

    def select(self, day: date) -> date:
        """Mark day as selected. The caller opens the new-event form."""
        self.selected_date = day
        return day

    def set_view(self, view: str) -> None:
        if view not in VIEW_MODES:
            raise ValidationError(f"Unknown view: {view}")
        self.view = view

    def render(
        self,
        events: list[Event],
        event_types: list[EventType],
        today: date | None = None,
    ) -> MonthView:
        """Render the current view. Only the month view has a layout."""
        if self.view != "month":
            raise UnsupportedViewError(f"The {self.view} view is not available yet")
        return build_month_view(
            self.current_month,
            events,
            event_types,
            selected=self.selected_date,
            today=today,
            week_start=self.week_start,
        )
