"""Month and week layouts for the schedule views.

The month grid is always 6 rows of 7 days, Sunday first, padded with the tail
of the previous month and the head of the next one.
"""

from __future__ import annotations

import calendar
import datetime as dt
from collections import defaultdict
from collections.abc import Iterable

from .schemas.calendar import CalendarCell, ScheduleEventResponse

GRID_CELLS = 42
MAX_BADGES = 3
# the December grid spills into January of the next year
MAX_GRID_YEAR = dt.MAXYEAR - 1


def month_bounds(year: int, month: int) -> tuple[dt.date, dt.date]:
    _, days = calendar.monthrange(year, month)
    return dt.date(year, month, 1), dt.date(year, month, days)


def week_start(day: dt.date) -> dt.date:
    # date.weekday() is Monday=0; shift so Sunday=0
    return day - dt.timedelta(days=(day.weekday() + 1) % 7)


def grid_bounds(year: int, month: int) -> tuple[dt.date, dt.date]:
    """First and last date shown in the 42-cell grid for a month."""
    first, _ = month_bounds(year, month)
    start = week_start(first)
    return start, start + dt.timedelta(days=GRID_CELLS - 1)


def group_by_date(events: Iterable[ScheduleEventResponse]) -> dict[dt.date, list[ScheduleEventResponse]]:
    grouped: dict[dt.date, list[ScheduleEventResponse]] = defaultdict(list)
    for event in events:
        grouped[event.event_date].append(event)
    for day_events in grouped.values():
        day_events.sort(key=lambda e: (e.event_time is None, e.event_time or dt.time.min, e.id))
    return grouped


def build_cell(
    day: dt.date,
    events: list[ScheduleEventResponse],
    *,
    in_current_month: bool,
    today: dt.date,
) -> CalendarCell:
    return CalendarCell(
        date=day,
        in_current_month=in_current_month,
        is_today=day == today,
        events=events,
        badges=[e.display_text for e in events[:MAX_BADGES]],
        more_count=max(len(events) - MAX_BADGES, 0),
    )


def build_month_grid(
    year: int,
    month: int,
    events: Iterable[ScheduleEventResponse],
    today: dt.date | None = None,
) -> list[CalendarCell]:
    today = today or dt.date.today()
    start, _ = grid_bounds(year, month)
    grouped = group_by_date(events)
    cells = []
    for offset in range(GRID_CELLS):
        day = start + dt.timedelta(days=offset)
        cells.append(
            build_cell(
                day,
                grouped.get(day, []),
                in_current_month=day.month == month and day.year == year,
                today=today,
            )
        )
    return cells


def build_week(
    anchor: dt.date,
    events: Iterable[ScheduleEventResponse],
    today: dt.date | None = None,
) -> list[CalendarCell]:
    today = today or dt.date.today()
    start = week_start(anchor)
    grouped = group_by_date(events)
    days = []
    for offset in range(7):
        day = start + dt.timedelta(days=offset)
        days.append(build_cell(day, grouped.get(day, []), in_current_month=day.month == anchor.month, today=today))
    return days
