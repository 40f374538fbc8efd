import datetime as dt

import pytest

from teamhub_service.calendar_grid import build_month_grid, build_week, grid_bounds, month_bounds, week_start
from teamhub_service.schemas.calendar import ScheduleEventResponse

CREATED = dt.datetime(2024, 1, 1, 12, 0)


def _event(event_id, day, **fields):
    fields.setdefault("event_type", "game")
    return ScheduleEventResponse(id=event_id, event_date=day, created_at=CREATED, **fields)


@pytest.mark.parametrize(
    "year,month",
    [(2024, 2), (2024, 6), (2024, 9), (2023, 12), (2025, 3), (2026, 2), (2015, 2)],
)
def test_month_grid_is_always_42_cells_starting_on_sunday(year, month):
    cells = build_month_grid(year, month, [], today=dt.date(2000, 1, 1))
    first = dt.date(year, month, 1)

    assert len(cells) == 42
    assert cells[0].date.weekday() == 6
    assert cells[(first.weekday() + 1) % 7].date == first
    assert all(b.date - a.date == dt.timedelta(days=1) for a, b in zip(cells, cells[1:]))

    _, last = month_bounds(year, month)
    in_month = [c.date for c in cells if c.in_current_month]
    assert in_month[0] == first
    assert in_month[-1] == last
    assert len(in_month) == last.day


def test_month_bounds_cross_year():
    assert month_bounds(2023, 12) == (dt.date(2023, 12, 1), dt.date(2023, 12, 31))
    assert month_bounds(2024, 2) == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))
    assert grid_bounds(2024, 6) == (dt.date(2024, 5, 26), dt.date(2024, 7, 6))


def test_week_start_is_the_preceding_sunday():
    assert week_start(dt.date(2024, 6, 9)) == dt.date(2024, 6, 9)
    assert week_start(dt.date(2024, 6, 12)) == dt.date(2024, 6, 9)
    assert week_start(dt.date(2024, 6, 15)) == dt.date(2024, 6, 9)


def test_cells_carry_badges_and_overflow_count():
    day = dt.date(2024, 6, 12)
    events = [
        _event(1, day, opponent="Hawks", event_time=dt.time(18, 0)),
        _event(2, day, title="Lift", event_type="workout"),
        _event(3, day, opponent="Owls", event_time=dt.time(9, 0)),
        _event(4, day, event_type="practice"),
        _event(5, dt.date(2024, 6, 13), title="Oats", event_type="meal"),
    ]

    cells = {c.date: c for c in build_month_grid(2024, 6, events, today=day)}
    busy = cells[day]
    # timed events come first, untimed ones by id
    assert busy.badges == ["Owls", "Hawks", "Lift"]
    assert busy.more_count == 1
    assert len(busy.events) == 4
    assert busy.is_today is True

    assert cells[dt.date(2024, 6, 13)].badges == ["Oats"]
    assert cells[dt.date(2024, 6, 13)].more_count == 0
    assert cells[dt.date(2024, 6, 14)].events == []
    assert sum(c.is_today for c in cells.values()) == 1


def test_week_view_has_seven_days_from_sunday():
    events = [_event(1, dt.date(2024, 6, 15), event_type="practice")]
    days = build_week(dt.date(2024, 6, 12), events, today=dt.date(2024, 6, 10))

    assert [d.date for d in days] == [dt.date(2024, 6, 9) + dt.timedelta(days=i) for i in range(7)]
    assert days[-1].badges == ["practice"]
    assert [d.is_today for d in days].index(True) == 1


def test_last_supported_years():
    assert month_bounds(9999, 12) == (dt.date(9999, 12, 1), dt.date(9999, 12, 31))

    cells = build_month_grid(9998, 12, [], today=dt.date(2000, 1, 1))
    assert cells[-1].date.year == 9999
    assert sum(c.in_current_month for c in cells) == 31
