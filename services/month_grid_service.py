"""Lay out a month as whole Sunday-first weeks of day cells."""
import calendar
from datetime import date, datetime, timedelta

from services.calendar_types import Day, Month
from services.date_helpers import (
    end_of_month,
    end_of_week,
    same_day,
    start_of_day,
    start_of_month,
    start_of_week,
)


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def event_falls_on(event, day_value):
    """Whether `event` should be listed in the cell for `day_value`.

    Recurring events are matched against their own start/end span (plus
    their start day), not against the expanded occurrence set.
    """
    if not event.recurrence.is_recurring:
        return same_day(event.start, day_value)
    midnight = start_of_day(day_value)
    return event.start <= midnight <= event.end or same_day(event.start, day_value)


def build_month(anchor, catalog, today=None):
    anchor = _as_date(anchor)
    today = _as_date(today) if today is not None else date.today()
    month_start = start_of_month(anchor)
    grid_start = start_of_week(month_start)
    grid_end = end_of_week(end_of_month(anchor))

    days = []
    current = grid_start
    while current <= grid_end:
        days.append(Day(
            date=current,
            is_current_month=(current.year, current.month) == (month_start.year, month_start.month),
            is_today=current == today,
            events=tuple(event for event in catalog if event_falls_on(event, current)),
        ))
        current += timedelta(days=1)

    return Month(
        days=tuple(days),
        name=calendar.month_name[month_start.month],
        year=month_start.year,
    )
