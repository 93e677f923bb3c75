"""Local-clock date arithmetic used by the calendar services.

All values are naive datetimes/dates interpreted in the server's local time.
Weekdays follow the calendar UI convention: 0=Sunday .. 6=Saturday.
"""
import calendar
import time as _time
from datetime import datetime, timedelta


def weekday_index(value):
    """Sunday-based weekday (0=Sunday); Python's weekday() is Monday-based."""
    return (value.weekday() + 1) % 7


def same_day(a, b):
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def start_of_day(value):
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def add_months(value, months):
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    _, last_dom = calendar.monthrange(year, month)
    return value.replace(year=year, month=month, day=min(value.day, last_dom))


def next_month(value):
    return add_months(value, 1)


def prev_month(value):
    return add_months(value, -1)


def start_of_month(value):
    return value.replace(day=1)


def end_of_month(value):
    _, last_dom = calendar.monthrange(value.year, value.month)
    return value.replace(day=last_dom)


def start_of_week(value):
    return value - timedelta(days=weekday_index(value))


def end_of_week(value):
    return value + timedelta(days=6 - weekday_index(value))


def epoch_millis(value):
    """Milliseconds since the epoch for a naive local datetime."""
    seconds = int(_time.mktime(value.timetuple()))
    return seconds * 1000 + value.microsecond // 1000


def format_time(value):
    """'9:05 AM' style, without a leading zero on the hour."""
    hour = value.hour % 12 or 12
    suffix = 'PM' if value.hour >= 12 else 'AM'
    return f"{hour}:{value.minute:02d} {suffix}"
