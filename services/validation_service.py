import re
from datetime import date, datetime, time

from services.calendar_types import (
    DEFAULT_COLOR,
    EVENT_COLORS,
    EventDecodeError,
    EventForm,
    EventValidationError,
    MalformedRuleError,
    RecurrenceRule,
)


def parse_time_str(val):
    """Parse 24h or am/pm strings into a time object; return None on failure."""
    if not val:
        return None
    if isinstance(val, time):
        return val
    s = str(val).strip().lower().replace(" ", "")

    pattern = r"^(?P<hour>\d{1,2})(:(?P<minute>\d{1,2}))?(:(?P<second>\d{1,2}))?(?P<ampm>a|p|am|pm)?$"
    m = re.match(pattern, s)
    if not m:
        return None
    try:
        hour = int(m.group("hour"))
        minute = int(m.group("minute") or 0)
        ampm = m.group("ampm")
        if m.group("second") is not None:
            sec_val = int(m.group("second"))
            if not (0 <= sec_val <= 59):
                return None
        if ampm:
            if ampm in ("p", "pm") and hour != 12:
                hour += 12
            if ampm in ("a", "am") and hour == 12:
                hour = 0
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return None
        return time(hour=hour, minute=minute)
    except (TypeError, ValueError):
        return None


def parse_days_of_week(raw):
    """Weekday indices (0=Sunday) from a list or comma string, sorted and unique.

    Unlike the other parsers this one is strict: anything that is not an
    integer in 0-6 raises MalformedRuleError instead of being dropped.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, (list, tuple)):
        values = raw
    else:
        values = [v for v in str(raw).split(",") if v.strip()]
    days = []
    for val in values:
        if isinstance(val, bool):
            raise MalformedRuleError(f"Invalid weekday: {val!r}")
        try:
            day = int(val)
        except (TypeError, ValueError):
            raise MalformedRuleError(f"Invalid weekday: {val!r}")
        if not (0 <= day <= 6):
            raise MalformedRuleError(f"Weekday out of range 0-6: {day}")
        days.append(day)
    return sorted(set(days))


def parse_day_value(raw):
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def parse_iso_datetime(value, field_name="value"):
    """Parse an ISO-8601 string into a naive local datetime.

    A trailing 'Z' or explicit offset is converted to the local clock.
    Raises EventDecodeError on anything else.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise EventDecodeError(f"{field_name} is not an ISO-8601 date-time: {value!r}")
    else:
        raise EventDecodeError(f"{field_name} must be an ISO-8601 string, got {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _parse_positive_int(raw, field_name, default=None):
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise MalformedRuleError(f"{field_name} must be a positive integer")
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError):
        raise MalformedRuleError(f"{field_name} must be a positive integer, got {raw!r}")
    if isinstance(raw, float) and raw != value:
        raise MalformedRuleError(f"{field_name} must be a positive integer, got {raw!r}")
    if value < 1:
        raise MalformedRuleError(f"{field_name} must be a positive integer, got {raw!r}")
    return value


def build_recurrence_rule(data):
    """Build a RecurrenceRule from a loose dict (JSON body or stored record)."""
    if not data:
        return RecurrenceRule()
    if not isinstance(data, dict):
        raise MalformedRuleError("recurrence must be an object")
    kind = str(data.get("kind") or data.get("type") or "none").strip().lower()
    days = data.get("days_of_week", data.get("daysOfWeek"))
    end_raw = data.get("end_date", data.get("endDate"))
    return RecurrenceRule(
        kind=kind,
        interval=_parse_positive_int(data.get("interval"), "interval", default=1),
        days_of_week=tuple(parse_days_of_week(days)),
        end_date=parse_iso_datetime(end_raw, "recurrence.end_date") if end_raw else None,
        count=_parse_positive_int(data.get("count"), "count"),
    )


def _parse_bound(data, key, day_value):
    """Accept either a full ISO `start`/`end` or a `day` plus `start_time`/`end_time`."""
    if data.get(key):
        return parse_iso_datetime(data.get(key), key)
    raw_time = data.get(f"{key}_time")
    if day_value is None or not raw_time:
        raise EventDecodeError(f"{key} is required")
    parsed = parse_time_str(raw_time)
    if parsed is None:
        raise EventDecodeError(f"Invalid {key}_time: {raw_time!r}")
    return datetime.combine(day_value, parsed)


def parse_event_form(data):
    """Turn a submitted JSON body into an EventForm.

    Raises EventDecodeError for missing/garbled fields and MalformedRuleError
    for a bad recurrence rule. Title and ordering checks are left to
    validate_event_form so every user-facing message is reported together.
    """
    if not isinstance(data, dict):
        raise EventDecodeError("Event payload must be a JSON object")
    day_value = None
    if data.get("day"):
        day_value = parse_day_value(data.get("day"))
        if day_value is None:
            raise EventDecodeError(f"Invalid day: {data.get('day')!r}")
    start = _parse_bound(data, "start", day_value)
    end = _parse_bound(data, "end", day_value)

    color = str(data.get("color") or DEFAULT_COLOR).strip().lower()
    if color not in EVENT_COLORS:
        raise EventDecodeError(f"Unknown color: {color!r}")
    description = str(data.get("description") or "").strip() or None

    return EventForm(
        title=str(data.get("title") or "").strip(),
        start=start,
        end=end,
        color=color,
        description=description,
        recurrence=build_recurrence_rule(data.get("recurrence")),
    )


def validate_event_form(form):
    errors = []
    if not form.title.strip():
        errors.append("Title is required")
    if form.end < form.start:
        errors.append("End time cannot be before start time")
    if errors:
        raise EventValidationError(errors)
    return form
