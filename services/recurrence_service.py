"""Expand recurring event definitions into concrete occurrences for a window."""
import re
from datetime import timedelta

from services.calendar_types import Occurrence
from services.date_helpers import add_months, epoch_millis, weekday_index

_MILLIS_PATTERN = re.compile(r"^-?\d+$")


def occurrence_id(base_id, start):
    return f"{base_id}-{epoch_millis(start)}"


def _next_weekly_cursor(cursor, interval, days_of_week):
    current = weekday_index(cursor)
    for day in days_of_week:
        if day > current:
            return cursor + timedelta(days=day - current)
    # Past the last listed weekday: jump `interval` weeks, then back/forward
    # to the first listed weekday of that Sunday-first week.
    jumped = cursor + timedelta(weeks=interval)
    return jumped + timedelta(days=days_of_week[0] - weekday_index(jumped))


def next_cursor(rule, cursor):
    """Advance one step according to the rule's kind and interval."""
    if rule.kind in ('daily', 'custom'):
        return cursor + timedelta(days=rule.interval)
    if rule.kind == 'weekly':
        if rule.days_of_week:
            return _next_weekly_cursor(cursor, rule.interval, rule.days_of_week)
        return cursor + timedelta(weeks=rule.interval)
    if rule.kind == 'monthly':
        return add_months(cursor, rule.interval)
    raise ValueError(f"Cannot step a rule of kind {rule.kind!r}")


def expand(event, window_start, window_end):
    """Return the occurrences of `event` visible in [window_start, window_end).

    Non-recurring events come back unchanged as a one-element list. For
    recurring events the defining occurrence is always emitted, even when it
    precedes the window; later ones only once they are after window_start.
    Expansion stops at window_end, the rule's end_date or its count,
    whichever comes first.
    """
    rule = event.recurrence
    if not rule.is_recurring:
        return [event]

    duration = event.duration
    occurrences = []
    cursor = event.start
    while (
        cursor < window_end
        and (rule.end_date is None or cursor < rule.end_date)
        and (rule.count is None or len(occurrences) < rule.count)
    ):
        if cursor == event.start or cursor > window_start:
            occurrences.append(Occurrence(
                id=occurrence_id(event.id, cursor),
                title=event.title,
                start=cursor,
                end=cursor + duration,
                color=event.color,
                description=event.description,
                recurrence=rule,
                is_recurring_instance=True,
                parent_event_id=event.id,
            ))
        try:
            cursor = next_cursor(rule, cursor)
        except (OverflowError, ValueError):
            # Stepped past datetime.max, so necessarily past window_end.
            break
    return occurrences


def expand_catalog(catalog, window_start, window_end):
    """Expand every definition in the catalog, ordered by start (stable)."""
    occurrences = []
    for event in catalog:
        occurrences.extend(expand(event, window_start, window_end))
    occurrences.sort(key=lambda occ: occ.start)
    return occurrences


def base_event_id(catalog, event_or_occurrence_id):
    """Resolve an occurrence id (or a plain event id) to its base event id."""
    ids = {event.id for event in catalog}
    if event_or_occurrence_id in ids:
        return event_or_occurrence_id
    text = str(event_or_occurrence_id)
    for base in sorted(ids, key=len, reverse=True):
        if text.startswith(base + '-') and _MILLIS_PATTERN.match(text[len(base) + 1:]):
            return base
    return None
