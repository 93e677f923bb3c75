"""The one place catalog snapshots change.

A catalog is a tuple of EventDefinition. Every operation here takes a
snapshot and returns a new one; nothing is mutated in place.
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Tuple

from services.calendar_types import EventDefinition, EventNotFoundError
from services.conflict_service import describe_conflicts, find_conflicts
from services.validation_service import validate_event_form


@dataclass(frozen=True)
class SubmissionResult:
    catalog: Tuple[EventDefinition, ...]
    event: EventDefinition
    conflicts: List[EventDefinition]

    @property
    def accepted(self):
        return not self.conflicts

    def conflict_messages(self):
        return describe_conflicts(self.conflicts)


def new_event_id():
    return str(uuid.uuid4())


def get_event(catalog, event_id):
    for event in catalog:
        if event.id == event_id:
            return event
    raise EventNotFoundError(f"Event {event_id!r} not found")


def add_event(catalog, form, event_id=None):
    event = form.to_definition(event_id or new_event_id())
    return tuple(catalog) + (event,)


def update_event(catalog, event_id, form):
    get_event(catalog, event_id)
    updated = form.to_definition(event_id)
    return tuple(updated if event.id == event_id else event for event in catalog)


def delete_event(catalog, event_id):
    get_event(catalog, event_id)
    return tuple(event for event in catalog if event.id != event_id)


def submit_event(catalog, form, editing_id=None, event_id=None):
    """Validate, conflict-check, then create (or replace `editing_id`).

    Raises EventValidationError for form errors. Conflicts are not raised:
    the result comes back with `accepted` False and the catalog unchanged.
    """
    validate_event_form(form)
    if editing_id is not None:
        get_event(catalog, editing_id)
        candidate = form.to_definition(editing_id)
    else:
        candidate = form.to_definition(event_id or new_event_id())

    conflicts = find_conflicts(candidate, catalog, exclude_id=editing_id)
    if conflicts:
        return SubmissionResult(catalog=tuple(catalog), event=candidate, conflicts=conflicts)

    if editing_id is not None:
        new_catalog = update_event(catalog, editing_id, form)
    else:
        new_catalog = add_event(catalog, form, candidate.id)
    return SubmissionResult(catalog=new_catalog, event=candidate, conflicts=[])


def reschedule_event(event, target_day):
    """Move an event to another day, keeping its time of day and duration."""
    new_start = datetime.combine(target_day, event.start.time())
    return replace(event, start=new_start, end=new_start + event.duration)


def move_event(catalog, event_id, target_day):
    """Drag-to-reschedule: conflict-checked update of the event's day."""
    event = get_event(catalog, event_id)
    moved = reschedule_event(event, target_day)
    conflicts = find_conflicts(moved, catalog, exclude_id=event_id)
    if conflicts:
        return SubmissionResult(catalog=tuple(catalog), event=moved, conflicts=conflicts)
    new_catalog = tuple(moved if item.id == event_id else item for item in catalog)
    return SubmissionResult(catalog=new_catalog, event=moved, conflicts=[])


def search_events(catalog, term: Optional[str]):
    """Case-insensitive substring match on title or description."""
    needle = (term or '').strip().lower()
    if not needle:
        return []
    return [
        event for event in catalog
        if needle in event.title.lower() or needle in (event.description or '').lower()
    ]
