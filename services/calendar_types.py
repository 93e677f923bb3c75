"""Immutable value types shared by the calendar services.

Everything here is a frozen dataclass so a catalog snapshot (a tuple of
EventDefinition) can be handed to the services without anyone mutating it
underneath them.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple


RECURRENCE_KINDS = ('none', 'daily', 'weekly', 'monthly', 'custom')
EVENT_COLORS = ('blue', 'green', 'purple', 'red', 'yellow', 'indigo')
DEFAULT_COLOR = 'blue'


class MalformedRuleError(ValueError):
    """A recurrence rule that cannot be expanded safely."""


class EventValidationError(ValueError):
    """User-facing form errors (empty title, end before start)."""

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__('; '.join(self.messages))


class EventDecodeError(ValueError):
    """A stored or submitted event record that does not have the expected shape."""


class EventNotFoundError(LookupError):
    pass


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RecurrenceRule:
    kind: str = 'none'
    interval: int = 1
    days_of_week: Tuple[int, ...] = ()
    end_date: Optional[datetime] = None
    count: Optional[int] = None

    def __post_init__(self):
        if self.kind not in RECURRENCE_KINDS:
            raise MalformedRuleError(f"Unknown recurrence kind: {self.kind!r}")
        if not _is_int(self.interval) or self.interval < 1:
            raise MalformedRuleError(f"Recurrence interval must be a positive integer, got {self.interval!r}")
        days = []
        for day in self.days_of_week or ():
            if not _is_int(day) or not (0 <= day <= 6):
                raise MalformedRuleError(f"Weekday index must be between 0 (Sunday) and 6 (Saturday), got {day!r}")
            days.append(day)
        # Sorted and unique so the weekly stepper can scan left to right.
        object.__setattr__(self, 'days_of_week', tuple(sorted(set(days))))
        if self.count is not None and (not _is_int(self.count) or self.count < 1):
            raise MalformedRuleError(f"Recurrence count must be a positive integer, got {self.count!r}")

    @property
    def is_recurring(self):
        return self.kind != 'none'


@dataclass(frozen=True)
class EventDefinition:
    id: str
    title: str
    start: datetime
    end: datetime
    color: str = DEFAULT_COLOR
    description: Optional[str] = None
    recurrence: RecurrenceRule = field(default_factory=RecurrenceRule)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class Occurrence(EventDefinition):
    """One concrete instance of an event inside a window. Never persisted."""
    is_recurring_instance: bool = False
    parent_event_id: Optional[str] = None


@dataclass(frozen=True)
class EventForm:
    """Every user-editable field of an event; an update replaces all of them."""
    title: str
    start: datetime
    end: datetime
    color: str = DEFAULT_COLOR
    description: Optional[str] = None
    recurrence: RecurrenceRule = field(default_factory=RecurrenceRule)

    def to_definition(self, event_id) -> EventDefinition:
        return EventDefinition(
            id=event_id,
            title=self.title,
            start=self.start,
            end=self.end,
            color=self.color,
            description=self.description,
            recurrence=self.recurrence,
        )


@dataclass(frozen=True)
class Day:
    date: date
    is_current_month: bool
    is_today: bool
    events: Tuple[EventDefinition, ...] = ()


@dataclass(frozen=True)
class Month:
    days: Tuple[Day, ...]
    name: str
    year: int

    def weeks(self) -> List[Tuple[Day, ...]]:
        return [self.days[i:i + 7] for i in range(0, len(self.days), 7)]
