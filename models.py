from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

from services.calendar_types import EventDefinition, RecurrenceRule
from services.event_codec import encode_event
from services.validation_service import parse_days_of_week

db = SQLAlchemy()


class CalendarEvent(db.Model):
    """
    One stored event definition. Recurring events keep a single row; their
    occurrences are expanded on read and never stored.
    All datetimes are naive and in server local time.
    """
    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start = db.Column('starts_at', db.DateTime, nullable=False)
    end = db.Column('ends_at', db.DateTime, nullable=False)
    color = db.Column(db.String(20), default='blue')
    recurrence_kind = db.Column(db.String(20), nullable=False, default='none')  # none | daily | weekly | monthly | custom
    recurrence_interval = db.Column(db.Integer, nullable=False, default=1)
    recurrence_days = db.Column(db.String(20), nullable=True)  # comma-separated weekday indices, 0=Sunday
    recurrence_end = db.Column(db.DateTime, nullable=True)
    recurrence_count = db.Column(db.Integer, nullable=True)
    order_index = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_definition(self):
        return EventDefinition(
            id=self.id,
            title=self.title,
            start=self.start,
            end=self.end,
            color=self.color or 'blue',
            description=self.description,
            recurrence=RecurrenceRule(
                kind=self.recurrence_kind or 'none',
                interval=self.recurrence_interval or 1,
                days_of_week=tuple(parse_days_of_week(self.recurrence_days)),
                end_date=self.recurrence_end,
                count=self.recurrence_count,
            ),
        )

    def apply_definition(self, event):
        """Overwrite every stored field from an EventDefinition."""
        rule = event.recurrence
        self.id = event.id
        self.title = event.title
        self.description = event.description
        self.start = event.start
        self.end = event.end
        self.color = event.color
        self.recurrence_kind = rule.kind
        self.recurrence_interval = rule.interval
        self.recurrence_days = ','.join(str(d) for d in rule.days_of_week) or None
        self.recurrence_end = rule.end_date
        self.recurrence_count = rule.count
        return self

    @classmethod
    def from_definition(cls, event, order_index=0):
        return cls(order_index=order_index).apply_definition(event)

    def to_dict(self):
        data = encode_event(self.to_definition())
        data['order_index'] = self.order_index
        data['created_at'] = self.created_at.isoformat() if self.created_at else None
        data['updated_at'] = self.updated_at.isoformat() if self.updated_at else None
        return data
