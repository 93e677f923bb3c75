"""Explicit encode/decode between event values and JSON-ready dicts.

Dates travel as ISO-8601 strings. Decoding never trusts the stored shape:
every required field is checked and malformed input raises EventDecodeError.
"""
from services.calendar_types import EventDecodeError, EventDefinition, MalformedRuleError, Occurrence
from services.validation_service import build_recurrence_rule, parse_iso_datetime

REQUIRED_FIELDS = ("id", "title", "start", "end")


def encode_rule(rule):
    return {
        "kind": rule.kind,
        "interval": rule.interval,
        "days_of_week": list(rule.days_of_week),
        "end_date": rule.end_date.isoformat() if rule.end_date else None,
        "count": rule.count,
    }


def encode_event(event):
    data = {
        "id": event.id,
        "title": event.title,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "description": event.description,
        "color": event.color,
        "recurrence": encode_rule(event.recurrence),
    }
    if isinstance(event, Occurrence):
        data["is_recurring_instance"] = event.is_recurring_instance
        data["parent_event_id"] = event.parent_event_id
    return data


def decode_event(record):
    if not isinstance(record, dict):
        raise EventDecodeError(f"Event record must be an object, got {type(record).__name__}")
    missing = [name for name in REQUIRED_FIELDS if not str(record.get(name) or "").strip()]
    if missing:
        raise EventDecodeError(f"Event record is missing {', '.join(missing)}")
    try:
        recurrence = build_recurrence_rule(record.get("recurrence"))
    except MalformedRuleError as exc:
        raise EventDecodeError(f"Event {record['id']!r} has a malformed recurrence: {exc}") from exc
    return EventDefinition(
        id=str(record["id"]),
        title=str(record["title"]),
        start=parse_iso_datetime(record["start"], "start"),
        end=parse_iso_datetime(record["end"], "end"),
        color=str(record.get("color") or "blue"),
        description=record.get("description"),
        recurrence=recurrence,
    )


def encode_catalog(catalog):
    return [encode_event(event) for event in catalog]


def decode_catalog(records):
    if not isinstance(records, list):
        raise EventDecodeError("Catalog must be a list of event records")
    return tuple(decode_event(record) for record in records)


def encode_month(month):
    return {
        "name": month.name,
        "year": month.year,
        "days": [
            {
                "date": day.date.isoformat(),
                "is_current_month": day.is_current_month,
                "is_today": day.is_today,
                "events": [encode_event(event) for event in day.events],
            }
            for day in month.days
        ],
    }
