import os
from datetime import date, datetime, timedelta

from dotenv import load_dotenv
from flask import Flask, request, jsonify

load_dotenv()

from models import db, CalendarEvent
from services.calendar_types import (
    EventDecodeError,
    EventValidationError,
    MalformedRuleError,
)
from services.catalog_service import (
    move_event,
    search_events,
    submit_event,
)
from services.conflict_service import describe_conflicts, find_conflicts
from services.event_codec import decode_catalog, encode_catalog, encode_event, encode_month
from services.month_grid_service import build_month
from services.recurrence_service import base_event_id, expand_catalog
from services.validation_service import (
    parse_day_value,
    parse_event_form,
    validate_event_form,
)

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///calendar.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['CALENDAR_MAX_WINDOW_DAYS'] = int(os.environ.get('CALENDAR_MAX_WINDOW_DAYS', 366))

db.init_app(app)

with app.app_context():
    db.create_all()


# Invalid input from the client, reported as 400.
INPUT_ERRORS = (EventDecodeError, MalformedRuleError)


def load_catalog():
    """Fresh immutable snapshot of every stored event definition."""
    rows = CalendarEvent.query.order_by(CalendarEvent.order_index.asc(), CalendarEvent.created_at.asc()).all()
    return tuple(row.to_definition() for row in rows)


def _next_order_index():
    current_max = db.session.query(db.func.max(CalendarEvent.order_index)).scalar()
    return (current_max or 0) + 1


def _conflict_response(result, verb):
    titles = ', '.join(f'"{c.title}"' for c in result.conflicts)
    app.logger.warning("Rejected %s of %r: conflicts with %s", verb, result.event.title, titles)
    return jsonify({
        'error': 'This event conflicts with existing events',
        'conflict_warning': True,
        'conflicts': result.conflict_messages(),
        'conflict_event_ids': [c.id for c in result.conflicts],
    }), 409


def _validation_response(exc):
    return jsonify({'error': str(exc), 'messages': exc.messages}), 400


def _parse_window(start_raw, end_raw):
    """Return (window_start, window_end) as midnights; end day is inclusive."""
    start_day = parse_day_value(start_raw) if start_raw else date.today().replace(day=1)
    if not start_day:
        raise EventDecodeError('Invalid start date')
    if end_raw:
        end_day = parse_day_value(end_raw)
        if not end_day:
            raise EventDecodeError('Invalid end date')
    else:
        # Default end to end-of-month for start_day
        next_month = (start_day.replace(day=28) + timedelta(days=4)).replace(day=1)
        end_day = next_month - timedelta(days=1)
    if end_day < start_day:
        raise EventDecodeError('end must be on/after start')
    if (end_day - start_day).days + 1 > app.config['CALENDAR_MAX_WINDOW_DAYS']:
        raise EventDecodeError(f"Window is limited to {app.config['CALENDAR_MAX_WINDOW_DAYS']} days")
    window_start = datetime.combine(start_day, datetime.min.time())
    window_end = datetime.combine(end_day + timedelta(days=1), datetime.min.time())
    return window_start, window_end


@app.route('/api/calendar/events', methods=['GET', 'POST'])
def calendar_events():
    if request.method == 'GET':
        return jsonify([row.to_dict() for row in CalendarEvent.query.order_by(
            CalendarEvent.order_index.asc(), CalendarEvent.created_at.asc()).all()])

    catalog = load_catalog()
    try:
        form = parse_event_form(request.get_json(silent=True))
        result = submit_event(catalog, form)
    except EventValidationError as exc:
        return _validation_response(exc)
    except INPUT_ERRORS as exc:
        return jsonify({'error': str(exc)}), 400

    if not result.accepted:
        return _conflict_response(result, 'create')

    row = CalendarEvent.from_definition(result.event, order_index=_next_order_index())
    db.session.add(row)
    db.session.commit()
    app.logger.info("Created event %s (%s)", row.id, row.title)
    return jsonify(row.to_dict()), 201


@app.route('/api/calendar/events/<event_id>', methods=['GET', 'PUT', 'DELETE'])
def calendar_event_detail(event_id):
    row = db.get_or_404(CalendarEvent, event_id)

    if request.method == 'GET':
        return jsonify(row.to_dict())

    if request.method == 'DELETE':
        db.session.delete(row)
        db.session.commit()
        app.logger.info("Deleted event %s", event_id)
        return '', 204

    catalog = load_catalog()
    try:
        form = parse_event_form(request.get_json(silent=True))
        result = submit_event(catalog, form, editing_id=event_id)
    except EventValidationError as exc:
        return _validation_response(exc)
    except INPUT_ERRORS as exc:
        return jsonify({'error': str(exc)}), 400

    if not result.accepted:
        return _conflict_response(result, 'update')

    row.apply_definition(result.event)
    db.session.commit()
    app.logger.info("Updated event %s (%s)", row.id, row.title)
    return jsonify(row.to_dict())


@app.route('/api/calendar/events/<event_id>/move', methods=['POST'])
def move_calendar_event(event_id):
    """Drag-to-reschedule. Accepts a base event id or an occurrence id."""
    catalog = load_catalog()
    base_id = base_event_id(catalog, event_id)
    if base_id is None:
        return jsonify({'error': 'Event not found'}), 404

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Move payload must be a JSON object'}), 400
    target_day = parse_day_value(data.get('day'))
    if not target_day:
        return jsonify({'error': 'Invalid day'}), 400

    result = move_event(catalog, base_id, target_day)
    if not result.accepted:
        return _conflict_response(result, 'move')

    row = db.session.get(CalendarEvent, base_id)
    row.apply_definition(result.event)
    db.session.commit()
    app.logger.info("Moved event %s to %s", base_id, target_day.isoformat())
    return jsonify(row.to_dict())


@app.route('/api/calendar/conflicts', methods=['POST'])
def check_calendar_conflicts():
    """Dry-run conflict check for a form that has not been submitted yet."""
    data = request.get_json(silent=True) or {}
    try:
        form = validate_event_form(parse_event_form(data))
    except EventValidationError as exc:
        return _validation_response(exc)
    except INPUT_ERRORS as exc:
        return jsonify({'error': str(exc)}), 400

    exclude_id = data.get('exclude_id')
    candidate = form.to_definition(exclude_id or 'candidate')
    conflicts = find_conflicts(candidate, load_catalog(), exclude_id=exclude_id)
    return jsonify({
        'conflict': bool(conflicts),
        'conflicts': describe_conflicts(conflicts),
        'conflict_event_ids': [c.id for c in conflicts],
    })


@app.route('/api/calendar/month')
def calendar_month():
    raw = request.args.get('date')
    anchor = parse_day_value(raw) if raw else date.today()
    if not anchor:
        return jsonify({'error': 'Invalid date'}), 400
    return jsonify(encode_month(build_month(anchor, load_catalog())))


@app.route('/api/calendar/occurrences')
def calendar_occurrences():
    try:
        window_start, window_end = _parse_window(request.args.get('start'), request.args.get('end'))
    except EventDecodeError as exc:
        return jsonify({'error': str(exc)}), 400

    occurrences = expand_catalog(load_catalog(), window_start, window_end)
    return jsonify({
        'start': window_start.date().isoformat(),
        'end': (window_end - timedelta(days=1)).date().isoformat(),
        'occurrences': [encode_event(occ) for occ in occurrences],
    })


@app.route('/api/calendar/search')
def calendar_search():
    query = (request.args.get('q') or request.args.get('query') or '').strip()
    if not query:
        return jsonify({'query': '', 'results': []})
    results = search_events(load_catalog(), query)
    return jsonify({'query': query, 'results': [encode_event(ev) for ev in results]})


@app.route('/api/calendar/export')
def export_calendar():
    return jsonify(encode_catalog(load_catalog()))


@app.route('/api/calendar/import', methods=['POST'])
def import_calendar():
    """Replace the whole catalog with a previously exported list."""
    try:
        catalog = decode_catalog(request.get_json(silent=True))
    except EventDecodeError as exc:
        return jsonify({'error': str(exc)}), 400

    seen = set()
    for event in catalog:
        if event.id in seen:
            return jsonify({'error': f'Duplicate event id {event.id!r}'}), 400
        seen.add(event.id)
        if event.end < event.start:
            return jsonify({'error': f'Event {event.id!r} ends before it starts'}), 400

    CalendarEvent.query.delete()
    for idx, event in enumerate(catalog, start=1):
        db.session.add(CalendarEvent.from_definition(event, order_index=idx))
    db.session.commit()
    app.logger.info("Imported %d events", len(catalog))
    return jsonify({'imported': len(catalog)})


if __name__ == '__main__':
    app.run(host='0.0.0.0', debug=True)
