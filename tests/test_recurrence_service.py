from datetime import datetime, timedelta

import pytest

from services.calendar_types import EventDefinition, MalformedRuleError, RecurrenceRule
from services.date_helpers import epoch_millis
from services.recurrence_service import base_event_id, expand, expand_catalog, next_cursor


FAR_PAST = datetime(2000, 1, 1)
FAR_FUTURE = datetime(2100, 1, 1)


def _event(start, end=None, event_id='evt', **rule):
    return EventDefinition(
        id=event_id,
        title='Standup',
        start=start,
        end=end or start + timedelta(hours=1),
        color='green',
        description='daily sync',
        recurrence=RecurrenceRule(**rule) if rule else RecurrenceRule(),
    )


def _starts(occurrences):
    return [occ.start for occ in occurrences]


def test_non_recurring_event_expands_to_itself():
    event = _event(datetime(2024, 3, 1, 9))
    result = expand(event, datetime(2024, 4, 1), datetime(2024, 5, 1))
    assert len(result) == 1
    assert result[0] is event


def test_weekly_days_of_week_follow_rollover():
    event = _event(datetime(2024, 3, 1, 9), datetime(2024, 3, 1, 10),
                   kind='weekly', interval=1, days_of_week=(1, 3, 5))
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 3, 15))
    assert _starts(result) == [
        datetime(2024, 3, 1, 9),
        datetime(2024, 3, 4, 9),
        datetime(2024, 3, 6, 9),
        datetime(2024, 3, 8, 9),
        datetime(2024, 3, 11, 9),
        datetime(2024, 3, 13, 9),
    ]


def test_weekly_days_before_start_weekday_still_advance():
    # Friday start, only Mondays listed.
    event = _event(datetime(2024, 3, 1, 9), kind='weekly', days_of_week=(1,))
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 3, 19))
    assert _starts(result) == [
        datetime(2024, 3, 1, 9),
        datetime(2024, 3, 4, 9),
        datetime(2024, 3, 11, 9),
        datetime(2024, 3, 18, 9),
    ]


def test_weekly_days_with_interval_skips_weeks():
    event = _event(datetime(2024, 3, 4, 9), kind='weekly', interval=2, days_of_week=(3, 1))
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 4, 2))
    assert _starts(result) == [
        datetime(2024, 3, 4, 9),
        datetime(2024, 3, 6, 9),
        datetime(2024, 3, 18, 9),
        datetime(2024, 3, 20, 9),
        datetime(2024, 4, 1, 9),
    ]


def test_weekly_without_days_steps_whole_weeks():
    event = _event(datetime(2024, 3, 1, 9), kind='weekly', interval=2)
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 4, 1))
    assert _starts(result) == [datetime(2024, 3, 1, 9), datetime(2024, 3, 15, 9), datetime(2024, 3, 29, 9)]


def test_monthly_clamps_to_month_end_in_leap_year():
    event = _event(datetime(2024, 1, 31, 9), kind='monthly', count=3)
    result = expand(event, FAR_PAST, FAR_FUTURE)
    assert _starts(result) == [datetime(2024, 1, 31, 9), datetime(2024, 2, 29, 9), datetime(2024, 3, 29, 9)]


def test_monthly_clamps_to_month_end_in_common_year():
    event = _event(datetime(2023, 1, 31, 9), kind='monthly', count=3)
    result = expand(event, FAR_PAST, FAR_FUTURE)
    assert _starts(result) == [datetime(2023, 1, 31, 9), datetime(2023, 2, 28, 9), datetime(2023, 3, 28, 9)]


def test_daily_and_custom_step_by_interval_days():
    daily = _event(datetime(2024, 3, 1, 9), kind='daily', interval=3, count=3)
    custom = _event(datetime(2024, 3, 1, 9), kind='custom', interval=3, count=3)
    expected = [datetime(2024, 3, 1, 9), datetime(2024, 3, 4, 9), datetime(2024, 3, 7, 9)]
    assert _starts(expand(daily, FAR_PAST, FAR_FUTURE)) == expected
    assert _starts(expand(custom, FAR_PAST, FAR_FUTURE)) == expected


def test_count_caps_occurrences():
    event = _event(datetime(2024, 3, 1, 9), kind='daily', count=5)
    assert len(expand(event, FAR_PAST, FAR_FUTURE)) == 5


def test_window_end_cuts_count_short():
    event = _event(datetime(2024, 3, 1, 9), kind='daily', count=10)
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 3, 4))
    assert _starts(result) == [datetime(2024, 3, 1, 9), datetime(2024, 3, 2, 9), datetime(2024, 3, 3, 9)]


def test_end_date_is_exclusive():
    event = _event(datetime(2024, 3, 1, 9), kind='daily', end_date=datetime(2024, 3, 4, 9))
    result = expand(event, FAR_PAST, FAR_FUTURE)
    assert _starts(result) == [datetime(2024, 3, 1, 9), datetime(2024, 3, 2, 9), datetime(2024, 3, 3, 9)]


def test_end_date_and_count_both_apply():
    event = _event(datetime(2024, 3, 1, 9), kind='daily', count=10, end_date=datetime(2024, 3, 3))
    assert len(expand(event, FAR_PAST, FAR_FUTURE)) == 2
    event = _event(datetime(2024, 3, 1, 9), kind='daily', count=2, end_date=datetime(2024, 3, 10))
    assert len(expand(event, FAR_PAST, FAR_FUTURE)) == 2


def test_defining_occurrence_kept_when_before_window():
    event = _event(datetime(2024, 2, 25, 9), kind='daily')
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 3, 4))
    assert _starts(result) == [
        datetime(2024, 2, 25, 9),
        datetime(2024, 3, 1, 9),
        datetime(2024, 3, 2, 9),
        datetime(2024, 3, 3, 9),
    ]


def test_cursor_equal_to_window_start_is_not_emitted():
    event = _event(datetime(2024, 2, 28), kind='daily')
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 3, 3))
    assert _starts(result) == [datetime(2024, 2, 28), datetime(2024, 3, 2)]


def test_occurrences_preserve_duration_and_order():
    start = datetime(2024, 3, 1, 22, 30)
    event = _event(start, start + timedelta(hours=3, minutes=15), kind='weekly', days_of_week=(0, 2, 4, 6))
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 6, 1))
    assert all(occ.end - occ.start == event.duration for occ in result)
    starts = _starts(result)
    assert starts == sorted(set(starts))


def test_generated_occurrence_fields():
    event = _event(datetime(2024, 3, 1, 9), kind='daily', count=2)
    first, second = expand(event, FAR_PAST, FAR_FUTURE)
    assert second.id == f"evt-{epoch_millis(datetime(2024, 3, 2, 9))}"
    assert second.is_recurring_instance is True
    assert second.parent_event_id == 'evt'
    assert (second.title, second.color, second.description) == ('Standup', 'green', 'daily sync')
    assert first.id == f"evt-{epoch_millis(event.start)}"


def test_rule_rejects_bad_interval_and_weekdays():
    with pytest.raises(MalformedRuleError):
        RecurrenceRule(kind='daily', interval=0)
    with pytest.raises(MalformedRuleError):
        RecurrenceRule(kind='daily', interval=-2)
    with pytest.raises(MalformedRuleError):
        RecurrenceRule(kind='weekly', days_of_week=(1, 7))
    with pytest.raises(MalformedRuleError):
        RecurrenceRule(kind='daily', count=0)
    with pytest.raises(MalformedRuleError):
        RecurrenceRule(kind='yearly')


def test_rule_normalises_days_of_week():
    assert RecurrenceRule(kind='weekly', days_of_week=(5, 1, 3, 1)).days_of_week == (1, 3, 5)


def test_next_cursor_refuses_non_recurring_rule():
    with pytest.raises(ValueError):
        next_cursor(RecurrenceRule(), datetime(2024, 3, 1))


def test_expand_catalog_merges_in_start_order():
    daily = _event(datetime(2024, 3, 1, 12), event_id='lunch', kind='daily', count=3)
    single = _event(datetime(2024, 3, 2, 8), event_id='dentist')
    result = expand_catalog((daily, single), datetime(2024, 3, 1), datetime(2024, 3, 10))
    assert [occ.start for occ in result] == [
        datetime(2024, 3, 1, 12),
        datetime(2024, 3, 2, 8),
        datetime(2024, 3, 2, 12),
        datetime(2024, 3, 3, 12),
    ]


def test_base_event_id_resolves_occurrence_ids():
    event = _event(datetime(2024, 3, 1, 9), event_id='abc-123', kind='daily')
    catalog = (event,)
    occ = expand(event, FAR_PAST, datetime(2024, 3, 3))[1]
    assert base_event_id(catalog, 'abc-123') == 'abc-123'
    assert base_event_id(catalog, occ.id) == 'abc-123'
    assert base_event_id(catalog, 'missing') is None


def test_huge_daily_interval_stops_instead_of_overflowing():
    event = _event(datetime(2024, 3, 1, 9), kind='daily', interval=5_000_000)
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 4, 1))
    assert _starts(result) == [datetime(2024, 3, 1, 9)]


def test_huge_monthly_interval_stops_instead_of_overflowing():
    event = _event(datetime(2024, 3, 1, 9), kind='monthly', interval=120_000)
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 4, 1))
    assert _starts(result) == [datetime(2024, 3, 1, 9)]


def test_huge_weekly_interval_with_days_stops_instead_of_overflowing():
    event = _event(datetime(2024, 3, 1, 9), kind='weekly', interval=1_000_000, days_of_week=(1,))
    result = expand(event, datetime(2024, 3, 1), datetime(2024, 4, 1))
    assert _starts(result) == [datetime(2024, 3, 1, 9)]


def test_base_event_id_resolves_pre_epoch_occurrences():
    event = _event(datetime(1965, 6, 1, 9), event_id='old-series', kind='daily')
    occ = expand(event, datetime(1965, 1, 1), datetime(1965, 6, 3))[1]
    assert '--' in occ.id
    assert base_event_id((event,), occ.id) == 'old-series'


def test_base_event_id_prefers_longest_matching_base():
    short = _event(datetime(2024, 3, 1, 9), event_id='a', kind='daily')
    longer = _event(datetime(2024, 3, 1, 9), event_id='a-1', kind='daily')
    assert base_event_id((short, longer), 'a-1-1709283600000') == 'a-1'
