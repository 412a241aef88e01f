from datetime import date, datetime, timedelta, timezone

from devboard.core.clock import Clock
from devboard.features.streaks.engine import StreakEngine
from devboard.models.streak import ActivityRecord, StreakResult
from devboard.tests.mocks import ManualClock

TODAY = date(2024, 3, 15)


def _records(*days, language=None):
    return [ActivityRecord(user_id="u1", date=day, language=language) for day in days]


def _engine():
    return StreakEngine(clock=ManualClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)))


def test_empty_history_has_no_streak():
    assert _engine().compute_streak([]) == StreakResult(0, 0, None)


def test_three_consecutive_days_ending_today():
    result = _engine().compute_streak(_records(TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2)))
    assert result.current_streak == 3
    assert result.longest_streak == 3
    assert result.last_active_date == TODAY


def test_gap_after_today_splits_runs():
    result = _engine().compute_streak(
        _records(
            TODAY,
            TODAY - timedelta(days=2),
            TODAY - timedelta(days=3),
            TODAY - timedelta(days=4),
        )
    )
    assert result.current_streak == 1
    assert result.longest_streak == 3
    assert result.last_active_date == TODAY


def test_run_ending_yesterday_is_still_current():
    result = _engine().compute_streak(_records(TODAY - timedelta(days=1), TODAY - timedelta(days=2)))
    assert result.current_streak == 2
    assert result.longest_streak == 2


def test_history_older_than_yesterday_is_broken():
    old = TODAY - timedelta(days=2)
    result = _engine().compute_streak(_records(old, old - timedelta(days=1)))
    assert result.current_streak == 0
    assert result.longest_streak == 2
    assert result.last_active_date == old


def test_single_record_today_and_long_ago():
    engine = _engine()
    assert engine.compute_streak(_records(TODAY)) == StreakResult(1, 1, TODAY)
    old = date(2023, 1, 1)
    assert engine.compute_streak(_records(old)) == StreakResult(0, 1, old)


def test_duplicate_days_and_input_order_do_not_matter():
    days = [TODAY - timedelta(days=1), TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2)]
    result = _engine().compute_streak(_records(*days))
    assert result.current_streak == 3
    assert result.longest_streak == 3


def test_longest_is_never_below_current():
    engine = _engine()
    histories = [
        _records(TODAY),
        _records(TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=5)),
        _records(*(TODAY - timedelta(days=n) for n in (0, 1, 2, 10, 11, 12, 13))),
    ]
    for history in histories:
        result = engine.compute_streak(history)
        assert result.longest_streak >= result.current_streak


def test_explicit_today_overrides_clock():
    result = _engine().compute_streak(_records(date(2020, 5, 1)), today=date(2020, 5, 2))
    assert result.current_streak == 1


def test_datetimes_normalized_in_clock_timezone():
    # 02:00 UTC on the 16th is still the 15th in New York
    engine = StreakEngine(clock=Clock("America/New_York"))
    records = _records(
        datetime(2024, 3, 16, 2, 0, tzinfo=timezone.utc),
        datetime(2024, 3, 14, 15, 0, tzinfo=timezone.utc),
    )
    result = engine.compute_streak(records, today=date(2024, 3, 15))
    assert result.last_active_date == date(2024, 3, 15)
    assert result.current_streak == 2


def test_distributions_by_language_and_month():
    records = (
        _records(date(2024, 2, 28), date(2024, 3, 1), language="python")
        + _records(date(2024, 3, 2), language="go")
        + _records(date(2024, 3, 3), language="c")
        + _records(date(2024, 1, 5))
    )
    dist = _engine().compute_distributions(records)

    assert list(dist.by_language.items()) == [("python", 2), ("c", 1), ("go", 1)]
    assert list(dist.by_month.items()) == [("2024-01", 1), ("2024-02", 1), ("2024-03", 3)]
