from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Iterable, List, Optional

from devboard.core.clock import Clock, default_clock
from devboard.models.streak import ActivityDistributions, ActivityRecord, StreakResult


class StreakEngine:
    """Pure streak and distribution calculations over a user's activity records."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or default_clock

    def compute_streak(self, records: Iterable[ActivityRecord], *, today: Optional[date] = None) -> StreakResult:
        """
        Current and longest consecutive-day runs.

        The run holding the most recent day only counts as current when that
        day is today or yesterday; otherwise the chain is already broken.
        """
        days = self._distinct_days_desc(records)
        if not days:
            return StreakResult(current_streak=0, longest_streak=0, last_active_date=None)

        current_day = today or self._clock.today()
        most_recent = days[0]

        longest = 0
        run = 0
        head_run: Optional[int] = None
        previous: Optional[date] = None
        for day in days:
            if previous is not None and (previous - day).days == 1:
                run += 1
            else:
                if previous is not None and head_run is None:
                    head_run = run
                longest = max(longest, run)
                run = 1
            previous = day
        longest = max(longest, run)
        if head_run is None:
            head_run = run

        is_active = most_recent in (current_day, current_day - timedelta(days=1))
        return StreakResult(
            current_streak=head_run if is_active else 0,
            longest_streak=longest,
            last_active_date=most_recent,
        )

    def compute_distributions(self, records: Iterable[ActivityRecord]) -> ActivityDistributions:
        records = list(records)

        languages = Counter(record.language for record in records if record.language)
        by_language = dict(sorted(languages.items(), key=lambda item: (-item[1], item[0])))

        months = Counter(self._clock.calendar_day(record.date).strftime("%Y-%m") for record in records)
        by_month = dict(sorted(months.items()))

        return ActivityDistributions(by_language=by_language, by_month=by_month)

    # Internal helpers -------------------------------------------------
    def _distinct_days_desc(self, records: Iterable[ActivityRecord]) -> List[date]:
        return sorted({self._clock.calendar_day(record.date) for record in records}, reverse=True)


# Shared engine used by routes
streak_engine = StreakEngine()
