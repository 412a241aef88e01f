"""Process clock shared by streak eligibility and cache freshness checks."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from devboard.core.config import settings


class Clock:
    """Source of "now" and "today" in the server's configured timezone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or settings.TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def timestamp(self) -> float:
        return self.now().timestamp()

    def calendar_day(self, value: date | datetime) -> date:
        """Normalize a date or timestamp to a calendar day in this clock's zone."""
        if isinstance(value, datetime):
            aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
            return aware.astimezone(self.tz).date()
        return value


default_clock = Clock()
