"""
Standardized Date/Time Handling Utilities

Every streak, debuff-expiry and quest-week decision goes through a Clock so the
day boundary is always the player's local calendar, never UTC.

CRITICAL RULES:
- Always ask the clock for "now" (never call datetime.now() in engine code)
- Compare calendar days with is_same_day() / is_yesterday(), never timedelta(days=1)
- Never mix naive and aware datetimes (naive inputs are read as local time)
"""

import logging
from datetime import datetime, date, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from grow.config import GROW_TIMEZONE

logger = logging.getLogger(__name__)


class Clock:
    """
    Wall clock bound to one IANA timezone

    Example:
        clock = Clock("Europe/Stockholm")
        clock.is_yesterday(habit.last_completed_date, clock.now())
    """

    def __init__(self, timezone: Optional[str] = None):
        self.tz = ZoneInfo(timezone or GROW_TIMEZONE)

    def now(self) -> datetime:
        """Current timezone-aware datetime in the local zone"""
        return datetime.now(self.tz)

    def localize(self, dt: datetime) -> datetime:
        """Convert to the local zone; naive datetimes are taken as local time"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self.tz)
        return dt.astimezone(self.tz)

    def local_date(self, dt: datetime) -> date:
        return self.localize(dt).date()

    def today(self) -> date:
        return self.now().date()

    def local_hour(self, dt: Optional[datetime] = None) -> int:
        return self.localize(dt or self.now()).hour

    def start_of_day(self, dt: datetime) -> datetime:
        """Local midnight of the day containing dt"""
        return datetime.combine(self.local_date(dt), time.min, tzinfo=self.tz)

    def end_of_day(self, dt: datetime) -> datetime:
        """Local midnight of the following day (exclusive bound)"""
        return datetime.combine(self.local_date(dt) + timedelta(days=1), time.min, tzinfo=self.tz)

    def is_same_day(self, a: datetime, b: datetime) -> bool:
        return self.local_date(a) == self.local_date(b)

    def is_yesterday(self, dt: datetime, relative_to: datetime) -> bool:
        return self.local_date(dt) == self.local_date(relative_to) - timedelta(days=1)

    def iso_week_start(self, dt: datetime) -> datetime:
        """Local midnight of the Monday starting dt's ISO week"""
        day = self.local_date(dt)
        monday = day - timedelta(days=day.isoweekday() - 1)
        return datetime.combine(monday, time.min, tzinfo=self.tz)

    def is_same_iso_week(self, a: datetime, b: datetime) -> bool:
        return self.iso_week_start(a) == self.iso_week_start(b)


class FixedClock(Clock):
    """
    Clock frozen at a given instant; tests move it explicitly

    Example:
        clock = FixedClock(datetime(2024, 1, 15, 9, 0), timezone="UTC")
        clock.advance(days=1)
    """

    def __init__(self, at: datetime, timezone: Optional[str] = None):
        super().__init__(timezone)
        self._now = self.localize(at)

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        self._now = self.localize(at)
        logger.debug(f"FixedClock set to {self._now.isoformat()}")

    def advance(self, **delta) -> datetime:
        """Move forward by timedelta keyword arguments (days=1, seconds=30, ...)"""
        self._now = self._now + timedelta(**delta)
        return self._now
