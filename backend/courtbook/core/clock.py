# backend/courtbook/core/clock.py
"""
Clock and timezone source for the facility.

All slot and buffer math happens in the facility's fixed local zone. The
canonical representation of "today" is the facility-zone calendar date plus
the facility-zone minute of the day; a calendar date is never normalized
through a UTC timestamp, which would shift it by a day for callers east of
UTC.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz

from .config import settings


class Clock(ABC):
    """Supplies "now" in the facility zone."""

    def __init__(self, timezone_name: Optional[str] = None):
        self.timezone = pytz.timezone(timezone_name or settings.facility_timezone)

    @abstractmethod
    def now(self) -> datetime:
        """Current facility-local time."""

    def today(self) -> date:
        """Today's calendar date in the facility zone."""
        return self.now().date()

    def minute_of_day(self) -> int:
        now = self.now()
        return now.hour * 60 + now.minute

    def localize(self, day: date, at: time) -> datetime:
        """Attach the facility zone to a facility-local date and wall time."""
        return self.timezone.localize(datetime.combine(day, at))

    def slot_start(self, day: date, hour: int) -> datetime:
        return self.localize(day, time(hour=hour))

    def now_utc(self) -> datetime:
        return self.now().astimezone(pytz.UTC)

    def slot_end(self, day: date, hour: int, duration_hours: int) -> datetime:
        # Closing hour 24 ends at midnight of the following day.
        return self.timezone.normalize(self.slot_start(day, 0) + timedelta(hours=hour + duration_hours))


class FacilityClock(Clock):
    """System clock projected into the facility zone."""

    def now(self) -> datetime:
        return datetime.now(pytz.UTC).astimezone(self.timezone)


class FixedClock(Clock):
    """
    Deterministic clock for tests and replays.

    Naive datetimes are interpreted as facility-local wall time; aware
    datetimes are converted into the facility zone.
    """

    def __init__(self, current: datetime, timezone_name: Optional[str] = None):
        super().__init__(timezone_name)
        self._current = self._coerce(current)

    def _coerce(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return self.timezone.localize(value)
        return value.astimezone(self.timezone)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = self._coerce(current)

    def advance(self, **delta: float) -> None:
        self._current = (self._current + timedelta(**delta)).astimezone(self.timezone)


_default_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """Process-wide facility clock."""
    global _default_clock
    if _default_clock is None:
        _default_clock = FacilityClock()
    return _default_clock


def as_utc(value: datetime) -> datetime:
    """Stored timestamps are UTC; some backends hand them back naive."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)
