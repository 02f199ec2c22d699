# app/core/clock.py
# Injectable time source
#
# Workflow code never calls datetime.now() directly so that the demo
# "elapsed" gate and class date rollover can be tested deterministically.

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


class Clock:
    """Returns timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        raise NotImplementedError

    def local_zone(self) -> ZoneInfo:
        return ZoneInfo(settings.timezone)

    def today(self) -> date:
        """Calendar date in the schedule timezone."""
        return self.now().astimezone(self.local_zone()).date()

    def at(self, day: date, at_time: time) -> datetime:
        """Aware datetime for a wall-clock slot in the schedule timezone."""
        return datetime.combine(day, at_time, tzinfo=self.local_zone())


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Test clock. Returns the same instant until moved.
    """

    def __init__(self, fixed_time: datetime):
        self._now = fixed_time

    def now(self) -> datetime:
        return self._now

    def set(self, fixed_time: datetime) -> None:
        self._now = fixed_time

    def advance(self, **delta) -> None:
        self._now = self._now + timedelta(**delta)
