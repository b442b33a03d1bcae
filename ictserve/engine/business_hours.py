"""Business Calendar - Deadline arithmetic over working hours"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

from dateutil import tz

from ..domain.errors import EngineError
from ..domain.models import BusinessHours
from ..utils.time import ensure_aware

# Upper bound on days scanned for a single deadline (ten years)
MAX_SCAN_DAYS = 3660


class BusinessCalendar:
    """
    Working-time calendar built from the SLA business hours settings

    Days are numbered 0=Sunday .. 6=Saturday. Times are wall-clock times in
    the configured timezone; results are returned in UTC.
    """

    def __init__(self, hours: BusinessHours):
        self._tz = tz.gettz(hours.timezone)
        self._open = self._parse_time(hours.start_time)
        self._close = self._parse_time(hours.end_time)
        self._days = set(hours.working_days)
        self._holidays = set(hours.holidays) if hours.exclude_holidays else set()

    @staticmethod
    def _parse_time(value: str) -> time:
        hour, minute = value.split(":")
        return time(int(hour), int(minute))

    def is_working_day(self, day: date) -> bool:
        return (day.isoweekday() % 7) in self._days and day not in self._holidays

    def _window(self, day: date) -> Tuple[datetime, datetime]:
        return (
            datetime.combine(day, self._open, tzinfo=self._tz),
            datetime.combine(day, self._close, tzinfo=self._tz),
        )

    def add_working_hours(self, start: datetime, hours: float) -> datetime:
        """
        Move forward from start by the given number of working hours

        Time outside the daily window, on non-working days and on holidays
        does not count. A start outside the window begins counting at the
        next opening time.
        """
        start = ensure_aware(start)
        remaining = timedelta(hours=hours)
        if remaining <= timedelta(0):
            return start.astimezone(timezone.utc)

        current = start.astimezone(self._tz)
        for _ in range(MAX_SCAN_DAYS):
            day = current.date()
            if self.is_working_day(day):
                opens_at, closes_at = self._window(day)
                if current < opens_at:
                    current = opens_at
                if current < closes_at:
                    available = closes_at - current
                    if remaining <= available:
                        return (current + remaining).astimezone(timezone.utc)
                    remaining -= available
            current = datetime.combine(day + timedelta(days=1), time(0), tzinfo=self._tz)

        raise EngineError("No working time found within the scan horizon")
