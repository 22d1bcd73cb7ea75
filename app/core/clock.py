"""
Business clock.

All "today" and local-time conversions for shift generation go through a
BusinessClock instance that is passed in explicitly, so tests can pin "now".
"""

from datetime import date, datetime, time, timedelta

import pytz

from app.core.config import settings


class BusinessClock:
    """Wall clock in the deployment's business time zone."""

    def __init__(self, timezone_name: str):
        self.timezone_name = timezone_name
        self.tz = pytz.timezone(timezone_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def localize(self, day: date, at: time) -> datetime:
        return self.tz.localize(datetime.combine(day, at))

    def shift_window(self, day: date, start: time, end: time) -> tuple[datetime, datetime]:
        """
        Absolute start/end for a shift starting on `day`.

        A window whose end is not after its start crosses midnight, so the
        end lands on the following calendar day.
        """
        start_dt = self.localize(day, start)
        end_day = day + timedelta(days=1) if end <= start else day
        return start_dt, self.localize(end_day, end)


class FixedClock(BusinessClock):
    """Clock frozen at a given local datetime."""

    def __init__(self, frozen: datetime, timezone_name: str = "UTC"):
        super().__init__(timezone_name)
        if frozen.tzinfo is None:
            frozen = self.tz.localize(frozen)
        self.frozen = frozen.astimezone(self.tz)

    def now(self) -> datetime:
        return self.frozen


def get_business_clock() -> BusinessClock:
    return BusinessClock(settings.BUSINESS_TIMEZONE)
