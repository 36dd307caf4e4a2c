"""
Clock used by the charging domain.

All shift arithmetic happens in one configured local time zone. The clock is a
FastAPI dependency so tests can pin "now".
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from backend.app.core.config import settings


class Clock:
    """Wall clock in the deployment time zone."""

    def __init__(self, tz_name: str = settings.timezone):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """Clock frozen at a given instant (naive values are read as local time)."""

    def __init__(self, instant: datetime, tz_name: str = settings.timezone):
        super().__init__(tz_name)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self.instant = instant.astimezone(self.tz)

    def now(self) -> datetime:
        return self.instant


system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return system_clock
