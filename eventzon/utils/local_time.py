"""Current date and time in the zone events are scheduled in."""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import get_settings


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Naive wall-clock time, comparable with event dates and start times."""
    zone = ZoneInfo(tz_name or get_settings().event_timezone)
    return datetime.now(zone).replace(tzinfo=None)


def local_today(tz_name: Optional[str] = None) -> date:
    return local_now(tz_name).date()
