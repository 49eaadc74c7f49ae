from datetime import date, datetime
from zoneinfo import ZoneInfo

from core.config import settings

UTC = ZoneInfo("UTC")

def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)

def get_current_time():
    """Returns the current time in the configured timezone."""
    return datetime.now(local_zone())

def today() -> date:
    """Calendar date used for daily tasks, points and streaks."""
    return get_current_time().date()

def to_local(dt: datetime):
    """Converts a datetime object to the configured timezone."""
    if dt.tzinfo is None:
        # Assume naive datetimes from storage are UTC
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(local_zone())
