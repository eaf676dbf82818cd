import math
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo
from app.config import settings


def local_tz():
    return ZoneInfo(settings.LOCAL_TZ)


def utcnow() -> datetime:
    """Current instant as naive UTC, the form timestamps are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an inbound timestamp to naive UTC.

    Values without an offset are taken as wall-clock time in LOCAL_TZ.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=local_tz())
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_day_bounds(day: Optional[date] = None) -> Tuple[datetime, datetime]:
    """[start, end) of a local calendar day, as naive UTC."""
    tz = local_tz()
    if day is None:
        day = datetime.now(tz).date()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return to_storage(start), to_storage(end)


def local_window(day: date, start: time, end: time) -> Tuple[datetime, datetime]:
    tz = local_tz()
    return (
        to_storage(datetime.combine(day, start, tzinfo=tz)),
        to_storage(datetime.combine(day, end, tzinfo=tz)),
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_valid_id(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def new_id() -> str:
    return str(uuid.uuid4())
