import math
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo


def resolve_tz(name: Optional[str]) -> Optional[tzinfo]:
    """
    IANA name -> ZoneInfo. None keeps the host's local zone (datetime.astimezone() semantics).
    """
    if not name:
        return None
    return ZoneInfo(name)


def to_local(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    return instant.astimezone(tz)


def local_date(instant: datetime, tz: Optional[tzinfo] = None) -> date:
    """
    Calendar day of an instant as seen on the viewer's wall clock.
    """
    return to_local(instant, tz).date()


def _attach_local(dt: datetime, tz: Optional[tzinfo]) -> Optional[datetime]:
    if dt.tzinfo is not None:
        return dt
    try:
        if tz is None:
            return dt.astimezone()
        return dt.replace(tzinfo=tz)
    except (OverflowError, OSError, ValueError):
        return None


def parse_instant(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Total parser: returns an aware datetime or None, never raises.

    Accepts datetime / date objects, ISO-8601 strings (trailing "Z" allowed)
    and epoch milliseconds. Offset-less values are read as viewer-local.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _attach_local(value, tz)

    if isinstance(value, date):
        return _attach_local(datetime(value.year, value.month, value.day), tz)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
        return _attach_local(dt, tz)

    return None


def as_calendar_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """
    Coerce a lookup target into a (year, month, day) date. Aware datetimes are
    moved to the viewer zone first; naive ones keep their own components.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        try:
            return local_date(value, tz)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, date):
        return value
    return None
