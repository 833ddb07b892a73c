"""
Venue-local time handling for Perch.

Every "is this venue open" or "which day is it" question is answered in the
venue's own IANA timezone, never the server's. Instants are stored and passed
around in UTC; wall-clock values ("09:00" on a Monday) only exist inside the
venue's zone.

Example: 2025-02-03 15:00 UTC is Monday 10:00 AM in America/New_York but
         Tuesday 12:00 AM in Asia/Tokyo.
"""
from datetime import datetime, date, time, timedelta, tzinfo
from typing import Optional, Tuple
import logging
import re

import pytz

logger = logging.getLogger(__name__)


DEFAULT_TIMEZONE = "America/New_York"

# Sunday first, matching the day_of_week column (0=Sunday, 6=Saturday)
DAY_ABBREVIATIONS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

MINUTES_PER_DAY = 24 * 60

_HHMM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def get_timezone(name: Optional[str]) -> tzinfo:
    """
    Resolve an IANA timezone name, falling back to the default zone.

    Unknown names are logged and replaced rather than raised, so a badly
    configured venue still gets an answer instead of a 500.
    """
    if not name:
        return pytz.timezone(DEFAULT_TIMEZONE)
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {name!r}, falling back to {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return dt as an aware UTC datetime.

    Naive datetimes are assumed to already be UTC (this is also what SQLite
    hands back for DateTime(timezone=True) columns).
    """
    if dt.tzinfo is None:
        # Assume UTC if no timezone
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_local(dt: datetime, timezone_name: Optional[str]) -> datetime:
    """Convert an instant to wall-clock time in the given zone."""
    return ensure_utc(dt).astimezone(get_timezone(timezone_name))


def day_of_week(dt_local: datetime) -> int:
    """
    Day of week with 0=Sunday.

    Examples:
        >>> day_of_week(datetime(2025, 2, 3, 10, 0))  # a Monday
        1
        >>> day_of_week(datetime(2025, 2, 2, 10, 0))  # a Sunday
        0
    """
    return (dt_local.weekday() + 1) % 7


def day_of_week_for_date(d: date) -> int:
    return (d.weekday() + 1) % 7


def minutes_since_midnight(dt_local: datetime) -> int:
    return dt_local.hour * 60 + dt_local.minute


def local_parts(dt: datetime, timezone_name: Optional[str]) -> Tuple[date, int, int]:
    """Local (date, day_of_week, minutes since midnight) of an instant."""
    local = to_local(dt, timezone_name)
    return local.date(), day_of_week(local), minutes_since_midnight(local)


def parse_hhmm(value: Optional[str]) -> Optional[int]:
    """
    Parse a 24h "HH:MM" string into minutes since midnight.

    Returns None for anything that is not a valid wall-clock time.

    Examples:
        >>> parse_hhmm("09:30")
        570
        >>> parse_hhmm("23:59")
        1439
        >>> parse_hhmm("24:00") is None
        True
    """
    if not value:
        return None
    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours * 60 + minutes


def local_wall_time_to_utc(timezone_name: Optional[str], local_date: date, minutes: int) -> datetime:
    """
    Build the UTC instant of a wall-clock time on a local calendar date.

    minutes may be 1440 (end of day), which resolves to midnight of the next
    date. Wall-clock times that do not exist because of a DST gap resolve
    forward to the next valid time; ambiguous times pick standard time.

    Examples:
        # 9:00 AM on a winter Monday in New York is 14:00 UTC
        >>> local_wall_time_to_utc("America/New_York", date(2025, 2, 3), 540)
        datetime.datetime(2025, 2, 3, 14, 0, tzinfo=<UTC>)

        # 2:30 AM does not exist on 2025-03-09 in New York; 3:30 AM EDT is used
        >>> local_wall_time_to_utc("America/New_York", date(2025, 3, 9), 150)
        datetime.datetime(2025, 3, 9, 7, 30, tzinfo=<UTC>)
    """
    tz = get_timezone(timezone_name)
    day_offset, minutes = divmod(minutes, MINUTES_PER_DAY)
    naive = datetime.combine(local_date + timedelta(days=day_offset), time(minutes // 60, minutes % 60))
    localized = tz.normalize(tz.localize(naive, is_dst=False))
    return localized.astimezone(pytz.UTC)


def date_at_time_in_timezone(timezone_name: Optional[str], reference: datetime, hour: int, minute: int) -> datetime:
    """The UTC instant of hour:minute on the reference instant's local date."""
    local_date = to_local(reference, timezone_name).date()
    return local_wall_time_to_utc(timezone_name, local_date, hour * 60 + minute)


def end_of_local_day(timezone_name: Optional[str], reference: datetime) -> datetime:
    """Midnight at the end of the reference instant's local day, in UTC."""
    local_date = to_local(reference, timezone_name).date()
    return local_wall_time_to_utc(timezone_name, local_date, MINUTES_PER_DAY)


def format_minutes_12h(minutes: int) -> str:
    """
    Format minutes since midnight as a 12-hour clock label.

    Fixed English output, independent of the server locale.

    Examples:
        >>> format_minutes_12h(540)
        '9:00 AM'
        >>> format_minutes_12h(0)
        '12:00 AM'
        >>> format_minutes_12h(1439)
        '11:59 PM'
    """
    total_hours, mins = divmod(minutes, 60)
    hour = total_hours % 24
    period = "PM" if 12 <= hour < 24 else "AM"
    display_hour = 12 if hour % 12 == 0 else hour % 12
    return f"{display_hour}:{mins:02d} {period}"


def format_time_12h(dt_local: datetime) -> str:
    """12-hour clock label of an already-localized datetime."""
    return format_minutes_12h(minutes_since_midnight(dt_local))
