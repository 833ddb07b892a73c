"""
Hours engine: canonical venue hours and everything derived from them.

The canonical view of a venue's hours is its timezone plus the weekly rows
picked by the hours resolver. The open-status and reservation-window checks
below are pure functions of that view and an instant, so the same inputs give
the same answer on any server, in any locale.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.config import get_settings
from src.core.timezones import (
    DAY_ABBREVIATIONS,
    MINUTES_PER_DAY,
    day_of_week_for_date,
    ensure_utc,
    format_minutes_12h,
    local_parts,
    local_wall_time_to_utc,
    parse_hhmm,
)
from src.models.venue import Venue
from src.models.venue_hours import VenueHours
from src.services.venue_hours import WeeklyHoursRow, get_effective_venue_hours, rows_from_records

SLOT_MINUTES = 15
NEXT_OPEN_LOOKAHEAD_DAYS = 7


class OpenStatusKind(str, Enum):
    OPEN_NOW = "OPEN_NOW"
    CLOSED_NOW = "CLOSED_NOW"
    OPENS_LATER = "OPENS_LATER"
    CLOSED_TODAY = "CLOSED_TODAY"


@dataclass(frozen=True)
class CanonicalVenueHours:
    timezone: str
    weekly_hours: Tuple[WeeklyHoursRow, ...] = field(default_factory=tuple)

    def row_for(self, day: int) -> Optional[WeeklyHoursRow]:
        for row in self.weekly_hours:
            if row.day_of_week == day:
                return row
        return None

    @property
    def has_hours(self) -> bool:
        return len(self.weekly_hours) > 0


@dataclass(frozen=True)
class OpenStatus:
    is_open: bool
    status: OpenStatusKind
    today_label: str
    today_hours_text: str
    next_open_at: Optional[datetime] = None
    diagnostic_message: Optional[str] = None


def build_canonical_hours(timezone: Optional[str], rows: Sequence[WeeklyHoursRow]) -> CanonicalVenueHours:
    tz_name = timezone or get_settings().DEFAULT_VENUE_TIMEZONE
    return CanonicalVenueHours(
        timezone=tz_name,
        weekly_hours=tuple(sorted(rows, key=lambda r: r.day_of_week)),
    )


def canonical_hours_for_venue(venue: Venue, records: Sequence[VenueHours]) -> CanonicalVenueHours:
    effective = get_effective_venue_hours(rows_from_records(records), venue.hours_source)
    return build_canonical_hours(venue.timezone, effective)


def get_canonical_venue_hours(db: Session, venue_id: UUID) -> Optional[CanonicalVenueHours]:
    """Canonical hours for one venue, or None if the venue does not exist."""
    venue = db.get(Venue, venue_id)
    if venue is None:
        return None
    records = db.execute(
        select(VenueHours).where(VenueHours.venue_id == venue_id)
    ).scalars().all()
    return canonical_hours_for_venue(venue, records)


def batch_get_canonical_venue_hours(db: Session, venue_ids: Sequence[UUID]) -> Dict[UUID, CanonicalVenueHours]:
    """Canonical hours for many venues with two queries. Unknown ids are omitted."""
    if not venue_ids:
        return {}
    venues = db.execute(select(Venue).where(Venue.id.in_(venue_ids))).scalars().all()
    records = db.execute(
        select(VenueHours).where(VenueHours.venue_id.in_(venue_ids))
    ).scalars().all()

    by_venue: Dict[UUID, List[VenueHours]] = {}
    for record in records:
        by_venue.setdefault(record.venue_id, []).append(record)

    return {
        venue.id: canonical_hours_for_venue(venue, by_venue.get(venue.id, []))
        for venue in venues
    }


# ============ Open status ============

def _open_window(row: Optional[WeeklyHoursRow]) -> Optional[Tuple[int, int]]:
    """(open, close) minutes for an open day with valid times, else None."""
    if row is None or row.is_closed:
        return None
    open_min = parse_hhmm(row.open_time)
    close_min = parse_hhmm(row.close_time)
    if open_min is None or close_min is None or close_min <= open_min:
        return None
    return open_min, close_min


def _find_next_open(canonical: CanonicalVenueHours, at: datetime, local_date: date) -> Optional[datetime]:
    for offset in range(1, NEXT_OPEN_LOOKAHEAD_DAYS + 1):
        candidate_date = local_date + timedelta(days=offset)
        window = _open_window(canonical.row_for(day_of_week_for_date(candidate_date)))
        if window is None:
            continue
        opens_at = local_wall_time_to_utc(canonical.timezone, candidate_date, window[0])
        if opens_at > at:
            return opens_at
    return None


def _closed(
    kind: OpenStatusKind,
    canonical: CanonicalVenueHours,
    at: datetime,
    local_date: date,
    label: str,
    diagnostic: Optional[str] = None,
) -> OpenStatus:
    next_open_at = _find_next_open(canonical, at, local_date)
    if next_open_at is None and diagnostic is None:
        diagnostic = "No opening hours configured"
    return OpenStatus(
        is_open=False,
        status=kind,
        today_label=label,
        today_hours_text="Closed",
        next_open_at=next_open_at,
        diagnostic_message=diagnostic,
    )


def get_open_status(canonical: CanonicalVenueHours, at: datetime) -> OpenStatus:
    """
    Whether the venue is open at an instant, in the venue's own timezone.

    Both the open and the close minute count as open. A venue closing at
    17:00 is OPEN_NOW at 17:00 and CLOSED_NOW at 17:01. "23:59" is taken
    literally here.

    Never raises: bad data yields CLOSED_TODAY with a diagnostic_message.
    """
    at = ensure_utc(at)
    local_date, dow, minutes = local_parts(at, canonical.timezone)
    label = DAY_ABBREVIATIONS[dow]
    row = canonical.row_for(dow)

    if row is None or row.is_closed:
        return _closed(OpenStatusKind.CLOSED_TODAY, canonical, at, local_date, label)

    open_min = parse_hhmm(row.open_time)
    close_min = parse_hhmm(row.close_time)
    if open_min is None or close_min is None:
        return _closed(
            OpenStatusKind.CLOSED_TODAY, canonical, at, local_date, label,
            diagnostic=f"Invalid or missing open/close for {label}",
        )
    if close_min <= open_min:
        return _closed(
            OpenStatusKind.CLOSED_TODAY, canonical, at, local_date, label,
            diagnostic=f"Invalid open/close for {label} (close before or equal to open)",
        )

    hours_text = f"{format_minutes_12h(open_min)} – {format_minutes_12h(close_min)}"

    if open_min <= minutes <= close_min:
        return OpenStatus(
            is_open=True,
            status=OpenStatusKind.OPEN_NOW,
            today_label=label,
            today_hours_text=hours_text,
        )

    if minutes < open_min:
        return OpenStatus(
            is_open=False,
            status=OpenStatusKind.OPENS_LATER,
            today_label=label,
            today_hours_text=hours_text,
            next_open_at=local_wall_time_to_utc(canonical.timezone, local_date, open_min),
        )

    return _closed(OpenStatusKind.CLOSED_NOW, canonical, at, local_date, label)


# ============ Intervals, slots and reservation windows ============

def _interval_end(close_time: Optional[str]) -> Optional[int]:
    # "23:59" stands for "until end of day" when fitting reservations
    if close_time == "23:59":
        return MINUTES_PER_DAY
    return parse_hhmm(close_time)


def get_open_intervals_for_date(canonical: CanonicalVenueHours, local_date: date) -> List[Tuple[int, int]]:
    """
    Open intervals of a local date as (start, end) minutes since midnight.

    End may be 1440 when the day closes at "23:59". Closed or invalid days
    have no intervals.
    """
    row = canonical.row_for(day_of_week_for_date(local_date))
    if row is None or row.is_closed:
        return []
    start = parse_hhmm(row.open_time)
    end = _interval_end(row.close_time)
    if start is None or end is None or end <= start:
        return []
    return [(start, end)]


def get_slot_times_for_date(
    canonical: CanonicalVenueHours,
    local_date: date,
    slot_minutes: int = SLOT_MINUTES,
) -> List[datetime]:
    """UTC start instants of every slot that fits entirely inside the date's open intervals."""
    slots = []
    for start, end in get_open_intervals_for_date(canonical, local_date):
        minute = start
        while minute + slot_minutes <= end:
            slots.append(local_wall_time_to_utc(canonical.timezone, local_date, minute))
            minute += slot_minutes
    return slots


@dataclass(frozen=True)
class WindowCheck:
    ok: bool
    error: Optional[str] = None


def _fits(intervals: List[Tuple[int, int]], start_min: int, end_min: int) -> bool:
    return any(start <= start_min and end_min <= end for start, end in intervals)


def is_reservation_within_canonical_hours(
    start_at: datetime,
    end_at: datetime,
    canonical: CanonicalVenueHours,
    max_hours: int = 24,
) -> WindowCheck:
    """
    Check that a reservation window sits inside the venue's open hours.

    A window may cross local midnight only if the first day is open until
    the end of the day and the second day is open from 00:00. A window ending
    at exactly local midnight is treated as ending at the end of the first day.
    """
    start_at = ensure_utc(start_at)
    end_at = ensure_utc(end_at)
    if end_at - start_at > timedelta(hours=max_hours):
        return WindowCheck(False, f"Reservations cannot exceed {max_hours} hours.")

    start_date, _, start_min = local_parts(start_at, canonical.timezone)
    end_date, _, end_min = local_parts(end_at, canonical.timezone)

    if end_min == 0 and end_date == start_date + timedelta(days=1):
        end_date, end_min = start_date, MINUTES_PER_DAY

    if end_date == start_date:
        if _fits(get_open_intervals_for_date(canonical, start_date), start_min, end_min):
            return WindowCheck(True)
        return WindowCheck(False, "This venue isn't open at this time. Please check opening hours.")

    first_day_ok = _fits(get_open_intervals_for_date(canonical, start_date), start_min, MINUTES_PER_DAY)
    second_day_ok = _fits(get_open_intervals_for_date(canonical, end_date), 0, end_min)
    if first_day_ok and second_day_ok:
        return WindowCheck(True)
    return WindowCheck(False, "This venue isn't open during the entire selected period.")
