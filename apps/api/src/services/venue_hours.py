"""
Hours resolver: decides which stored weekly rows are authoritative for a venue.

A venue's hours come from one of two places. Staff can type them in
("manual"), or they are pulled from Google Places ("google"). Both kinds of
row live in the same table, one row per venue and day, tagged with the source
that wrote it. The venue's hours_source picks which family is used. Families
are never mixed day by day.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.timezones import DAY_ABBREVIATIONS, format_minutes_12h, parse_hhmm
from src.models.venue import Venue
from src.models.venue_hours import VenueHours

logger = logging.getLogger(__name__)


class HoursSource(str, Enum):
    """Venue-level hours policy. A venue with no policy behaves as GOOGLE."""
    MANUAL = "manual"
    GOOGLE = "google"


class RowSource(str, Enum):
    """
    Where a single stored row came from.

    LEGACY_GOOGLE marks rows written before sources were recorded; they are
    treated as Google rows everywhere.
    """
    MANUAL = "manual"
    GOOGLE = "google"
    LEGACY_GOOGLE = "legacy_google"

    @classmethod
    def from_column(cls, value: Optional[str]) -> "RowSource":
        if value is None:
            return cls.LEGACY_GOOGLE
        return cls(value)

    @property
    def is_google(self) -> bool:
        return self in (RowSource.GOOGLE, RowSource.LEGACY_GOOGLE)

    @property
    def column_value(self) -> Optional[str]:
        return None if self is RowSource.LEGACY_GOOGLE else self.value


@dataclass(frozen=True)
class WeeklyHoursRow:
    """One day of a venue's week; open/close are venue-local "HH:MM" strings."""
    day_of_week: int  # 0=Sunday, 6=Saturday
    is_closed: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    source: RowSource = RowSource.GOOGLE

    @classmethod
    def from_record(cls, record: VenueHours) -> "WeeklyHoursRow":
        return cls(
            day_of_week=record.day_of_week,
            is_closed=bool(record.is_closed),
            open_time=record.open_time,
            close_time=record.close_time,
            source=RowSource.from_column(record.source),
        )


def rows_from_records(records: Iterable[VenueHours]) -> List[WeeklyHoursRow]:
    return [WeeklyHoursRow.from_record(r) for r in records]


def get_effective_venue_hours(
    rows: Sequence[WeeklyHoursRow],
    hours_source: Optional[str],
) -> List[WeeklyHoursRow]:
    """
    Select the authoritative weekly rows for a venue.

    Args:
        rows: All stored rows for the venue, any source
        hours_source: The venue's policy ("manual", "google" or None)

    Returns:
        Manual rows when the policy is manual, otherwise Google rows
        (legacy rows included). Days without a row in the chosen family are
        simply absent; callers treat them as closed.
    """
    if hours_source == HoursSource.MANUAL:
        return [row for row in rows if row.source is RowSource.MANUAL]
    return [row for row in rows if row.source.is_google]


def _apply_row(record: VenueHours, row: WeeklyHoursRow) -> None:
    record.is_closed = row.is_closed
    record.open_time = None if row.is_closed else row.open_time
    record.close_time = None if row.is_closed else row.close_time
    record.source = row.source.column_value


def _existing_rows_by_day(db: Session, venue_id: UUID) -> Dict[int, VenueHours]:
    stmt = select(VenueHours).where(VenueHours.venue_id == venue_id)
    return {record.day_of_week: record for record in db.execute(stmt).scalars()}


def upsert_venue_hours(db: Session, venue_id: UUID, hours_data: Sequence[WeeklyHoursRow]) -> List[int]:
    """Unconditionally write each given day, keyed by (venue, day). Returns the days written."""
    existing = _existing_rows_by_day(db, venue_id)
    written = []
    for row in hours_data:
        record = existing.get(row.day_of_week)
        if record is None:
            record = VenueHours(venue_id=venue_id, day_of_week=row.day_of_week)
            db.add(record)
            existing[row.day_of_week] = record
        _apply_row(record, row)
        written.append(row.day_of_week)
    db.flush()
    return written


def sync_venue_hours_from_google(
    db: Session,
    venue_id: UUID,
    hours_data: Sequence[WeeklyHoursRow],
    hours_source: Optional[str],
) -> List[int]:
    """
    Write freshly fetched Google hours without clobbering staff edits.

    When the venue is in manual mode, days that already hold a manual row are
    left untouched; every other day is upserted. In any other mode all days
    are upserted unconditionally.

    Returns:
        The days of week that were written
    """
    if hours_source != HoursSource.MANUAL:
        written = upsert_venue_hours(db, venue_id, hours_data)
        logger.info(f"Synced Google hours for venue {venue_id}: {len(written)} days")
        return written

    existing = _existing_rows_by_day(db, venue_id)
    to_write = []
    for row in hours_data:
        record = existing.get(row.day_of_week)
        if record is not None and RowSource.from_column(record.source) is RowSource.MANUAL:
            continue
        to_write.append(row)

    written = upsert_venue_hours(db, venue_id, to_write)
    skipped = len(hours_data) - len(written)
    logger.info(f"Synced Google hours for venue {venue_id}: {len(written)} days, kept {skipped} manual days")
    return written


def replace_manual_hours(db: Session, venue: Venue, schedule: Sequence[WeeklyHoursRow]) -> List[int]:
    """
    Store staff-entered hours and switch the venue to manual mode.

    Rows are re-tagged as manual regardless of the source they arrive with.
    """
    manual_rows = [
        WeeklyHoursRow(
            day_of_week=row.day_of_week,
            is_closed=row.is_closed,
            open_time=row.open_time,
            close_time=row.close_time,
            source=RowSource.MANUAL,
        )
        for row in schedule
    ]
    written = upsert_venue_hours(db, venue.id, manual_rows)
    venue.hours_source = HoursSource.MANUAL.value
    db.flush()
    return written


# ============ Google Places periods ============

def _closed_week(source: RowSource) -> Dict[int, WeeklyHoursRow]:
    return {day: WeeklyHoursRow(day_of_week=day, is_closed=True, source=source) for day in range(7)}


def _hhmm(hour: int, minute: int) -> str:
    return f"{int(hour):02d}:{int(minute):02d}"


def parse_google_periods(periods: Optional[Sequence[dict]], source: RowSource = RowSource.GOOGLE) -> List[WeeklyHoursRow]:
    """
    Convert Google Places regularOpeningHours.periods into seven weekly rows.

    Google periods look like {"open": {"day": 1, "hour": 9, "minute": 0},
    "close": {"day": 1, "hour": 17, "minute": 0}} with day 0=Sunday.

    - Days without any period are closed
    - A period with no close means open around the clock (00:00-23:59)
    - A period ending on a later day closes its open day at 23:59 and opens
      the close day at 00:00
    - Several periods on one day merge to the earliest open and latest close
    """
    week = _closed_week(source)
    if not periods:
        return [week[day] for day in range(7)]

    def widen(day: int, open_time: str, close_time: str) -> None:
        current = week[day]
        if current.is_closed:
            week[day] = WeeklyHoursRow(day, False, open_time, close_time, source)
            return
        week[day] = WeeklyHoursRow(
            day,
            False,
            min(current.open_time, open_time),
            max(current.close_time, close_time),
            source,
        )

    for period in periods:
        opening = period.get("open") or {}
        if "day" not in opening:
            continue
        open_day = int(opening["day"]) % 7
        open_time = _hhmm(opening.get("hour", 0), opening.get("minute", 0))
        closing = period.get("close")

        if not closing:
            # Google encodes 24/7 venues as a single period without a close
            for day in range(7):
                week[day] = WeeklyHoursRow(day, False, "00:00", "23:59", source)
            continue

        close_day = int(closing.get("day", open_day)) % 7
        close_time = _hhmm(closing.get("hour", 0), closing.get("minute", 0))

        if close_day == open_day and close_time > open_time:
            widen(open_day, open_time, close_time)
        else:
            widen(open_day, open_time, "23:59")
            if close_time != "00:00":
                widen(close_day, "00:00", close_time)

    return [week[day] for day in range(7)]


def format_weekly_hours(rows: Sequence[WeeklyHoursRow]) -> List[str]:
    """
    Human-readable lines, Sunday first, e.g. "Mon: 9:00 AM – 5:00 PM".

    Missing days, closed days and unparseable days read "Closed".
    """
    by_day = {row.day_of_week: row for row in rows}
    lines = []
    for day, label in enumerate(DAY_ABBREVIATIONS):
        row = by_day.get(day)
        open_min = parse_hhmm(row.open_time) if row else None
        close_min = parse_hhmm(row.close_time) if row else None
        if row is None or row.is_closed or open_min is None or close_min is None:
            lines.append(f"{label}: Closed")
        else:
            lines.append(f"{label}: {format_minutes_12h(open_min)} – {format_minutes_12h(close_min)}")
    return lines
