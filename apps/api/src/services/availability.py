"""
Availability: capacity, the short label shown on venue cards, and the
seat-level map used by the booking screen.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Set
from uuid import UUID

import pytz
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from src.core.timezones import DAY_NAMES, day_of_week, ensure_utc, format_time_12h, get_timezone
from src.models.reservation import Reservation, ReservationStatus, SeatBlock
from src.models.venue import Venue, VenueTable
from src.services.hours_engine import OpenStatus

SLOT_MINUTES = 15
WINDOW_MINUTES = 60
HORIZON_HOURS = 12


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap: touching endpoints do not overlap."""
    return ensure_utc(start_a) < ensure_utc(end_b) and ensure_utc(end_a) > ensure_utc(start_b)


def round_up_to_next_15_minutes(dt: datetime) -> datetime:
    """
    Round up to the next quarter hour.

    A datetime already on a quarter hour with zero seconds is returned as is;
    anything past it moves to the next boundary with seconds zeroed.

    Examples:
        12:07:00 -> 12:15:00
        12:15:00 -> 12:15:00
        12:15:01 -> 12:30:00
    """
    remainder = dt.minute % 15
    if remainder == 0 and dt.second == 0 and dt.microsecond == 0:
        return dt
    base = dt.replace(second=0, microsecond=0)
    return base + timedelta(minutes=15 - remainder)


def calculate_capacity(tables: Iterable[VenueTable]) -> int:
    """
    Bookable seats across active tables.

    A table contributes its active seats, or its seat_count when it has no
    seat rows at all.
    """
    capacity = 0
    for table in tables:
        if table.is_active is False:
            continue
        seats = list(table.seats or [])
        if seats:
            capacity += sum(1 for seat in seats if seat.is_active is not False)
        else:
            capacity += table.seat_count or 0
    return capacity


def _localize(dt: datetime, time_zone: Optional[str]) -> datetime:
    if time_zone:
        return ensure_utc(dt).astimezone(get_timezone(time_zone))
    # Server-local when the venue zone is unknown
    return ensure_utc(dt).astimezone()


def _closed_label(next_open_at: datetime, now: datetime, time_zone: Optional[str]) -> str:
    opens_local = _localize(next_open_at, time_zone)
    now_local = _localize(now, time_zone)
    time_text = format_time_12h(opens_local)

    days_ahead = (opens_local.date() - now_local.date()).days
    if days_ahead <= 0:
        return f"Opens at {time_text}"
    if days_ahead == 1:
        return f"Opens tomorrow at {time_text}"
    return f"Opens {DAY_NAMES[day_of_week(opens_local)]} at {time_text}"


def compute_availability_label(
    capacity: int,
    reservations: Sequence,
    open_status: Optional[OpenStatus],
    time_zone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    One-line availability summary for a venue card.

    Args:
        capacity: Total bookable seats
        reservations: Objects with start_at, end_at and seat_count
        open_status: Result of get_open_status, or None if unknown
        time_zone: Venue IANA zone for "today"/"tomorrow" wording
        now: Reference instant, defaults to the current time

    Returns:
        e.g. "Available now", "Next availability @ 1:00 PM",
        "Opens tomorrow at 9:00 AM", "Sold out for now"
    """
    if capacity <= 0:
        return "Sold out for now"
    if open_status is None:
        return "Currently Closed"

    now = ensure_utc(now) if now is not None else datetime.now(pytz.UTC)

    if not open_status.is_open:
        if open_status.next_open_at is None:
            return "Currently Closed"
        return _closed_label(open_status.next_open_at, now, time_zone)

    active = [r for r in reservations if getattr(r, "status", None) != ReservationStatus.CANCELLED.value]
    start = round_up_to_next_15_minutes(now)
    horizon = start + timedelta(hours=HORIZON_HOURS)
    slot = start
    while slot < horizon:
        window_end = slot + timedelta(minutes=WINDOW_MINUTES)
        booked = sum(r.seat_count for r in active if overlaps(r.start_at, r.end_at, slot, window_end))
        if booked < capacity:
            if slot == start:
                return "Available now"
            return f"Next availability @ {format_time_12h(_localize(slot, time_zone))}"
        slot += timedelta(minutes=SLOT_MINUTES)

    return "Sold out for now"


# ============ Seat-level availability ============

@dataclass
class SeatAvailability:
    """Which seats and whole tables are free for one window."""
    capacity: int
    available_seat_ids: List[UUID] = field(default_factory=list)
    unavailable_seat_ids: List[UUID] = field(default_factory=list)
    available_table_ids: List[UUID] = field(default_factory=list)
    unavailable_table_ids: List[UUID] = field(default_factory=list)
    venue_blocked: bool = False

    @property
    def available_seat_count(self) -> int:
        return len(self.available_seat_ids)


def load_active_tables(db: Session, venue_id: UUID) -> List[VenueTable]:
    stmt = (
        select(VenueTable)
        .where(VenueTable.venue_id == venue_id, VenueTable.is_active.is_(True))
        .options(selectinload(VenueTable.seats))
    )
    return list(db.execute(stmt).scalars())


def find_overlapping_reservations(
    db: Session,
    venue_id: UUID,
    start_at: datetime,
    end_at: datetime,
    exclude_ids: Optional[Sequence[UUID]] = None,
) -> List[Reservation]:
    stmt = select(Reservation).where(
        Reservation.venue_id == venue_id,
        Reservation.status != ReservationStatus.CANCELLED.value,
        Reservation.start_at < ensure_utc(end_at),
        Reservation.end_at > ensure_utc(start_at),
    )
    if exclude_ids:
        stmt = stmt.where(Reservation.id.not_in(list(exclude_ids)))
    return list(db.execute(stmt).scalars())


def find_overlapping_blocks(db: Session, venue_id: UUID, start_at: datetime, end_at: datetime) -> List[SeatBlock]:
    stmt = select(SeatBlock).where(
        SeatBlock.venue_id == venue_id,
        SeatBlock.start_at < ensure_utc(end_at),
        SeatBlock.end_at > ensure_utc(start_at),
    )
    return list(db.execute(stmt).scalars())


def build_seat_availability(
    tables: Sequence[VenueTable],
    reservations: Sequence[Reservation],
    blocks: Sequence[SeatBlock],
) -> SeatAvailability:
    """
    Pure seat map for a window whose overlapping rows are already known.

    - A venue-wide block makes everything unavailable
    - A whole-table reservation takes every seat at that table
    - A group table is unavailable if any of its seats is taken
    """
    result = SeatAvailability(capacity=calculate_capacity(tables))
    result.venue_blocked = any(block.seat_id is None for block in blocks)

    taken_seats: Set[UUID] = {r.seat_id for r in reservations if r.seat_id is not None}
    taken_seats |= {block.seat_id for block in blocks if block.seat_id is not None}
    whole_tables: Set[UUID] = {r.table_id for r in reservations if r.seat_id is None and r.table_id is not None}

    for table in tables:
        if table.is_active is False:
            continue
        seat_ids = [seat.id for seat in table.seats if seat.is_active is not False]
        table_taken = result.venue_blocked or table.id in whole_tables

        for seat_id in seat_ids:
            if table_taken or seat_id in taken_seats:
                result.unavailable_seat_ids.append(seat_id)
            else:
                result.available_seat_ids.append(seat_id)

        if table.booking_mode == "group":
            if table_taken or any(seat_id in taken_seats for seat_id in seat_ids):
                result.unavailable_table_ids.append(table.id)
            else:
                result.available_table_ids.append(table.id)

    return result


def get_seat_availability(db: Session, venue: Venue, start_at: datetime, end_at: datetime) -> SeatAvailability:
    tables = load_active_tables(db, venue.id)
    reservations = find_overlapping_reservations(db, venue.id, start_at, end_at)
    blocks = find_overlapping_blocks(db, venue.id, start_at, end_at)
    return build_seat_availability(tables, reservations, blocks)
