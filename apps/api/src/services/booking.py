"""
Booking conflict validator and reservation writes.

A booking targets either specific seats, a whole group-mode table, or (for
availability questions only) a number of seats anywhere in the venue. Every
request goes through the same ordered checks: shape, bookability, past time,
capacity, opening hours, then overlap with existing reservations and seat
blocks. Only the shape check raises; business-rule failures come back as a
BookingDecision so callers can branch on the reason.

The application check is not the last line of defence. On PostgreSQL the
reservations table carries exclusion constraints, and a write that loses a
race against a concurrent booking is reported as the same CONFLICT.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID
import logging

import pytz
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.core.config import get_settings
from src.core.errors import BookingRejected, InvalidBookingRequest, RejectionReason, ResourceNotFound
from src.core.timezones import ensure_utc
from src.models.reservation import (
    Reservation,
    ReservationStatus,
    SEAT_OVERLAP_CONSTRAINT,
    TABLE_OVERLAP_CONSTRAINT,
)
from src.models.venue import Seat, Venue, VenueTable
from src.models.venue_hours import VenueHours
from src.services.availability import (
    calculate_capacity,
    find_overlapping_blocks,
    find_overlapping_reservations,
    load_active_tables,
    overlaps,
)
from src.services.hours_engine import (
    CanonicalVenueHours,
    canonical_hours_for_venue,
    is_reservation_within_canonical_hours,
)

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for exclusion_violation
EXCLUSION_VIOLATION = "23P01"

SEAT_CONFLICT_MESSAGE = "One or more seats are not available for that time."
TABLE_CONFLICT_MESSAGE = "This table is not available for that time."
CAPACITY_CONFLICT_MESSAGE = "Not enough seats are available for that time."


class BookingScope(str, Enum):
    SEAT = "seat"
    TABLE = "table"
    CAPACITY = "capacity"


@dataclass
class BookingRequest:
    venue_id: UUID
    start_at: datetime
    end_at: datetime
    seat_ids: List[UUID] = field(default_factory=list)
    table_id: Optional[UUID] = None
    seat_count: Optional[int] = None
    reservation_id: Optional[UUID] = None  # set when editing an existing booking

    @property
    def scope(self) -> BookingScope:
        if self.seat_ids:
            return BookingScope.SEAT
        if self.table_id is not None:
            return BookingScope.TABLE
        return BookingScope.CAPACITY


@dataclass(frozen=True)
class BookingDecision:
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @classmethod
    def accept(cls) -> "BookingDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason, message: str) -> "BookingDecision":
        return cls(accepted=False, reason=reason, message=message)


@dataclass
class BookingContext:
    """Everything evaluate_booking needs, loaded before any write."""
    venue: Venue
    capacity: int
    canonical: Optional[CanonicalVenueHours] = None
    seats: Dict[UUID, Seat] = field(default_factory=dict)
    tables: Dict[UUID, VenueTable] = field(default_factory=dict)
    reservations: Sequence[Reservation] = ()
    blocks: Sequence = ()


def normalize_request(request: BookingRequest) -> BookingRequest:
    """
    Validate request shape and return a copy with UTC times and a seat count.

    Raises:
        InvalidBookingRequest: for anything that should never reach the database
    """
    if request.start_at is None or request.end_at is None:
        raise InvalidBookingRequest("Start and end times are required.")

    start_at = ensure_utc(request.start_at)
    end_at = ensure_utc(request.end_at)
    if end_at <= start_at:
        raise InvalidBookingRequest("End time must be after start time.")

    seat_ids = list(dict.fromkeys(request.seat_ids or []))
    if seat_ids and request.table_id is not None:
        raise InvalidBookingRequest("Book either specific seats or a whole table, not both.")

    if seat_ids:
        if request.seat_count is not None and request.seat_count != len(seat_ids):
            raise InvalidBookingRequest("Seat count must match the number of selected seats.")
        seat_count = len(seat_ids)
    else:
        if request.seat_count is None:
            raise InvalidBookingRequest("Seat count is required.")
        seat_count = request.seat_count

    if seat_count < 1:
        raise InvalidBookingRequest("Seat count must be at least 1.")

    return replace(request, start_at=start_at, end_at=end_at, seat_ids=seat_ids, seat_count=seat_count)


def _table_size(table: VenueTable) -> int:
    seats = list(table.seats or [])
    if seats:
        return sum(1 for seat in seats if seat.is_active is not False)
    return table.seat_count or 0


def _check_bookable(request: BookingRequest, context: BookingContext) -> Optional[BookingDecision]:
    venue = context.venue
    if venue.status == "DELETED":
        return BookingDecision.reject(RejectionReason.NOT_BOOKABLE, "This venue is no longer available.")
    if venue.status == "PAUSED":
        message = venue.pause_message or "This venue is temporarily not accepting reservations."
        return BookingDecision.reject(RejectionReason.NOT_BOOKABLE, message)

    if request.scope is BookingScope.SEAT:
        for seat_id in request.seat_ids:
            seat = context.seats[seat_id]
            table = context.tables[seat.table_id]
            if seat.is_active is False or table.is_active is False:
                return BookingDecision.reject(RejectionReason.NOT_BOOKABLE, "One or more seats are not available.")
            if table.booking_mode == "group":
                return BookingDecision.reject(
                    RejectionReason.NOT_BOOKABLE, "This table can only be booked as a whole."
                )

    if request.scope is BookingScope.TABLE:
        table = context.tables[request.table_id]
        if table.is_active is False:
            return BookingDecision.reject(RejectionReason.NOT_BOOKABLE, "This table is not available.")
        if table.booking_mode != "group":
            return BookingDecision.reject(
                RejectionReason.NOT_BOOKABLE, "This table is booked seat by seat, not as a whole."
            )
    return None


def _check_capacity(request: BookingRequest, context: BookingContext) -> Optional[BookingDecision]:
    if request.seat_count > context.capacity:
        return BookingDecision.reject(
            RejectionReason.CAPACITY_EXCEEDED,
            f"This venue only has {context.capacity} seats.",
        )
    if request.scope is BookingScope.TABLE:
        size = _table_size(context.tables[request.table_id])
        if request.seat_count > size:
            return BookingDecision.reject(
                RejectionReason.CAPACITY_EXCEEDED,
                f"This table only has {size} seats.",
            )
    return None


def _occupied_seat_count(
    reservations: Sequence[Reservation],
    blocked_seats: Set[UUID],
    tables: Iterable[VenueTable],
) -> int:
    """
    Active seats taken by reservations or blocks, each seat counted once.

    A whole-table reservation takes every seat at its table. Rows on tables
    or seats outside the bookable set are ignored.
    """
    seats_by_table = {
        table.id: {seat.id for seat in (table.seats or []) if seat.is_active is not False}
        for table in tables
        if table.is_active is not False
    }
    seat_counts = {table.id: table.seat_count or 0 for table in tables}
    active_seats = set().union(*seats_by_table.values())

    occupied = active_seats & blocked_seats
    seatless_taken: Set[UUID] = set()
    for r in reservations:
        if r.seat_id is not None:
            if r.seat_id in active_seats:
                occupied.add(r.seat_id)
        elif r.table_id in seats_by_table:
            if seats_by_table[r.table_id]:
                occupied |= seats_by_table[r.table_id]
            else:
                seatless_taken.add(r.table_id)

    return len(occupied) + sum(seat_counts[table_id] for table_id in seatless_taken)


def _check_conflicts(request: BookingRequest, context: BookingContext) -> Optional[BookingDecision]:
    reservations = [
        r for r in context.reservations
        if r.status != ReservationStatus.CANCELLED.value
        and r.id != request.reservation_id
        and overlaps(r.start_at, r.end_at, request.start_at, request.end_at)
    ]
    blocks = [b for b in context.blocks if overlaps(b.start_at, b.end_at, request.start_at, request.end_at)]
    venue_blocked = any(b.seat_id is None for b in blocks)
    blocked_seats = {b.seat_id for b in blocks if b.seat_id is not None}

    if request.scope is BookingScope.SEAT:
        seat_ids = set(request.seat_ids)
        table_ids = {context.seats[seat_id].table_id for seat_id in request.seat_ids}
        for r in reservations:
            if r.seat_id in seat_ids or (r.seat_id is None and r.table_id in table_ids):
                return BookingDecision.reject(RejectionReason.CONFLICT, SEAT_CONFLICT_MESSAGE)
        if venue_blocked or seat_ids & blocked_seats:
            return BookingDecision.reject(RejectionReason.CONFLICT, SEAT_CONFLICT_MESSAGE)
        return None

    if request.scope is BookingScope.TABLE:
        table = context.tables[request.table_id]
        table_seats = {seat.id for seat in table.seats}
        for r in reservations:
            if r.table_id == table.id or r.seat_id in table_seats:
                return BookingDecision.reject(RejectionReason.CONFLICT, TABLE_CONFLICT_MESSAGE)
        if venue_blocked or table_seats & blocked_seats:
            return BookingDecision.reject(RejectionReason.CONFLICT, TABLE_CONFLICT_MESSAGE)
        return None

    if venue_blocked:
        return BookingDecision.reject(RejectionReason.CONFLICT, CAPACITY_CONFLICT_MESSAGE)
    occupied = _occupied_seat_count(reservations, blocked_seats, context.tables.values())
    if context.capacity - occupied < request.seat_count:
        return BookingDecision.reject(RejectionReason.CONFLICT, CAPACITY_CONFLICT_MESSAGE)
    return None


def evaluate_booking(
    request: BookingRequest,
    context: BookingContext,
    now: Optional[datetime] = None,
) -> BookingDecision:
    """
    Run the business rules against an already-normalized request.

    Pure: everything it needs is in the context, so it can be exercised
    without a database.
    """
    now = ensure_utc(now) if now is not None else datetime.now(pytz.UTC)

    decision = _check_bookable(request, context)
    if decision:
        return decision

    if request.start_at < now:
        return BookingDecision.reject(RejectionReason.PAST_TIME, "Cannot book a time in the past.")

    decision = _check_capacity(request, context)
    if decision:
        return decision

    if context.canonical is not None and context.canonical.has_hours:
        check = is_reservation_within_canonical_hours(
            request.start_at,
            request.end_at,
            context.canonical,
            max_hours=get_settings().MAX_RESERVATION_HOURS,
        )
        if not check.ok:
            return BookingDecision.reject(RejectionReason.OUTSIDE_HOURS, check.error)

    decision = _check_conflicts(request, context)
    if decision:
        return decision

    return BookingDecision.accept()


def is_overlap_violation(exc: IntegrityError) -> bool:
    """True when the database rejected a write because of an overlapping booking."""
    if getattr(exc.orig, "pgcode", None) == EXCLUSION_VIOLATION:
        return True
    message = str(exc.orig)
    return SEAT_OVERLAP_CONSTRAINT in message or TABLE_OVERLAP_CONSTRAINT in message


class BookingService:
    """
    Validates and writes reservations for one database session.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_venue(self, venue_id: UUID) -> Venue:
        venue = self.db.get(Venue, venue_id)
        if venue is None:
            raise ResourceNotFound("Venue not found.")
        return venue

    def _load_context(self, request: BookingRequest) -> BookingContext:
        venue = self._get_venue(request.venue_id)
        tables = {table.id: table for table in load_active_tables(self.db, venue.id)}
        context = BookingContext(venue=venue, capacity=calculate_capacity(tables.values()))

        if request.scope is BookingScope.SEAT:
            seats = self.db.execute(select(Seat).where(Seat.id.in_(request.seat_ids))).scalars().all()
            context.seats = {seat.id: seat for seat in seats}
            if len(context.seats) != len(request.seat_ids):
                raise InvalidBookingRequest("One or more seats do not exist.")
            for seat in seats:
                table = tables.get(seat.table_id) or self.db.get(VenueTable, seat.table_id)
                if table is None or table.venue_id != venue.id:
                    raise InvalidBookingRequest("One or more seats do not belong to this venue.")
                tables[table.id] = table

        if request.scope is BookingScope.TABLE:
            table = tables.get(request.table_id) or self.db.get(VenueTable, request.table_id)
            if table is None or table.venue_id != venue.id:
                raise InvalidBookingRequest("Table does not belong to this venue.")
            tables[table.id] = table

        context.tables = tables

        records = self.db.execute(select(VenueHours).where(VenueHours.venue_id == venue.id)).scalars().all()
        context.canonical = canonical_hours_for_venue(venue, records)

        exclude = [request.reservation_id] if request.reservation_id else None
        context.reservations = find_overlapping_reservations(
            self.db, venue.id, request.start_at, request.end_at, exclude_ids=exclude
        )
        context.blocks = find_overlapping_blocks(self.db, venue.id, request.start_at, request.end_at)
        return context

    def check(self, request: BookingRequest, now: Optional[datetime] = None) -> BookingDecision:
        """Validate a request without writing anything."""
        request = normalize_request(request)
        context = self._load_context(request)
        return evaluate_booking(request, context, now=now)

    def _require_accepted(self, request: BookingRequest, now: Optional[datetime]) -> BookingRequest:
        request = normalize_request(request)
        decision = evaluate_booking(request, self._load_context(request), now=now)
        if not decision.accepted:
            raise BookingRejected(decision)
        return request

    def _commit(self, request: BookingRequest) -> None:
        try:
            self.db.flush()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if not is_overlap_violation(exc):
                raise
            logger.warning(
                f"Booking for venue {request.venue_id} lost a race at the database "
                f"({request.start_at.isoformat()} - {request.end_at.isoformat()})"
            )
            message = TABLE_CONFLICT_MESSAGE if request.scope is BookingScope.TABLE else SEAT_CONFLICT_MESSAGE
            raise BookingRejected(BookingDecision.reject(RejectionReason.CONFLICT, message)) from exc

    def create(self, request: BookingRequest, now: Optional[datetime] = None) -> List[Reservation]:
        """
        Validate and insert a booking.

        Seat bookings insert one row per seat; whole-table bookings insert a
        single row with no seat. Capacity-only requests cannot be written.

        Raises:
            InvalidBookingRequest: malformed request
            ResourceNotFound: unknown venue
            BookingRejected: a business rule failed, including a lost race
        """
        if request.scope is BookingScope.CAPACITY:
            raise InvalidBookingRequest("Choose seats or a table to book.")

        request = self._require_accepted(request, now)

        if request.scope is BookingScope.SEAT:
            seats = self.db.execute(select(Seat).where(Seat.id.in_(request.seat_ids))).scalars().all()
            table_by_seat = {seat.id: seat.table_id for seat in seats}
            reservations = [
                Reservation(
                    venue_id=request.venue_id,
                    seat_id=seat_id,
                    table_id=table_by_seat[seat_id],
                    start_at=request.start_at,
                    end_at=request.end_at,
                    seat_count=1,
                    status=ReservationStatus.ACTIVE.value,
                )
                for seat_id in request.seat_ids
            ]
        else:
            reservations = [
                Reservation(
                    venue_id=request.venue_id,
                    table_id=request.table_id,
                    start_at=request.start_at,
                    end_at=request.end_at,
                    seat_count=request.seat_count,
                    status=ReservationStatus.ACTIVE.value,
                )
            ]

        self.db.add_all(reservations)
        self._commit(request)
        for reservation in reservations:
            self.db.refresh(reservation)
        logger.info(f"Created {len(reservations)} reservation(s) for venue {request.venue_id}")
        return reservations

    def get_reservation(self, reservation_id: UUID, venue_id: Optional[UUID] = None) -> Reservation:
        reservation = self.db.get(Reservation, reservation_id)
        if reservation is None or (venue_id is not None and reservation.venue_id != venue_id):
            raise ResourceNotFound("Reservation not found.")
        return reservation

    def reschedule(
        self,
        venue_id: UUID,
        reservation_id: UUID,
        start_at: datetime,
        end_at: datetime,
        seat_id: Optional[UUID] = None,
        table_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Move an existing booking to a new window, and optionally a new seat
        (seat bookings) or a new group table (table bookings).

        The booking itself is ignored when looking for conflicts.
        """
        reservation = self.get_reservation(reservation_id, venue_id)
        if reservation.is_cancelled:
            raise InvalidBookingRequest("Cancelled reservations cannot be edited.")

        if reservation.seat_id is not None:
            if table_id is not None:
                raise InvalidBookingRequest("Seat bookings can only move to another seat.")
            request = BookingRequest(
                venue_id=venue_id,
                start_at=start_at,
                end_at=end_at,
                seat_ids=[seat_id or reservation.seat_id],
                reservation_id=reservation.id,
            )
        else:
            if seat_id is not None:
                raise InvalidBookingRequest("Table bookings can only move to another table.")
            request = BookingRequest(
                venue_id=venue_id,
                start_at=start_at,
                end_at=end_at,
                table_id=table_id or reservation.table_id,
                seat_count=reservation.seat_count,
                reservation_id=reservation.id,
            )

        request = self._require_accepted(request, now)

        reservation.start_at = request.start_at
        reservation.end_at = request.end_at
        if request.scope is BookingScope.SEAT:
            seat = self.db.get(Seat, request.seat_ids[0])
            reservation.seat_id = seat.id
            reservation.table_id = seat.table_id
        else:
            reservation.table_id = request.table_id
        self._commit(request)
        self.db.refresh(reservation)
        return reservation

    def cancel(self, reservation_id: UUID, venue_id: Optional[UUID] = None) -> Reservation:
        """Mark a reservation cancelled. Cancelling twice is a no-op."""
        reservation = self.get_reservation(reservation_id, venue_id)
        if not reservation.is_cancelled:
            reservation.status = ReservationStatus.CANCELLED.value
            self.db.commit()
            self.db.refresh(reservation)
            logger.info(f"Cancelled reservation {reservation.id}")
        return reservation
