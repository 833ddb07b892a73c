"""
Availability router: seat map for a window, the venue card label, and
bookable slot start times for a date.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

import pytz
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from src.core.deps import get_venue_or_404
from src.core.timezones import ensure_utc
from src.db.session import get_db
from src.models.venue import Venue
from src.services.availability import (
    HORIZON_HOURS,
    calculate_capacity,
    compute_availability_label,
    find_overlapping_reservations,
    get_seat_availability,
    load_active_tables,
)
from src.services.booking import BookingRequest, BookingService
from src.services.hours_engine import get_canonical_venue_hours, get_open_status, get_slot_times_for_date

router = APIRouter(tags=["availability"])


# ============ Schemas ============

class SeatAvailabilityResponse(BaseModel):
    start_at: datetime
    end_at: datetime
    capacity: int
    available_seat_ids: List[UUID]
    unavailable_seat_ids: List[UUID]
    available_table_ids: List[UUID]
    unavailable_table_ids: List[UUID]
    venue_blocked: bool
    can_book: Optional[bool] = None  # only when seat_count is given
    message: Optional[str] = None


class AvailabilityLabelResponse(BaseModel):
    label: str
    capacity: int
    is_open: bool
    status: str


class SlotsResponse(BaseModel):
    local_date: date
    timezone: str
    slots: List[datetime]


# ============ Endpoints ============

@router.get("/venues/{venue_id}/availability", response_model=SeatAvailabilityResponse)
def get_availability(
    start_at: datetime,
    end_at: datetime,
    seat_count: Optional[int] = Query(None, ge=1),
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """
    Which seats and whole tables are free between start_at and end_at.

    With seat_count, also answers whether that many seats can be booked
    anywhere in the venue for the window.
    """
    if ensure_utc(end_at) <= ensure_utc(start_at):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_at must be after start_at"
        )

    result = get_seat_availability(db, venue, start_at, end_at)
    response = SeatAvailabilityResponse(
        start_at=ensure_utc(start_at),
        end_at=ensure_utc(end_at),
        capacity=result.capacity,
        available_seat_ids=result.available_seat_ids,
        unavailable_seat_ids=result.unavailable_seat_ids,
        available_table_ids=result.available_table_ids,
        unavailable_table_ids=result.unavailable_table_ids,
        venue_blocked=result.venue_blocked,
    )

    if seat_count is not None:
        decision = BookingService(db).check(
            BookingRequest(venue_id=venue.id, start_at=start_at, end_at=end_at, seat_count=seat_count)
        )
        response.can_book = decision.accepted
        response.message = decision.message

    return response


@router.get("/venues/{venue_id}/availability-label", response_model=AvailabilityLabelResponse)
def get_availability_label(
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """Short availability summary used on venue cards."""
    now = datetime.now(pytz.UTC)
    canonical = get_canonical_venue_hours(db, venue.id)
    open_status = get_open_status(canonical, now)
    capacity = calculate_capacity(load_active_tables(db, venue.id))
    # Window wide enough for every candidate slot the label can look at
    reservations = find_overlapping_reservations(db, venue.id, now, now + timedelta(hours=HORIZON_HOURS + 2))

    label = compute_availability_label(capacity, reservations, open_status, canonical.timezone, now=now)
    return AvailabilityLabelResponse(
        label=label,
        capacity=capacity,
        is_open=open_status.is_open,
        status=open_status.status.value,
    )


@router.get("/venues/{venue_id}/slots", response_model=SlotsResponse)
def get_slots(
    date: date,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """15-minute slot start times (UTC) inside the venue's hours for a local date."""
    canonical = get_canonical_venue_hours(db, venue.id)
    return SlotsResponse(
        local_date=date,
        timezone=canonical.timezone,
        slots=get_slot_times_for_date(canonical, date),
    )
