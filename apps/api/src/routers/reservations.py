"""
Reservations router.

Provides endpoints for:
- Booking seats or a whole table
- Cancelling a booking (reservations are never deleted)
- Listing and rescheduling bookings from the venue side
"""
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.deps import get_venue_or_404
from src.core.timezones import ensure_utc
from src.db.session import get_db
from src.models.reservation import Reservation
from src.models.venue import Venue
from src.services.booking import BookingRequest, BookingService

router = APIRouter(tags=["reservations"])


# ============ Schemas ============

class ReservationCreate(BaseModel):
    """Book specific seats, or a whole group-mode table with a seat count."""
    venue_id: UUID
    start_at: datetime
    end_at: datetime
    seat_ids: List[UUID] = []
    table_id: Optional[UUID] = None
    seat_count: Optional[int] = None


class ReservationResponse(BaseModel):
    id: UUID
    venue_id: UUID
    seat_id: Optional[UUID]
    table_id: Optional[UUID]
    start_at: datetime
    end_at: datetime
    seat_count: int
    status: str

    model_config = ConfigDict(from_attributes=True)


class ReservationListResponse(BaseModel):
    reservations: List[ReservationResponse]
    total: int


class ReservationStatusUpdate(BaseModel):
    status: Literal["cancelled"]


class ReservationReschedule(BaseModel):
    start_at: datetime
    end_at: datetime
    seat_id: Optional[UUID] = None
    table_id: Optional[UUID] = None


def to_response(reservation: Reservation) -> ReservationResponse:
    response = ReservationResponse.model_validate(reservation)
    # SQLite hands back naive datetimes; everything stored is UTC
    response.start_at = ensure_utc(response.start_at)
    response.end_at = ensure_utc(response.end_at)
    return response


# ============ Endpoints ============

@router.post("/reservations", response_model=ReservationListResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    db: Session = Depends(get_db),
):
    """
    Create a booking.

    Seat bookings produce one reservation per seat. Conflicts return 409,
    capacity or hours problems 400, paused venues 403.
    """
    if not payload.seat_ids and payload.table_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Choose seats or a table to book."
        )

    service = BookingService(db)
    reservations = service.create(BookingRequest(
        venue_id=payload.venue_id,
        start_at=payload.start_at,
        end_at=payload.end_at,
        seat_ids=payload.seat_ids,
        table_id=payload.table_id,
        seat_count=payload.seat_count,
    ))
    return ReservationListResponse(
        reservations=[to_response(r) for r in reservations],
        total=len(reservations),
    )


@router.patch("/reservations/{reservation_id}", response_model=ReservationResponse)
def update_reservation_status(
    reservation_id: UUID,
    update: ReservationStatusUpdate,
    db: Session = Depends(get_db),
):
    """Cancel a booking. The row stays for history; only its status changes."""
    reservation = BookingService(db).cancel(reservation_id)
    return to_response(reservation)


@router.get("/venues/{venue_id}/reservations", response_model=ReservationListResponse)
def list_venue_reservations(
    start_at: Optional[datetime] = None,
    end_at: Optional[datetime] = None,
    include_cancelled: bool = False,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    stmt = select(Reservation).where(Reservation.venue_id == venue.id)
    if start_at is not None:
        stmt = stmt.where(Reservation.end_at > ensure_utc(start_at))
    if end_at is not None:
        stmt = stmt.where(Reservation.start_at < ensure_utc(end_at))
    if not include_cancelled:
        stmt = stmt.where(Reservation.status != "cancelled")
    reservations = db.execute(stmt.order_by(Reservation.start_at)).scalars().all()

    return ReservationListResponse(
        reservations=[to_response(r) for r in reservations],
        total=len(reservations),
    )


@router.patch("/venues/{venue_id}/reservations/{reservation_id}", response_model=ReservationResponse)
def reschedule_reservation(
    reservation_id: UUID,
    update: ReservationReschedule,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """Move a booking to a new time, seat or table, re-running every booking check."""
    reservation = BookingService(db).reschedule(
        venue.id,
        reservation_id,
        update.start_at,
        update.end_at,
        seat_id=update.seat_id,
        table_id=update.table_id,
    )
    return to_response(reservation)
