"""
Seat blocks router: staff-created unavailability for a seat or the whole venue.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

import pytz
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from src.core.deps import get_venue_or_404
from src.core.timezones import ensure_utc
from src.db.session import get_db
from src.models.reservation import SeatBlock
from src.models.venue import Venue
from src.services.seat_blocks import BlockDuration, SeatBlockService

router = APIRouter(tags=["seat-blocks"])


# ============ Schemas ============

class SeatBlockCreate(BaseModel):
    seat_id: Optional[UUID] = None  # None blocks the whole venue
    start_at: Optional[datetime] = None  # defaults to now
    duration: BlockDuration = BlockDuration.ONE_HOUR
    end_at: Optional[datetime] = None  # required for "custom"
    reason: Optional[str] = None


class SeatBlockResponse(BaseModel):
    id: UUID
    venue_id: UUID
    seat_id: Optional[UUID]
    start_at: datetime
    end_at: datetime
    reason: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class SeatBlockListResponse(BaseModel):
    blocks: List[SeatBlockResponse]
    total: int


def to_response(block: SeatBlock) -> SeatBlockResponse:
    response = SeatBlockResponse.model_validate(block)
    response.start_at = ensure_utc(response.start_at)
    response.end_at = ensure_utc(response.end_at)
    return response


# ============ Endpoints ============

@router.post("/venues/{venue_id}/seat-blocks", response_model=SeatBlockResponse, status_code=status.HTTP_201_CREATED)
def create_seat_block(
    payload: SeatBlockCreate,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    block = SeatBlockService(db).create(
        venue.id,
        start_at=payload.start_at or datetime.now(pytz.UTC),
        duration=payload.duration,
        seat_id=payload.seat_id,
        end_at=payload.end_at,
        reason=payload.reason,
    )
    return to_response(block)


@router.get("/venues/{venue_id}/seat-blocks", response_model=SeatBlockListResponse)
def list_seat_blocks(
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """Blocks that are current or upcoming."""
    blocks = SeatBlockService(db).list_active(venue.id, datetime.now(pytz.UTC))
    return SeatBlockListResponse(blocks=[to_response(b) for b in blocks], total=len(blocks))


@router.delete("/venues/{venue_id}/seat-blocks/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_seat_block(
    block_id: UUID,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    SeatBlockService(db).delete(venue.id, block_id)
