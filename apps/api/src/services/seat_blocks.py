"""
Seat blocks: staff marking a seat, or the whole venue, unavailable for a while.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.errors import InvalidBookingRequest, ResourceNotFound
from src.core.timezones import end_of_local_day, ensure_utc
from src.models.reservation import SeatBlock
from src.models.venue import Seat, Venue, VenueTable


class BlockDuration(str, Enum):
    ONE_HOUR = "1hour"
    TODAY = "today"  # until the end of the venue's local day
    CUSTOM = "custom"


def resolve_block_end(
    venue: Venue,
    start_at: datetime,
    duration: BlockDuration,
    end_at: Optional[datetime] = None,
) -> datetime:
    start_at = ensure_utc(start_at)
    if duration is BlockDuration.ONE_HOUR:
        return start_at + timedelta(hours=1)
    if duration is BlockDuration.TODAY:
        return end_of_local_day(venue.timezone, start_at)
    if end_at is None:
        raise InvalidBookingRequest("End time is required for a custom block.")
    return ensure_utc(end_at)


class SeatBlockService:

    def __init__(self, db: Session):
        self.db = db

    def _get_venue(self, venue_id: UUID) -> Venue:
        venue = self.db.get(Venue, venue_id)
        if venue is None:
            raise ResourceNotFound("Venue not found.")
        return venue

    def create(
        self,
        venue_id: UUID,
        start_at: datetime,
        duration: BlockDuration,
        seat_id: Optional[UUID] = None,
        end_at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> SeatBlock:
        venue = self._get_venue(venue_id)
        if seat_id is not None:
            seat = self.db.get(Seat, seat_id)
            table = self.db.get(VenueTable, seat.table_id) if seat else None
            if table is None or table.venue_id != venue.id:
                raise InvalidBookingRequest("Seat does not belong to this venue.")

        start_at = ensure_utc(start_at)
        end_at = resolve_block_end(venue, start_at, duration, end_at)
        if end_at <= start_at:
            raise InvalidBookingRequest("End time must be after start time.")

        block = SeatBlock(
            venue_id=venue.id,
            seat_id=seat_id,
            start_at=start_at,
            end_at=end_at,
            reason=reason or None,
        )
        self.db.add(block)
        self.db.commit()
        self.db.refresh(block)
        return block

    def list_active(self, venue_id: UUID, now: datetime) -> List[SeatBlock]:
        """Blocks that have not ended yet, soonest first."""
        self._get_venue(venue_id)
        stmt = (
            select(SeatBlock)
            .where(SeatBlock.venue_id == venue_id, SeatBlock.end_at > ensure_utc(now))
            .order_by(SeatBlock.start_at)
        )
        return list(self.db.execute(stmt).scalars())

    def delete(self, venue_id: UUID, block_id: UUID) -> None:
        block = self.db.get(SeatBlock, block_id)
        if block is None or block.venue_id != venue_id:
            raise ResourceNotFound("Seat block not found.")
        self.db.delete(block)
        self.db.commit()
