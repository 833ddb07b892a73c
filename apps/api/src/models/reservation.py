"""
Reservation and seat block models.

Reservation: a booking of one seat, or of a whole group-mode table
SeatBlock: staff-created unavailability for one seat or the whole venue

Reservations are never deleted; cancelling flips status to "cancelled".
On PostgreSQL two exclusion constraints make overlapping active bookings of
the same seat (or same whole table) impossible even when two requests race
past the application check.
"""
import enum
import uuid
from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey, Uuid, func, Index, CheckConstraint, DDL, event,
)
from sqlalchemy.orm import relationship

from src.db.base import Base


class ReservationStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


SEAT_OVERLAP_CONSTRAINT = "no_overlapping_seat_reservations"
TABLE_OVERLAP_CONSTRAINT = "no_overlapping_table_reservations"


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    seat_id = Column(Uuid(as_uuid=True), ForeignKey("seats.id", ondelete="RESTRICT"), nullable=True)
    table_id = Column(Uuid(as_uuid=True), ForeignKey("venue_tables.id", ondelete="RESTRICT"), nullable=True)
    start_at = Column(DateTime(timezone=True), nullable=False)  # UTC
    end_at = Column(DateTime(timezone=True), nullable=False)  # UTC, exclusive
    seat_count = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=ReservationStatus.ACTIVE.value)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    venue = relationship("Venue")
    seat = relationship("Seat")
    table = relationship("VenueTable")

    __table_args__ = (
        CheckConstraint('end_at > start_at', name='ck_reservations_window'),
        CheckConstraint('seat_count >= 1', name='ck_reservations_seat_count'),
        Index('idx_reservations_venue_window', 'venue_id', 'start_at', 'end_at'),
        Index('idx_reservations_seat', 'seat_id'),
        Index('idx_reservations_table', 'table_id'),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == ReservationStatus.CANCELLED.value


class SeatBlock(Base):
    __tablename__ = "seat_blocks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    seat_id = Column(Uuid(as_uuid=True), ForeignKey("seats.id", ondelete="CASCADE"), nullable=True)  # null = venue-wide
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    venue = relationship("Venue")
    seat = relationship("Seat")

    __table_args__ = (
        CheckConstraint('end_at > start_at', name='ck_seat_blocks_window'),
        Index('idx_seat_blocks_venue_window', 'venue_id', 'start_at', 'end_at'),
    )


# tstzrange defaults to '[)' bounds, so back-to-back bookings do not overlap
SEAT_OVERLAP_DDL = f"""
ALTER TABLE reservations
ADD CONSTRAINT {SEAT_OVERLAP_CONSTRAINT}
EXCLUDE USING gist (
    seat_id WITH =,
    tstzrange(start_at, end_at) WITH &&
)
WHERE (seat_id IS NOT NULL AND status <> 'cancelled')
"""

TABLE_OVERLAP_DDL = f"""
ALTER TABLE reservations
ADD CONSTRAINT {TABLE_OVERLAP_CONSTRAINT}
EXCLUDE USING gist (
    table_id WITH =,
    tstzrange(start_at, end_at) WITH &&
)
WHERE (table_id IS NOT NULL AND seat_id IS NULL AND status <> 'cancelled')
"""

for _ddl in (SEAT_OVERLAP_DDL, TABLE_OVERLAP_DDL):
    event.listen(
        Reservation.__table__,
        "after_create",
        DDL(_ddl).execute_if(dialect="postgresql"),
    )
