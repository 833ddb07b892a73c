"""
Venue, table and seat models.

Venue: a bookable place with its own timezone and hours policy
VenueTable: a physical table; booked seat by seat or as a whole (group mode)
Seat: an individually bookable seat at a table
"""
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Text, Uuid, func, Index
from sqlalchemy.orm import relationship

from src.db.base import Base


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    timezone = Column(String(50), nullable=True)  # IANA name; null = DEFAULT_VENUE_TIMEZONE
    hours_source = Column(String(20), nullable=True)  # "manual", "google", null = google
    google_place_id = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE, PAUSED, DELETED
    pause_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tables = relationship("VenueTable", back_populates="venue", cascade="all, delete-orphan")
    hours = relationship("VenueHours", back_populates="venue", cascade="all, delete-orphan")


class VenueTable(Base):
    """
    A table at a venue.

    seat_count is the fallback capacity for tables without seat rows;
    when seats exist, the number of active seats wins.
    """
    __tablename__ = "venue_tables"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    seat_count = Column(Integer, nullable=False, default=0)
    booking_mode = Column(String(20), nullable=False, default="individual")  # "individual" or "group"
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())

    venue = relationship("Venue", back_populates="tables")
    seats = relationship("Seat", back_populates="table", cascade="all, delete-orphan", order_by="Seat.position")

    __table_args__ = (
        Index('idx_venue_tables_venue', 'venue_id'),
    )


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    table_id = Column(Uuid(as_uuid=True), ForeignKey("venue_tables.id", ondelete="CASCADE"), nullable=False)
    label = Column(String(50), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())

    table = relationship("VenueTable", back_populates="seats")

    __table_args__ = (
        Index('idx_seats_table', 'table_id'),
    )
