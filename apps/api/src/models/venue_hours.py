"""
Weekly venue hours.

One row per venue and day of week (0=Sunday, 6=Saturday). Rows carry the
source that wrote them so manual edits survive Google re-syncs.
"""
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid, func, Index
from sqlalchemy.orm import relationship

from src.db.base import Base


class VenueHours(Base):
    __tablename__ = "venue_hours"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    is_closed = Column(Boolean, default=False, nullable=False)
    open_time = Column(String(5), nullable=True)  # "HH:MM" venue-local, null if closed
    close_time = Column(String(5), nullable=True)  # "HH:MM" venue-local, null if closed
    source = Column(String(20), nullable=True)  # "manual", "google"; null on legacy rows
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    venue = relationship("Venue", back_populates="hours")

    __table_args__ = (
        # Only one entry per venue-day combination
        Index('idx_venue_hours_venue_day', 'venue_id', 'day_of_week', unique=True),
    )
