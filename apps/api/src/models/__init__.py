"""
SQLAlchemy models for Perch.
"""
# Venues
from src.models.venue import Venue, VenueTable, Seat

# Hours
from src.models.venue_hours import VenueHours

# Bookings
from src.models.reservation import Reservation, ReservationStatus, SeatBlock


__all__ = [
    # Venues
    "Venue",
    "VenueTable",
    "Seat",
    # Hours
    "VenueHours",
    # Bookings
    "Reservation",
    "ReservationStatus",
    "SeatBlock",
]
