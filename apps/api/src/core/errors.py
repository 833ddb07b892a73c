"""
Booking error taxonomy and its HTTP mapping.

Services raise these exceptions; a single handler in main.py renders them so
routers stay thin.
"""
from enum import Enum
from typing import Optional

from fastapi import status


class RejectionReason(str, Enum):
    """Why a booking request was turned down."""
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    NOT_BOOKABLE = "NOT_BOOKABLE"
    PAST_TIME = "PAST_TIME"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    OUTSIDE_HOURS = "OUTSIDE_HOURS"
    CONFLICT = "CONFLICT"


# First-class reason -> HTTP status. A race lost at the storage layer is a CONFLICT too.
REJECTION_STATUS = {
    RejectionReason.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    RejectionReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.NOT_BOOKABLE: status.HTTP_403_FORBIDDEN,
    RejectionReason.PAST_TIME: status.HTTP_400_BAD_REQUEST,
    RejectionReason.CAPACITY_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    RejectionReason.OUTSIDE_HOURS: status.HTTP_400_BAD_REQUEST,
    RejectionReason.CONFLICT: status.HTTP_409_CONFLICT,
}


class BookingError(Exception):
    """Base class for errors surfaced to API clients."""

    reason: RejectionReason = RejectionReason.INVALID_INPUT

    def __init__(self, message: str, reason: Optional[RejectionReason] = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    @property
    def status_code(self) -> int:
        return REJECTION_STATUS[self.reason]


class InvalidBookingRequest(BookingError):
    """The request is malformed (bad times, bad seat count, foreign resources)."""
    reason = RejectionReason.INVALID_INPUT


class ResourceNotFound(BookingError):
    """Venue, seat, table, reservation or block does not exist."""
    reason = RejectionReason.NOT_FOUND


class BookingRejected(BookingError):
    """A well-formed request failed a business rule; carries the decision."""

    def __init__(self, decision):
        super().__init__(decision.message, decision.reason)
        self.decision = decision


def error_payload(exc: BookingError) -> dict:
    return {"error": exc.message, "code": exc.reason.value}
