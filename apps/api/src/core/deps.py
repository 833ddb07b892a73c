"""
Shared FastAPI dependencies.
"""
from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.db.session import get_db
from src.models.venue import Venue


def get_venue_or_404(venue_id: UUID, db: Session = Depends(get_db)) -> Venue:
    """Load the venue named in the path, raise 404 if not found."""
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Venue not found"
        )
    return venue
