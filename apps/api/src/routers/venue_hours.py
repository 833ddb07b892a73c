"""
Venue hours router.

Provides endpoints for:
- Viewing the canonical weekly schedule
- Replacing it with staff-entered (manual) hours
- Re-syncing Google hours without clobbering manual days
- Asking whether a venue is open at an instant
"""
import logging
from datetime import datetime
from typing import List, Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from src.core.deps import get_venue_or_404
from src.core.timezones import DAY_NAMES, parse_hhmm
from src.db.session import get_db
from src.models.venue import Venue
from src.services.google_places import GooglePlacesClient, GooglePlacesError
from src.services.hours_engine import CanonicalVenueHours, get_canonical_venue_hours, get_open_status
from src.services.venue_hours import (
    RowSource,
    WeeklyHoursRow,
    format_weekly_hours,
    parse_google_periods,
    replace_manual_hours,
    sync_venue_hours_from_google,
)

router = APIRouter(tags=["venue-hours"])
logger = logging.getLogger(__name__)


# ============ Schemas ============

class DaySchedule(BaseModel):
    """Schedule for a single day of the week."""
    day_of_week: int  # 0=Sunday, 6=Saturday
    day_name: Optional[str] = None
    open_time: Optional[str] = None  # "HH:MM" or None if closed
    close_time: Optional[str] = None
    is_closed: bool
    source: Optional[str] = None

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        return v


class VenueHoursResponse(BaseModel):
    timezone: str
    hours_source: str  # "manual" or "google"
    schedule: List[DaySchedule]
    formatted: List[str]


class VenueHoursUpdate(BaseModel):
    schedule: List[DaySchedule]


class GoogleSyncRequest(BaseModel):
    """Periods may be supplied directly; otherwise they are fetched from Google."""
    periods: Optional[List[dict]] = None


class GoogleSyncResponse(BaseModel):
    updated_days: List[int]
    hours_source: str


class OpenStatusResponse(BaseModel):
    is_open: bool
    status: str
    today_label: str
    today_hours_text: str
    next_open_at: Optional[datetime] = None
    diagnostic_message: Optional[str] = None


# ============ Helper Functions ============

def to_response(venue: Venue, canonical: CanonicalVenueHours) -> VenueHoursResponse:
    by_day = {row.day_of_week: row for row in canonical.weekly_hours}
    schedule = []
    for day, day_name in enumerate(DAY_NAMES):
        row = by_day.get(day)
        if row is None:
            schedule.append(DaySchedule(day_of_week=day, day_name=day_name, is_closed=True))
            continue
        schedule.append(DaySchedule(
            day_of_week=day,
            day_name=day_name,
            open_time=row.open_time,
            close_time=row.close_time,
            is_closed=row.is_closed,
            source=row.source.value,
        ))
    return VenueHoursResponse(
        timezone=canonical.timezone,
        hours_source=venue.hours_source or "google",
        schedule=schedule,
        formatted=format_weekly_hours(canonical.weekly_hours),
    )


def to_manual_row(day: DaySchedule) -> WeeklyHoursRow:
    """Validate one submitted day, raising 400 on bad times."""
    if day.is_closed:
        return WeeklyHoursRow(day_of_week=day.day_of_week, is_closed=True, source=RowSource.MANUAL)

    open_min = parse_hhmm(day.open_time)
    close_min = parse_hhmm(day.close_time)
    if open_min is None or close_min is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid time for {DAY_NAMES[day.day_of_week]}. Expected HH:MM format."
        )
    if close_min <= open_min:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Close time must be after open time for {DAY_NAMES[day.day_of_week]}."
        )
    return WeeklyHoursRow(
        day_of_week=day.day_of_week,
        is_closed=False,
        open_time=f"{open_min // 60:02d}:{open_min % 60:02d}",
        close_time=f"{close_min // 60:02d}:{close_min % 60:02d}",
        source=RowSource.MANUAL,
    )


def get_google_client() -> GooglePlacesClient:
    return GooglePlacesClient()


# ============ Endpoints ============

@router.get("/venues/{venue_id}/hours", response_model=VenueHoursResponse)
def get_venue_hours(
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """Canonical weekly schedule: the venue timezone plus its effective rows."""
    canonical = get_canonical_venue_hours(db, venue.id)
    return to_response(venue, canonical)


@router.put("/venues/{venue_id}/hours", response_model=VenueHoursResponse)
def update_venue_hours(
    update: VenueHoursUpdate,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    """
    Replace the weekly schedule with manual hours.

    The venue switches to manual mode; later Google syncs leave these days alone.
    """
    rows = [to_manual_row(day) for day in update.schedule]
    replace_manual_hours(db, venue, rows)
    db.commit()
    db.refresh(venue)

    canonical = get_canonical_venue_hours(db, venue.id)
    return to_response(venue, canonical)


@router.post("/venues/{venue_id}/hours/sync-google", response_model=GoogleSyncResponse)
def sync_google_hours(
    request: Optional[GoogleSyncRequest] = None,
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
    client: GooglePlacesClient = Depends(get_google_client),
):
    """Pull Google hours for the venue and apply them without overwriting manual days."""
    periods = request.periods if request else None
    if periods is None:
        if not venue.google_place_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Venue has no Google place id"
            )
        try:
            periods = client.fetch_opening_periods(venue.google_place_id)
        except GooglePlacesError as e:
            logger.warning(f"Google hours sync failed for venue {venue.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(e)
            )

    rows = parse_google_periods(periods)
    updated = sync_venue_hours_from_google(db, venue.id, rows, venue.hours_source)
    db.commit()
    return GoogleSyncResponse(updated_days=updated, hours_source=venue.hours_source or "google")


@router.get("/venues/{venue_id}/open-status", response_model=OpenStatusResponse)
def get_venue_open_status(
    at: Optional[datetime] = Query(None, description="Instant to evaluate, defaults to now"),
    venue: Venue = Depends(get_venue_or_404),
    db: Session = Depends(get_db),
):
    canonical = get_canonical_venue_hours(db, venue.id)
    result = get_open_status(canonical, at or datetime.now(pytz.UTC))
    return OpenStatusResponse(
        is_open=result.is_open,
        status=result.status.value,
        today_label=result.today_label,
        today_hours_text=result.today_hours_text,
        next_open_at=result.next_open_at,
        diagnostic_message=result.diagnostic_message,
    )
