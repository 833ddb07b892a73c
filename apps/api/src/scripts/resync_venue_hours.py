"""
Re-fetch Google hours for venues and apply them without touching manual days.

Usage:
    python -m src.scripts.resync_venue_hours [--venue-id UUID] [--dry-run]
"""
import argparse
import sys
import os
from uuid import UUID

# Add project root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '../..'))

from sqlalchemy import select

from src.db.session import SessionLocal
from src.models.venue import Venue
from src.services.google_places import GooglePlacesClient, GooglePlacesError
from src.services.venue_hours import format_weekly_hours, parse_google_periods, sync_venue_hours_from_google


def resync(venue_id: UUID | None = None, dry_run: bool = False) -> int:
    client = GooglePlacesClient()
    if not client.is_configured():
        print("GOOGLE_PLACES_API_KEY is not set, nothing to do.")
        return 1

    db = SessionLocal()
    failures = 0
    try:
        stmt = select(Venue).where(Venue.google_place_id.is_not(None), Venue.status != "DELETED")
        if venue_id is not None:
            stmt = stmt.where(Venue.id == venue_id)
        venues = db.execute(stmt).scalars().all()
        print(f"Resyncing hours for {len(venues)} venue(s)...")

        for venue in venues:
            try:
                periods = client.fetch_opening_periods(venue.google_place_id)
            except GooglePlacesError as e:
                print(f"  {venue.name}: FAILED ({e})")
                failures += 1
                continue

            rows = parse_google_periods(periods)
            if dry_run:
                print(f"  {venue.name} (mode: {venue.hours_source or 'google'}):")
                for line in format_weekly_hours(rows):
                    print(f"    {line}")
                continue

            updated = sync_venue_hours_from_google(db, venue.id, rows, venue.hours_source)
            db.commit()
            print(f"  {venue.name}: updated days {updated}")
    finally:
        db.close()

    print("Resync complete!" if not failures else f"Resync finished with {failures} failure(s).")
    return 1 if failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--venue-id", type=UUID, default=None)
    parser.add_argument("--dry-run", action="store_true", help="Print parsed hours without writing")
    args = parser.parse_args()
    sys.exit(resync(args.venue_id, args.dry_run))
