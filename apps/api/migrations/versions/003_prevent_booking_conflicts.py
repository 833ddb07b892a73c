"""Prevent overlapping bookings at the database level

Revision ID: 003_prevent_booking_conflicts
Revises: 002_reservations_and_seat_blocks
Create Date: 2026-01-26

Adds:
- btree_gist extension (needed to mix "=" on UUIDs with "&&" on ranges)
- no_overlapping_seat_reservations: one active booking per seat at a time
- no_overlapping_table_reservations: one active whole-table booking per table at a time

Cancelled rows are excluded, and tstzrange's default [) bounds let
back-to-back bookings touch without overlapping.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '003_prevent_booking_conflicts'
down_revision: Union[str, None] = '002_reservations_and_seat_blocks'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.execute("""
        ALTER TABLE reservations
        ADD CONSTRAINT no_overlapping_seat_reservations
        EXCLUDE USING gist (
            seat_id WITH =,
            tstzrange(start_at, end_at) WITH &&
        )
        WHERE (seat_id IS NOT NULL AND status <> 'cancelled')
    """)

    op.execute("""
        ALTER TABLE reservations
        ADD CONSTRAINT no_overlapping_table_reservations
        EXCLUDE USING gist (
            table_id WITH =,
            tstzrange(start_at, end_at) WITH &&
        )
        WHERE (table_id IS NOT NULL AND seat_id IS NULL AND status <> 'cancelled')
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS no_overlapping_table_reservations")
    op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS no_overlapping_seat_reservations")
