"""Venues, tables, seats and weekly hours

Revision ID: 001_venues_and_hours
Revises:
Create Date: 2026-01-12

Adds:
- venues with timezone, hours policy and booking status
- venue_tables and seats
- venue_hours, one row per venue and day (0=Sunday) tagged with its source
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = '001_venues_and_hours'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'venues',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=True),
        sa.Column('hours_source', sa.String(20), nullable=True),
        sa.Column('google_place_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('pause_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'venue_tables',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('venue_id', UUID(as_uuid=True), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('seat_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('booking_mode', sa.String(20), nullable=False, server_default='individual'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('idx_venue_tables_venue', 'venue_tables', ['venue_id'])

    op.create_table(
        'seats',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('table_id', UUID(as_uuid=True), sa.ForeignKey('venue_tables.id', ondelete='CASCADE'), nullable=False),
        sa.Column('label', sa.String(50), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('idx_seats_table', 'seats', ['table_id'])

    op.create_table(
        'venue_hours',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('venue_id', UUID(as_uuid=True), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('open_time', sa.String(5), nullable=True),
        sa.Column('close_time', sa.String(5), nullable=True),
        sa.Column('source', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Unique constraint: one entry per venue-day
    op.create_index(
        'idx_venue_hours_venue_day',
        'venue_hours',
        ['venue_id', 'day_of_week'],
        unique=True
    )


def downgrade() -> None:
    op.drop_index('idx_venue_hours_venue_day', table_name='venue_hours')
    op.drop_table('venue_hours')
    op.drop_index('idx_seats_table', table_name='seats')
    op.drop_table('seats')
    op.drop_index('idx_venue_tables_venue', table_name='venue_tables')
    op.drop_table('venue_tables')
    op.drop_table('venues')
