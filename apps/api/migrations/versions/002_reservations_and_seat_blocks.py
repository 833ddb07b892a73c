"""Reservations and seat blocks

Revision ID: 002_reservations_and_seat_blocks
Revises: 001_venues_and_hours
Create Date: 2026-01-19

Adds:
- reservations (seat or whole-table bookings, cancelled rows are kept)
- seat_blocks (seat_id NULL blocks the whole venue)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = '002_reservations_and_seat_blocks'
down_revision: Union[str, None] = '001_venues_and_hours'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reservations',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('venue_id', UUID(as_uuid=True), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seat_id', UUID(as_uuid=True), sa.ForeignKey('seats.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('table_id', UUID(as_uuid=True), sa.ForeignKey('venue_tables.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('seat_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('end_at > start_at', name='ck_reservations_window'),
        sa.CheckConstraint('seat_count >= 1', name='ck_reservations_seat_count'),
    )
    op.create_index('idx_reservations_venue_window', 'reservations', ['venue_id', 'start_at', 'end_at'])
    op.create_index('idx_reservations_seat', 'reservations', ['seat_id'])
    op.create_index('idx_reservations_table', 'reservations', ['table_id'])

    op.create_table(
        'seat_blocks',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('venue_id', UUID(as_uuid=True), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seat_id', UUID(as_uuid=True), sa.ForeignKey('seats.id', ondelete='CASCADE'), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('end_at > start_at', name='ck_seat_blocks_window'),
    )
    op.create_index('idx_seat_blocks_venue_window', 'seat_blocks', ['venue_id', 'start_at', 'end_at'])


def downgrade() -> None:
    op.drop_index('idx_seat_blocks_venue_window', table_name='seat_blocks')
    op.drop_table('seat_blocks')
    op.drop_index('idx_reservations_table', table_name='reservations')
    op.drop_index('idx_reservations_seat', table_name='reservations')
    op.drop_index('idx_reservations_venue_window', table_name='reservations')
    op.drop_table('reservations')
