"""Add payment_events audit log.

Revision ID: 002_add_payment_events
Revises: 001_registration_schema
Create Date: 2024-10-02
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002_add_payment_events'
down_revision: Union[str, Sequence[str], None] = '001_registration_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create payment_events table."""
    print("  Creating payment_events table...")

    op.create_table(
        'payment_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('checkout_id', sa.String(length=128), nullable=True),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('tier', sa.String(length=16), nullable=False),
        sa.Column('metadata', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payment_events_member_id', 'payment_events', ['member_id'], unique=False)
    op.create_index('ix_payment_events_event_type', 'payment_events', ['event_type'], unique=False)

    print("  Created payment_events table with 2 indexes")


def downgrade() -> None:
    """Drop payment_events table."""
    op.drop_index('ix_payment_events_event_type', table_name='payment_events')
    op.drop_index('ix_payment_events_member_id', table_name='payment_events')
    op.drop_table('payment_events')
