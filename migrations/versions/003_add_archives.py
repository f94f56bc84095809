"""Add yearly archives with GDPR retention.

Each event year is snapshotted once into archives. Personal data in the
snapshot is anonymized when expiration_date passes; stats are kept.

Changes:
- Create archives table (one row per event_year)
- Seed the gdpr_retention_years setting

Revision ID: 003_add_archives
Revises: 002_add_payment_events
Create Date: 2025-01-20
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '003_add_archives'
down_revision: Union[str, Sequence[str], None] = '002_add_payment_events'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create archives table and seed retention setting."""

    # -------------------------------------------------------------------------
    # 1. archives
    # -------------------------------------------------------------------------
    print("  Creating archives table...")

    op.create_table(
        'archives',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_year', sa.Integer(), nullable=False),
        sa.Column('archived_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('expiration_date', sa.DateTime(), nullable=False),
        sa.Column('is_expired', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('teams_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('members_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('payment_events_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('stats', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('total_teams', sa.Integer(), nullable=False),
        sa.Column('total_participants', sa.Integer(), nullable=False),
        sa.Column('total_revenue', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('data_hash', sa.String(length=64), nullable=False),
        sa.Column('anonymized_at', sa.DateTime(), nullable=True),
        sa.Column('anonymized_data_hash', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_year', name='uq_archives_event_year')
    )
    op.create_index('ix_archives_is_expired', 'archives', ['is_expired'], unique=False)

    print("  Created archives table")

    # -------------------------------------------------------------------------
    # 2. Seed retention setting
    # -------------------------------------------------------------------------
    op.execute("""
        INSERT INTO settings (key, value, description, updated_at)
        VALUES ('gdpr_retention_years', '3', 'Years before archived personal data is anonymized', NOW())
        ON CONFLICT (key) DO NOTHING
    """)

    print("  Migration complete!")


def downgrade() -> None:
    """Drop archives table."""
    op.execute("DELETE FROM settings WHERE key = 'gdpr_retention_years'")
    op.drop_index('ix_archives_is_expired', table_name='archives')
    op.drop_table('archives')
