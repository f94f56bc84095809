"""Registration schema: teams, members and settings.

Changes:
- Create teams table (unique name, assigned room)
- Create members table with attendance, pizza and payment tracking
- Create settings key/value table

Revision ID: 001_registration_schema
Revises:
Create Date: 2023-09-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_registration_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the live registration tables."""

    # -------------------------------------------------------------------------
    # 1. teams
    # -------------------------------------------------------------------------
    print("  Creating teams table...")

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True, server_default=''),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('room', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_teams_name')
    )
    op.create_index('ix_teams_room', 'teams', ['room'], unique=False)

    # -------------------------------------------------------------------------
    # 2. members
    # -------------------------------------------------------------------------
    print("  Creating members table...")

    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('bac_level', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('is_leader', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('food_diet', sa.String(length=64), nullable=True, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column('checked_in', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('checked_in_at', sa.DateTime(), nullable=True),
        sa.Column('pizza_received', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('pizza_received_at', sa.DateTime(), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=True, server_default='unpaid'),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('checkout_id', sa.String(length=128), nullable=True),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('registration_tier', sa.String(length=16), nullable=True),
        sa.Column('payment_tier', sa.String(length=16), nullable=True),
        sa.Column('payment_amount', sa.Integer(), nullable=True),
        sa.Column('payment_confirmed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('first_name', 'last_name', name='uq_members_full_name')
    )
    op.create_index('ix_members_team_id', 'members', ['team_id'], unique=False)
    op.create_index('ix_members_email', 'members', ['email'], unique=False)
    op.create_index('ix_members_created_at', 'members', ['created_at'], unique=False)
    op.create_index('ix_members_payment_status', 'members', ['payment_status'], unique=False)

    print("  Created members table with 4 indexes")

    # -------------------------------------------------------------------------
    # 3. settings
    # -------------------------------------------------------------------------
    print("  Creating settings table...")

    op.create_table(
        'settings',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True, server_default=''),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('key')
    )

    print("  Migration complete!")


def downgrade() -> None:
    """Drop the live registration tables."""
    op.drop_table('settings')

    op.drop_index('ix_members_payment_status', table_name='members')
    op.drop_index('ix_members_created_at', table_name='members')
    op.drop_index('ix_members_email', table_name='members')
    op.drop_index('ix_members_team_id', table_name='members')
    op.drop_table('members')

    op.drop_index('ix_teams_room', table_name='teams')
    op.drop_table('teams')
