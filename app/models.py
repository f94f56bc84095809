# app/models.py
"""
Registration and archive database models.

Tables:
- Team: Registered teams (live store, wiped every event cycle)
- Member: Team members with attendance, pizza and payment tracking
- PaymentEvent: Audit log of the payment lifecycle per member
- Setting: Key/value admin settings (event year override, retention years, ...)
- Archive: Immutable yearly snapshot of one event, anonymized after retention
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite for local dev and tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class PaymentStatus(str, Enum):
    """Member payment status."""
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    DELAYED = "delayed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """How a member paid."""
    ONLINE = "online"
    ON_SITE = "on_site"


class PaymentEventType(str, Enum):
    """Payment lifecycle events."""
    CHECKOUT_CREATED = "checkout_created"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_DELAYED = "payment_delayed"
    REFUNDED = "refunded"


class SettingKey(str, Enum):
    """Settings consulted by the archive subsystem."""
    EVENT_YEAR = "event_year"
    GDPR_RETENTION_YEARS = "gdpr_retention_years"


# -----------------------------------------------------------------------------
# Team
# -----------------------------------------------------------------------------

class Team(Base):
    """Registered team. password_hash never leaves the live store."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, default="", nullable=True)
    password_hash = Column(String(255), nullable=True)
    room = Column(String(64), nullable=True)  # Room assigned for the event night
    created_at = Column(DateTime, default=datetime.utcnow, nullable=True)

    members = relationship("Member", back_populates="team", passive_deletes=True)

    __table_args__ = (
        Index("ix_teams_room", "room"),
    )


# -----------------------------------------------------------------------------
# Member
# -----------------------------------------------------------------------------

class Member(Base):
    """Team member with attendance, pizza and payment tracking."""
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    bac_level = Column(Integer, default=0, nullable=True)
    is_leader = Column(Boolean, default=False, nullable=True)
    food_diet = Column(String(64), default="", nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=True)

    # Attendance
    checked_in = Column(Boolean, default=False, nullable=True)
    checked_in_at = Column(DateTime, nullable=True)

    # Pizza distribution
    pizza_received = Column(Boolean, default=False, nullable=True)
    pizza_received_at = Column(DateTime, nullable=True)

    # Payment tracking (amounts in cents)
    payment_status = Column(String(20), default=PaymentStatus.UNPAID.value, nullable=True)
    payment_method = Column(String(20), nullable=True)
    checkout_id = Column(String(128), nullable=True)
    transaction_id = Column(String(128), nullable=True)
    registration_tier = Column(String(16), nullable=True)
    payment_tier = Column(String(16), nullable=True)
    payment_amount = Column(Integer, nullable=True)
    payment_confirmed_at = Column(DateTime, nullable=True)

    team = relationship("Team", back_populates="members")

    __table_args__ = (
        UniqueConstraint("first_name", "last_name", name="uq_members_full_name"),
        Index("ix_members_team_id", "team_id"),
        Index("ix_members_email", "email"),
        Index("ix_members_created_at", "created_at"),
        Index("ix_members_payment_status", "payment_status"),
    )


# -----------------------------------------------------------------------------
# PaymentEvent
# -----------------------------------------------------------------------------

class PaymentEvent(Base):
    """Payment lifecycle audit log."""
    __tablename__ = "payment_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    checkout_id = Column(String(128), nullable=True)
    event_type = Column(String(32), nullable=False)
    amount = Column(Integer, nullable=False)  # Cents
    tier = Column(String(16), nullable=False)
    # 'metadata' is reserved on declarative classes
    event_metadata = Column("metadata", Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=True)

    __table_args__ = (
        Index("ix_payment_events_member_id", "member_id"),
        Index("ix_payment_events_event_type", "event_type"),
    )


# -----------------------------------------------------------------------------
# Setting
# -----------------------------------------------------------------------------

class Setting(Base):
    """Admin-editable key/value setting."""
    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    description = Column(Text, default="", nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# -----------------------------------------------------------------------------
# Archive
# -----------------------------------------------------------------------------

class Archive(Base):
    """
    Yearly event snapshot with GDPR retention.

    Write rules:
    - Inserted once per event_year by the archive builder
    - Updated once by the expiration enforcer (members/payment events
      anonymized, is_expired set); stats and data_hash are never rewritten
    - Never deleted by the application
    """
    __tablename__ = "archives"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_year = Column(Integer, nullable=False)
    archived_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expiration_date = Column(DateTime, nullable=False)
    is_expired = Column(Boolean, default=False, nullable=False)

    # Snapshot blobs
    teams_snapshot = Column(JSONDocument, nullable=False)
    members_snapshot = Column(JSONDocument, nullable=False)
    payment_events_snapshot = Column(JSONDocument, nullable=True)

    # Permanent aggregate record, computed before anonymization
    stats = Column(JSONDocument, nullable=False)

    total_teams = Column(Integer, nullable=False)
    total_participants = Column(Integer, nullable=False)
    total_revenue = Column(Integer, default=0, nullable=False)  # Cents

    # Fingerprint of the original snapshot
    data_hash = Column(String(64), nullable=False)

    # Set once, when retention elapses
    anonymized_at = Column(DateTime, nullable=True)
    anonymized_data_hash = Column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_year", name="uq_archives_event_year"),
        Index("ix_archives_is_expired", "is_expired"),
    )
