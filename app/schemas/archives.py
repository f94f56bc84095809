"""
Schemas for yearly archives.

Snapshot records are the typed in-memory form of what an Archive stores in
its JSON columns. Every field is optional so that older or partial snapshots
still validate.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# -----------------------------------------------------------------------------
# Snapshot records
# -----------------------------------------------------------------------------


class TeamSnapshot(BaseModel):
    """Team as archived. Credentials are never part of a snapshot."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    name: str | None = None
    description: str | None = None
    room: str | None = None
    created_at: datetime | None = None
    member_count: int = 0


class MemberSnapshot(BaseModel):
    """Member as archived, including payment fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    team_id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    bac_level: int | None = 0
    is_leader: bool | None = False
    food_diet: str | None = None
    checked_in: bool | None = False
    checked_in_at: datetime | None = None
    pizza_received: bool | None = False
    pizza_received_at: datetime | None = None
    created_at: datetime | None = None
    payment_status: str | None = None
    payment_method: str | None = None
    checkout_id: str | None = None
    transaction_id: str | None = None
    registration_tier: str | None = None
    payment_amount: int | None = None
    payment_confirmed_at: datetime | None = None
    payment_tier: str | None = None


class PaymentEventSnapshot(BaseModel):
    """Payment lifecycle event as archived."""

    id: int | None = None
    member_id: int | None = None
    checkout_id: str | None = None
    event_type: str | None = None
    amount: int | None = None
    tier: str | None = None
    metadata: Any = None
    created_at: datetime | None = None


# -----------------------------------------------------------------------------
# Statistics
# -----------------------------------------------------------------------------


class AttendanceStats(BaseModel):
    checked_in: int = 0
    no_show: int = 0


class PaymentStats(BaseModel):
    total_revenue: int = Field(0, description="Sum of member payment amounts, in cents")
    paid: int = 0
    unpaid: int = 0
    paid_online: int = 0
    paid_onsite: int = 0


class ArchiveStats(BaseModel):
    """Aggregate statistics kept forever, even after anonymization."""

    total_teams: int = 0
    total_participants: int = 0
    participants_by_bac_level: dict[str, int] = Field(default_factory=dict)
    food_preferences: dict[str, int] = Field(default_factory=dict)
    attendance: AttendanceStats = Field(default_factory=AttendanceStats)
    payments: PaymentStats = Field(default_factory=PaymentStats)
    registration_timeline: dict[str, int] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
# Archive views
# -----------------------------------------------------------------------------


class ArchiveSummary(BaseModel):
    """Lightweight archive metadata (no snapshot blobs)."""

    event_year: int
    archived_at: datetime
    expiration_date: datetime
    is_expired: bool
    total_teams: int
    total_participants: int
    total_revenue: int
    stats: ArchiveStats | None = None


class ArchiveDetail(ArchiveSummary):
    """Full archive with typed snapshots."""

    data_hash: str
    anonymized_at: datetime | None = None
    anonymized_data_hash: str | None = None
    integrity_verified: bool = Field(
        False,
        description="Current snapshot matches data_hash (or anonymized_data_hash once expired)",
    )
    teams: list[TeamSnapshot] = Field(default_factory=list)
    members: list[MemberSnapshot] = Field(default_factory=list)
    payment_events: list[PaymentEventSnapshot] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Requests / responses
# -----------------------------------------------------------------------------


class ArchiveListResponse(BaseModel):
    archives: list[ArchiveSummary]


class ArchiveDetailResponse(BaseModel):
    archive: ArchiveDetail


class ArchiveCreateRequest(BaseModel):
    """Create an archive. Omit year to use the detected event year."""

    year: int | str | None = Field(None, description="Event year (2000-2100); detected when omitted")


class ArchiveCreated(BaseModel):
    event_year: int
    total_teams: int
    total_participants: int
    total_revenue: int
    expiration_date: datetime
    data_hash: str


class ArchiveCreateResponse(BaseModel):
    success: bool = True
    archive: ArchiveCreated


class ExpirationDetail(BaseModel):
    year: int
    expired: bool
    updated: bool


class ExpirationCheckResponse(BaseModel):
    checked: int
    expired: int
    updated: int
    details: list[ExpirationDetail]


class EventYearResponse(BaseModel):
    year: int


class DataCountsResponse(BaseModel):
    teams: int
    members: int
    payments: int


class ResetSafetyResponse(BaseModel):
    year: int
    archive_exists: bool
    counts: DataCountsResponse
    has_data: bool
    safe: bool
    message: str


class ResetRequest(BaseModel):
    """Gated reset of live registration data."""

    confirmation: str | None = Field(None, description="Literal confirmation token")
    force: bool = Field(False, description="Reset even if no archive exists for the current year")
    create_archive_first: bool = Field(False, description="Archive the current year before wiping")


class ResetResponse(BaseModel):
    success: bool
    year: int
    warning: str | None = None
    message: str | None = None
    counts: DataCountsResponse | None = None
    deleted: DataCountsResponse | None = None
    archive_created: bool = False
