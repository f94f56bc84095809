# app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.archives import (
    ArchiveCreateRequest,
    ArchiveCreateResponse,
    ArchiveDetail,
    ArchiveDetailResponse,
    ArchiveListResponse,
    ArchiveStats,
    ArchiveSummary,
    MemberSnapshot,
    PaymentEventSnapshot,
    ResetRequest,
    ResetResponse,
    TeamSnapshot,
)

__all__ = [
    "ArchiveCreateRequest",
    "ArchiveCreateResponse",
    "ArchiveDetail",
    "ArchiveDetailResponse",
    "ArchiveListResponse",
    "ArchiveStats",
    "ArchiveSummary",
    "MemberSnapshot",
    "PaymentEventSnapshot",
    "ResetRequest",
    "ResetResponse",
    "TeamSnapshot",
]
