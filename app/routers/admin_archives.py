# app/routers/admin_archives.py
"""
Admin endpoints for yearly archives and GDPR retention.

GET  /v1/admin/archives                  - List archives (summary only)
POST /v1/admin/archives                  - Create archive (explicit or detected year)
GET  /v1/admin/archives/{year}           - Get archive (applies expiration first)
GET  /v1/admin/archives/{year}/export    - Export archive (json or zip bundle)
POST /v1/admin/archives/check-expiration - Run expiration sweep over all archives
GET  /v1/admin/event-year                - Current resolved event year
GET  /v1/admin/reset/check               - Is it safe to wipe live data?
POST /v1/admin/reset                     - Gated wipe of live registration data
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.auth import require_admin_key
from app.database import get_db
from app.schemas.archives import (
    ArchiveCreated,
    ArchiveCreateRequest,
    ArchiveCreateResponse,
    ArchiveDetail,
    ArchiveDetailResponse,
    ArchiveListResponse,
    DataCountsResponse,
    EventYearResponse,
    ExpirationCheckResponse,
    ExpirationDetail,
    ResetRequest,
    ResetResponse,
    ResetSafetyResponse,
)
from app.services.archives import (
    ArchiveAlreadyExistsError,
    ArchiveNotFoundError,
    ArchiveStorageError,
    InvalidConfirmationError,
    InvalidEventYearError,
    NoDataToArchiveError,
    archive_event_year,
    check_all_expirations,
    check_reset_safety,
    detect_event_year,
    export_archive,
    get_archive,
    list_archives,
    parse_event_year,
    reset_data,
)
from app.services.live_store import DataCounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin-archives"])


def _year_or_400(raw: str) -> int:
    try:
        return parse_event_year(raw)
    except InvalidEventYearError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _counts(counts: DataCounts | None) -> DataCountsResponse | None:
    if counts is None:
        return None
    return DataCountsResponse(**counts.to_dict())


def _load_or_404(db: Session, year: int) -> ArchiveDetail:
    try:
        detail = get_archive(db, year)
    except ArchiveStorageError as e:
        logger.error(f"Error fetching archive {year}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch archive")

    if detail is None:
        raise HTTPException(status_code=404, detail="Archive not found")
    return detail


# -----------------------------------------------------------------------------
# Archives
# -----------------------------------------------------------------------------


@router.get("/archives", response_model=ArchiveListResponse)
def get_archives(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ArchiveListResponse:
    """
    List all archives, newest first.

    Summary only (counters and statistics); use GET /archives/{year}
    for the snapshot data.
    """
    return ArchiveListResponse(archives=list_archives(db))


@router.post("/archives", response_model=ArchiveCreateResponse, status_code=201)
def create_archive_endpoint(
    request: ArchiveCreateRequest | None = None,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ArchiveCreateResponse:
    """
    Snapshot the live registration data into a new archive.

    Uses `year` from the body when given, otherwise the detected event year.
    Fails with 409 if the year is already archived and 400 if there is
    nothing to archive.
    """
    year = request.year if request else None

    try:
        archive = archive_event_year(db, year=year)
    except InvalidEventYearError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NoDataToArchiveError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ArchiveAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ArchiveStorageError as e:
        logger.error(f"Error creating archive: {e}")
        raise HTTPException(status_code=500, detail="Failed to create archive")

    return ArchiveCreateResponse(
        archive=ArchiveCreated(
            event_year=archive.event_year,
            total_teams=archive.total_teams,
            total_participants=archive.total_participants,
            total_revenue=archive.total_revenue,
            expiration_date=archive.expiration_date,
            data_hash=archive.data_hash,
        )
    )


@router.post("/archives/check-expiration", response_model=ExpirationCheckResponse)
def check_expiration(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ExpirationCheckResponse:
    """
    Anonymize every archive whose retention period has elapsed.

    Also scheduled daily through the CLI.
    """
    try:
        results = check_all_expirations(db)
    except ArchiveStorageError as e:
        logger.error(f"Error checking expirations: {e}")
        raise HTTPException(status_code=500, detail="Failed to check expirations")

    return ExpirationCheckResponse(
        checked=len(results),
        expired=sum(1 for r in results if r.expired),
        updated=sum(1 for r in results if r.updated),
        details=[ExpirationDetail(**r.to_dict()) for r in results],
    )


@router.get("/archives/{year}", response_model=ArchiveDetailResponse)
def get_archive_by_year(
    year: str,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ArchiveDetailResponse:
    """
    Get a full archive.

    Applies GDPR expiration first, so an archive past its retention
    deadline is returned anonymized.
    """
    return ArchiveDetailResponse(archive=_load_or_404(db, _year_or_400(year)))


@router.get("/archives/{year}/export")
def export_archive_endpoint(
    year: str,
    format: str = Query("json", pattern="^(json|zip)$", description="json or zip"),
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
):
    """
    Export an archive.

    `json` returns metadata, statistics, teams, participants and payment
    events in one document. `zip` returns the full bundle including CSV
    files and a README. Participant name/email are omitted once expired.
    """
    parsed = _year_or_400(year)
    try:
        bundle = export_archive(db, parsed)
    except ArchiveNotFoundError:
        raise HTTPException(status_code=404, detail="Archive not found")
    except ArchiveStorageError as e:
        logger.error(f"Error exporting archive {parsed}: {e}")
        raise HTTPException(status_code=500, detail="Failed to export archive")

    if format == "zip":
        return Response(
            content=bundle.to_zip_bytes(),
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{bundle.basename}.zip"'},
        )
    return bundle.to_json_payload()


# -----------------------------------------------------------------------------
# Event year
# -----------------------------------------------------------------------------


@router.get("/event-year", response_model=EventYearResponse)
def get_event_year(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> EventYearResponse:
    """Current event year (admin override, else inferred from registrations)."""
    return EventYearResponse(year=detect_event_year(db))


# -----------------------------------------------------------------------------
# Reset
# -----------------------------------------------------------------------------


@router.get("/reset/check", response_model=ResetSafetyResponse)
def get_reset_safety(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ResetSafetyResponse:
    """Report whether wiping live data would lose anything not yet archived."""
    try:
        report = check_reset_safety(db)
    except ArchiveStorageError as e:
        logger.error(f"Error checking reset safety: {e}")
        raise HTTPException(status_code=500, detail="Failed to check reset safety")

    return ResetSafetyResponse(
        year=report.year,
        archive_exists=report.archive_exists,
        counts=_counts(report.counts),
        has_data=report.has_data,
        safe=report.safe,
        message=report.message,
    )


@router.post("/reset", response_model=ResetResponse)
def reset_live_data(
    request: ResetRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ResetResponse:
    """
    Wipe teams, members and payment events for a new event cycle.

    **WARNING**: This permanently deletes live registration data.

    Requires the exact confirmation token. When no archive exists for the
    current year and `force` is not set, nothing is deleted and a
    `no_archive` warning with the live counts is returned instead.
    """
    try:
        result = reset_data(
            db,
            confirmation=request.confirmation,
            force=request.force,
            create_archive_first=request.create_archive_first,
        )
    except InvalidConfirmationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ArchiveAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ArchiveStorageError as e:
        logger.error(f"Error resetting data: {e}")
        raise HTTPException(status_code=500, detail="Failed to reset data")

    return ResetResponse(
        success=result.success,
        year=result.year,
        warning=result.warning,
        message=result.message,
        counts=_counts(result.counts),
        deleted=_counts(result.deleted) if result.success else None,
        archive_created=result.archive_created,
    )
