# app/services/archives/reset_service.py
"""
Reset coordinator for starting a new event cycle.

Wiping the live store is irreversible, so it is gated by an exact
confirmation token and by the existence of an archive for the current
event year. Archives themselves are never touched.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.logging_config import log_operation
from app.services.archives.archive_service import archive_exists, create_archive
from app.services.archives.errors import ArchiveStorageError, InvalidConfirmationError
from app.services.archives.event_year import detect_event_year
from app.services.live_store import DataCounts, delete_all_live_data, get_data_counts

logger = logging.getLogger(__name__)

NO_ARCHIVE_WARNING = "no_archive"


@dataclass
class ResetSafetyReport:
    """Whether wiping the live store would lose unarchived data."""
    year: int
    archive_exists: bool
    counts: DataCounts
    safe: bool
    message: str

    @property
    def has_data(self) -> bool:
        return self.counts.has_data


@dataclass
class ResetResult:
    """Result of a gated reset request."""
    success: bool
    year: int
    warning: Optional[str] = None
    message: Optional[str] = None
    counts: Optional[DataCounts] = None
    deleted: DataCounts = field(default_factory=DataCounts)
    archive_created: bool = False


def _load_gate_state(db: Session, year: int) -> tuple[bool, DataCounts]:
    try:
        return archive_exists(db, year), get_data_counts(db)
    except SQLAlchemyError as e:
        db.rollback()
        raise ArchiveStorageError(f"Failed to inspect live data: {e}") from e


def reset_all_data(db: Session) -> DataCounts:
    """
    Delete all payment events, members and teams, then commit.

    Also commits anything the caller already flushed in this session, which
    is how an archive-then-wipe lands in a single transaction.

    Raises:
        ArchiveStorageError: nothing was deleted
    """
    with log_operation("reset_all_data") as fields:
        try:
            deleted = delete_all_live_data(db)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database reset failed: {e}", exc_info=True)
            raise ArchiveStorageError("Database reset failed") from e

        fields.update(deleted.to_dict())

    return deleted


def check_reset_safety(db: Session, now: Optional[datetime] = None) -> ResetSafetyReport:
    """Safe when an archive exists for the current event year or the live store is empty."""
    year = detect_event_year(db, now=now)
    exists, counts = _load_gate_state(db, year)

    if not counts.has_data:
        message = "The registration database is empty."
    elif exists:
        message = f"An archive exists for {year}. Resetting is safe."
    else:
        message = f"Warning: there is unarchived data for {year}."

    return ResetSafetyReport(
        year=year,
        archive_exists=exists,
        counts=counts,
        safe=exists or not counts.has_data,
        message=message,
    )


def _token_matches(confirmation: Optional[str], expected: str) -> bool:
    if not confirmation:
        return False
    return secrets.compare_digest(confirmation.encode("utf-8"), expected.encode("utf-8"))


def reset_data(
    db: Session,
    confirmation: Optional[str],
    force: bool = False,
    create_archive_first: bool = False,
    now: Optional[datetime] = None,
) -> ResetResult:
    """
    Gated wipe of the live registration store.

    Without an archive for the current year and without `force`, nothing is
    deleted and a warning result carrying the live counts is returned so the
    admin can decide. With `create_archive_first`, the archive insert and the
    wipe are committed together.

    Raises:
        InvalidConfirmationError: confirmation token missing or wrong
        ArchiveStorageError: storage failed, nothing was applied
    """
    expected = get_settings().RESET_CONFIRMATION_TOKEN
    if not _token_matches(confirmation, expected):
        raise InvalidConfirmationError(expected)

    year = detect_event_year(db, now=now)
    exists, counts = _load_gate_state(db, year)

    if not exists and not force:
        logger.info(f"Reset for {year} held back: no archive exists")
        return ResetResult(
            success=False,
            year=year,
            warning=NO_ARCHIVE_WARNING,
            message=f"No archive exists for {year}. Create one before resetting?",
            counts=counts,
        )

    archive_created = False
    if create_archive_first and not exists and counts.has_registrations:
        create_archive(db, year, now=now, commit=False)
        archive_created = True

    deleted = reset_all_data(db)

    logger.warning(
        f"Live data reset for {year}: {deleted.teams} teams, {deleted.members} members, "
        f"{deleted.payments} payment events deleted (archive_created={archive_created})"
    )
    return ResetResult(
        success=True,
        year=year,
        counts=counts,
        deleted=deleted,
        archive_created=archive_created,
    )
