# app/services/archives/archive_service.py
"""
Archive builder and reader.

Handles:
- Snapshotting the live store into one immutable Archive row per event year
- Computing statistics, counters and the integrity fingerprint at build time
- Reading archives back (lazy GDPR expiration first) and listing summaries
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.logging_config import log_operation
from app.models import Archive, SettingKey
from app.schemas.archives import (
    ArchiveDetail,
    ArchiveStats,
    ArchiveSummary,
    MemberSnapshot,
    PaymentEventSnapshot,
    TeamSnapshot,
)
from app.services.archives.errors import (
    ArchiveAlreadyExistsError,
    ArchiveStorageError,
    NoDataToArchiveError,
)
from app.services.archives.event_year import detect_event_year, parse_event_year
from app.services.archives.expiration_service import check_and_apply_expiration
from app.services.archives.fingerprint import generate_data_hash, verify_data_hash
from app.services.archives.stats import calculate_stats, total_revenue
from app.services.live_store import (
    fetch_members,
    fetch_payment_events,
    fetch_teams,
    get_data_counts,
)
from app.services.settings_service import get_int_setting

logger = logging.getLogger(__name__)


def add_years(moment: datetime, years: int) -> datetime:
    """Same calendar day `years` later; Feb 29 falls back to Feb 28."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def get_retention_years(db: Session) -> int:
    """Retention window from the 'gdpr_retention_years' setting, else config default."""
    years = get_int_setting(db, SettingKey.GDPR_RETENTION_YEARS.value)
    if years is None or years < 0:
        return get_settings().GDPR_RETENTION_YEARS
    return years


def archive_exists(db: Session, year: int) -> bool:
    return db.query(Archive.id).filter(Archive.event_year == year).first() is not None


def _is_duplicate_year(db: Session, year: int) -> bool:
    """After a rolled-back insert: was it the event_year unique constraint?"""
    try:
        return archive_exists(db, year)
    except SQLAlchemyError:
        db.rollback()
        return False


def create_archive(
    db: Session,
    year: int,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> Archive:
    """
    Snapshot the live store into a new Archive for `year`.

    Callers check that there is something to archive. Uniqueness of
    event_year is enforced by the database, not by a pre-check.

    Args:
        db: Database session
        year: Event year the snapshot is filed under
        now: Snapshot time (defaults to utcnow)
        commit: If False, only flush so the insert joins the caller's transaction

    Raises:
        ArchiveAlreadyExistsError: an archive for `year` already exists
        ArchiveStorageError: reading the live store or inserting failed
    """
    with log_operation("archive_create", event_year=year) as fields:
        try:
            teams = fetch_teams(db)
            members = fetch_members(db)
            payment_events = fetch_payment_events(db)
            retention_years = get_retention_years(db)
        except SQLAlchemyError as e:
            db.rollback()
            raise ArchiveStorageError(f"Failed to read live data for {year}: {e}") from e

        archived_at = now or datetime.utcnow()
        stats = calculate_stats(teams, members, payment_events)

        # Persisted form; the fingerprint covers exactly these documents
        teams_snapshot = [team.model_dump(mode="json") for team in teams]
        members_snapshot = [member.model_dump(mode="json") for member in members]
        payment_events_snapshot = [event.model_dump(mode="json") for event in payment_events]

        archive = Archive(
            event_year=year,
            archived_at=archived_at,
            expiration_date=add_years(archived_at, retention_years),
            is_expired=False,
            teams_snapshot=teams_snapshot,
            members_snapshot=members_snapshot,
            payment_events_snapshot=payment_events_snapshot,
            stats=stats.model_dump(mode="json"),
            total_teams=len(teams),
            total_participants=len(members),
            total_revenue=total_revenue(members),
            data_hash=generate_data_hash(teams_snapshot, members_snapshot, payment_events_snapshot),
        )

        try:
            db.add(archive)
            if commit:
                db.commit()
                db.refresh(archive)
            else:
                db.flush()
        except IntegrityError as e:
            db.rollback()
            if _is_duplicate_year(db, year):
                raise ArchiveAlreadyExistsError(year) from None
            logger.error(f"Failed to persist archive for {year}: {e}", exc_info=True)
            raise ArchiveStorageError(f"Failed to persist archive for {year}") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to persist archive for {year}: {e}", exc_info=True)
            raise ArchiveStorageError(f"Failed to persist archive for {year}") from e

        fields.update(
            teams=archive.total_teams,
            members=archive.total_participants,
            payments=len(payment_events),
            data_hash=archive.data_hash,
        )

    logger.info(
        f"Archived {year}: {archive.total_teams} teams, {archive.total_participants} participants, "
        f"retained until {archive.expiration_date.date().isoformat()}"
    )
    return archive


def archive_event_year(
    db: Session,
    year=None,
    now: Optional[datetime] = None,
) -> Archive:
    """
    Create the archive for an explicit year, or for the detected event year.

    Raises:
        InvalidEventYearError: explicit or detected year is not a plausible integer
        NoDataToArchiveError: there are no teams and no members
        ArchiveAlreadyExistsError, ArchiveStorageError: see create_archive
    """
    if year is None or year == "":
        year = detect_event_year(db, now=now)
    year = parse_event_year(year)

    try:
        counts = get_data_counts(db)
    except SQLAlchemyError as e:
        db.rollback()
        raise ArchiveStorageError(f"Failed to count live data: {e}") from e

    if not counts.has_registrations:
        raise NoDataToArchiveError(year)

    return create_archive(db, year, now=now)


# -----------------------------------------------------------------------------
# Reader
# -----------------------------------------------------------------------------


def _parse_stats(raw: Optional[dict]) -> Optional[ArchiveStats]:
    return ArchiveStats.model_validate(raw) if raw else None


def _current_hash_matches(archive: Archive) -> bool:
    expected = archive.anonymized_data_hash if archive.is_expired else archive.data_hash
    return verify_data_hash(
        expected,
        archive.teams_snapshot,
        archive.members_snapshot,
        archive.payment_events_snapshot or [],
    )


def to_detail(archive: Archive) -> ArchiveDetail:
    """Typed view of a persisted archive."""
    return ArchiveDetail(
        event_year=archive.event_year,
        archived_at=archive.archived_at,
        expiration_date=archive.expiration_date,
        is_expired=bool(archive.is_expired),
        total_teams=archive.total_teams,
        total_participants=archive.total_participants,
        total_revenue=archive.total_revenue or 0,
        stats=_parse_stats(archive.stats),
        data_hash=archive.data_hash,
        anonymized_at=archive.anonymized_at,
        anonymized_data_hash=archive.anonymized_data_hash,
        integrity_verified=_current_hash_matches(archive),
        teams=[TeamSnapshot.model_validate(t) for t in archive.teams_snapshot or []],
        members=[MemberSnapshot.model_validate(m) for m in archive.members_snapshot or []],
        payment_events=[
            PaymentEventSnapshot.model_validate(e) for e in archive.payment_events_snapshot or []
        ],
    )


def list_archives(db: Session) -> list[ArchiveSummary]:
    """Summaries of every archive, newest year first. Snapshot blobs are not loaded."""
    rows = (
        db.query(
            Archive.event_year,
            Archive.archived_at,
            Archive.expiration_date,
            Archive.is_expired,
            Archive.total_teams,
            Archive.total_participants,
            Archive.total_revenue,
            Archive.stats,
        )
        .order_by(Archive.event_year.desc())
        .all()
    )
    return [
        ArchiveSummary(
            event_year=row.event_year,
            archived_at=row.archived_at,
            expiration_date=row.expiration_date,
            is_expired=bool(row.is_expired),
            total_teams=row.total_teams,
            total_participants=row.total_participants,
            total_revenue=row.total_revenue or 0,
            stats=_parse_stats(row.stats),
        )
        for row in rows
    ]


def get_archive(
    db: Session,
    year: int,
    now: Optional[datetime] = None,
) -> Optional[ArchiveDetail]:
    """
    Full archive for `year`, or None.

    Applies GDPR expiration first, so the returned data is anonymized as soon
    as the retention window has elapsed.
    """
    check_and_apply_expiration(db, year, now=now)

    try:
        archive = db.query(Archive).filter(Archive.event_year == year).first()
    except SQLAlchemyError as e:
        db.rollback()
        raise ArchiveStorageError(f"Failed to load archive for {year}: {e}") from e

    return to_detail(archive) if archive else None
