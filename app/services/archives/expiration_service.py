# app/services/archives/expiration_service.py
"""
GDPR expiration enforcement for archives.

Once an archive's retention deadline passes, its member and payment-event
snapshots are replaced by anonymized copies and is_expired is set. This is
the only mutation an archive ever receives. The write is conditional on
is_expired still being false, so concurrent callers apply it at most once.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging_config import log_operation
from app.models import Archive
from app.schemas.archives import MemberSnapshot, PaymentEventSnapshot
from app.services.archives.anonymizer import anonymize_members, anonymize_payment_events
from app.services.archives.errors import ArchiveStorageError
from app.services.archives.fingerprint import generate_data_hash

logger = logging.getLogger(__name__)


@dataclass
class ExpirationResult:
    """Outcome of an expiration check for one archive."""
    year: int
    expired: bool = False
    updated: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _anonymized_snapshots(archive: Archive) -> tuple[list[dict], list[dict]]:
    members = anonymize_members(
        [MemberSnapshot.model_validate(m) for m in archive.members_snapshot or []]
    )
    events = anonymize_payment_events(
        [PaymentEventSnapshot.model_validate(e) for e in archive.payment_events_snapshot or []]
    )
    return (
        [member.model_dump(mode="json") for member in members],
        [event.model_dump(mode="json") for event in events],
    )


def check_and_apply_expiration(
    db: Session,
    year: int,
    now: Optional[datetime] = None,
) -> ExpirationResult:
    """
    Anonymize the archive for `year` if its retention window has elapsed.

    Safe to call any number of times; only the first successful call
    reports updated=True.

    Raises:
        ArchiveStorageError: reading or writing the archive failed
    """
    now = now or datetime.utcnow()

    try:
        archive = db.query(Archive).filter(Archive.event_year == year).first()
    except SQLAlchemyError as e:
        db.rollback()
        raise ArchiveStorageError(f"Failed to load archive for {year}: {e}") from e

    if archive is None:
        return ExpirationResult(year=year)

    if archive.is_expired:
        return ExpirationResult(year=year, expired=True)

    if now < archive.expiration_date:
        return ExpirationResult(year=year)

    with log_operation("archive_expire", event_year=year) as fields:
        members_snapshot, events_snapshot = _anonymized_snapshots(archive)
        anonymized_hash = generate_data_hash(
            archive.teams_snapshot, members_snapshot, events_snapshot
        )

        try:
            rows = (
                db.query(Archive)
                .filter(Archive.id == archive.id, Archive.is_expired.is_(False))
                .update(
                    {
                        Archive.members_snapshot: members_snapshot,
                        Archive.payment_events_snapshot: events_snapshot,
                        Archive.is_expired: True,
                        Archive.anonymized_at: now,
                        Archive.anonymized_data_hash: anonymized_hash,
                    },
                    synchronize_session=False,
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to anonymize archive {year}: {e}", exc_info=True)
            raise ArchiveStorageError(f"Failed to anonymize archive for {year}") from e

        fields["updated"] = bool(rows)
        fields["members"] = len(members_snapshot)
        fields["payments"] = len(events_snapshot)

    if not rows:
        logger.info(f"Archive {year} was anonymized by a concurrent request")
        return ExpirationResult(year=year, expired=True)

    logger.info(f"Archive {year} expired: personal data anonymized")
    return ExpirationResult(year=year, expired=True, updated=True)


def check_all_expirations(db: Session, now: Optional[datetime] = None) -> list[ExpirationResult]:
    """
    Apply expiration to every archive not yet expired.

    Meant for a daily scheduled run (see `python -m app.cli.archives check-expiration`).
    """
    try:
        years = [
            year
            for (year,) in db.query(Archive.event_year)
            .filter(Archive.is_expired.is_(False))
            .order_by(Archive.event_year.desc())
            .all()
        ]
    except SQLAlchemyError as e:
        db.rollback()
        raise ArchiveStorageError(f"Failed to list archives: {e}") from e

    with log_operation("archive_expiration_sweep") as fields:
        results = [check_and_apply_expiration(db, year, now=now) for year in years]
        fields["checked"] = len(results)
        fields["expired"] = sum(1 for r in results if r.expired)
        fields["updated"] = sum(1 for r in results if r.updated)

    return results
