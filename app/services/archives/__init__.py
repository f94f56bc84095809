# app/services/archives/__init__.py
"""
Yearly archive and GDPR retention services.

Lifecycle of an event year:
- Live registrations are snapshotted into one immutable Archive per year
- Statistics and an integrity fingerprint are computed at build time
- When the retention window elapses, personal data in the snapshot is
  anonymized exactly once; statistics are kept forever
- Wiping the live store for the next cycle is gated on an archive existing

Services:
- archive_service: Builder and reader
- expiration_service: Retention enforcement
- reset_service: Gated wipe of the live store
- export_service: Export bundle (JSON, CSV, README)
"""

from app.services.archives.anonymizer import anonymize_members, anonymize_payment_events
from app.services.archives.archive_service import (
    archive_event_year,
    archive_exists,
    create_archive,
    get_archive,
    list_archives,
)
from app.services.archives.errors import (
    ArchiveAlreadyExistsError,
    ArchiveError,
    ArchiveNotFoundError,
    ArchiveStorageError,
    InvalidConfirmationError,
    InvalidEventYearError,
    NoDataToArchiveError,
)
from app.services.archives.event_year import detect_event_year, parse_event_year
from app.services.archives.expiration_service import (
    ExpirationResult,
    check_all_expirations,
    check_and_apply_expiration,
)
from app.services.archives.export_service import (
    ArchiveExportBundle,
    build_export_bundle,
    export_archive,
)
from app.services.archives.fingerprint import generate_data_hash
from app.services.archives.reset_service import (
    ResetResult,
    ResetSafetyReport,
    check_reset_safety,
    reset_all_data,
    reset_data,
)
from app.services.archives.stats import calculate_stats

__all__ = [
    # Pure functions
    "calculate_stats",
    "generate_data_hash",
    "anonymize_members",
    "anonymize_payment_events",
    # Event year
    "detect_event_year",
    "parse_event_year",
    # Builder / reader
    "create_archive",
    "archive_event_year",
    "archive_exists",
    "get_archive",
    "list_archives",
    # Expiration
    "check_and_apply_expiration",
    "check_all_expirations",
    "ExpirationResult",
    # Reset
    "reset_all_data",
    "check_reset_safety",
    "reset_data",
    "ResetResult",
    "ResetSafetyReport",
    # Export
    "build_export_bundle",
    "export_archive",
    "ArchiveExportBundle",
    # Errors
    "ArchiveError",
    "ArchiveAlreadyExistsError",
    "ArchiveNotFoundError",
    "ArchiveStorageError",
    "InvalidConfirmationError",
    "InvalidEventYearError",
    "NoDataToArchiveError",
]
