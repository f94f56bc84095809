# tests/unit/test_archives/test_expiration_service.py
"""Unit tests for GDPR expiration enforcement."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.models import Archive, SettingKey
from app.services.archives.archive_service import create_archive, get_archive
from app.services.archives.errors import ArchiveStorageError
from app.services.archives.expiration_service import (
    check_all_expirations,
    check_and_apply_expiration,
)
from app.services.archives.fingerprint import generate_data_hash
from app.services.settings_service import set_setting

NOW = datetime(2025, 1, 5, 10, 0)


def _expired_archive(db, year=2024, now=NOW):
    set_setting(db, SettingKey.GDPR_RETENTION_YEARS.value, "0")
    return create_archive(db, year, now=now)


class TestCheckAndApplyExpiration:
    """Tests for check_and_apply_expiration()."""

    def test_missing_archive(self, db_session):
        result = check_and_apply_expiration(db_session, 2024, now=NOW)

        assert result.expired is False
        assert result.updated is False

    def test_before_deadline_is_noop(self, seeded_db):
        archive = create_archive(seeded_db, 2024, now=NOW)
        original_members = list(archive.members_snapshot)

        result = check_and_apply_expiration(seeded_db, 2024, now=NOW + timedelta(days=365))

        assert result.expired is False
        assert result.updated is False
        seeded_db.refresh(archive)
        assert archive.members_snapshot == original_members

    def test_zero_retention_anonymizes(self, seeded_db):
        """Retention 0: names and emails go, team_id and payment_amount stay."""
        _expired_archive(seeded_db)

        result = check_and_apply_expiration(seeded_db, 2024, now=NOW)

        assert result.expired is True
        assert result.updated is True

        archive = seeded_db.query(Archive).filter(Archive.event_year == 2024).one()
        assert archive.is_expired is True
        assert archive.anonymized_at == NOW
        assert {m["first_name"] for m in archive.members_snapshot} == {"Participant"}
        assert all(m["email"] is None for m in archive.members_snapshot)
        assert all(m["team_id"] is not None for m in archive.members_snapshot)
        assert sorted(m["payment_amount"] or 0 for m in archive.members_snapshot) == [0, 0, 0, 0, 500]
        assert archive.payment_events_snapshot[0]["checkout_id"] is None
        assert archive.payment_events_snapshot[0]["metadata"] is None

    def test_stats_and_original_hash_preserved(self, seeded_db):
        archive = _expired_archive(seeded_db)
        stats, data_hash = archive.stats, archive.data_hash

        check_and_apply_expiration(seeded_db, 2024, now=NOW)

        seeded_db.refresh(archive)
        assert archive.stats == stats
        assert archive.data_hash == data_hash
        assert archive.anonymized_data_hash == generate_data_hash(
            archive.teams_snapshot,
            archive.members_snapshot,
            archive.payment_events_snapshot,
        )
        assert archive.anonymized_data_hash != data_hash

    def test_second_call_reports_no_update(self, seeded_db):
        """Anonymization is applied exactly once."""
        _expired_archive(seeded_db)

        first = check_and_apply_expiration(seeded_db, 2024, now=NOW)
        second = check_and_apply_expiration(seeded_db, 2024, now=NOW + timedelta(days=1))

        assert first.updated is True
        assert second.expired is True
        assert second.updated is False

    def test_expired_flag_never_reverts(self, seeded_db):
        _expired_archive(seeded_db)
        check_and_apply_expiration(seeded_db, 2024, now=NOW)

        # A clock earlier than the deadline must not un-expire
        result = check_and_apply_expiration(seeded_db, 2024, now=NOW - timedelta(days=30))

        assert result.expired is True
        assert seeded_db.query(Archive.is_expired).filter(Archive.event_year == 2024).scalar() is True

    def test_lost_race_reports_no_update(self):
        """A conditional update matching no rows means another caller already expired it."""
        mock_archive = MagicMock(spec=Archive)
        mock_archive.id = 1
        mock_archive.is_expired = False
        mock_archive.expiration_date = NOW - timedelta(days=1)
        mock_archive.teams_snapshot = []
        mock_archive.members_snapshot = []
        mock_archive.payment_events_snapshot = []

        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.first.return_value = mock_archive
        mock_db.query.return_value.filter.return_value.update.return_value = 0

        result = check_and_apply_expiration(mock_db, 2024, now=NOW)

        assert result.expired is True
        assert result.updated is False

    def test_write_failure_leaves_archive_untouched(self, seeded_db):
        _expired_archive(seeded_db)
        original_members = list(
            seeded_db.query(Archive.members_snapshot).filter(Archive.event_year == 2024).scalar()
        )

        with patch.object(
            seeded_db,
            "commit",
            side_effect=OperationalError("COMMIT", {}, Exception("connection lost")),
        ):
            with pytest.raises(ArchiveStorageError):
                check_and_apply_expiration(seeded_db, 2024, now=NOW)

        archive = seeded_db.query(Archive).filter(Archive.event_year == 2024).one()
        assert archive.is_expired is False
        assert archive.anonymized_at is None
        assert archive.members_snapshot == original_members

    def test_get_archive_applies_expiration(self, seeded_db):
        """Reading an archive past its deadline returns the anonymized version."""
        _expired_archive(seeded_db)

        detail = get_archive(seeded_db, 2024, now=NOW)

        assert detail.is_expired is True
        assert detail.anonymized_at == NOW
        assert detail.integrity_verified is True
        assert all(m.email is None for m in detail.members)
        assert detail.stats.payments.total_revenue == 500


class TestCheckAllExpirations:
    """Tests for check_all_expirations()."""

    def test_sweeps_only_elapsed_archives(self, seeded_db):
        create_archive(seeded_db, 2020, now=NOW - timedelta(days=5 * 365))
        create_archive(seeded_db, 2024, now=NOW)

        results = check_all_expirations(seeded_db, now=NOW)

        assert [r.year for r in results] == [2024, 2020]
        assert results[0].to_dict() == {"year": 2024, "expired": False, "updated": False}
        assert results[1].to_dict() == {"year": 2020, "expired": True, "updated": True}

    def test_already_expired_archives_skipped(self, seeded_db):
        _expired_archive(seeded_db)
        check_all_expirations(seeded_db, now=NOW)

        assert check_all_expirations(seeded_db, now=NOW) == []

    def test_no_archives(self, db_session):
        assert check_all_expirations(db_session, now=NOW) == []
