# tests/unit/test_archives/test_export_service.py
"""Unit tests for the archive export bundle."""

import io
import zipfile
from datetime import datetime

import pytest

from app.models import SettingKey
from app.services.archives.archive_service import create_archive, get_archive
from app.services.archives.errors import ArchiveNotFoundError
from app.services.archives.export_service import (
    CSV_BOM,
    build_export_bundle,
    escape_csv_cell,
    export_archive,
    generate_csv,
    participant_columns,
)
from app.services.settings_service import set_setting

NOW = datetime(2025, 1, 5, 10, 0)


class TestCsvHelpers:
    """Tests for CSV generation."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("=SUM(A1:A3)", "'=SUM(A1:A3)"),
            ("+33 6 12 34 56 78", "'+33 6 12 34 56 78"),
            ("@cmd", "'@cmd"),
            ("Alpha", "Alpha"),
            (None, ""),
            (True, "1"),
            (False, "0"),
            (500, "500"),
        ],
    )
    def test_escape_csv_cell(self, value, expected):
        assert escape_csv_cell(value) == expected

    def test_semicolon_delimited_with_bom(self):
        content = generate_csv(["a", "b"], [[1, "x;y"]])

        assert content.startswith(CSV_BOM)
        lines = content[len(CSV_BOM):].splitlines()
        assert lines[0] == "a;b"
        assert lines[1] == '1;"x;y"'

    def test_without_bom(self):
        assert generate_csv(["a"], [], include_bom=False) == "a\n"

    def test_participant_columns_drop_personal_data_once_expired(self):
        assert "email" in participant_columns(False)
        expired = participant_columns(True)
        assert "email" not in expired
        assert "first_name" not in expired
        assert "team_id" in expired


class TestBuildExportBundle:
    """Tests for build_export_bundle()."""

    def test_active_archive_documents(self, seeded_db):
        create_archive(seeded_db, 2024, now=NOW)
        bundle = build_export_bundle(get_archive(seeded_db, 2024, now=NOW))

        docs = bundle.documents()
        assert set(docs) == {
            "metadata.json",
            "statistics.json",
            "teams.json",
            "participants.json",
            "payment_events.json",
            "teams.csv",
            "participants.csv",
            "payment_events.csv",
            "README.txt",
        }
        assert "alice.martin@example.org" in docs["participants.csv"]
        assert ";Alpha;" in docs["participants.csv"]
        assert "PERSONAL DATA PRESENT" in docs["README.txt"]
        assert bundle.metadata["integrity_verified"] is True

    def test_json_payload(self, seeded_db):
        create_archive(seeded_db, 2024, now=NOW)
        payload = build_export_bundle(get_archive(seeded_db, 2024, now=NOW)).to_json_payload()

        assert payload["filename"] == "ndi-2024-archive.json"
        export = payload["export"]
        assert export["metadata"]["event_year"] == 2024
        assert export["statistics"]["payments"]["total_revenue"] == 500
        assert len(export["teams"]) == 2
        assert len(export["participants"]) == 5
        assert len(export["payment_events"]) == 1

    def test_expired_archive_omits_personal_columns(self, seeded_db):
        set_setting(seeded_db, SettingKey.GDPR_RETENTION_YEARS.value, "0")
        create_archive(seeded_db, 2024, now=NOW)

        bundle = build_export_bundle(get_archive(seeded_db, 2024, now=NOW))
        docs = bundle.documents()

        header = docs["participants.csv"][len(CSV_BOM):].splitlines()[0].split(";")
        assert "email" not in header
        assert "first_name" not in header
        assert "payment_amount" in header
        assert all("email" not in p for p in bundle.participants)
        assert "GDPR STATUS: ANONYMIZED" in docs["README.txt"]
        assert bundle.metadata["anonymized_data_hash"] is not None

    def test_zip_contains_every_document(self, seeded_db):
        create_archive(seeded_db, 2024, now=NOW)
        bundle = build_export_bundle(get_archive(seeded_db, 2024, now=NOW))

        with zipfile.ZipFile(io.BytesIO(bundle.to_zip_bytes())) as zf:
            names = set(zf.namelist())

        assert names == {f"ndi-2024-archive/{name}" for name in bundle.documents()}

    def test_no_payment_events_omits_documents(self, make_team, make_member, db_session):
        team = make_team("Solo")
        make_member(team, "Zoe", "Blanc")
        db_session.commit()
        create_archive(db_session, 2024, now=NOW)

        docs = build_export_bundle(get_archive(db_session, 2024, now=NOW)).documents()

        assert "payment_events.json" not in docs
        assert "payment_events.csv" not in docs


class TestExportArchive:
    """Tests for export_archive()."""

    def test_missing_archive(self, db_session):
        with pytest.raises(ArchiveNotFoundError):
            export_archive(db_session, 2024, now=NOW)

    def test_returns_bundle(self, seeded_db):
        create_archive(seeded_db, 2024, now=NOW)
        assert export_archive(seeded_db, 2024, now=NOW).basename == "ndi-2024-archive"
