# tests/unit/test_archives/test_event_year.py
"""Unit tests for event year resolution."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.models import SettingKey
from app.services.archives.errors import InvalidEventYearError
from app.services.archives.event_year import detect_event_year, parse_event_year
from app.services.settings_service import set_setting

NOW = datetime(2026, 3, 15, 12, 0)


@pytest.fixture
def register(make_team, make_member):
    """Register `count` members of a fresh team at `created_at`."""
    teams = iter(range(1000))

    def _register(created_at, count):
        team = make_team(f"Team {next(teams)}", created_at=created_at)
        for i in range(count):
            make_member(team, f"P{team.id}", f"N{i}", created_at=created_at)

    return _register


class TestParseEventYear:
    """Tests for parse_event_year()."""

    @pytest.mark.parametrize("value", [2024, "2024", " 2024 "])
    def test_accepts_integers_and_numeric_strings(self, value):
        assert parse_event_year(value) == 2024

    @pytest.mark.parametrize("value", ["abc", "", None, "20.24", True])
    def test_rejects_non_integers(self, value):
        with pytest.raises(InvalidEventYearError):
            parse_event_year(value)

    @pytest.mark.parametrize("value", [1999, 2101, "0"])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(InvalidEventYearError):
            parse_event_year(value)

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_event_year("nope")


class TestDetectEventYear:
    """Tests for detect_event_year()."""

    def test_empty_store_uses_current_year(self, db_session):
        assert detect_event_year(db_session, now=NOW) == 2026

    def test_december_cluster(self, db_session, register):
        """Registrations clustered in December 2024 belong to 2024."""
        register(datetime(2024, 12, 3, 18, 0), 3)
        assert detect_event_year(db_session, now=NOW) == 2024

    def test_january_cluster_counts_for_previous_year(self, db_session, register):
        """A larger January 2025 cluster still resolves to 2024."""
        register(datetime(2024, 12, 3, 18, 0), 2)
        register(datetime(2025, 1, 10, 9, 0), 3)
        assert detect_event_year(db_session, now=NOW) == 2024

    def test_busiest_month_wins(self, db_session, register):
        register(datetime(2023, 11, 20, 18, 0), 4)
        register(datetime(2024, 11, 20, 18, 0), 2)
        assert detect_event_year(db_session, now=NOW) == 2023

    def test_tie_prefers_most_recent_month(self, db_session, register):
        register(datetime(2023, 11, 20, 18, 0), 2)
        register(datetime(2024, 11, 20, 18, 0), 2)
        assert detect_event_year(db_session, now=NOW) == 2024

    def test_override_setting_wins(self, db_session, register):
        register(datetime(2024, 12, 3, 18, 0), 3)
        set_setting(db_session, SettingKey.EVENT_YEAR.value, "2030")
        assert detect_event_year(db_session, now=NOW) == 2030

    def test_non_integer_override_is_ignored(self, db_session, register):
        register(datetime(2024, 12, 3, 18, 0), 3)
        set_setting(db_session, SettingKey.EVENT_YEAR.value, "next year")
        assert detect_event_year(db_session, now=NOW) == 2024

    def test_out_of_range_override_is_ignored(self, db_session, register):
        register(datetime(2024, 12, 3, 18, 0), 3)
        set_setting(db_session, SettingKey.EVENT_YEAR.value, "20245")
        assert detect_event_year(db_session, now=NOW) == 2024

    def test_unexpected_error_falls_back_to_current_year(self):
        mock_db = MagicMock()
        mock_db.query.side_effect = RuntimeError("driver crashed")

        assert detect_event_year(mock_db, now=NOW) == 2026

    def test_empty_override_is_ignored(self, db_session):
        set_setting(db_session, SettingKey.EVENT_YEAR.value, "")
        assert detect_event_year(db_session, now=NOW) == 2026

    def test_storage_failure_falls_back_to_current_year(self):
        """Resolution never raises, even when the database is unavailable."""
        mock_db = MagicMock()
        mock_db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        assert detect_event_year(mock_db, now=NOW) == 2026
        mock_db.rollback.assert_called_once()
