"""
Unit tests for uninstall selectors and last-use stamps.
"""

import datetime

import pytest

from iacenv.core.exceptions import ResolutionError
from iacenv.versions.lastuse import (
    LAST_USE_FILE,
    NEVER_USED,
    read_last_use,
    write_last_use,
)
from iacenv.versions.uninstall import (
    parse_duration,
    select_versions_to_uninstall,
    subtract_months,
)

TODAY = datetime.date(2024, 6, 15)
INSTALLED = ["1.7.0", "1.6.2", "1.5.7"]


@pytest.fixture
def install_path(tmp_path):
    for version in INSTALLED:
        (tmp_path / version).mkdir()
    write_last_use(tmp_path / "1.7.0", datetime.date(2024, 6, 10))
    write_last_use(tmp_path / "1.6.2", datetime.date(2024, 1, 2))
    return tmp_path


class TestLastUse:
    """Tests for last-use stamps."""

    def test_roundtrip(self, tmp_path):
        write_last_use(tmp_path, datetime.date(2024, 2, 29))

        assert read_last_use(tmp_path) == datetime.date(2024, 2, 29)

    def test_missing(self, tmp_path):
        assert read_last_use(tmp_path) == NEVER_USED

    def test_garbage(self, tmp_path):
        (tmp_path / LAST_USE_FILE).write_text("yesterday")

        assert read_last_use(tmp_path) == NEVER_USED

    def test_write_failure_ignored(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")

        write_last_use(blocker / "1.0.0")


class TestDurations:
    """Tests for parse_duration and subtract_months."""

    def test_days(self):
        assert parse_duration("30d", TODAY) == datetime.date(2024, 5, 16)

    def test_months(self):
        assert parse_duration("2m", TODAY) == datetime.date(2024, 4, 15)

    def test_month_overflow_normalized(self):
        assert subtract_months(datetime.date(2024, 3, 31), 1) == datetime.date(2024, 3, 2)

    def test_crosses_year(self):
        assert subtract_months(datetime.date(2024, 1, 15), 2) == datetime.date(2023, 11, 15)

    @pytest.mark.parametrize("text", ["30", "d", "3w", "-1d"])
    def test_invalid(self, text):
        with pytest.raises(ResolutionError):
            parse_duration(text, TODAY)


class TestSelectVersions:
    """Tests for select_versions_to_uninstall."""

    def test_all(self, install_path):
        assert select_versions_to_uninstall("all", install_path, INSTALLED) == INSTALLED

    def test_but_last(self, install_path):
        assert select_versions_to_uninstall("but-last", install_path, INSTALLED) == [
            "1.6.2",
            "1.5.7",
        ]

    def test_not_used_for(self, install_path):
        selected = select_versions_to_uninstall(
            "not-used-for:30d", install_path, INSTALLED, today=TODAY
        )

        assert selected == ["1.6.2", "1.5.7"]

    def test_not_used_since(self, install_path):
        selected = select_versions_to_uninstall(
            "not-used-since:2024-01-01", install_path, INSTALLED
        )

        assert selected == ["1.5.7"]

    def test_invalid_date(self, install_path):
        with pytest.raises(ResolutionError):
            select_versions_to_uninstall("not-used-since:01/01/2024", install_path, INSTALLED)

    def test_constraint(self, install_path):
        assert select_versions_to_uninstall("< 1.7", install_path, INSTALLED) == [
            "1.6.2",
            "1.5.7",
        ]

    def test_unknown_selector(self, install_path):
        with pytest.raises(ResolutionError):
            select_versions_to_uninstall("oldest", install_path, INSTALLED)
