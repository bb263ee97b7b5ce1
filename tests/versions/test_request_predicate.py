"""
Unit tests for request parsing into predicates.
"""

from unittest.mock import MagicMock

import pytest

from iacenv.core.exceptions import ResolutionError
from iacenv.versions.iac import TF_EXTS, IacScanner
from iacenv.versions.predicate import (
    PredicateInfo,
    always_true,
    parse_predicate,
    read_default_constraint,
)

VERSIONS = ["1.5.7", "1.6.0", "1.6.6", "1.7.0-rc1", "1.7.0"]


class TestPredicateInfo:
    """Tests for PredicateInfo.select."""

    def test_descending_picks_newest(self):
        info = PredicateInfo(predicate=always_true, descending=True)

        assert info.select(VERSIONS) == "1.7.0"

    def test_ascending_picks_oldest(self):
        info = PredicateInfo(predicate=always_true, descending=False)

        assert info.select(VERSIONS) == "1.5.7"

    def test_none_when_nothing_matches(self):
        info = PredicateInfo(predicate=lambda v: False)

        assert info.select(VERSIONS) is None


class TestParsePredicate:
    """Tests for parse_predicate."""

    def test_exact_version(self):
        info = parse_predicate("v1.6")

        assert info.exact == "1.6.0"
        assert info.predicate("1.6.0")

    def test_latest_is_stable_only(self):
        info = parse_predicate("latest")

        assert info.select(VERSIONS + ["1.8.0-beta1"]) == "1.7.0"

    def test_latest_pre(self):
        info = parse_predicate("latest-pre")

        assert info.select(VERSIONS + ["1.8.0-beta1"]) == "1.8.0-beta1"

    def test_regex_shortcuts(self):
        assert parse_predicate("min:^1\\.6").select(VERSIONS) == "1.6.0"
        assert parse_predicate("latest:^1\\.6").select(VERSIONS) == "1.6.6"

    def test_invalid_regex(self):
        with pytest.raises(ResolutionError):
            parse_predicate("latest:[unclosed")

    def test_constraint_with_default(self):
        info = parse_predicate("~> 1.6", default_constraint="< 1.6.5")

        assert info.select(VERSIONS) == "1.6.0"

    def test_malformed_constraint(self):
        with pytest.raises(ResolutionError):
            parse_predicate("=> 1.0")

    def test_latest_allowed_from_project(self, tmp_path):
        (tmp_path / "main.tf").write_text(
            'terraform {\n  required_version = ">= 1.5.0, < 1.7.0"\n}\n'
        )

        info = parse_predicate(
            "latest-allowed", scanner=IacScanner(TF_EXTS), work_path=tmp_path
        )

        assert info.select(VERSIONS) == "1.6.6"
        assert info.diagnostics == []

    def test_min_required_from_project(self, tmp_path):
        (tmp_path / "versions.tf").write_text(
            'terraform {\n  required_version = ">= 1.6.0"\n}\n'
        )

        info = parse_predicate(
            "min-required", scanner=IacScanner(TF_EXTS), work_path=tmp_path
        )

        assert info.select(VERSIONS) == "1.6.0"

    def test_strategy_without_constraints_falls_back(self, tmp_path):
        info = parse_predicate(
            "latest-allowed",
            display_name="Terraform",
            scanner=IacScanner(TF_EXTS),
            work_path=tmp_path,
        )

        assert info.select(VERSIONS) == "1.7.0"
        assert len(info.diagnostics) == 1
        assert "Terraform" in info.diagnostics[0]
        assert "latest-pre" in info.diagnostics[0]

    def test_strategy_uses_default_constraint_alone(self, tmp_path):
        info = parse_predicate(
            "min-required",
            default_constraint=">= 1.6.1",
            scanner=IacScanner(TF_EXTS),
            work_path=tmp_path,
        )

        assert info.select(VERSIONS) == "1.6.6"

    def test_scanner_reports_scan(self, tmp_path):
        displayer = MagicMock()
        parse_predicate(
            "latest-allowed",
            scanner=IacScanner(TF_EXTS),
            work_path=tmp_path,
            displayer=displayer,
        )

        displayer.display.assert_called_with("Scan project to find IAC files")


class TestReadDefaultConstraint:
    """Tests for read_default_constraint."""

    def test_env_wins(self, tmp_path):
        constraint_file = tmp_path / "constraint"
        constraint_file.write_text(">= 1.0")

        value = read_default_constraint(
            "TFENV_TERRAFORM_DEFAULT_CONSTRAINT",
            constraint_file,
            {"TFENV_TERRAFORM_DEFAULT_CONSTRAINT": " < 2.0 "},
        )

        assert value == "< 2.0"

    def test_file_fallback(self, tmp_path):
        constraint_file = tmp_path / "constraint"
        constraint_file.write_text(">= 1.0\n")

        assert read_default_constraint("X", constraint_file, {}) == ">= 1.0"

    def test_nothing(self, tmp_path):
        assert read_default_constraint("X", tmp_path / "absent", {}) == ""
