"""
Unit tests for CLI argument parsing and configuration from flags.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from iacenv.cli.parser import CLI, COMMAND_MAP
from iacenv.cli.utils import configure_logging, load_config


@pytest.fixture
def cli():
    return CLI()


class TestParser:
    """Tests for the argument parser."""

    def test_global_flags(self, cli):
        args = cli.parse_args(
            ["-r", "/opt/tenv", "-a", "arm64", "-f", "-n", "--skip-signature", "tf", "list"]
        )

        assert args.root_path == Path("/opt/tenv")
        assert args.arch == "arm64"
        assert args.force_remote is True
        assert args.no_install is True
        assert args.skip_signature is True
        assert args.tool == "tf"
        assert args.command == "list"

    def test_install_versions_optional(self, cli):
        assert cli.parse_args(["tofu", "install"]).versions == []
        assert cli.parse_args(["tofu", "install", "1.6.0", "latest"]).versions == [
            "1.6.0",
            "latest",
        ]

    def test_use_working_dir(self, cli):
        args = cli.parse_args(["tg", "use", "-w", "0.55.1"])

        assert args.version == "0.55.1"
        assert args.working_dir is True

    def test_uninstall_requires_argument(self, cli):
        with pytest.raises(SystemExit):
            cli.parse_args(["tf", "uninstall"])

    def test_list_remote_options(self, cli):
        args = cli.parse_args(["atmos", "list-remote", "-d", "--filter", "~> 1.50"])

        assert args.descending is True
        assert args.filter == "~> 1.50"

    def test_constraint_optional_expression(self, cli):
        assert cli.parse_args(["tm", "constraint"]).expression is None
        assert cli.parse_args(["tm", "constraint", ">= 0.5"]).expression == ">= 0.5"

    def test_unknown_tool(self, cli):
        with pytest.raises(SystemExit):
            cli.parse_args(["pulumi", "list"])

    def test_every_command_dispatched(self):
        assert set(COMMAND_MAP) == {
            "detect",
            "install",
            "use",
            "uninstall",
            "list",
            "list-remote",
            "reset",
            "constraint",
        }


class TestLoadConfig:
    """Tests for load_config."""

    def test_flags_override_environment(self, cli, isolated_env, tmp_path, monkeypatch):
        monkeypatch.setenv("TENV_ROOT", str(tmp_path / "env-root"))
        monkeypatch.setenv("TENV_ARCH", "386")
        args = cli.parse_args(
            ["-r", str(tmp_path / "flag-root"), "-a", "arm64", "-t", "tok", "-n", "-q", "tf", "list"]
        )

        config = load_config(args)

        assert config.root_path == tmp_path / "flag-root"
        assert config.arch == "arm64"
        assert config.github_token == "tok"
        assert config.auto_install is False
        assert config.quiet is True

    def test_environment_kept_without_flags(self, cli, isolated_env, tmp_path, monkeypatch):
        monkeypatch.setenv("TENV_ROOT", str(tmp_path / "env-root"))
        monkeypatch.setenv("TENV_FORCE_REMOTE", "true")

        config = load_config(cli.parse_args(["tf", "list"]))

        assert config.root_path == tmp_path / "env-root"
        assert config.force_remote is True
        assert config.auto_install is True


class TestLogging:
    """Tests for log level selection."""

    def level_for(self, **kwargs):
        with patch("iacenv.cli.utils.logging.basicConfig") as basic_config:
            configure_logging(**kwargs)
        return basic_config.call_args.kwargs["level"]

    def test_default(self):
        assert self.level_for() == logging.WARNING

    def test_level_name_without_flags(self):
        assert self.level_for(level_name="info") == logging.INFO
        assert self.level_for(level_name="off") == logging.CRITICAL

    def test_flags_win_over_level_name(self):
        assert self.level_for(verbose=True, level_name="error") == logging.DEBUG
        assert self.level_for(quiet=True, level_name="debug") == logging.ERROR

    def test_cli_reads_tenv_log(self, cli, isolated_env, monkeypatch):
        monkeypatch.setenv("TENV_LOG", "debug")
        with patch("iacenv.cli.parser.configure_logging") as configure:
            cli.run([])

        configure.assert_called_once_with(verbose=False, quiet=False, level_name="debug")
