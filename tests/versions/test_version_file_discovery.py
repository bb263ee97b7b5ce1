"""
Unit tests for version file discovery.
"""

from unittest.mock import MagicMock

from iacenv.versions.version_files import (
    asdf_parser,
    read_flat,
    read_tgswitch_toml,
    retrieve_version,
    terragrunt_parser,
    tf_version_files,
    tg_version_files,
    tofu_version_files,
)
from iacenv.core.display import NullDisplayer


class TestParsers:
    """Tests for the individual file parsers."""

    def test_flat_trimmed(self, tmp_path):
        path = tmp_path / ".terraform-version"
        path.write_text("  1.6.2\n")

        assert read_flat(path, NullDisplayer()) == "1.6.2"

    def test_flat_missing(self, tmp_path):
        assert read_flat(tmp_path / ".terraform-version", NullDisplayer()) == ""

    def test_asdf_last_matching_line(self, tmp_path):
        path = tmp_path / ".tool-versions"
        path.write_text(
            "# pinned tools\nterraform 1.5.0\nnodejs 20.1.0\nterraform 1.6.2 # current\n"
        )

        assert asdf_parser("terraform")(path, NullDisplayer()) == "1.6.2"
        assert asdf_parser("opentofu")(path, NullDisplayer()) == ""

    def test_tgswitch_toml(self, tmp_path):
        path = tmp_path / ".tgswitch.toml"
        path.write_text('bin = "/usr/local/bin/terragrunt"\nversion = "0.55.1"\n')

        assert read_tgswitch_toml(path, NullDisplayer()) == "0.55.1"

    def test_tgswitch_toml_invalid(self, tmp_path):
        path = tmp_path / ".tgswitch.toml"
        path.write_text("version = \n")

        assert read_tgswitch_toml(path, NullDisplayer()) == ""

    def test_terragrunt_hcl(self, tmp_path):
        path = tmp_path / "terragrunt.hcl"
        path.write_text('terraform_version_constraint = ">= 1.5"\n')

        parse = terragrunt_parser("terraform_version_constraint")

        assert parse(path, NullDisplayer()) == ">= 1.5"

    def test_terragrunt_json(self, tmp_path):
        path = tmp_path / "terragrunt.hcl.json"
        path.write_text('{"terragrunt_version_constraint": "~> 0.55"}')

        parse = terragrunt_parser("terragrunt_version_constraint")

        assert parse(path, NullDisplayer()) == "~> 0.55"

    def test_terragrunt_malformed_skipped(self, tmp_path):
        path = tmp_path / "terragrunt.hcl"
        path.write_text("include {\n")

        parse = terragrunt_parser("terraform_version_constraint")

        assert parse(path, NullDisplayer()) == ""


class TestRetrieveVersion:
    """Tests for retrieve_version."""

    def dirs(self, tmp_path):
        home = tmp_path / "home"
        work = home / "project" / "module"
        work.mkdir(parents=True)
        root_file = tmp_path / "root" / "Terraform" / "version"
        return home, work, root_file

    def test_env_wins(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)
        (work / ".terraform-version").write_text("1.5.0")

        version = retrieve_version(
            tf_version_files(),
            work,
            home,
            root_file,
            env_name="TFENV_TERRAFORM_VERSION",
            environ={"TFENV_TERRAFORM_VERSION": "1.6.0"},
        )

        assert version == "1.6.0"

    def test_nearest_directory_wins(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)
        (work / ".terraform-version").write_text("1.5.0")
        (work.parent / ".terraform-version").write_text("1.4.0")

        assert retrieve_version(tf_version_files(), work, home, root_file) == "1.5.0"

    def test_walks_up_to_parent(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)
        (work.parent / ".tfswitchrc").write_text("1.4.0")

        assert retrieve_version(tf_version_files(), work, home, root_file) == "1.4.0"

    def test_file_order_within_directory(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)
        (work / ".tool-versions").write_text("opentofu 1.6.0\n")
        (work / ".opentofu-version").write_text("1.6.2\n")

        assert retrieve_version(tofu_version_files(), work, home, root_file) == "1.6.2"

    def test_user_home_outside_walk(self, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        work = tmp_path / "elsewhere"
        work.mkdir()
        (home / ".terragrunt-version").write_text("0.55.0")

        version = retrieve_version(tg_version_files(), work, home, tmp_path / "version")

        assert version == "0.55.0"

    def test_root_version_file_last(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)
        root_file.parent.mkdir(parents=True)
        root_file.write_text("1.3.0\n")

        assert retrieve_version(tf_version_files(), work, home, root_file) == "1.3.0"

    def test_nothing_found(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)

        assert retrieve_version(tf_version_files(), work, home, root_file) == ""

    def test_reports_source(self, tmp_path):
        home, work, root_file = self.dirs(tmp_path)
        (work / ".terraform-version").write_text("1.5.0")
        displayer = MagicMock()

        retrieve_version(tf_version_files(), work, home, root_file, displayer=displayer)

        message = displayer.display.call_args[0][0]
        assert ".terraform-version" in message
        assert "1.5.0" in message
