"""
Unit tests for tool descriptors and manager construction.
"""

import pytest

from iacenv.manager.builder import TOOLS, build_manager, get_descriptor, tool_keys
from iacenv.manager.manager import VersionManager
from iacenv.retrievers import TerragruntRetriever, TofuRetriever
from iacenv.versions.iac import IacScanner


class TestDescriptors:
    """Tests for ToolDescriptor lookup."""

    def test_keys(self):
        assert tool_keys() == ["tofu", "tf", "tg", "tm", "atmos"]

    @pytest.mark.parametrize(
        "name,key",
        [("tofu", "tofu"), ("OpenTofu", "tofu"), ("terraform", "tf"), ("TG", "tg")],
    )
    def test_aliases(self, name, key):
        assert get_descriptor(name).key == key

    def test_unknown(self):
        with pytest.raises(KeyError):
            get_descriptor("pulumi")

    def test_flat_version_file(self):
        assert TOOLS["tofu"].flat_version_file == ".opentofu-version"
        assert TOOLS["tf"].flat_version_file == ".terraform-version"
        assert TOOLS["atmos"].flat_version_file == ".atmos-version"

    def test_scanners(self):
        assert isinstance(TOOLS["tf"].scanner(), IacScanner)
        assert TOOLS["tg"].scanner().block is None
        assert TOOLS["tm"].scanner() is None
        assert TOOLS["atmos"].scanner() is None

    def test_default_strategies(self):
        assert TOOLS["tofu"].default_strategy == "latest-allowed"
        assert TOOLS["tm"].default_strategy == "latest"


class TestBuildManager:
    """Tests for build_manager."""

    def test_builds_with_registered_retriever(self, config, null_displayer):
        manager = build_manager("tofu", config, null_displayer)

        assert isinstance(manager, VersionManager)
        assert isinstance(manager.retriever, TofuRetriever)
        assert manager.install_path == config.root_path / "OpenTofu"

    def test_alias(self, config):
        manager = build_manager("terragrunt", config)

        assert isinstance(manager.retriever, TerragruntRetriever)
        assert manager.executable_path("0.55.1").name in ("terragrunt", "terragrunt.exe")
