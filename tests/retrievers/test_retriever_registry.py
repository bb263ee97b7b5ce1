"""
Unit tests for the name-keyed retriever registry.
"""

import pytest

from iacenv.retrievers import (
    RetrieverRegistry,
    TerraformRetriever,
    TofuRetriever,
    available_retrievers,
    get_registry,
    get_retriever,
)


class TestRetrieverRegistry:
    """Tests for RetrieverRegistry class."""

    def test_register_and_get(self):
        registry = RetrieverRegistry()
        registry.register("tofu", TofuRetriever)

        assert registry.has("tofu")
        assert registry.get_class("tofu") is TofuRetriever

    def test_duplicate_rejected(self):
        registry = RetrieverRegistry()
        registry.register("tofu", TofuRetriever)

        with pytest.raises(ValueError) as exc_info:
            registry.register("tofu", TerraformRetriever)

        assert "already registered" in str(exc_info.value)

    def test_unknown_name(self):
        registry = RetrieverRegistry()
        registry.register("tofu", TofuRetriever)

        with pytest.raises(KeyError) as exc_info:
            registry.get_class("pulumi")

        assert "tofu" in str(exc_info.value)

    def test_unregister(self):
        registry = RetrieverRegistry()
        registry.register("tofu", TofuRetriever)
        registry.unregister("tofu")
        registry.unregister("tofu")

        assert not registry.has("tofu")


class TestDefaultRegistry:
    """Tests for the default registry."""

    def test_every_tool_registered(self):
        assert available_retrievers() == ["atmos", "tf", "tg", "tm", "tofu"]

    def test_registered_under_own_name(self):
        registry = get_registry()

        for name in registry.names():
            assert registry.get_class(name).name == name

    def test_get_retriever(self, config, null_displayer):
        retriever = get_retriever("tf", config, null_displayer)

        assert isinstance(retriever, TerraformRetriever)
        assert retriever.displayer is null_displayer
        assert retriever.platform.arch == "amd64"
