"""
Retrievers for the managed tools, selected by name.

The default registry maps the tool keys (``tofu``, ``tf``, ``tg``, ``tm``,
``atmos``) to retriever classes. Additional retrievers can be registered
under new names.

Example:
    from iacenv.retrievers import get_retriever

    retriever = get_retriever("tofu", config, displayer)
    versions = retriever.list_versions()
"""

from typing import Dict, List, Optional, Type

from iacenv.config.settings import Config
from iacenv.core.display import Displayer

from .base import Retriever, RemoteAsset
from .atmos import AtmosRetriever
from .terraform import TerraformRetriever
from .terragrunt import TerragruntRetriever
from .terramate import TerramateRetriever
from .tofu import TofuRetriever


class RetrieverRegistry:
    """Name-keyed registry of retriever classes."""

    def __init__(self):
        self._retrievers: Dict[str, Type[Retriever]] = {}

    def register(self, name: str, retriever_class: Type[Retriever]) -> None:
        """
        Register a retriever class.

        Raises:
            ValueError: If a retriever with the same name is already registered
        """
        if name in self._retrievers:
            raise ValueError(f"Retriever '{name}' is already registered")
        self._retrievers[name] = retriever_class

    def unregister(self, name: str) -> None:
        self._retrievers.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._retrievers

    def get_class(self, name: str) -> Type[Retriever]:
        """
        Raises:
            KeyError: If no retriever is registered under name
        """
        if name not in self._retrievers:
            raise KeyError(
                f"No retriever registered for '{name}'. "
                f"Available: {', '.join(self.names())}"
            )
        return self._retrievers[name]

    def create(
        self, name: str, config: Config, displayer: Optional[Displayer] = None, **kwargs
    ) -> Retriever:
        return self.get_class(name)(config, displayer, **kwargs)

    def names(self) -> List[str]:
        return sorted(self._retrievers)


_default_registry = RetrieverRegistry()
for _cls in (
    TofuRetriever,
    TerraformRetriever,
    TerragruntRetriever,
    TerramateRetriever,
    AtmosRetriever,
):
    _default_registry.register(_cls.name, _cls)


def get_registry() -> RetrieverRegistry:
    return _default_registry


def register_retriever(name: str, retriever_class: Type[Retriever]) -> None:
    _default_registry.register(name, retriever_class)


def get_retriever(
    name: str, config: Config, displayer: Optional[Displayer] = None, **kwargs
) -> Retriever:
    """Instantiate the retriever registered under name."""
    return _default_registry.create(name, config, displayer, **kwargs)


def available_retrievers() -> List[str]:
    return _default_registry.names()


__all__ = [
    "Retriever",
    "RemoteAsset",
    "RetrieverRegistry",
    "get_registry",
    "register_retriever",
    "get_retriever",
    "available_retrievers",
    "TofuRetriever",
    "TerraformRetriever",
    "TerragruntRetriever",
    "TerramateRetriever",
    "AtmosRetriever",
]
