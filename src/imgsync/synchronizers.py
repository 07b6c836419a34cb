"""Named synchronizer configurations."""

from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp

from .core.registry_client import Catalog, RegistryCatalog
from .exceptions import ConfigError

CatalogFactory = Callable[[Optional[aiohttp.ClientSession], float], Catalog]


@dataclass(frozen=True)
class Synchronizer:
    """How to discover images for one source."""

    name: str
    namespace: str
    catalog_factory: CatalogFactory

    def catalog(
        self, session: Optional[aiohttp.ClientSession] = None, timeout: float = 5.0
    ) -> Catalog:
        return self.catalog_factory(session, timeout)


class SynchronizerRegistry:
    """Maps synchronizer names to their configuration.

    Each registry is an independent value, so callers and tests can build
    their own instead of sharing global state.
    """

    def __init__(self) -> None:
        self._synchronizers: dict[str, Synchronizer] = {}

    def register(self, synchronizer: Synchronizer) -> None:
        if synchronizer.name in self._synchronizers:
            raise ValueError(f"synchronizer {synchronizer.name} already registered")
        self._synchronizers[synchronizer.name] = synchronizer

    def get(self, name: str) -> Synchronizer:
        """Look up a synchronizer by name.

        Raises:
            ConfigError: If no synchronizer has that name
        """
        try:
            return self._synchronizers[name]
        except KeyError:
            raise ConfigError(
                f"failed to create synchronizer {name}: unknown synchronizer"
            ) from None

    def names(self) -> list[str]:
        return sorted(self._synchronizers)


def _gcr_catalog(session: Optional[aiohttp.ClientSession], timeout: float) -> Catalog:
    return RegistryCatalog("gcr.io", session=session, timeout=timeout)


def _flannel_catalog(
    session: Optional[aiohttp.ClientSession], timeout: float
) -> Catalog:
    return RegistryCatalog("quay.io", names=["flannel"], session=session, timeout=timeout)


def default_registry() -> SynchronizerRegistry:
    """Registry with the built-in ``gcr`` and ``flannel`` synchronizers."""
    registry = SynchronizerRegistry()
    registry.register(Synchronizer("gcr", "google-containers", _gcr_catalog))
    registry.register(Synchronizer("flannel", "coreos", _flannel_catalog))
    return registry
