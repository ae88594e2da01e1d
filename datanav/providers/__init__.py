"""Backend providers and the default provider-type table."""

from __future__ import annotations

from typing import Mapping, Protocol

from .base import INCLUDE_SYSTEM_OBJECTS, TIMEOUT, Provider, ProviderBase, ProviderFactory
from .cassandra import CassandraProvider
from .demo import DEMO_CATALOGS, DemoProvider, DemoResult
from .postgres import PostgresProvider

DEFAULT_FACTORIES: Mapping[str, ProviderFactory] = {
    "cassandra": CassandraProvider,
    "scylladb": CassandraProvider,
    "postgresql": PostgresProvider,
    "postgres": PostgresProvider,
    "demo": DemoProvider,
}


class _SupportsRegistration(Protocol):
    def register_provider(self, provider_type: str, factory: ProviderFactory) -> None: ...


def register_default_providers(registry: _SupportsRegistration) -> None:
    """Register every built-in provider type on the given registry."""

    for provider_type, factory in DEFAULT_FACTORIES.items():
        registry.register_provider(provider_type, factory)


__all__ = [
    "CassandraProvider",
    "DEFAULT_FACTORIES",
    "DEMO_CATALOGS",
    "DemoProvider",
    "DemoResult",
    "INCLUDE_SYSTEM_OBJECTS",
    "PostgresProvider",
    "Provider",
    "ProviderBase",
    "ProviderFactory",
    "TIMEOUT",
    "register_default_providers",
]
