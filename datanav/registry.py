"""Connection registry: named connections, provider dispatch and lifecycle events."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .errors import AlreadyExistsError, InvalidArgumentError, UnsupportedProviderError
from .events import (
    ConnectionAdded,
    ConnectionRemoved,
    ConnectionStateChanged,
    EventEmitter,
    RegistryEvent,
)
from .models import ConnectionInfo, QueryResult
from .providers import Provider, ProviderFactory, register_default_providers

LOG = logging.getLogger(__name__)

RegistryListener = Callable[[RegistryEvent], None]


class Connection:
    """A named session: one ConnectionInfo bound to one provider instance."""

    __slots__ = ("_info", "_provider")

    def __init__(self, info: ConnectionInfo, provider: Provider) -> None:
        self._info = info
        self._provider = provider

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def info(self) -> ConnectionInfo:
        return self._info

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def is_connected(self) -> bool:
        return self._provider.is_connected

    def __repr__(self) -> str:
        return f"Connection(name={self.name!r}, provider_type={self._info.provider_type!r}, connected={self.is_connected})"


class ConnectionRegistry:
    """Single source of truth for named connections and their lifecycle.

    Lifecycle calls (``connect``/``disconnect``/``remove_connection``) for the
    same name must not overlap; the registry does not serialize them and
    state-change notifications arrive in completion order.
    """

    def __init__(self, *, register_defaults: bool = True) -> None:
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}
        self._factories: dict[str, ProviderFactory] = {}
        self._events: EventEmitter[RegistryEvent] = EventEmitter()
        if register_defaults:
            register_default_providers(self)

    def register_provider(self, provider_type: str, factory: ProviderFactory) -> None:
        """Register a provider factory; the last registration for a type wins."""

        if not provider_type or not provider_type.strip():
            raise InvalidArgumentError("Provider type cannot be empty.")
        if factory is None:
            raise InvalidArgumentError("Provider factory is required.")
        with self._lock:
            self._factories[provider_type.strip().lower()] = factory

    def supported_providers(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._factories))

    def connections(self) -> tuple[Connection, ...]:
        with self._lock:
            return tuple(self._connections.values())

    def get(self, name: str) -> Connection | None:
        if not name or not name.strip():
            raise InvalidArgumentError("Connection name cannot be empty.")
        return self._lookup(name)

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """Subscribe to registry events; returns an unsubscribe handle."""

        return self._events.subscribe(listener)

    def add_connection(self, info: ConnectionInfo) -> Connection:
        """Create the provider for ``info`` and register it under its name."""

        if info is None:
            raise InvalidArgumentError("Connection info is required.")
        if not info.name or not info.name.strip():
            raise InvalidArgumentError("Connection name cannot be empty.")
        factory = self._factory_for(info.provider_type)
        with self._lock:
            if info.name in self._connections:
                raise AlreadyExistsError(f"A connection named '{info.name}' already exists.")
            connection = Connection(info, factory(info))
            self._connections[info.name] = connection
        LOG.info("Added connection '%s' (%s)", info.name, info.provider_type)
        self._events.emit(ConnectionAdded(info.name))
        return connection

    async def remove_connection(self, name: str) -> bool:
        """Disconnect and forget a connection; False when the name is unknown."""

        connection = self._lookup(name)
        if connection is None:
            return False
        try:
            await connection.provider.disconnect()
        except Exception:
            LOG.warning("Error disconnecting '%s' during removal", name, exc_info=True)
        with self._lock:
            if self._connections.get(name) is not connection:
                return False
            del self._connections[name]
        LOG.info("Removed connection '%s'", name)
        self._events.emit(ConnectionRemoved(name))
        return True

    async def connect(self, name: str) -> bool:
        """Open a connection; failures are logged and reported as False."""

        connection = self._lookup(name)
        if connection is None:
            return False
        success = False
        try:
            success = await connection.provider.connect()
        except Exception:
            LOG.warning("Error connecting to '%s'", name, exc_info=True)
        finally:
            self._events.emit(ConnectionStateChanged(name, connection.is_connected))
        return success

    async def disconnect(self, name: str) -> bool:
        """Close a connection; False when the name is unknown."""

        connection = self._lookup(name)
        if connection is None:
            return False
        try:
            await connection.provider.disconnect()
        except Exception:
            LOG.warning("Error disconnecting from '%s'", name, exc_info=True)
        finally:
            self._events.emit(ConnectionStateChanged(name, connection.is_connected))
        return True

    async def execute_query(self, name: str, query_text: str) -> QueryResult:
        """Forward opaque query text to the named connection's provider."""

        connection = self.get(name)
        if connection is None:
            raise InvalidArgumentError(f"Connection '{name}' not found.")
        return await connection.provider.execute_query(query_text)

    async def test_connection(self, info: ConnectionInfo) -> bool:
        """Probe connection parameters without registering them."""

        try:
            provider = self._factory_for(info.provider_type)(info)
        except Exception:
            LOG.warning("Cannot build provider for '%s'", info.name, exc_info=True)
            return False
        try:
            return await provider.connect()
        except Exception:
            LOG.warning("Test connection to '%s' failed", info.name, exc_info=True)
            return False
        finally:
            try:
                await provider.disconnect()
            except Exception:
                LOG.warning("Error closing test connection '%s'", info.name, exc_info=True)

    async def close(self) -> None:
        """Disconnect every connection (shutdown helper)."""

        for connection in self.connections():
            if connection.is_connected:
                await self.disconnect(connection.name)

    def _factory_for(self, provider_type: str | None) -> ProviderFactory:
        key = (provider_type or "").strip().lower()
        with self._lock:
            factory = self._factories.get(key)
        if factory is None:
            raise UnsupportedProviderError(f"Unsupported provider type: {provider_type}")
        return factory

    def _lookup(self, name: str) -> Connection | None:
        with self._lock:
            return self._connections.get(name)


__all__ = ["Connection", "ConnectionRegistry", "RegistryListener"]
