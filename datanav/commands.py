"""Command palette providers for connection lifecycle and refresh actions."""

from __future__ import annotations

from typing import ClassVar

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .registry import Connection, ConnectionRegistry


class _ConnectionCommandProvider(Provider):
    """One palette entry per registered connection, filtered by state."""

    verb: ClassVar[str] = ""
    help_text: ClassVar[str] = ""
    app_method: ClassVar[str] = ""
    wants_connected: ClassVar[bool | None] = None

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for connection in self._candidates():
            label = f"{self.verb}: {connection.name}"
            match = matcher.match(label)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(connection.name),
                    help=self.help_text,
                )

    async def discover(self) -> Hits:
        for connection in self._candidates():
            yield DiscoveryHit(
                display=f"{self.verb}: {connection.name}",
                command=self._build_callback(connection.name),
                help=self.help_text,
            )

    @property
    def _registry(self) -> ConnectionRegistry | None:
        registry = getattr(self.app, "registry", None)
        if isinstance(registry, ConnectionRegistry):
            return registry
        return None

    def _candidates(self) -> list[Connection]:
        registry = self._registry
        if registry is None:
            return []
        return [
            connection
            for connection in registry.connections()
            if self.wants_connected is None or connection.is_connected == self.wants_connected
        ]

    def _build_callback(self, name: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            handler = getattr(self.app, self.app_method, None)
            if handler is None:
                return
            await handler(name)

        return _run


class ConnectCommandProvider(_ConnectionCommandProvider):
    verb = "Connect"
    help_text = "Open the connection and load its databases."
    app_method = "connect_connection"
    wants_connected = False


class DisconnectCommandProvider(_ConnectionCommandProvider):
    verb = "Disconnect"
    help_text = "Close the connection and clear its schema tree."
    app_method = "disconnect_connection"
    wants_connected = True


class RefreshCommandProvider(_ConnectionCommandProvider):
    verb = "Refresh"
    help_text = "Reload the database list (Ctrl+R refreshes the selected node)."
    app_method = "refresh_connection"
    wants_connected = True


class RemoveCommandProvider(_ConnectionCommandProvider):
    verb = "Remove connection"
    help_text = "Disconnect and forget the connection for this session."
    app_method = "remove_connection"


__all__ = [
    "ConnectCommandProvider",
    "DisconnectCommandProvider",
    "RefreshCommandProvider",
    "RemoveCommandProvider",
]
