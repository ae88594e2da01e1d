"""Status bar widget that mirrors registry and explorer activity."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from datanav.events import ExplorerEvent, NodePath, RefreshStateChanged, RegistryEvent
from datanav.explorer import SchemaExplorer
from datanav.registry import ConnectionRegistry


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        explorer: SchemaExplorer,
        *,
        active_connection: Callable[[], str | None] = lambda: None,
    ) -> None:
        super().__init__("", id="status-bar")
        self._registry = registry
        self._explorer = explorer
        self._active_connection = active_connection
        self._refreshing: set[NodePath] = set()
        self._unsubscribers: list[Callable[[], None]] = []

    async def on_mount(self) -> None:
        self._unsubscribers = [
            self._registry.subscribe(self._handle_registry_event),
            self._explorer.subscribe(self._handle_explorer_event),
        ]
        self.render_status()

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def render_status(self) -> str:
        connections = self._registry.connections()
        connected = sum(1 for connection in connections if connection.is_connected)
        parts = [
            f"Connections: {len(connections)}",
            f"Connected: {connected}",
            f"Active: {self._active_connection() or '—'}",
        ]
        if self._refreshing:
            parts.append(f"Refreshing: {len(self._refreshing)}")
        text = " | ".join(parts)
        self.update(text)
        return text

    def _handle_registry_event(self, event: RegistryEvent) -> None:
        self.render_status()

    def _handle_explorer_event(self, event: ExplorerEvent) -> None:
        if not isinstance(event, RefreshStateChanged):
            return
        if event.is_refreshing:
            self._refreshing.add(event.path)
        else:
            self._refreshing.discard(event.path)
        self.render_status()


__all__ = ["StatusBar"]
