"""Textual application entry point for datanav."""

from __future__ import annotations

import asyncio
import logging

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import Footer, Header

from .commands import (
    ConnectCommandProvider,
    DisconnectCommandProvider,
    RefreshCommandProvider,
    RemoveCommandProvider,
)
from .config import AppConfig, configure_logging, load_config
from .errors import DataNavError
from .explorer import SchemaExplorer
from .registry import ConnectionRegistry
from .widgets import ExplorerTree, QueryPad, StatusBar

LOG = logging.getLogger(__name__)


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


class DataNavApp(App[None]):
    """Explorer tree on the left, query pad on the right."""

    COMMANDS = App.COMMANDS | {
        ConnectCommandProvider,
        DisconnectCommandProvider,
        RefreshCommandProvider,
        RemoveCommandProvider,
    }
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "refresh", "Refresh"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self, config: AppConfig | None = None) -> None:
        super().__init__()
        self._config = config or _load_app_config()
        self._registry = ConnectionRegistry()
        self._explorer = SchemaExplorer(self._registry, refresh_on_connect=self._config.refresh_on_connect)
        self._active_connection: str | None = None
        self._tree: ExplorerTree | None = None
        self._pending_notifications: list[tuple[str, str]] = []
        self._load_connections()
        self._active_connection = self._initial_active_connection()

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self._tree = ExplorerTree(self._explorer)
        query_pad = QueryPad(self._registry, connection_name=lambda: self._active_connection)
        yield Horizontal(self._tree, Container(query_pad, id="main-column"), id="content")
        yield StatusBar(self._registry, self._explorer, active_connection=lambda: self._active_connection)
        yield Footer()

    async def on_mount(self) -> None:
        if self._config.theme in self.available_themes:
            self.theme = self._config.theme
        self._flush_pending_notifications()
        if self._config.auto_connect:
            for connection in self._registry.connections():
                self.run_worker(self.connect_connection(connection.name), group="connect", exit_on_error=False)

    @property
    def app_config(self) -> AppConfig:
        return self._config

    @property
    def registry(self) -> ConnectionRegistry:
        """Expose the connection registry for command providers and tests."""

        return self._registry

    @property
    def explorer(self) -> SchemaExplorer:
        return self._explorer

    @property
    def active_connection(self) -> str | None:
        return self._active_connection

    def select_connection(self, name: str) -> None:
        if self._registry.get(name) is None:
            self._safe_notify(f"Unknown connection: {name}", severity="error")
            return
        self._active_connection = name

    async def connect_connection(self, name: str) -> bool:
        connected = await self._registry.connect(name)
        if connected:
            self._active_connection = name
            self._safe_notify(f"Connected to {name}.")
        else:
            self._safe_notify(f"{name}: connection failed (see log).", severity="error")
        return connected

    async def disconnect_connection(self, name: str) -> bool:
        disconnected = await self._registry.disconnect(name)
        if disconnected:
            self._safe_notify(f"Disconnected from {name}.")
        return disconnected

    async def remove_connection(self, name: str) -> bool:
        removed = await self._registry.remove_connection(name)
        if removed:
            if self._active_connection == name:
                self._active_connection = self._initial_active_connection()
            self._safe_notify(f"Removed connection {name}.")
        return removed

    async def refresh_connection(self, name: str) -> bool:
        server = self._explorer.server(name)
        if server is None:
            return False
        return await server.refresh()

    def action_refresh(self) -> asyncio.Task[bool] | None:
        """Refresh the highlighted tree node, or the active connection."""

        path = self._tree.selected_path if self._tree else None
        node = self._explorer.node_at(path) if path else None
        if node is None and self._active_connection:
            node = self._explorer.server(self._active_connection)
        if node is None:
            return None
        if node.path:
            self._active_connection = node.path[0]
        return self._explorer.request_refresh(node)

    async def _shutdown(self) -> None:
        self._explorer.close()
        await self._registry.close()
        await super()._shutdown()

    def _load_connections(self) -> None:
        for info in self._config.connection_infos():
            try:
                self._registry.add_connection(info)
            except DataNavError as exc:
                LOG.warning("Skipping connection '%s': %s", info.name, exc)
                self._safe_notify(f"Skipping connection {info.name}: {exc}", severity="warning")

    def _initial_active_connection(self) -> str | None:
        preferred = self._config.active_connection
        if preferred and self._registry.get(preferred) is not None:
            return preferred
        connections = self._registry.connections()
        return connections[0].name if connections else None

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            self.notify(message, severity=severity)
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            self.notify(message, severity=severity)


def main() -> None:
    """Invoke the Textual application."""

    config = _load_app_config()
    configure_logging(config)
    DataNavApp(config).run()


if __name__ == "__main__":
    main()
