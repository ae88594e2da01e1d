"""Schema explorer: the server → database → table → column hierarchy.

Every non-leaf node owns one refresh operation guarded by ``is_refreshing``.
A request that arrives while the guard is held is dropped, a request made
while the owning connection is down clears the node instead, and a
successful fetch replaces the node's children wholesale.

Children reference their server node through a ``weakref``; the only strong
edges run from parents to children.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Iterable

from .events import (
    ChildrenReplaced,
    ConnectionAdded,
    ConnectionRemoved,
    ConnectionStateChanged,
    EventEmitter,
    ExplorerEvent,
    NodePath,
    RefreshStateChanged,
    RegistryEvent,
)
from .models import Column, Database, Table
from .registry import Connection, ConnectionRegistry

LOG = logging.getLogger(__name__)

ExplorerListener = Callable[[ExplorerEvent], None]


class ExplorerNode(ABC):
    """Common state of every node in the hierarchy."""

    kind: ClassVar[str] = "node"

    def __init__(self, name: str, path: NodePath) -> None:
        self._name = name
        self._path = path
        self._children: tuple[ExplorerNode, ...] = ()
        self._expanded = False
        self._detached = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> NodePath:
        return self._path

    @property
    def label(self) -> str:
        return "/".join(self._path)

    @property
    def children(self) -> tuple[ExplorerNode, ...]:
        return self._children

    @property
    def is_expanded(self) -> bool:
        return self._expanded

    @property
    def is_refreshing(self) -> bool:
        return False

    @property
    @abstractmethod
    def server(self) -> ServerNode | None:
        """The owning server node, or None once it has been collected."""

    @property
    def is_connected(self) -> bool:
        server = self.server
        return server is not None and not self._detached and server.is_connected

    def child(self, name: str) -> ExplorerNode | None:
        for node in self._children:
            if node.name == name:
                return node
        return None

    async def set_expanded(self, expanded: bool) -> None:
        self._expanded = expanded

    async def refresh(self) -> bool:
        return False

    def clear(self) -> None:
        """Drop all children (and, transitively, their subtrees)."""

        if not self._children:
            return
        old = self._children
        self._children = ()
        for node in old:
            node._detach()
        self._emit(ChildrenReplaced(self._path))

    def _detach(self) -> None:
        self._detached = True
        old = self._children
        self._children = ()
        for node in old:
            node._detach()

    def _emit(self, event: ExplorerEvent) -> None:
        server = self.server
        if server is None or self._detached:
            return
        server.emitter.emit(event)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class RefreshableNode(ExplorerNode):
    """Node whose children come from one provider metadata call."""

    def __init__(self, name: str, path: NodePath) -> None:
        super().__init__(name, path)
        self._refreshing = False

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    async def set_expanded(self, expanded: bool) -> None:
        """Expand or collapse; expanding a connected node refreshes it."""

        if expanded == self._expanded:
            return
        self._expanded = expanded
        if expanded and self.is_connected:
            await self.refresh()

    async def refresh(self) -> bool:
        """Fetch and replace children; returns False when dropped or failed."""

        if self._refreshing:
            LOG.debug("Refresh already running for %s; request dropped", self.label)
            return False
        if not self.is_connected:
            LOG.debug("Connection for %s is not connected; clearing children", self.label)
            self.clear()
            return False
        self._set_refreshing(True)
        try:
            children = await self._fetch()
            if self._detached:
                return False
            if not self.is_connected:
                self.clear()
                return False
            self._replace_children(children)
            LOG.debug("Loaded %d children for %s", len(children), self.label)
            return True
        except Exception:
            LOG.warning("Error refreshing %s", self.label, exc_info=True)
            return False
        finally:
            self._set_refreshing(False)

    def _detach(self) -> None:
        # Close an in-flight refresh while the server is still reachable.
        self._set_refreshing(False)
        super()._detach()

    @abstractmethod
    async def _fetch(self) -> list[ExplorerNode]:
        """Load this node's children from the provider."""

    def _replace_children(self, children: Iterable[ExplorerNode]) -> None:
        old = self._children
        self._children = tuple(children)
        for node in old:
            node._detach()
        self._emit(ChildrenReplaced(self._path))

    def _set_refreshing(self, flag: bool) -> None:
        if self._refreshing == flag:
            return
        self._refreshing = flag
        self._emit(RefreshStateChanged(self._path, flag))


class ServerNode(RefreshableNode):
    """Root node for one registry connection; lists databases."""

    kind = "server"

    def __init__(self, connection: Connection, emitter: EventEmitter[ExplorerEvent]) -> None:
        super().__init__(connection.name, (connection.name,))
        self._connection = connection
        self._emitter = emitter
        self._connected = connection.is_connected
        self._expanded = True

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def emitter(self) -> EventEmitter[ExplorerEvent]:
        return self._emitter

    @property
    def server(self) -> ServerNode | None:
        return self

    @property
    def is_connected(self) -> bool:
        return self._connected and not self._detached and self._connection.is_connected

    @property
    def databases(self) -> tuple[DatabaseNode, ...]:
        return tuple(node for node in self._children if isinstance(node, DatabaseNode))

    def set_connected(self, connected: bool) -> None:
        """Mirror a connection state change; going down clears the subtree."""

        self._connected = connected
        if not connected:
            self.clear()

    async def _fetch(self) -> list[ExplorerNode]:
        databases = await self._connection.provider.list_databases()
        return [DatabaseNode(self, database) for database in databases]


class _ChildNode(RefreshableNode):
    def __init__(self, server: ServerNode, name: str, path: NodePath) -> None:
        super().__init__(name, path)
        self._server_ref = weakref.ref(server)

    @property
    def server(self) -> ServerNode | None:
        return self._server_ref()


class DatabaseNode(_ChildNode):
    """Database/keyspace node; lists tables."""

    kind = "database"

    def __init__(self, server: ServerNode, database: Database) -> None:
        super().__init__(server, database.name, (*server.path, database.name))
        self.database = database

    @property
    def tables(self) -> tuple[TableNode, ...]:
        return tuple(node for node in self._children if isinstance(node, TableNode))

    async def _fetch(self) -> list[ExplorerNode]:
        server = self.server
        if server is None:
            return []
        tables = await server.connection.provider.list_tables(self.database.name)
        return [TableNode(server, table) for table in tables]


class TableNode(_ChildNode):
    """Table node; lists columns."""

    kind = "table"

    def __init__(self, server: ServerNode, table: Table) -> None:
        super().__init__(server, table.name, (*server.path, table.database_name, table.name))
        self.table = table

    @property
    def columns(self) -> tuple[ColumnNode, ...]:
        return tuple(node for node in self._children if isinstance(node, ColumnNode))

    async def _fetch(self) -> list[ExplorerNode]:
        server = self.server
        if server is None:
            return []
        columns = await server.connection.provider.list_columns(self.table.database_name, self.table.name)
        return [ColumnNode(server, self._path, column) for column in columns]


class ColumnNode(ExplorerNode):
    """Leaf node; never refreshes."""

    kind = "column"

    def __init__(self, server: ServerNode, table_path: NodePath, column: Column) -> None:
        super().__init__(column.name, (*table_path, column.name))
        self._server_ref = weakref.ref(server)
        self.column = column

    @property
    def server(self) -> ServerNode | None:
        return self._server_ref()

    @property
    def display_text(self) -> str:
        return self.column.display_text


class SchemaExplorer:
    """Mirrors registry connections as server nodes and coordinates their refreshes."""

    def __init__(self, registry: ConnectionRegistry, *, refresh_on_connect: bool = True) -> None:
        self._registry = registry
        self._refresh_on_connect = refresh_on_connect
        self._events: EventEmitter[ExplorerEvent] = EventEmitter()
        self._servers: dict[str, ServerNode] = {}
        self._tasks: set[asyncio.Task[bool]] = set()
        for connection in registry.connections():
            self._servers[connection.name] = ServerNode(connection, self._events)
        self._unsubscribe: Callable[[], None] | None = registry.subscribe(self._handle_registry_event)

    @property
    def servers(self) -> tuple[ServerNode, ...]:
        return tuple(self._servers.values())

    def server(self, name: str) -> ServerNode | None:
        return self._servers.get(name)

    def node_at(self, path: NodePath) -> ExplorerNode | None:
        """Resolve a node by its path, e.g. ``("c1", "shop", "orders")``."""

        if not path:
            return None
        node: ExplorerNode | None = self._servers.get(path[0])
        for name in path[1:]:
            if node is None:
                return None
            node = node.child(name)
        return node

    def subscribe(self, listener: ExplorerListener) -> Callable[[], None]:
        """Subscribe to node events; returns an unsubscribe handle."""

        return self._events.subscribe(listener)

    def request_refresh(self, node: ExplorerNode) -> asyncio.Task[bool] | None:
        """Submit a background refresh; None when no event loop is running."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOG.debug("No running event loop; refresh of %s not scheduled", node.label)
            return None
        task = loop.create_task(node.refresh(), name=f"refresh:{node.label}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every submitted refresh has finished."""

        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_registry_event(self, event: RegistryEvent) -> None:
        if isinstance(event, ConnectionAdded):
            self._add_server(event.name)
        elif isinstance(event, ConnectionRemoved):
            self._remove_server(event.name)
        elif isinstance(event, ConnectionStateChanged):
            self._update_server(event.name, event.is_connected)

    def _add_server(self, name: str) -> None:
        connection = self._registry.get(name)
        if connection is None or name in self._servers:
            return
        server = ServerNode(connection, self._events)
        self._servers[name] = server
        self._events.emit(ChildrenReplaced(()))
        if server.is_connected and self._refresh_on_connect:
            self.request_refresh(server)

    def _remove_server(self, name: str) -> None:
        server = self._servers.pop(name, None)
        if server is None:
            return
        server.set_connected(False)
        server._detach()
        self._events.emit(ChildrenReplaced(()))

    def _update_server(self, name: str, connected: bool) -> None:
        server = self._servers.get(name)
        if server is None:
            return
        server.set_connected(connected)
        if connected and self._refresh_on_connect:
            self.request_refresh(server)


__all__ = [
    "ColumnNode",
    "DatabaseNode",
    "ExplorerListener",
    "ExplorerNode",
    "RefreshableNode",
    "SchemaExplorer",
    "ServerNode",
    "TableNode",
]
