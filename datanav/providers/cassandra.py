"""Cassandra/ScyllaDB provider backed by the DataStax ``cassandra-driver``."""

from __future__ import annotations

import asyncio
import logging
import ssl
import time
from contextlib import AsyncExitStack
from typing import Any, Callable, Sequence

from ..coercion import CQL_TYPE_KINDS, coerce_row
from ..errors import ExecutionError
from ..models import Column, ConnectionInfo, Database, QueryResult, Table
from .base import ProviderBase, build_columns, key_columns

LOG = logging.getLogger(__name__)

DEFAULT_PORT = 9042

ClusterFactory = Callable[..., Any]


def _driver_cluster(**options: Any) -> Any:
    from cassandra.cluster import Cluster

    return Cluster(**options)


def _tuple_rows(colnames: Sequence[str], rows: list[tuple[Any, ...]]) -> list[tuple[Any, ...]]:
    """Row factory keeping the driver's positional tuples."""

    return rows


def _type_name(cql_type: Any) -> str:
    parameterized = getattr(cql_type, "cql_parameterized_type", None)
    if callable(parameterized):
        return str(parameterized())
    typename = getattr(cql_type, "typename", None)
    if typename:
        return str(typename)
    return str(cql_type)


class CassandraProvider(ProviderBase):
    """Provider for wide-column stores speaking CQL."""

    display_name = "Cassandra"
    system_prefixes = ("system", "dse")
    include_system_aliases = ("IncludeSystemKeyspaces",)

    _KEYSPACES_QUERY = "SELECT keyspace_name FROM system_schema.keyspaces"
    _TABLES_QUERY = "SELECT table_name FROM system_schema.tables WHERE keyspace_name = %s"
    _COLUMNS_QUERY = (
        "SELECT column_name, type FROM system_schema.columns "
        "WHERE keyspace_name = %s AND table_name = %s"
    )
    _KEY_COLUMNS_QUERY = (
        "SELECT column_name FROM system_schema.columns "
        "WHERE keyspace_name = %s AND table_name = %s AND kind = %s ALLOW FILTERING"
    )

    def __init__(self, info: ConnectionInfo, *, cluster_factory: ClusterFactory | None = None) -> None:
        super().__init__(info)
        self._cluster_factory = cluster_factory or _driver_cluster
        self._session: Any = None
        self._connected = False
        self._resources = AsyncExitStack()

    @property
    def is_connected(self) -> bool:
        session = self._session
        return self._connected and session is not None and not getattr(session, "is_shutdown", False)

    async def connect(self) -> bool:
        if self.is_connected:
            return True
        if self._session is not None:
            await self.disconnect()
        host = self._info.host or "localhost"
        port = self._info.port or DEFAULT_PORT
        LOG.info("Connecting to Cassandra at %s:%s", host, port)
        stack = AsyncExitStack()
        try:
            cluster = self._cluster_factory(**self._cluster_options())
            stack.push_async_callback(asyncio.to_thread, cluster.shutdown)
            session = await asyncio.to_thread(cluster.connect)
            stack.push_async_callback(asyncio.to_thread, session.shutdown)
        except Exception as exc:
            LOG.warning("Failed to connect to Cassandra connection '%s': %s", self._info.name, exc)
            await self._release(stack)
            self._connected = False
            return False
        session.row_factory = _tuple_rows
        self._session = session
        self._resources = stack
        self._connected = True
        LOG.info("Connected to Cassandra connection '%s'", self._info.name)
        return True

    async def disconnect(self) -> None:
        stack = self._resources
        self._resources = AsyncExitStack()
        self._session = None
        self._connected = False
        await self._release(stack)

    async def list_databases(self) -> list[Database]:
        self._ensure_connected()
        _, _, rows = await self._run(self._KEYSPACES_QUERY)
        databases = self.visible_databases(str(row[0]) for row in rows)
        LOG.debug("Found %d keyspaces on '%s'", len(databases), self._info.name)
        return databases

    async def list_tables(self, database_name: str) -> list[Table]:
        self._ensure_connected()
        _, _, rows = await self._run(self._TABLES_QUERY, (database_name,))
        tables = [Table(name=str(row[0]), database_name=database_name) for row in rows]
        LOG.debug("Found %d tables in keyspace %s", len(tables), database_name)
        return tables

    async def list_columns(self, database_name: str, table_name: str) -> list[Column]:
        self._ensure_connected()
        params = (database_name, table_name)
        _, _, rows = await self._run(self._COLUMNS_QUERY, params)
        _, _, partition = await self._run(self._KEY_COLUMNS_QUERY, (*params, "partition_key"))
        _, _, clustering = await self._run(self._KEY_COLUMNS_QUERY, (*params, "clustering"))
        keys = key_columns(
            (str(row[0]) for row in partition),
            (str(row[0]) for row in clustering),
        )
        entries = [(str(row[0]), str(row[1])) for row in rows]
        return build_columns(entries, keys)

    async def execute_query(self, query_text: str) -> QueryResult:
        self._ensure_connected()
        started = time.perf_counter()
        names, types, rows = await self._run(query_text)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if not names:
            LOG.info("Statement executed without a result set in %d ms", elapsed_ms)
            return QueryResult(execution_time_ms=elapsed_ms, rows_affected=-1)
        columns = tuple(
            Column(name=name, data_type=_type_name(types[idx]) if idx < len(types) else "unknown")
            for idx, name in enumerate(names)
        )
        coerced = tuple(coerce_row(columns, row, CQL_TYPE_KINDS) for row in rows)
        LOG.info("Query executed: %d rows returned, %d ms", len(coerced), elapsed_ms)
        return QueryResult(columns=columns, rows=coerced, execution_time_ms=elapsed_ms, rows_affected=-1)

    def _cluster_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "contact_points": [self._info.host or "localhost"],
            "port": self._info.port or DEFAULT_PORT,
        }
        if self._info.username:
            options["auth_provider"] = self._auth_provider()
        if self._info.use_tls:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            options["ssl_context"] = context
        timeout = self.timeout_ms
        if timeout:
            options["connect_timeout"] = timeout / 1000
        return options

    def _auth_provider(self) -> Any:
        from cassandra.auth import PlainTextAuthProvider

        return PlainTextAuthProvider(username=self._info.username, password=self._info.password or "")

    async def _run(
        self,
        statement: str,
        params: Sequence[Any] | None = None,
    ) -> tuple[list[str], list[Any], list[Sequence[Any]]]:
        session = self._session
        try:
            return await asyncio.to_thread(_execute, session, statement, params)
        except Exception as exc:
            raise ExecutionError(f"Cassandra statement failed on '{self._info.name}': {exc}") from exc

    async def _release(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as exc:
            LOG.warning("Error while closing Cassandra connection '%s': %s", self._info.name, exc)


def _execute(
    session: Any,
    statement: str,
    params: Sequence[Any] | None,
) -> tuple[list[str], list[Any], list[Sequence[Any]]]:
    """Run a statement and drain every page on the calling (worker) thread."""

    result_set = session.execute(statement, params) if params is not None else session.execute(statement)
    names = list(getattr(result_set, "column_names", None) or ())
    types = list(getattr(result_set, "column_types", None) or ())
    rows = list(result_set) if names else []
    return names, types, rows


__all__ = ["CassandraProvider", "DEFAULT_PORT"]
