"""PostgreSQL provider backed by asyncpg; schemas play the role of databases."""

from __future__ import annotations

import logging
import time
from contextlib import AsyncExitStack
from typing import Any

import asyncpg

from ..coercion import POSTGRES_TYPE_KINDS, coerce_row
from ..errors import ExecutionError
from ..models import Column, ConnectionInfo, Database, QueryResult, Table
from .base import ProviderBase, build_columns, key_columns

LOG = logging.getLogger(__name__)

DEFAULT_PORT = 5432
DEFAULT_CONNECT_TIMEOUT = 3.0


class PostgresProvider(ProviderBase):
    """Provider holding one live asyncpg connection."""

    display_name = "PostgreSQL"
    system_prefixes = ("pg_", "information_schema")

    _SCHEMA_QUERY = """
        SELECT schema_name
        FROM information_schema.schemata
        ORDER BY schema_name
    """

    _TABLE_QUERY = """
        SELECT table_name, table_type
        FROM information_schema.tables
        WHERE table_schema = $1
        ORDER BY table_name
    """

    _COLUMN_QUERY = """
        SELECT column_name, data_type, is_nullable
        FROM information_schema.columns
        WHERE table_schema = $1 AND table_name = $2
        ORDER BY ordinal_position
    """

    _PRIMARY_KEY_QUERY = """
        SELECT kcu.column_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
          ON tc.constraint_name = kcu.constraint_name
         AND tc.table_schema = kcu.table_schema
         AND tc.table_name = kcu.table_name
        WHERE tc.constraint_type = 'PRIMARY KEY'
          AND tc.table_schema = $1
          AND tc.table_name = $2
    """

    def __init__(self, info: ConnectionInfo) -> None:
        super().__init__(info)
        self._conn: Any = None
        self._resources = AsyncExitStack()

    @property
    def is_connected(self) -> bool:
        conn = self._conn
        return conn is not None and not conn.is_closed()

    async def connect(self) -> bool:
        if self.is_connected:
            return True
        if self._conn is not None:
            await self.disconnect()
        stack = AsyncExitStack()
        try:
            conn = await asyncpg.connect(**self._connect_kwargs())
            stack.push_async_callback(conn.close)
        except Exception as exc:
            LOG.warning("Failed to connect to PostgreSQL connection '%s': %s", self._info.name, exc)
            await self._release(stack)
            return False
        self._conn = conn
        self._resources = stack
        LOG.info("Connected to PostgreSQL connection '%s'", self._info.name)
        return True

    async def disconnect(self) -> None:
        stack = self._resources
        self._resources = AsyncExitStack()
        self._conn = None
        await self._release(stack)

    async def list_databases(self) -> list[Database]:
        self._ensure_connected()
        rows = await self._fetch(self._SCHEMA_QUERY)
        return self.visible_databases(str(row["schema_name"]) for row in rows)

    async def list_tables(self, database_name: str) -> list[Table]:
        self._ensure_connected()
        rows = await self._fetch(self._TABLE_QUERY, database_name)
        return [
            Table(
                name=str(row["table_name"]),
                database_name=database_name,
                properties={"table_type": str(row["table_type"])},
            )
            for row in rows
        ]

    async def list_columns(self, database_name: str, table_name: str) -> list[Column]:
        self._ensure_connected()
        rows = await self._fetch(self._COLUMN_QUERY, database_name, table_name)
        pk_rows = await self._fetch(self._PRIMARY_KEY_QUERY, database_name, table_name)
        keys = key_columns(str(row["column_name"]) for row in pk_rows)
        nullable = {str(row["column_name"]): str(row["is_nullable"]).upper() == "YES" for row in rows}
        entries = [(str(row["column_name"]), str(row["data_type"])) for row in rows]
        return build_columns(entries, keys, nullable=lambda name: nullable.get(name, True))

    async def execute_query(self, query_text: str) -> QueryResult:
        self._ensure_connected()
        started = time.perf_counter()
        try:
            statement = await self._conn.prepare(query_text)
            attributes = statement.get_attributes()
            records = await statement.fetch()
            status = statement.get_statusmsg()
        except Exception as exc:
            raise ExecutionError(f"PostgreSQL query failed on '{self._info.name}': {exc}") from exc
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if not attributes:
            return QueryResult(execution_time_ms=elapsed_ms, rows_affected=_rows_from_status(status))
        columns = tuple(Column(name=attr.name, data_type=attr.type.name) for attr in attributes)
        rows = tuple(coerce_row(columns, tuple(record), POSTGRES_TYPE_KINDS) for record in records)
        LOG.info("Query executed: %d rows returned, %d ms", len(rows), elapsed_ms)
        return QueryResult(columns=columns, rows=rows, execution_time_ms=elapsed_ms, rows_affected=-1)

    def _connect_kwargs(self) -> dict[str, object]:
        kwargs: dict[str, object] = {"host": self._info.host or "localhost"}
        kwargs["port"] = self._info.port or DEFAULT_PORT
        if self._info.username:
            kwargs["user"] = self._info.username
        if self._info.password:
            kwargs["password"] = self._info.password
        database = self._info.option("Database")
        if database:
            kwargs["database"] = database
        if self._info.use_tls:
            kwargs["ssl"] = "require"
        timeout = self.timeout_ms
        kwargs["timeout"] = timeout / 1000 if timeout else DEFAULT_CONNECT_TIMEOUT
        return kwargs

    async def _fetch(self, query: str, *args: object) -> list[Any]:
        try:
            return await self._conn.fetch(query, *args)
        except Exception as exc:
            raise ExecutionError(f"Failed to fetch metadata for '{self._info.name}': {exc}") from exc

    async def _release(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as exc:
            LOG.warning("Error while closing PostgreSQL connection '%s': %s", self._info.name, exc)


def _rows_from_status(status: str | None) -> int:
    """Parse the affected-row count from a command tag such as ``INSERT 0 3``."""

    if not status:
        return -1
    tail = status.rsplit(None, 1)[-1]
    if status.split(None, 1)[0].upper() in {"INSERT", "UPDATE", "DELETE", "SELECT", "MERGE", "COPY"} and tail.isdigit():
        return int(tail)
    return -1


__all__ = ["DEFAULT_PORT", "PostgresProvider"]
