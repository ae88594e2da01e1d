"""In-memory provider that serves preset keyspaces for offline exploration."""

from __future__ import annotations

import asyncio
import logging
import random
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Mapping, Sequence

from ..coercion import CQL_TYPE_KINDS, ValueKind, coerce_row, kind_for
from ..models import Column, ConnectionInfo, Database, QueryResult, Table
from .base import ProviderBase, build_columns, key_columns

LOG = logging.getLogger(__name__)

# (column name, CQL type, kind) where kind is partition_key, clustering or regular.
ColumnSpec = tuple[str, str, str]
Catalog = Mapping[str, Mapping[str, Sequence[ColumnSpec]]]


@dataclass(frozen=True, slots=True)
class DemoResult:
    """Canned result set served for an exact query text."""

    columns: tuple[tuple[str, str], ...] = ()
    rows: tuple[tuple[object, ...], ...] = ()


DEMO_CATALOGS: Mapping[str, Catalog] = {
    "demo": {
        "system": {
            "local": (("key", "text", "partition_key"), ("release_version", "text", "regular")),
            "peers": (("peer", "inet", "partition_key"), ("data_center", "text", "regular")),
        },
        "system_auth": {
            "roles": (("role", "text", "partition_key"), ("can_login", "boolean", "regular")),
        },
        "system_schema": {
            "keyspaces": (("keyspace_name", "text", "partition_key"), ("durable_writes", "boolean", "regular")),
        },
        "shop": {
            "accounts": (
                ("id", "uuid", "partition_key"),
                ("email", "text", "regular"),
                ("active", "boolean", "regular"),
                ("created_at", "timestamp", "regular"),
            ),
            "orders": (
                ("account_id", "uuid", "partition_key"),
                ("placed_at", "timestamp", "clustering"),
                ("order_id", "uuid", "clustering"),
                ("total", "decimal", "regular"),
                ("items", "int", "regular"),
            ),
        },
        "metrics": {
            "readings": (
                ("sensor", "text", "partition_key"),
                ("day", "text", "partition_key"),
                ("ts", "timestamp", "clustering"),
                ("value", "double", "regular"),
            ),
        },
    },
}


class DemoProvider(ProviderBase):
    """Provider answering from a preset catalog instead of a live cluster."""

    display_name = "Demo"
    system_prefixes = ("system", "dse")

    def __init__(
        self,
        info: ConnectionInfo,
        *,
        catalog: Catalog | None = None,
        results: Mapping[str, DemoResult] | None = None,
        row_count: int = 5,
    ) -> None:
        super().__init__(info)
        key = info.option("Catalog") or "demo"
        self._catalog: Catalog = catalog if catalog is not None else DEMO_CATALOGS.get(key, {})
        self._results = {text.strip(): result for text, result in (results or {}).items()}
        self._row_count = row_count
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        await self._simulate_latency()
        self._connected = True
        LOG.info("Connected to demo connection '%s'", self._info.name)
        return True

    async def disconnect(self) -> None:
        self._connected = False

    async def list_databases(self) -> list[Database]:
        self._ensure_connected()
        await self._simulate_latency()
        return self.visible_databases(self._catalog)

    async def list_tables(self, database_name: str) -> list[Table]:
        self._ensure_connected()
        await self._simulate_latency()
        tables = self._catalog.get(database_name, {})
        return [Table(name=name, database_name=database_name) for name in tables]

    async def list_columns(self, database_name: str, table_name: str) -> list[Column]:
        self._ensure_connected()
        await self._simulate_latency()
        specs = self._catalog.get(database_name, {}).get(table_name, ())
        keys = key_columns(
            (name for name, _, kind in specs if kind == "partition_key"),
            (name for name, _, kind in specs if kind == "clustering"),
        )
        return build_columns([(name, data_type) for name, data_type, _ in specs], keys)

    async def execute_query(self, query_text: str) -> QueryResult:
        self._ensure_connected()
        started = time.perf_counter()
        await self._simulate_latency()
        canned = self._results.get(query_text.strip()) or self._sample_result()
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if not canned.columns:
            return QueryResult(execution_time_ms=elapsed_ms, rows_affected=-1)
        columns = tuple(Column(name=name, data_type=data_type) for name, data_type in canned.columns)
        rows = tuple(coerce_row(columns, row, CQL_TYPE_KINDS) for row in canned.rows)
        return QueryResult(columns=columns, rows=rows, execution_time_ms=elapsed_ms, rows_affected=-1)

    def _sample_result(self) -> DemoResult:
        for keyspace, tables in self._catalog.items():
            if self.is_system_object(keyspace):
                continue
            for specs in tables.values():
                columns = tuple((name, data_type) for name, data_type, _ in specs)
                rows = tuple(
                    tuple(_sample_value(data_type, idx) for _, data_type in columns)
                    for idx in range(self._row_count)
                )
                return DemoResult(columns=columns, rows=rows)
        return DemoResult()

    async def _simulate_latency(self) -> None:
        latency = self._info.int_option("Latency")
        if latency:
            await asyncio.sleep(latency / 1000)


def _sample_value(data_type: str, idx: int) -> object:
    kind = kind_for(data_type, CQL_TYPE_KINDS)
    if kind is ValueKind.INTEGER:
        return idx + 1
    if kind is ValueKind.FLOAT:
        return round(random.uniform(0, 100), 2)
    if kind is ValueKind.DECIMAL:
        return Decimal(f"{idx + 1}.{random.randint(0, 99):02d}")
    if kind is ValueKind.BOOLEAN:
        return idx % 2 == 0
    if kind is ValueKind.TIMESTAMP:
        return datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(hours=idx)
    if kind is ValueKind.UUID:
        return uuid.uuid4()
    return f"value_{idx}"


__all__ = ["DEMO_CATALOGS", "DemoProvider", "DemoResult"]
