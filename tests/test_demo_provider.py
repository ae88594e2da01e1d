"""Tests for the in-memory demo provider."""

from __future__ import annotations

from decimal import Decimal

import pytest

from datanav.errors import NotConnectedError
from datanav.models import ConnectionInfo
from datanav.providers import DemoProvider, DemoResult


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _info(**options: str) -> ConnectionInfo:
    return ConnectionInfo(name="demo", provider_type="demo", options=options)


@pytest.mark.anyio
async def test_demo_provider_lists_catalog() -> None:
    provider = DemoProvider(_info())

    assert provider.is_connected is False
    with pytest.raises(NotConnectedError):
        await provider.list_databases()
    assert await provider.connect() is True

    databases = [db.name for db in await provider.list_databases()]
    tables = [table.name for table in await provider.list_tables("shop")]
    columns = await provider.list_columns("shop", "orders")

    assert databases == ["shop", "metrics"]
    assert tables == ["accounts", "orders"]
    assert [column.name for column in columns if column.is_primary_key] == ["account_id", "placed_at", "order_id"]
    assert all(not column.is_nullable for column in columns if column.is_primary_key)
    assert await provider.list_tables("missing") == []
    assert await provider.list_columns("shop", "missing") == []


@pytest.mark.anyio
async def test_demo_provider_includes_system_keyspaces_on_request() -> None:
    provider = DemoProvider(_info(IncludeSystemObjects="true"))
    await provider.connect()

    databases = [db.name for db in await provider.list_databases()]

    assert databases[:3] == ["system", "system_auth", "system_schema"]


@pytest.mark.anyio
async def test_demo_provider_serves_canned_results() -> None:
    results = {
        "SELECT total FROM shop.orders": DemoResult(
            columns=(("total", "decimal"),),
            rows=(("12.50",), ("bad",)),
        ),
        "TRUNCATE shop.orders": DemoResult(),
    }
    provider = DemoProvider(_info(), results=results)
    await provider.connect()

    result = await provider.execute_query("  SELECT total FROM shop.orders  ")
    empty = await provider.execute_query("TRUNCATE shop.orders")

    assert result.rows[0] == {"total": Decimal("12.50")}
    assert str(result.rows[1]["total"]).startswith("[Error:")
    assert empty.columns == ()
    assert empty.rows_affected == -1


@pytest.mark.anyio
async def test_demo_provider_samples_first_user_table() -> None:
    provider = DemoProvider(_info(), row_count=3)
    await provider.connect()

    result = await provider.execute_query("SELECT * FROM anything")

    assert [column.name for column in result.columns] == ["id", "email", "active", "created_at"]
    assert result.row_count == 3
    assert result.rows[1]["email"] == "value_1"
    assert result.rows[1]["active"] is False


@pytest.mark.anyio
async def test_demo_provider_disconnect() -> None:
    provider = DemoProvider(_info(Latency="1"))
    await provider.connect()

    await provider.disconnect()

    assert provider.is_connected is False
    with pytest.raises(NotConnectedError):
        await provider.execute_query("SELECT 1")
