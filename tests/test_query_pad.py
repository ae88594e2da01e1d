"""Tests for the query pad's run flow outside a running app."""

from __future__ import annotations

import pytest

from datanav.models import ConnectionInfo
from datanav.registry import ConnectionRegistry
from datanav.widgets import QueryPad


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _pad(active: str | None = "demo") -> tuple[ConnectionRegistry, QueryPad]:
    registry = ConnectionRegistry()
    registry.add_connection(ConnectionInfo(name="demo", provider_type="demo"))
    return registry, QueryPad(registry, connection_name=lambda: active)


@pytest.mark.anyio
async def test_run_query_reports_rows_on_active_connection() -> None:
    registry, pad = _pad()
    await registry.connect("demo")

    result = await pad.run_query("SELECT * FROM shop.accounts")

    assert result is not None and result.row_count > 0
    assert pad.last_result is result
    level, text = pad.status
    assert level == "ok"
    assert text.startswith(f"{result.row_count} rows in ")


@pytest.mark.anyio
async def test_run_query_warns_without_text_or_connection() -> None:
    _, pad = _pad(active=None)

    assert await pad.run_query("   ") is None
    assert pad.status == ("warning", "Nothing to run.")
    assert await pad.run_query("SELECT 1") is None
    assert pad.status == ("warning", "No active connection.")


@pytest.mark.anyio
async def test_run_query_shows_provider_errors() -> None:
    _, pad = _pad()

    assert await pad.run_query("SELECT 1") is None
    level, _ = pad.status
    assert level == "error"
    assert pad.last_result is None
