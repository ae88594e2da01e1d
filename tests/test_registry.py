"""Tests for the connection registry."""

from __future__ import annotations

import threading

import pytest

from datanav.errors import AlreadyExistsError, ExecutionError, InvalidArgumentError, UnsupportedProviderError
from datanav.events import ConnectionAdded, ConnectionRemoved, ConnectionStateChanged
from datanav.models import Column, ConnectionInfo, Database, QueryResult, Table
from datanav.providers import DemoProvider, Provider
from datanav.registry import ConnectionRegistry


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeProvider:
    def __init__(self, info: ConnectionInfo, *, connect_result: bool = True, connect_error: Exception | None = None) -> None:
        self._info = info
        self._connected = False
        self.connect_result = connect_result
        self.connect_error = connect_error
        self.disconnect_calls = 0
        self.queries: list[str] = []

    @property
    def info(self) -> ConnectionInfo:
        return self._info

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = self.connect_result
        return self.connect_result

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False

    async def list_databases(self) -> list[Database]:
        return []

    async def list_tables(self, database_name: str) -> list[Table]:
        return []

    async def list_columns(self, database_name: str, table_name: str) -> list[Column]:
        return []

    async def execute_query(self, query_text: str) -> QueryResult:
        self.queries.append(query_text)
        if query_text == "boom":
            raise ExecutionError("transport failure")
        return QueryResult(columns=(Column(name="n", data_type="int"),), rows=({"n": 1},))


def _registry() -> tuple[ConnectionRegistry, list[_FakeProvider]]:
    registry = ConnectionRegistry(register_defaults=False)
    built: list[_FakeProvider] = []

    def _factory(info: ConnectionInfo) -> _FakeProvider:
        provider = _FakeProvider(info)
        built.append(provider)
        return provider

    registry.register_provider("x", _factory)
    return registry, built


def test_duplicate_connection_name_is_rejected() -> None:
    registry, _ = _registry()

    handle = registry.add_connection(ConnectionInfo(name="c1", provider_type="x"))

    assert handle.name == "c1"
    with pytest.raises(AlreadyExistsError):
        registry.add_connection(ConnectionInfo(name="c1", provider_type="x"))
    assert len(registry.connections()) == 1


def test_add_connection_validates_input() -> None:
    registry, _ = _registry()

    with pytest.raises(InvalidArgumentError):
        registry.add_connection(ConnectionInfo(name="  ", provider_type="x"))
    with pytest.raises(UnsupportedProviderError):
        registry.add_connection(ConnectionInfo(name="c1", provider_type="nope"))
    with pytest.raises(InvalidArgumentError):
        registry.get("")
    assert registry.connections() == ()


def test_provider_types_are_case_insensitive_and_last_registration_wins() -> None:
    registry = ConnectionRegistry(register_defaults=False)
    registry.register_provider("Demo", lambda info: _FakeProvider(info))
    registry.register_provider("demo", DemoProvider)

    connection = registry.add_connection(ConnectionInfo(name="c1", provider_type="DEMO"))

    assert isinstance(connection.provider, DemoProvider)
    assert registry.supported_providers() == ("demo",)
    with pytest.raises(InvalidArgumentError):
        registry.register_provider(" ", DemoProvider)


def test_default_registry_knows_builtin_providers() -> None:
    registry = ConnectionRegistry()

    assert {"cassandra", "scylladb", "postgresql", "demo"} <= set(registry.supported_providers())
    connection = registry.add_connection(ConnectionInfo(name="d", provider_type="demo"))
    assert isinstance(connection.provider, Provider)


def test_concurrent_adds_with_same_name_allow_exactly_one() -> None:
    registry, _ = _registry()
    outcomes: list[str] = []
    barrier = threading.Barrier(8)

    def _add() -> None:
        barrier.wait()
        try:
            registry.add_connection(ConnectionInfo(name="shared", provider_type="x"))
        except AlreadyExistsError:
            outcomes.append("exists")
        else:
            outcomes.append("added")

    threads = [threading.Thread(target=_add) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("added") == 1
    assert outcomes.count("exists") == 7


@pytest.mark.anyio
async def test_lifecycle_emits_events_in_order() -> None:
    registry, built = _registry()
    events: list[object] = []
    unsubscribe = registry.subscribe(events.append)

    registry.add_connection(ConnectionInfo(name="c1", provider_type="x"))
    assert await registry.connect("c1") is True
    assert await registry.disconnect("c1") is True
    assert await registry.remove_connection("c1") is True
    unsubscribe()

    assert events == [
        ConnectionAdded("c1"),
        ConnectionStateChanged("c1", True),
        ConnectionStateChanged("c1", False),
        ConnectionRemoved("c1"),
    ]
    assert built[0].disconnect_calls == 2
    assert registry.get("c1") is None


@pytest.mark.anyio
async def test_unknown_names_report_false() -> None:
    registry, _ = _registry()

    assert await registry.connect("missing") is False
    assert await registry.disconnect("missing") is False
    assert await registry.remove_connection("missing") is False
    assert await registry.connect("") is False
    assert await registry.disconnect("") is False
    assert await registry.remove_connection("") is False


@pytest.mark.anyio
async def test_connect_failure_is_reported_as_false() -> None:
    registry = ConnectionRegistry(register_defaults=False)
    registry.register_provider("x", lambda info: _FakeProvider(info, connect_error=OSError("refused")))
    registry.add_connection(ConnectionInfo(name="c1", provider_type="x"))
    events: list[object] = []
    registry.subscribe(events.append)

    assert await registry.connect("c1") is False
    assert events == [ConnectionStateChanged("c1", False)]


@pytest.mark.anyio
async def test_query_failure_propagates_and_keeps_connection_state() -> None:
    registry, built = _registry()
    registry.add_connection(ConnectionInfo(name="c1", provider_type="x"))
    await registry.connect("c1")

    result = await registry.execute_query("c1", "select")
    with pytest.raises(ExecutionError):
        await registry.execute_query("c1", "boom")

    assert result.rows == ({"n": 1},)
    assert built[0].queries == ["select", "boom"]
    assert registry.get("c1").is_connected is True
    with pytest.raises(InvalidArgumentError):
        await registry.execute_query("missing", "select")


@pytest.mark.anyio
async def test_test_connection_does_not_register_or_raise() -> None:
    registry = ConnectionRegistry(register_defaults=False)
    probes: list[_FakeProvider] = []

    def _factory(info: ConnectionInfo) -> _FakeProvider:
        provider = _FakeProvider(info, connect_error=OSError("refused") if info.name == "bad" else None)
        probes.append(provider)
        return provider

    registry.register_provider("x", _factory)

    assert await registry.test_connection(ConnectionInfo(name="good", provider_type="x")) is True
    assert await registry.test_connection(ConnectionInfo(name="bad", provider_type="x")) is False
    assert await registry.test_connection(ConnectionInfo(name="odd", provider_type="unknown")) is False
    assert registry.connections() == ()
    assert [probe.disconnect_calls for probe in probes] == [1, 1]


@pytest.mark.anyio
async def test_close_disconnects_every_connected_connection() -> None:
    registry, built = _registry()
    registry.add_connection(ConnectionInfo(name="a", provider_type="x"))
    registry.add_connection(ConnectionInfo(name="b", provider_type="x"))
    await registry.connect("a")

    await registry.close()

    assert [provider.is_connected for provider in built] == [False, False]
    assert built[0].disconnect_calls == 1
    assert built[1].disconnect_calls == 0
