"""Provider contract implemented by every backend."""

from __future__ import annotations

from typing import Callable, ClassVar, Iterable, Protocol, Sequence, runtime_checkable

from ..errors import NotConnectedError
from ..models import Column, ConnectionInfo, Database, QueryResult, Table

INCLUDE_SYSTEM_OBJECTS = "IncludeSystemObjects"
TIMEOUT = "Timeout"


@runtime_checkable
class Provider(Protocol):
    """Capability set every backend exposes to the registry and the explorer."""

    @property
    def info(self) -> ConnectionInfo:
        """Connection parameters this provider was built from."""

    @property
    def is_connected(self) -> bool:
        """True only while the underlying session handle is live."""

    async def connect(self) -> bool:
        """Open the session; failures are logged and reported as False."""

    async def disconnect(self) -> None:
        """Release the session; safe to call repeatedly."""

    async def list_databases(self) -> list[Database]:
        """List databases, hiding system objects unless opted in."""

    async def list_tables(self, database_name: str) -> list[Table]:
        """List tables of one database (empty when unknown)."""

    async def list_columns(self, database_name: str, table_name: str) -> list[Column]:
        """List columns of one table with key and nullability flags."""

    async def execute_query(self, query_text: str) -> QueryResult:
        """Run opaque query text and return coerced rows."""


ProviderFactory = Callable[[ConnectionInfo], Provider]


class ProviderBase:
    """Shared bookkeeping for concrete providers."""

    display_name: ClassVar[str] = "provider"
    system_prefixes: ClassVar[tuple[str, ...]] = ()
    include_system_aliases: ClassVar[tuple[str, ...]] = ()

    def __init__(self, info: ConnectionInfo) -> None:
        self._info = info

    @property
    def info(self) -> ConnectionInfo:
        return self._info

    @property
    def is_connected(self) -> bool:  # pragma: no cover - overridden by every provider
        return False

    @property
    def include_system_objects(self) -> bool:
        keys = (INCLUDE_SYSTEM_OBJECTS, *self.include_system_aliases)
        return any(self._info.flag(key) for key in keys)

    @property
    def timeout_ms(self) -> int | None:
        return self._info.int_option(TIMEOUT)

    def is_system_object(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered.startswith(prefix) for prefix in self.system_prefixes)

    def visible_databases(self, names: Iterable[str]) -> list[Database]:
        """Build Database entries, dropping system objects unless the connection opts in."""

        include_system = self.include_system_objects
        return [
            Database(name=name)
            for name in names
            if include_system or not self.is_system_object(name)
        ]

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise NotConnectedError(f"{self.display_name} connection '{self._info.name}' is not connected.")


def key_columns(*key_sets: Iterable[str]) -> frozenset[str]:
    """Union of independently queried key column sets (partition, clustering, ...)."""

    names: set[str] = set()
    for key_set in key_sets:
        names.update(key_set)
    return frozenset(names)


def build_columns(
    entries: Sequence[tuple[str, str]],
    keys: frozenset[str],
    *,
    nullable: Callable[[str], bool] | None = None,
) -> list[Column]:
    """Key participants are primary and non-nullable; the rest default to nullable."""

    columns: list[Column] = []
    for name, data_type in entries:
        is_key = name in keys
        if is_key:
            is_nullable = False
        elif nullable is not None:
            is_nullable = nullable(name)
        else:
            is_nullable = True
        columns.append(Column(name=name, data_type=data_type, is_primary_key=is_key, is_nullable=is_nullable))
    return columns


__all__ = [
    "INCLUDE_SYSTEM_OBJECTS",
    "Provider",
    "ProviderBase",
    "ProviderFactory",
    "TIMEOUT",
    "build_columns",
    "key_columns",
]
