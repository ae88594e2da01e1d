"""Shared dataclasses describing connections, schema entities and query output."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

_TRUTHY = frozenset({"true", "1", "yes", "on"})


@dataclass(frozen=True, slots=True)
class ConnectionInfo:
    """Identity and dial parameters for one named connection."""

    name: str
    provider_type: str
    host: str = "localhost"
    port: int | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    use_tls: bool = False
    options: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = MappingProxyType({str(key): str(value) for key, value in self.options.items()})
        object.__setattr__(self, "options", frozen)

    def option(self, key: str, default: str | None = None) -> str | None:
        """Look up a provider option, ignoring key case."""

        if key in self.options:
            return self.options[key]
        lowered = key.lower()
        for name, value in self.options.items():
            if name.lower() == lowered:
                return value
        return default

    def flag(self, key: str) -> bool:
        value = self.option(key)
        if value is None:
            return False
        return value.strip().lower() in _TRUTHY

    def int_option(self, key: str) -> int | None:
        """Return a positive integer option, or None when unset or malformed."""

        value = self.option(key)
        if value is None:
            return None
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
        return parsed if parsed > 0 else None


@dataclass(frozen=True, slots=True)
class Database:
    """A database, schema or keyspace reported by a provider."""

    name: str
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Table:
    """A table or collection inside a database."""

    name: str
    database_name: str
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Column:
    """A column of a table or of a query result."""

    name: str
    data_type: str
    is_primary_key: bool = False
    is_nullable: bool = True
    properties: Mapping[str, Any] = field(default_factory=dict)

    @property
    def display_text(self) -> str:
        text = f"{self.name} ({self.data_type})"
        if self.is_primary_key:
            text += " PK"
        if not self.is_nullable:
            text += " NOT NULL"
        return text


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Normalized query output returned to callers."""

    columns: tuple[Column, ...] = ()
    rows: tuple[Mapping[str, object], ...] = ()
    execution_time_ms: int = 0
    rows_affected: int = -1

    @property
    def row_count(self) -> int:
        return len(self.rows)


__all__ = ["Column", "ConnectionInfo", "Database", "QueryResult", "Table"]
