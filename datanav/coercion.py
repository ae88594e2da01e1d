"""Conversion of backend-native result values into the uniform scalar model.

Every provider reports a native type name per result column. The name is
mapped to a :class:`ValueKind` through a per-backend table and the raw cell is
converted to one of ``str``, ``int`` (signed 64-bit), ``float``,
``decimal.Decimal``, ``bool``, a UTC ``datetime`` or ``uuid.UUID``. Types with
no dedicated kind are rendered as text.

A conversion failure only affects its own cell: :func:`coerce_row` replaces
the value with an ``"[Error: ...]"`` placeholder and keeps going.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Mapping, Sequence

from .errors import CoercionError
from .models import Column

LOG = logging.getLogger(__name__)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_TRUE_LITERALS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_LITERALS = frozenset({"false", "f", "no", "n", "0"})


class ValueKind(str, Enum):
    """Families of scalar values a cell can be coerced into."""

    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    UUID = "uuid"
    OTHER = "other"


CQL_TYPE_KINDS: Mapping[str, ValueKind] = {
    "ascii": ValueKind.TEXT,
    "text": ValueKind.TEXT,
    "varchar": ValueKind.TEXT,
    "inet": ValueKind.TEXT,
    "tinyint": ValueKind.INTEGER,
    "smallint": ValueKind.INTEGER,
    "int": ValueKind.INTEGER,
    "bigint": ValueKind.INTEGER,
    "counter": ValueKind.INTEGER,
    "varint": ValueKind.INTEGER,
    "float": ValueKind.FLOAT,
    "double": ValueKind.FLOAT,
    "decimal": ValueKind.DECIMAL,
    "boolean": ValueKind.BOOLEAN,
    "timestamp": ValueKind.TIMESTAMP,
    "uuid": ValueKind.UUID,
    "timeuuid": ValueKind.UUID,
}

POSTGRES_TYPE_KINDS: Mapping[str, ValueKind] = {
    "text": ValueKind.TEXT,
    "varchar": ValueKind.TEXT,
    "bpchar": ValueKind.TEXT,
    "char": ValueKind.TEXT,
    "name": ValueKind.TEXT,
    "citext": ValueKind.TEXT,
    "int2": ValueKind.INTEGER,
    "int4": ValueKind.INTEGER,
    "int8": ValueKind.INTEGER,
    "oid": ValueKind.INTEGER,
    "float4": ValueKind.FLOAT,
    "float8": ValueKind.FLOAT,
    "numeric": ValueKind.DECIMAL,
    "money": ValueKind.TEXT,
    "bool": ValueKind.BOOLEAN,
    "timestamp": ValueKind.TIMESTAMP,
    "timestamptz": ValueKind.TIMESTAMP,
    "uuid": ValueKind.UUID,
}


def kind_for(type_name: str, kinds: Mapping[str, ValueKind]) -> ValueKind:
    """Resolve a native type name (case-insensitive) to its value kind."""

    return kinds.get(type_name.strip().lower(), ValueKind.OTHER)


def coerce_value(type_name: str, value: object, kinds: Mapping[str, ValueKind] = CQL_TYPE_KINDS) -> object:
    """Convert one raw cell; raises CoercionError when the value does not fit its type."""

    if value is None:
        return None
    converter = _CONVERTERS[kind_for(type_name, kinds)]
    try:
        return converter(value)
    except CoercionError:
        raise
    except (TypeError, ValueError, ArithmeticError, OverflowError) as exc:
        raise CoercionError(f"cannot read {value!r} as {type_name}: {exc}") from exc


def placeholder(exc: BaseException) -> str:
    return f"[Error: {exc}]"


def coerce_row(
    columns: Sequence[Column],
    values: Sequence[object],
    kinds: Mapping[str, ValueKind] = CQL_TYPE_KINDS,
) -> dict[str, object]:
    """Coerce a positional row into a column-name mapping, isolating cell failures."""

    row: dict[str, object] = {}
    for index, column in enumerate(columns):
        raw = values[index] if index < len(values) else None
        try:
            row[column.name] = coerce_value(column.data_type, raw, kinds)
        except CoercionError as exc:
            LOG.debug("Could not coerce column %s: %s", column.name, exc)
            row[column.name] = placeholder(exc)
    return row


def _to_text(value: object) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def _to_integer(value: object) -> int:
    if isinstance(value, bool):
        result = int(value)
    elif isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise CoercionError(f"{value!r} is not a whole number")
        result = int(value)
    elif isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise CoercionError(f"{value!r} is not a whole number")
        result = int(value)
    else:
        result = int(str(value).strip())
    if not INT64_MIN <= result <= INT64_MAX:
        raise CoercionError(f"{result} does not fit in a signed 64-bit integer")
    return result


def _to_float(value: object) -> float:
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    return float(str(value).strip())


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise CoercionError(f"{value!r} is not a decimal number") from exc


def _to_boolean(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    literal = str(value).strip().lower()
    if literal in _TRUE_LITERALS:
        return True
    if literal in _FALSE_LITERALS:
        return False
    raise CoercionError(f"{value!r} is not a boolean")


def _to_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value).strip())
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _to_uuid(value: object) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, (bytes, bytearray)):
        return uuid.UUID(bytes=bytes(value))
    return uuid.UUID(str(value).strip())


def _to_other(value: object) -> object:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (str, int, float, bool, Decimal, datetime, uuid.UUID)):
        return value
    return str(value)


_CONVERTERS: Mapping[ValueKind, Callable[[object], object]] = {
    ValueKind.TEXT: _to_text,
    ValueKind.INTEGER: _to_integer,
    ValueKind.FLOAT: _to_float,
    ValueKind.DECIMAL: _to_decimal,
    ValueKind.BOOLEAN: _to_boolean,
    ValueKind.TIMESTAMP: _to_timestamp,
    ValueKind.UUID: _to_uuid,
    ValueKind.OTHER: _to_other,
}


__all__ = [
    "CQL_TYPE_KINDS",
    "POSTGRES_TYPE_KINDS",
    "ValueKind",
    "coerce_row",
    "coerce_value",
    "kind_for",
    "placeholder",
]
