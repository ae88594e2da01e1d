"""Exception taxonomy shared by providers, the registry and the explorer."""

from __future__ import annotations


class DataNavError(Exception):
    """Base class for all errors raised by datanav."""


class InvalidArgumentError(DataNavError, ValueError):
    """Raised when an argument has the wrong shape (e.g. an empty name)."""


class AlreadyExistsError(DataNavError):
    """Raised when a connection name is already registered."""


class UnsupportedProviderError(DataNavError, LookupError):
    """Raised when no factory is registered for a provider type."""


class NotConnectedError(DataNavError, RuntimeError):
    """Raised when an operation needs a live session but the provider is disconnected."""


class ExecutionError(DataNavError, RuntimeError):
    """Raised when the backend rejects or fails a query or metadata call."""


class CoercionError(DataNavError, ValueError):
    """Raised when a single result cell cannot be converted to the value model."""


__all__ = [
    "AlreadyExistsError",
    "CoercionError",
    "DataNavError",
    "ExecutionError",
    "InvalidArgumentError",
    "NotConnectedError",
    "UnsupportedProviderError",
]
