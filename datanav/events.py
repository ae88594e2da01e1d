"""Immutable notifications and the subscribe/emit helper that delivers them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

LOG = logging.getLogger(__name__)

NodePath = tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ConnectionAdded:
    name: str


@dataclass(frozen=True, slots=True)
class ConnectionRemoved:
    name: str


@dataclass(frozen=True, slots=True)
class ConnectionStateChanged:
    """Emitted after every connect/disconnect, successful or not."""

    name: str
    is_connected: bool


@dataclass(frozen=True, slots=True)
class ChildrenReplaced:
    """A node's child collection was swapped (the empty path is the server list)."""

    path: NodePath


@dataclass(frozen=True, slots=True)
class RefreshStateChanged:
    path: NodePath
    is_refreshing: bool


RegistryEvent = ConnectionAdded | ConnectionRemoved | ConnectionStateChanged
ExplorerEvent = ChildrenReplaced | RefreshStateChanged

E = TypeVar("E")


class EventEmitter(Generic[E]):
    """Synchronous fan-out of events to subscribed callbacks, in subscription order."""

    def __init__(self) -> None:
        self._listeners: list[Callable[[E], None]] = []

    def subscribe(self, listener: Callable[[E], None]) -> Callable[[], None]:
        """Subscribe to events; returns an unsubscribe handle."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def emit(self, event: E) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception:
                LOG.exception("Event listener failed", extra={"event": repr(event)})

    def __len__(self) -> int:
        return len(self._listeners)


__all__ = [
    "ChildrenReplaced",
    "ConnectionAdded",
    "ConnectionRemoved",
    "ConnectionStateChanged",
    "EventEmitter",
    "ExplorerEvent",
    "NodePath",
    "RefreshStateChanged",
    "RegistryEvent",
]
