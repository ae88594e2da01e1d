"""Tests for the synchronous event emitter."""

from __future__ import annotations

import logging

import pytest

from datanav.events import ConnectionAdded, EventEmitter


def test_emitter_delivers_in_subscription_order_and_unsubscribes() -> None:
    emitter: EventEmitter[ConnectionAdded] = EventEmitter()
    seen: list[str] = []

    first = emitter.subscribe(lambda event: seen.append(f"first:{event.name}"))
    emitter.subscribe(lambda event: seen.append(f"second:{event.name}"))
    emitter.emit(ConnectionAdded("c1"))
    first()
    first()
    emitter.emit(ConnectionAdded("c2"))

    assert seen == ["first:c1", "second:c1", "second:c2"]
    assert len(emitter) == 1


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    emitter: EventEmitter[ConnectionAdded] = EventEmitter()
    seen: list[str] = []

    def _boom(event: ConnectionAdded) -> None:
        raise RuntimeError("listener failed")

    emitter.subscribe(_boom)
    emitter.subscribe(lambda event: seen.append(event.name))

    with caplog.at_level(logging.ERROR):
        emitter.emit(ConnectionAdded("c1"))

    assert seen == ["c1"]
    assert "Event listener failed" in caplog.text
