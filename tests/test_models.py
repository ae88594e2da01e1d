"""Tests for the shared data model."""

from __future__ import annotations

import dataclasses

import pytest

from datanav.models import Column, ConnectionInfo, QueryResult


def test_connection_info_options_are_case_insensitive() -> None:
    info = ConnectionInfo(name="c1", provider_type="demo", options={"Timeout": "5000"})

    assert info.option("timeout") == "5000"
    assert info.option("TIMEOUT") == "5000"
    assert info.option("missing", "fallback") == "fallback"


def test_connection_info_options_are_frozen_strings() -> None:
    info = ConnectionInfo(name="c1", provider_type="demo", options={"Latency": 10})  # type: ignore[dict-item]

    assert info.options["Latency"] == "10"
    with pytest.raises(TypeError):
        info.options["Latency"] = "20"  # type: ignore[index]
    with pytest.raises(dataclasses.FrozenInstanceError):
        info.name = "c2"  # type: ignore[misc]


def test_connection_info_flag_and_int_option() -> None:
    info = ConnectionInfo(
        name="c1",
        provider_type="demo",
        options={"IncludeSystemObjects": "Yes", "Timeout": "abc", "Latency": "-5", "Port": "42"},
    )

    assert info.flag("IncludeSystemObjects") is True
    assert info.flag("Other") is False
    assert info.int_option("Timeout") is None
    assert info.int_option("Latency") is None
    assert info.int_option("Port") == 42


def test_connection_info_repr_hides_password() -> None:
    info = ConnectionInfo(name="c1", provider_type="demo", password="hunter2")

    assert "hunter2" not in repr(info)


def test_column_display_text_marks_keys() -> None:
    key = Column(name="id", data_type="uuid", is_primary_key=True, is_nullable=False)
    plain = Column(name="email", data_type="text")

    assert key.display_text == "id (uuid) PK NOT NULL"
    assert plain.display_text == "email (text)"


def test_query_result_defaults() -> None:
    result = QueryResult()

    assert result.row_count == 0
    assert result.rows_affected == -1
    assert result.columns == ()
