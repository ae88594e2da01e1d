"""Tests for AppConfig loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from datanav import config as config_module
from datanav.config import AppConfig, ConnectionConfig, configure_logging, load_config


def test_defaults_include_demo_connection() -> None:
    config = AppConfig()

    assert [entry.name for entry in config.connections] == ["demo"]
    assert config.refresh_on_connect is True
    assert config.connection_infos()[0].provider_type == "demo"


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == AppConfig()


def test_load_config_reads_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
theme = "nord"
log_level = "debug"
auto_connect = true
refresh_on_connect = false
active_connection = "cluster"

[[connections]]
name = "cluster"
provider = "cassandra"
host = "10.0.0.5"
port = 9042
username = "reader"
password = "secret"

[connections.options]
IncludeSystemKeyspaces = true
Timeout = 5000

[[connections]]
name = "warehouse"
provider = "postgresql"
use_tls = true
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.theme == "nord"
    assert result.log_level == "DEBUG"
    assert result.auto_connect is True
    assert result.refresh_on_connect is False
    assert result.active_connection == "cluster"
    assert [entry.name for entry in result.connections] == ["cluster", "warehouse"]
    info = result.connections[0].to_info()
    assert info.host == "10.0.0.5"
    assert info.options == {"IncludeSystemKeyspaces": "true", "Timeout": "5000"}
    assert info.flag("IncludeSystemKeyspaces") is True
    assert result.connections[1].to_info().use_tls is True


def test_load_config_skips_invalid_connection_entries(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
[[connections]]
name = ""
provider = "demo"

[[connections]]
name = "bad-port"
provider = "demo"
port = 70000

[[connections]]
name = "ok"
provider = "demo"

[[connections]]
name = "ok"
provider = "cassandra"
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert [(entry.name, entry.provider) for entry in result.connections] == [("ok", "demo")]


def test_load_config_handles_toml_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("theme = [unterminated")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result == AppConfig()


def test_load_config_keeps_connections_when_settings_are_invalid(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
log_level = "chatty"

[[connections]]
name = "only"
provider = "demo"
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.log_level == "INFO"
    assert [entry.name for entry in result.connections] == ["only"]


def test_connection_config_validation() -> None:
    with pytest.raises(ValidationError):
        ConnectionConfig(name="   ", provider="demo")
    with pytest.raises(ValidationError):
        ConnectionConfig(name="x", provider="demo", port=0)

    entry = ConnectionConfig(name=" x ", provider="demo", options={"Latency": 5, "Flag": False})

    assert entry.name == "x"
    assert entry.options == {"Latency": "5", "Flag": "false"}
    assert "secret" not in repr(ConnectionConfig(name="x", provider="demo", password="secret"))


def test_configure_logging_writes_to_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "datanav.log"
    root = logging.getLogger()
    previous_level = root.level
    handlers = list(root.handlers)

    try:
        configured = configure_logging(AppConfig(log_file=log_path, log_level="WARNING"))
        logging.getLogger("datanav.test").warning("hello from test")
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in list(root.handlers):
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(previous_level)

    assert configured == log_path
    assert "hello from test" in log_path.read_text()
