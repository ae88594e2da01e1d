"""App configuration loading helpers."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import ConnectionInfo

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "datanav" / "config.toml"
DEFAULT_LOG_FILE = Path.home() / ".cache" / "datanav" / "datanav.log"


class ConnectionConfig(BaseModel):
    """Connection entry declared in config.toml."""

    name: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    host: str = "localhost"
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    use_tls: bool = False
    options: dict[str, str] = Field(default_factory=dict)

    @field_validator("name", "provider")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(key): _option_text(item) for key, item in value.items()}
        return value

    def to_info(self) -> ConnectionInfo:
        return ConnectionInfo(
            name=self.name,
            provider_type=self.provider,
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            options=self.options,
        )


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "textual-dark"
    log_level: str = "INFO"
    log_file: Path | None = None
    refresh_on_connect: bool = True
    auto_connect: bool = False
    active_connection: str | None = None
    connections: list[ConnectionConfig] = Field(default_factory=lambda: list(_default_connections()))

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level

    def connection_infos(self) -> list[ConnectionInfo]:
        return [entry.to_info() for entry in self.connections]

    def connection(self, name: str) -> ConnectionConfig | None:
        for entry in self.connections:
            if entry.name == name:
                return entry
        return None


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        with CONFIG_FILE.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError) as exc:
        LOG.warning("Ignoring unreadable config file %s: %s", CONFIG_FILE, exc)
        return AppConfig()

    data: dict[str, object] = {}
    for key in ("theme", "log_level", "log_file", "refresh_on_connect", "auto_connect", "active_connection"):
        if key in raw:
            data[key] = raw[key]

    entries = raw.get("connections")
    if isinstance(entries, list):
        connections = _parse_connections(entries)
        if connections:
            data["connections"] = connections

    try:
        return AppConfig(**data)
    except ValidationError as exc:
        LOG.warning("Invalid settings in %s; using defaults: %s", CONFIG_FILE, exc)
        connections = data.get("connections")
        return AppConfig(connections=connections) if connections else AppConfig()


def configure_logging(config: AppConfig) -> Path:
    """Send log records to a file; the terminal belongs to the TUI."""

    path = config.log_file or DEFAULT_LOG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, logging.FileHandler) and Path(existing.baseFilename) == path.resolve():
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)
    root.setLevel(config.log_level)
    return path


def _parse_connections(entries: list[object]) -> list[ConnectionConfig]:
    connections: list[ConnectionConfig] = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            connection = ConnectionConfig(**entry)
        except ValidationError as exc:
            LOG.warning("Skipping invalid connection entry %r: %s", entry.get("name"), exc)
            continue
        if connection.name in seen:
            LOG.warning("Skipping duplicate connection entry %r", connection.name)
            continue
        seen.add(connection.name)
        connections.append(connection)
    return connections


def _option_text(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _default_connections() -> tuple[ConnectionConfig, ...]:
    """Connections shown on first run before config is customized."""

    return (ConnectionConfig(name="demo", provider="demo", options={"Latency": "150"}),)


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ConnectionConfig",
    "configure_logging",
    "load_config",
]
