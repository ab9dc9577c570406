"""Kernel settings built from defaults and ``BRIO_`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

_PREFIX = "brio"
_SEPARATOR = "__"

_DEFAULTS = {
    "server.host": "127.0.0.1",
    "server.port": "9090",
    "telemetry.service_name": "brio-kernel",
    "telemetry.sampling_ratio": "1.0",
}


class ConfigError(Exception):
    """Settings are missing or malformed."""


@dataclass(frozen=True)
class ServerSettings:
    """Where the control plane listens."""

    host: str
    port: int


@dataclass(frozen=True)
class TelemetrySettings:
    """Tracing and metrics settings."""

    service_name: str
    otlp_endpoint: Optional[str] = None
    sampling_ratio: float = 1.0


@dataclass(frozen=True)
class DatabaseSettings:
    """Database connection settings; the URL is kept out of reprs."""

    url: str = field(repr=False)


def _environment_values(environ: Mapping[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    lead = f"{_PREFIX}_"
    for name, value in environ.items():
        lowered = name.lower()
        if not lowered.startswith(lead):
            continue
        key = lowered[len(lead):]
        if key:
            values[".".join(key.split(_SEPARATOR))] = value
    return values


def _required(values: Mapping[str, str], key: str) -> str:
    try:
        return values[key]
    except KeyError:
        raise ConfigError(f"missing configuration value: {key}") from None


def _parse_port(text: str) -> int:
    try:
        port = int(text)
    except ValueError:
        raise ConfigError(f"invalid value for server.port: {text!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"server.port out of range: {port}")
    return port


def _parse_ratio(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise ConfigError(f"invalid value for telemetry.sampling_ratio: {text!r}") from None


@dataclass(frozen=True)
class Settings:
    """All kernel settings."""

    server: ServerSettings
    telemetry: TelemetrySettings
    database: DatabaseSettings

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from defaults overridden by ``BRIO_SECTION__KEY`` variables."""
        source = os.environ if environ is None else environ
        values = {**_DEFAULTS, **_environment_values(source)}
        return cls(
            server=ServerSettings(
                host=_required(values, "server.host"),
                port=_parse_port(_required(values, "server.port")),
            ),
            telemetry=TelemetrySettings(
                service_name=_required(values, "telemetry.service_name"),
                otlp_endpoint=values.get("telemetry.otlp_endpoint"),
                sampling_ratio=_parse_ratio(_required(values, "telemetry.sampling_ratio")),
            ),
            database=DatabaseSettings(url=_required(values, "database.url")),
        )


@dataclass(frozen=True)
class BindAddress:
    """A host and port to bind to."""

    host: str
    port: int

    def to_socket_addr(self) -> str:
        return f"{self.host}:{self.port}"