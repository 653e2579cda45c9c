# myo_host/core/settings.py

import logging
import os
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

import yaml

from .errors import ConfigurationError

DEFAULT_HOST = "172.20.10.6"
DEFAULT_PORT = 1883

_CLIENT_ID: Optional[str] = None


def process_client_id() -> str:
    """Client identifier generated once per process and reused afterwards."""
    global _CLIENT_ID
    if _CLIENT_ID is None:
        _CLIENT_ID = f"myo_host_{uuid.uuid4().hex}"
    return _CLIENT_ID


def _env_bool(key: str, default: bool) -> bool:
    """Read a boolean from environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def validate_port(port: object) -> int:
    """Accept an int or a numeric string in 1..65535."""
    if isinstance(port, bool):
        raise ConfigurationError(f"invalid port: {port!r}")
    if isinstance(port, str):
        text = port.strip()
        if not text.isdigit():
            raise ConfigurationError(f"invalid port: {port!r}")
        port = int(text)
    if not isinstance(port, int):
        raise ConfigurationError(f"invalid port: {port!r}")
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"port out of range (1-65535): {port}")
    return port


def validate_host(host: object) -> str:
    if not isinstance(host, str) or not host.strip():
        raise ConfigurationError(f"invalid host: {host!r}")
    host = host.strip()
    if any(c.isspace() for c in host):
        raise ConfigurationError(f"invalid host: {host!r}")
    return host


@dataclass(frozen=True)
class ConnectionConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    client_id: str = field(default_factory=process_client_id)
    keepalive_s: int = 60
    connect_timeout_s: float = 5.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", validate_host(self.host))
        object.__setattr__(self, "port", validate_port(self.port))

    def with_overrides(self, host: Optional[str] = None, port: Optional[object] = None) -> "ConnectionConfig":
        """Copy with host/port replaced where given. Raises ConfigurationError."""
        return replace(
            self,
            host=self.host if host is None else host,
            port=self.port if port is None else port,
        )


@dataclass
class BrokerSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    keepalive_s: int = 60
    connect_timeout_s: float = 5.0

    def to_connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            host=self.host,
            port=self.port,
            keepalive_s=self.keepalive_s,
            connect_timeout_s=self.connect_timeout_s,
        )


@dataclass
class TelemetrySettings:
    capacity: int = 100
    channels: Tuple[str, ...] = ("voltage0", "voltage1")

    def __post_init__(self) -> None:
        self.channels = tuple(self.channels)
        if len(self.channels) not in (1, 2):
            raise ConfigurationError(
                f"telemetry.channels must name 1 or 2 channels, got {len(self.channels)}"
            )
        if int(self.capacity) <= 0:
            raise ConfigurationError(f"telemetry.capacity must be positive, got {self.capacity}")


@dataclass
class CalibrationSettings:
    repetitions: int = 10
    tick_interval_s: float = 1.0


@dataclass
class LoggingSettings:
    log_dir: str = "logs"
    log_file: str = "myo_host.log"
    level: str = "INFO"
    console: bool = False
    dedup_cooldown_s: float = 0.0

    @property
    def level_no(self) -> int:
        level = logging.getLevelName(self.level.upper())
        if not isinstance(level, int):
            raise ConfigurationError(f"unknown log level: {self.level!r}")
        return level


@dataclass
class HostSettings:
    broker: BrokerSettings
    telemetry: TelemetrySettings
    calibration: CalibrationSettings
    logging: LoggingSettings

    @classmethod
    def default(cls) -> "HostSettings":
        return cls(
            broker=BrokerSettings(),
            telemetry=TelemetrySettings(),
            calibration=CalibrationSettings(),
            logging=LoggingSettings(),
        )

    @classmethod
    def load(cls, profile: str = "default", path: Optional[Path] = None) -> "HostSettings":
        base = Path(__file__).resolve().parent.parent
        cfg_path = path or base / "config" / f"host_profile_{profile}.yaml"

        if not cfg_path.is_file():
            raise ConfigurationError(f"no host profile at {cfg_path}")

        data = yaml.safe_load(cfg_path.read_text()) or {}

        try:
            settings = cls(
                broker=BrokerSettings(**data.get("broker", {})),
                telemetry=TelemetrySettings(**data.get("telemetry", {})),
                calibration=CalibrationSettings(**data.get("calibration", {})),
                logging=LoggingSettings(**data.get("logging", {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"bad key in {cfg_path.name}: {e}") from e

        settings.apply_env()
        return settings

    def apply_env(self) -> None:
        """Environment overrides: MYO_BROKER_HOST, MYO_BROKER_PORT, MYO_LOG_LEVEL, MYO_LOG_CONSOLE."""
        host = os.environ.get("MYO_BROKER_HOST")
        if host:
            self.broker.host = host
        port = os.environ.get("MYO_BROKER_PORT")
        if port:
            self.broker.port = validate_port(port)
        level = os.environ.get("MYO_LOG_LEVEL")
        if level:
            self.logging.level = level
        self.logging.console = _env_bool("MYO_LOG_CONSOLE", self.logging.console)
