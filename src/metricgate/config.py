"""MetricGate configuration management."""

import argparse
import re
from typing import Any, Optional, Sequence

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION = re.compile(r"(?:\d+(?:\.\d+)?(?:ms|s|m|h))+")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(raw: Any) -> Any:
    """Convert "300", "10s", "1m30s" or "500ms" to seconds.

    Non-string values are returned untouched for pydantic to validate.
    """
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass
    text = text.replace(" ", "")
    if not _DURATION.fullmatch(text):
        raise ValueError(f"invalid duration: {raw!r}")
    return sum(float(n) * _DURATION_UNITS[unit] for n, unit in _DURATION_PART.findall(text))


def _env(name: str) -> AliasChoices:
    """Accept both the prefixed and the bare environment variable name."""
    return AliasChoices(f"METRICGATE_{name}", name)


class StoreConfig(BaseModel):
    """In-memory store persistence options."""

    store_file: Optional[str] = Field(
        default=None, description="Snapshot file path; None disables persistence"
    )
    store_interval: float = Field(
        default=300.0, ge=0, description="Seconds between flushes; 0 flushes on every write"
    )
    restore: bool = Field(default=True, description="Load the snapshot on startup")

    @field_validator("store_file")
    @classmethod
    def empty_file_disables(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class _BaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", validation_alias=_env("LOG_LEVEL"))
    key: str = Field(default="", validation_alias=_env("KEY"), description="HMAC signing key")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @staticmethod
    def _split_address(address: str) -> tuple[str, int]:
        host, sep, port = address.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"Address must look like host:port, got {address!r}")
        number = int(port)
        if not 1 <= number <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {number}")
        return host or "0.0.0.0", number


class ServerSettings(_BaseSettings):
    """Collector server settings."""

    address: str = Field(default="localhost:8080", validation_alias=_env("ADDRESS"))
    store_interval: float = Field(
        default=300.0, ge=0, validation_alias=_env("STORE_INTERVAL")
    )
    store_file: str = Field(
        default="/tmp/devops-metrics-db.json", validation_alias=_env("STORE_FILE")
    )
    restore: bool = Field(default=True, validation_alias=_env("RESTORE"))
    database_dsn: str = Field(
        default="",
        validation_alias=_env("DATABASE_DSN"),
        description="SQLAlchemy async URL; empty selects the in-memory store",
    )
    database_timeout: float = Field(
        default=1.0, gt=0, validation_alias=_env("DATABASE_TIMEOUT")
    )

    @field_validator("store_interval", "database_timeout", mode="before")
    @classmethod
    def parse_interval(cls, v: Any) -> Any:
        return parse_duration(v)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        cls._split_address(v)
        return v

    @field_validator("database_dsn")
    @classmethod
    def validate_database_dsn(cls, v: str) -> str:
        if v and "://" not in v:
            raise ValueError("database_dsn must be a SQLAlchemy URL")
        return v

    @property
    def host(self) -> str:
        return self._split_address(self.address)[0]

    @property
    def port(self) -> int:
        return self._split_address(self.address)[1]

    def store_config(self) -> StoreConfig:
        return StoreConfig(
            store_file=self.store_file,
            store_interval=self.store_interval,
            restore=self.restore,
        )


class AgentSettings(_BaseSettings):
    """Agent settings."""

    address: str = Field(default="127.0.0.1:8080", validation_alias=_env("ADDRESS"))
    report_interval: float = Field(
        default=10.0, gt=0, validation_alias=_env("REPORT_INTERVAL")
    )
    poll_interval: float = Field(default=2.0, gt=0, validation_alias=_env("POLL_INTERVAL"))
    request_timeout: float = Field(
        default=5.0, gt=0, validation_alias=_env("REQUEST_TIMEOUT")
    )

    @field_validator("report_interval", "poll_interval", "request_timeout", mode="before")
    @classmethod
    def parse_interval(cls, v: Any) -> Any:
        return parse_duration(v)

    @property
    def base_url(self) -> str:
        if self.address.startswith(("http://", "https://")):
            return self.address.rstrip("/")
        return f"http://{self.address}"


def _parse_flags(parser: argparse.ArgumentParser, argv: Optional[Sequence[str]]) -> dict[str, Any]:
    namespace = parser.parse_args(argv)
    return {k: v for k, v in vars(namespace).items() if v is not None}


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if lowered in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean: {raw!r}")


def load_server_settings(argv: Optional[Sequence[str]] = None) -> ServerSettings:
    """Build server settings; explicit flags override environment values."""
    parser = argparse.ArgumentParser(prog="metricgate-server")
    parser.add_argument("-a", dest="address", help="Listen on address (host:port)")
    parser.add_argument("-i", dest="store_interval", help="Store interval (e.g. 300s)")
    parser.add_argument("-f", dest="store_file", help="Snapshot file")
    parser.add_argument("-r", dest="restore", type=_parse_bool, help="Restore on startup")
    parser.add_argument("-k", dest="key", help="Hash key")
    parser.add_argument("-d", dest="database_dsn", help="Database DSN")
    parser.add_argument("--log-level", dest="log_level", help="Log level")
    return ServerSettings(**_parse_flags(parser, argv))


def load_agent_settings(argv: Optional[Sequence[str]] = None) -> AgentSettings:
    """Build agent settings; explicit flags override environment values."""
    parser = argparse.ArgumentParser(prog="metricgate-agent")
    parser.add_argument("-a", dest="address", help="Server address (host:port)")
    parser.add_argument("-r", dest="report_interval", help="Report interval (e.g. 10s)")
    parser.add_argument("-p", dest="poll_interval", help="Poll interval (e.g. 2s)")
    parser.add_argument("-k", dest="key", help="Hash key")
    parser.add_argument("--log-level", dest="log_level", help="Log level")
    return AgentSettings(**_parse_flags(parser, argv))
