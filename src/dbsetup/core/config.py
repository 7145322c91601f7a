"""Configuration management for dbsetup.

The environment is read exactly once per process into an immutable
Settings value which the CLI threads into the client factory and the
export tool.

Precedence order (highest to lowest):
1. Process environment variables
2. Variables from the .env file (loaded by the CLI, never overriding 1)
3. Built-in defaults

Connection parameters for the export tool come either from a single
POSTGRES_URL_WITH_PASSWORD connection string or from the discrete
POSTGRES_HOST / PGPORT / POSTGRES_DATABASE / POSTGRES_USER /
POSTGRES_PASSWORD variables.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, ConfigDict, field_validator

from dbsetup.core.exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

_CLIENT_ENV_VARS: dict[str, str] = {
    "NEXT_PUBLIC_EXAMPLE_MODE": "example_mode",
    "NEXT_PUBLIC_SUPABASE_URL": "supabase_url",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY": "supabase_anon_key",
}

_EXPORT_ENV_VARS: dict[str, str] = {
    "POSTGRES_URL_WITH_PASSWORD": "dsn",  # pragma: allowlist secret
    "POSTGRES_HOST": "host",
    "PGPORT": "port",
    "POSTGRES_DATABASE": "dbname",
    "POSTGRES_USER": "user",
    "POSTGRES_PASSWORD": "password",  # pragma: allowlist secret
}

_MONITORING_ENV_VARS: dict[str, str] = {
    "SENTRY_DSN": "sentry_dsn",
    "SENTRY_ENVIRONMENT": "sentry_environment",
}

# sslmode=require encrypts the session without validating the server
# certificate, which Supabase poolers need out of the box.
_SSLMODE = "require"

MISSING_CREDENTIALS_MESSAGE = (
    "Missing DB credentials. Set POSTGRES_URL_WITH_PASSWORD or POSTGRES_HOST, "
    "POSTGRES_PASSWORD, and optionally PGPORT, POSTGRES_DATABASE, POSTGRES_USER."
)


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Supports postgresql:// and postgres:// schemes with query params."""
    parsed = urlparse(dsn)
    if parsed.scheme not in ("postgresql", "postgres"):
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected 'postgresql' or 'postgres'"
        raise ConfigError(msg)

    result: dict[str, Any] = {}
    if parsed.hostname:
        result["host"] = parsed.hostname
    try:
        port = parsed.port
    except ValueError:
        msg = "Invalid port in connection string"
        raise ConfigError(msg) from None
    if port:
        result["port"] = port
    if parsed.path and parsed.path.strip("/"):
        result["dbname"] = parsed.path.strip("/")
    if parsed.username:
        result["user"] = parsed.username
    if parsed.password:
        result["password"] = parsed.password
    query_params = parse_qs(parsed.query)
    if "sslmode" in query_params:
        result["sslmode"] = query_params["sslmode"][0]
    return result


def _validate_port(v: int) -> int:
    if not (1 <= v <= 65535):
        msg = f"Invalid port: {v}. Must be 1-65535"
        raise ValueError(msg)
    return v


class ClientSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    example_mode: bool = False
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    @property
    def use_mock(self) -> bool:
        """True when the client factory must hand out the example-mode mock."""
        return (
            self.example_mode
            or not self.supabase_url
            or not self.supabase_anon_key
        )


class ExportSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    dsn: str | None = None
    host: str | None = None
    port: int = 5432
    dbname: str = "postgres"
    user: str = "postgres"
    password: str | None = None
    connect_timeout: int = 10
    statement_timeout: float = 30.0

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        return _validate_port(v)


class ConnectionParams(BaseModel):
    """Fully resolved parameters handed to the connection pool."""

    model_config = ConfigDict(frozen=True)

    conninfo: str = ""
    host: str | None = None
    port: int | None = None
    dbname: str | None = None
    user: str | None = None
    password: str | None = None
    sslmode: str = _SSLMODE
    connect_timeout: int = 10

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for psycopg, layered over ``conninfo``."""
        kwargs: dict[str, Any] = {
            "sslmode": self.sslmode,
            "connect_timeout": self.connect_timeout,
            "application_name": "dbsetup",
        }
        for key in ("host", "port", "dbname", "user", "password"):
            value = getattr(self, key)
            if value is not None:
                kwargs[key] = value
        return kwargs

    @property
    def target(self) -> str:
        """Password-free description used in logs and error messages."""
        if self.conninfo:
            parts = parse_dsn(self.conninfo)
            host = parts.get("host", "localhost")
            port = parts.get("port", 5432)
            dbname = parts.get("dbname", "postgres")
        else:
            host, port, dbname = self.host, self.port, self.dbname
        return f"{host}:{port}/{dbname}"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    client: ClientSettings = ClientSettings()
    export: ExportSettings = ExportSettings()
    sentry_dsn: str | None = None
    sentry_environment: str = "local"
    sources: dict[str, str] = {}


def _env_value(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Resolve Settings from the environment.

    Empty variables count as unset so that defaults still apply.
    Raises ConfigError on malformed values.
    """
    if environ is None:
        environ = os.environ

    sources: dict[str, str] = {}

    client: dict[str, Any] = {}
    for env_var, field_name in _CLIENT_ENV_VARS.items():
        value = _env_value(environ, env_var)
        if value is None:
            continue
        if field_name == "example_mode":
            client[field_name] = value.lower() == "true"
        else:
            client[field_name] = value
        sources[f"client.{field_name}"] = f"env: {env_var}"

    export: dict[str, Any] = {}
    for env_var, field_name in _EXPORT_ENV_VARS.items():
        value = _env_value(environ, env_var)
        if value is None:
            continue
        if field_name == "port":
            try:
                export[field_name] = int(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                raise ConfigError(msg) from None
        else:
            export[field_name] = value
        sources[f"export.{field_name}"] = f"env: {env_var}"

    monitoring: dict[str, Any] = {}
    for env_var, field_name in _MONITORING_ENV_VARS.items():
        value = _env_value(environ, env_var)
        if value is not None:
            monitoring[field_name] = value
            sources[field_name] = f"env: {env_var}"

    try:
        return Settings(
            client=ClientSettings(**client),
            export=ExportSettings(**export),
            sources=sources,
            **monitoring,
        )
    except ValueError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigError(msg) from e


def resolve_connection(export: ExportSettings) -> ConnectionParams:
    """Pick the connection form for the export tool.

    The connection string wins when present. Otherwise host and password
    are required; port, database and user fall back to their defaults.
    """
    if export.dsn:
        parse_dsn(export.dsn)
        return ConnectionParams(
            conninfo=export.dsn,
            connect_timeout=export.connect_timeout,
        )

    if not export.host or not export.password:
        raise ConfigError(MISSING_CREDENTIALS_MESSAGE)

    return ConnectionParams(
        host=export.host,
        port=export.port,
        dbname=export.dbname,
        user=export.user,
        password=export.password,
        connect_timeout=export.connect_timeout,
    )
