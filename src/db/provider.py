"""Database provider resolution: explicit config first, then platform env vars.

Supported platform setups:

* a PostgreSQL database created and linked with odo
  (https://github.com/openshift/odo), which exposes a ``uri`` starting with
  ``postgres://`` plus flat ``database_name`` / ``username`` / ``password`` keys;
* a secret from ``oc new-app postgresql-ephemeral`` augmented with a
  ``database-service`` key naming the service host.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from src.config import DatabaseSettings

logger = logging.getLogger(__name__)

DEFAULT_POSTGRES_PORT = 5432
POSTGRES_URI_SCHEME = "postgres://"

_FIELD_ALIASES = {
    "host": "host",
    "server": "host",
    "port": "port",
    "database": "database",
    "db": "database",
    "username": "username",
    "userid": "username",
    "uid": "username",
    "user": "username",
    "password": "password",
    "pwd": "password",
}

# libpq parameter names
_LIBPQ_OPTIONS = {
    "sslmode": "sslmode",
    "timeout": "connect_timeout",
    "applicationname": "application_name",
}

# Npgsql spellings to libpq ones
_SSL_MODES = {
    "disable": "disable",
    "allow": "allow",
    "prefer": "prefer",
    "require": "require",
    "verifyca": "verify-ca",
    "verifyfull": "verify-full",
}


class ConfigurationError(Exception):
    """Configuration that prevents the application from starting."""


class UnknownProviderError(ConfigurationError):
    def __init__(self, value: object):
        super().__init__(f"Unknown db provider: {value}")
        self.value = value


class DbProvider(str, Enum):
    IN_MEMORY = "InMemory"
    POSTGRESQL = "PostgreSQL"

    @classmethod
    def parse(cls, value: str) -> DbProvider:
        """Parse a configured provider name (ignoring case) or its ordinal."""
        normalized = value.strip().lower()
        if normalized.isdigit():
            members = list(cls)
            if int(normalized) < len(members):
                return members[int(normalized)]
            raise UnknownProviderError(value)
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise UnknownProviderError(value)


@dataclass(frozen=True)
class ConnectionDescriptor:
    host: str | None = None
    port: int = -1
    database: str | None = None
    username: str | None = None
    password: str | None = None
    options: dict[str, str] = field(default_factory=dict)

    def to_connection_string(self) -> str:
        return (
            f"Host={_or_empty(self.host)};Port={self.port};"
            f"Database={_or_empty(self.database)};"
            f"Username={_or_empty(self.username)};"
            f"Password={_or_empty(self.password)}"
        )

    @classmethod
    def parse(cls, connection_string: str) -> ConnectionDescriptor:
        """Parse a ``Key=Value;...`` connection string.

        Keys are matched case-insensitively and ignoring spaces, so the usual
        aliases (``Server``, ``User Id``, ``Uid``, ``Pwd``, ``DB``) work.
        ``SSL Mode``, ``Timeout`` and ``Application Name`` are carried in
        ``options`` as libpq parameters; any other key raises
        ConfigurationError. Empty values become None, a missing or empty port
        becomes -1.
        """
        fields: dict[str, str] = {}
        options: dict[str, str] = {}
        for part in connection_string.split(";"):
            key, sep, value = part.partition("=")
            if not sep:
                continue
            normalized = key.replace(" ", "").lower()
            value = value.strip()
            if normalized in _FIELD_ALIASES:
                fields[_FIELD_ALIASES[normalized]] = value
            elif normalized in _LIBPQ_OPTIONS:
                if value:
                    name = _LIBPQ_OPTIONS[normalized]
                    options[name] = _SSL_MODES.get(value.lower(), value) if name == "sslmode" else value
            else:
                raise ConfigurationError(f"Unsupported connection string key: {key.strip()!r}")

        port_text = fields.get("port", "")
        try:
            port = int(port_text) if port_text else -1
        except ValueError:
            raise ConfigurationError(f"Invalid port in connection string: {port_text!r}") from None

        return cls(
            host=fields.get("host") or None,
            port=port,
            database=fields.get("database") or None,
            username=fields.get("username") or None,
            password=fields.get("password") or None,
            options=options,
        )


@dataclass(frozen=True)
class DatabaseResolution:
    provider: DbProvider
    connection_string: str | None = None

    @property
    def migrate(self) -> bool:
        """Whether schema migrations should run against this database."""
        return self.provider != DbProvider.IN_MEMORY


def _or_empty(value: str | None) -> str:
    return "" if value is None else value


def resolve_database(settings: DatabaseSettings | None = None) -> DatabaseResolution:
    """Determine the database provider and connection string.

    Raises:
        UnknownProviderError: DB_PROVIDER holds a value that is not a known provider.
    """
    if settings is None:
        settings = DatabaseSettings()

    provider = DbProvider.parse(settings.db_provider) if settings.db_provider else None
    connection_string = settings.connection_string

    # Explicit configuration.
    if provider is not None and connection_string is not None:
        logger.debug("Database provider %s configured explicitly", provider.value)
        return DatabaseResolution(provider, connection_string)

    if provider is None:
        uri = settings.uri
        if (uri is not None and uri.startswith(POSTGRES_URI_SCHEME)) or (
            settings.database_service is not None
        ):
            provider = DbProvider.POSTGRESQL
        else:
            provider = DbProvider.IN_MEMORY
        logger.debug("Database provider %s inferred from environment", provider.value)

    if provider == DbProvider.POSTGRESQL:
        if connection_string is None:
            connection_string = _postgres_descriptor(settings).to_connection_string()
        return DatabaseResolution(provider, connection_string)
    if provider == DbProvider.IN_MEMORY:
        return DatabaseResolution(provider, None)
    raise UnknownProviderError(provider)


def _postgres_descriptor(settings: DatabaseSettings) -> ConnectionDescriptor:
    """Build PostgreSQL connection fields from odo or oc environment keys."""
    parsed = _parse_uri(settings.uri)
    if parsed is not None:
        host, port = parsed
        return ConnectionDescriptor(
            host=host,
            port=DEFAULT_POSTGRES_PORT if port is None else port,
            database=settings.database_name,
            username=settings.username,
            password=settings.password,
        )

    if settings.database_service is not None:
        return ConnectionDescriptor(
            host=settings.database_service,
            port=DEFAULT_POSTGRES_PORT,
            database=settings.service_database_name,
            username=settings.service_user,
            password=settings.service_password,
        )

    logger.warning("PostgreSQL selected but no host is configured")
    return ConnectionDescriptor()


def _parse_uri(uri: str | None) -> tuple[str, int | None] | None:
    """Return (host, port) for an absolute URI, or None if it has no host."""
    if not uri:
        return None
    try:
        parts = urlsplit(uri)
        port = parts.port
    except ValueError:
        return None
    if not parts.hostname:
        return None
    return parts.hostname, port
