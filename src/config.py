"""Application configuration: env vars, YAML files, defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


def _repo_root() -> Path:
    """Find the repository root (directory containing pyproject.toml)."""
    current = Path(__file__).resolve().parent.parent
    if (current / "pyproject.toml").exists():
        return current
    return Path.cwd()


REPO_ROOT = _repo_root()


class DatabaseSettings(BaseSettings):
    """Raw database keys as platforms expose them.

    No prefix: these names are dictated by whoever provisions the database
    (odo links, `oc new-app postgresql-ephemeral` secrets, or an explicit
    `DB_PROVIDER` + `ConnectionStrings__Database` pair).
    """

    db_provider: str | None = Field(default=None, validation_alias="DB_PROVIDER")
    connection_string: str | None = Field(
        default=None, validation_alias="ConnectionStrings__Database"
    )

    # odo
    uri: str | None = Field(default=None, validation_alias="uri")
    database_name: str | None = Field(default=None, validation_alias="database_name")
    username: str | None = Field(default=None, validation_alias="username")
    password: str | None = Field(default=None, validation_alias="password")

    # oc new-app postgresql-ephemeral (+ database-service)
    database_service: str | None = Field(default=None, validation_alias="database-service")
    service_database_name: str | None = Field(default=None, validation_alias="database-name")
    service_user: str | None = Field(default=None, validation_alias="database-user")
    service_password: str | None = Field(default=None, validation_alias="database-password")

    model_config = {"env_prefix": "", "populate_by_name": True, "extra": "ignore"}


class ServerConfig(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"

    model_config = {"env_prefix": "CONTACTS_SERVER_"}


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    # Environment & Sentry
    environment: str = "development"
    sentry_dsn: str = ""

    model_config = {"env_prefix": "CONTACTS_"}

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> AppConfig:
        """Load config from YAML file; env vars fill in whatever the file leaves out."""
        if path is None:
            path = REPO_ROOT / "config" / "app.yml"

        values: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                values = yaml.safe_load(f) or {}

        return cls(**values)
