"""Shared fixtures: isolate database env keys and build an in-memory app."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from src.config import AppConfig, DatabaseSettings

DATABASE_ENV_KEYS = {
    "db_provider",
    "connectionstrings__database",
    "uri",
    "database-service",
    "database_name",
    "database-name",
    "database-user",
    "database-password",
    "username",
    "password",
}


@pytest.fixture(autouse=True)
def clean_database_env(monkeypatch):
    """Keep the host environment (e.g. USERNAME) out of provider resolution."""
    for key in list(os.environ):
        if key.lower() in DATABASE_ENV_KEYS:
            monkeypatch.delenv(key)


@pytest.fixture
def in_memory_config() -> AppConfig:
    config = AppConfig()
    config.database = DatabaseSettings(DB_PROVIDER="InMemory")
    return config


@pytest.fixture
def client(in_memory_config):
    from src.main import create_app

    app = create_app(in_memory_config)
    with TestClient(app) as c:
        yield c
