"""Contacts: FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

import sentry_sdk
from fastapi import FastAPI

from src.api.health import router as health_router
from src.api.pages import router as pages_router
from src.config import AppConfig
from src.db.connection import init_db
from src.db.provider import DbProvider, resolve_database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfiguration:
    """Settings shown to pages."""

    database_provider: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    yield

    app.state.db.dispose()
    logger.info("Application shutdown complete")


def _init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK if a DSN is configured and not in development."""
    if not dsn or environment == "development":
        return
    sentry_sdk.init(
        dsn,
        environment=environment,
        send_default_pii=False,
        traces_sample_rate=0,
        send_client_reports=False,
        auto_session_tracking=False,
    )


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Raises:
        UnknownProviderError: DB_PROVIDER names a provider we don't support.
    """
    if config is None:
        config = AppConfig.from_yaml()

    _init_sentry(config.sentry_dsn, config.environment)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    resolution = resolve_database(config.database)
    if resolution.provider == DbProvider.POSTGRESQL:
        logger.info("Using PostgreSQL database")
    else:
        logger.info("Using InMemory database")

    app = FastAPI(
        title="Contacts",
        version="1.0.0",
        description="Contacts management",
        lifespan=lifespan,
        debug=config.environment == "development",
    )

    # Initialize database (migrations run only for real databases)
    db = init_db(resolution, migrate=resolution.migrate)
    app.state.config = config
    app.state.db = db
    app.state.app_configuration = AppConfiguration(database_provider=resolution.provider.value)

    # Register routes
    app.include_router(health_router)
    app.include_router(pages_router)

    return app


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    config = AppConfig.from_yaml()
    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
    )


# Default app instance for uvicorn
app = create_app()
