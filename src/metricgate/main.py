"""MetricGate collector server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from metricgate import __version__
from metricgate.api import router
from metricgate.config import ServerSettings, load_server_settings
from metricgate.middleware import access_log_middleware
from metricgate.observability import configure_logging
from metricgate.repository import InMemoryStore, Repository, SqlRepository

logger = logging.getLogger("metricgate")


async def build_repository(settings: ServerSettings) -> Repository:
    """Open the configured backend: SQL when a DSN is set, memory otherwise.

    Raises:
        PersistenceError: if the in-memory snapshot cannot be restored
    """
    if settings.database_dsn:
        logger.info("Using SQL repository")
        return await SqlRepository.open(
            settings.database_dsn,
            restore=settings.restore,
            timeout=settings.database_timeout,
        )

    config = settings.store_config()
    logger.info(
        f"Using in-memory repository (store_file={config.store_file!r}, "
        f"store_interval={config.store_interval}s, restore={config.restore})"
    )
    return await InMemoryStore.open(config)


def create_app(
    settings: Optional[ServerSettings] = None,
    repository: Optional[Repository] = None,
) -> FastAPI:
    """Build the application.

    A repository passed in is used as-is and left open on shutdown;
    otherwise the lifespan builds one from ``settings`` and closes it,
    which writes the final snapshot.
    """
    settings = settings or ServerSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting MetricGate server...")
        owned = repository is None
        repo = repository or await build_repository(settings)
        app.state.repository = repo

        yield

        logger.info("Shutting down MetricGate server...")
        if owned:
            await repo.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="MetricGate",
        description="Metrics collector server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.hash_key = settings.key
    if repository is not None:
        app.state.repository = repository

    app.middleware("http")(access_log_middleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.include_router(router)
    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the collector server."""
    settings = load_server_settings(argv)
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
