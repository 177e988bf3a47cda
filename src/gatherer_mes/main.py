"""gatherer-mes FastAPI application."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI

from gatherer_mes import __version__
from gatherer_mes.api.v1 import (
    equipment_router,
    equipment_types_router,
    mode_groups_router,
    modes_router,
    state_groups_router,
    states_router,
)
from gatherer_mes.core.config import get_settings
from gatherer_mes.core.logging import configure_logging
from gatherer_mes.db.database import get_database
from gatherer_mes.db.seed import bootstrap_defaults

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_format, settings.log_level)
    logger.info("gatherer_mes_starting", version=settings.app_version)

    db = get_database()

    if settings.create_schema:
        await db.create_tables()
        logger.info("schema_created")

    if settings.seed_defaults:
        async with db.session() as session:
            await bootstrap_defaults(session)

    logger.info("gatherer_mes_started")

    yield

    await db.dispose()
    logger.info("gatherer_mes_stopped")


app = FastAPI(
    title="gatherer-mes",
    description="MES equipment hierarchy and mode/state classification core",
    version=__version__,
    lifespan=lifespan,
)

# Register routers
app.include_router(equipment_types_router)
app.include_router(equipment_router)
app.include_router(mode_groups_router)
app.include_router(modes_router)
app.include_router(state_groups_router)
app.include_router(states_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "gatherer-mes",
        "version": __version__,
        "docs": "/docs",
    }


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_format, settings.log_level)
    uvicorn.run(
        "gatherer_mes.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
