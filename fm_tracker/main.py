"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import stations, system
from .api.errors import ApiError, api_error_handler
from .config import settings
from .database import get_db, init_db
from .logging_utils import configure_logging, disable_centralized_logging, enable_centralized_logging
from .services.seed_data import sample_station_rows
from .services.station_repository import StationRepository

logger = logging.getLogger("fm_tracker")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    configure_logging()
    await init_db()
    app.state.log_manager = await enable_centralized_logging("api")

    if settings.seed_on_startup:
        async with get_db() as session:
            inserted = await StationRepository(session).seed_if_empty(sample_station_rows())
        if inserted:
            logger.info("Seeded %d sample stations", inserted)

    logger.info("%s %s started", settings.app_name, settings.app_version)
    try:
        yield
    finally:
        await disable_centralized_logging(app.state.log_manager)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ApiError, api_error_handler)

app.include_router(stations.router, prefix="/api/stations", tags=["Stations"])
app.include_router(system.router, prefix="/api/system", tags=["System"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


def run() -> None:
    import uvicorn

    uvicorn.run(
        "fm_tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
