"""Main FastAPI application for the IMS forecast service."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import os

import redis.asyncio as redis
import uvicorn
import traceback
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from fastapi_cache import FastAPICache
from fastapi_cache.backends.redis import RedisBackend

from ims_forecast.api.endpoints import router as stations_router
from ims_forecast.api.feeds import admin_router, router as feeds_router
from ims_forecast.config import (
    HOST, PORT, DEBUG, REDIS_URL, CACHE_PREFIX, IMS_API_TOKEN,
    FEED_REFRESH_INTERVAL_HOURS, FEED_REFRESH_ON_STARTUP
)
from ims_forecast.logging_config import configure_logging
from ims_forecast.services import build_services, close_services

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    services = None
    refresh_task: Optional[asyncio.Task] = None
    redis_client = None
    try:
        logger.info(f"Connecting to Redis at {REDIS_URL}")
        redis_client = redis.from_url(REDIS_URL)
        FastAPICache.init(RedisBackend(redis_client), prefix=CACHE_PREFIX)
        logger.info("Response cache initialized with Redis backend")

        if not IMS_API_TOKEN:
            logger.error("IMS_API_TOKEN is not set, station requests will be rejected upstream")

        services = await build_services(redis_client)
        app.state.services = services

        refresh_task = asyncio.create_task(
            services.feed_manager.refresh_periodically(
                FEED_REFRESH_INTERVAL_HOURS, initial_refresh=FEED_REFRESH_ON_STARTUP
            )
        )
        logger.info(f"Feed refresh scheduled every {FEED_REFRESH_INTERVAL_HOURS}h")

        logger.info("Starting IMS Forecast Service")
        yield
    except Exception as e:
        logger.error(f"Startup error: {e}")
        logger.error(traceback.format_exc())
        raise
    finally:
        try:
            logger.info("Shutting down IMS Forecast Service")
            if refresh_task is not None:
                refresh_task.cancel()
                try:
                    await refresh_task
                except asyncio.CancelledError:
                    pass
            if services is not None:
                await close_services(services)
            if redis_client is not None:
                await redis_client.aclose()
        except Exception as e:
            logger.error(f"Shutdown error: {e}")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="IMS Forecast Service",
        description="Station observations and forecasts from the Israel Meteorological Service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(stations_router)
    app.include_router(feeds_router)
    app.include_router(admin_router)

    static_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")
    app.mount("/static", StaticFiles(directory=static_path), name="static")

    # Serve the web interface
    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint serving the web interface."""
        return FileResponse(os.path.join(static_path, "index.html"))

    @app.get("/api", tags=["root"])
    async def api_info() -> dict:
        """API information endpoint.

        Returns:
            Basic service information
        """
        return {
            "message": "IMS Forecast Service",
            "docs": "/docs",
            "redoc": "/redoc",
            "stations": "/api/stations",
            "forecast": "/api/forecast?stationId={id}&period=short|medium|long",
            "health": "/api/health"
        }

    return app


# Create app instance for uvicorn
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    logger.info(f"Starting server on {HOST}:{PORT}")
    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        reload=DEBUG,
        log_level="info" if not DEBUG else "debug"
    )


if __name__ == "__main__":
    main()
