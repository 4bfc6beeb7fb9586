"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from truthlens import __version__
from truthlens.api.core.config import get_settings
from truthlens.api.core.database import get_database_manager, init_database_manager
from truthlens.api.core.logging import setup_logging
from truthlens.api.routers import events_router, recovery_router
from truthlens.shared.database import DatabaseManager

logger = logging.getLogger(__name__)

_start_time: float = 0.0
_db_retry_task: asyncio.Task | None = None


async def _db_retry_loop(db_manager: DatabaseManager) -> None:
    """Keep retrying the DB connection after a startup failure."""
    delay = 5
    max_delay = 60
    while True:
        await asyncio.sleep(delay)
        if db_manager.is_connected:
            return
        try:
            await db_manager.connect()
            logger.info("Database connected (background retry)")
            return
        except asyncio.CancelledError:
            return
        except Exception as e:
            delay = min(delay * 2, max_delay)
            logger.warning(
                f"DB background retry failed: {type(e).__name__}: {e}, next retry in {delay}s"
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time, _db_retry_task
    _start_time = time.time()

    settings = get_settings()
    logger.info("Starting TruthLens API server")
    logger.info(f"Environment: {settings.environment}")

    # Requests arriving before the pool is up get 503 / config-error results
    db_manager = init_database_manager(settings.database_url, ssl=settings.database_ssl)
    try:
        await asyncio.wait_for(db_manager.connect(), timeout=30)
        logger.info("Database connected")
    except TimeoutError:
        logger.warning("DB connection timed out during startup, retrying in background")
        _db_retry_task = asyncio.create_task(_db_retry_loop(db_manager))
    except Exception as e:
        logger.error(
            f"DB connection failed during startup: {type(e).__name__}: {e}, retrying in background"
        )
        _db_retry_task = asyncio.create_task(_db_retry_loop(db_manager))

    yield

    logger.info("Shutting down TruthLens API server")
    if _db_retry_task:
        _db_retry_task.cancel()
    await db_manager.disconnect()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()

    setup_logging(settings)

    app = FastAPI(
        title="TruthLens API",
        description="Event schedule and admin recovery endpoints for TruthLens",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(events_router.router)
    app.include_router(recovery_router.router)

    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": "truthlens-api", "status": "running"}

    # Liveness probe, no external dependency
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - _start_time),
        }

    @app.get("/status")
    async def status():
        """Readiness / status endpoint, includes a DB round trip"""
        try:
            db_ok = await get_database_manager().check_health()
        except RuntimeError:
            db_ok = False
        return {
            "service": "truthlens-api",
            "version": __version__,
            "uptime_seconds": int(time.time() - _start_time),
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    logger.info("FastAPI application configured")

    return app
