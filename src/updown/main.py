"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from updown.admin.router import router as admin_router
from updown.config import get_settings
from updown.dependencies import close_clients, init_clients
from updown.health.router import router as health_router
from updown.leaderboard.router import router as leaderboard_router
from updown.middleware import setup_middleware
from updown.redis_client import close_redis, init_redis
from updown.rounds.router import router as rounds_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_redis(settings.redis_url, settings.redis_timeout_seconds)
    await init_clients(settings)

    yield

    await close_clients()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="UpDown Predict API",
        description="Backend API for the five-minute UP/DOWN crypto prediction game",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(rounds_router)
    app.include_router(leaderboard_router)
    app.include_router(admin_router)

    return app


app = create_app()
