"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from coursecoin.config import get_settings
from coursecoin.database import close_db, init_db
from coursecoin.health.router import router as health_router
from coursecoin.ledger.router import router as ledger_router
from coursecoin.middleware import setup_middleware
from coursecoin.progress.router import router as progress_router
from coursecoin.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="CourseCoin API",
        description="Coin rewards for quizzes and chapters, wallets and the coin ledger",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progress_router)
    app.include_router(ledger_router)

    return app


app = create_app()
