"""Main FastAPI application for the exam question generation service."""
import asyncio
import logging
from contextlib import suppress
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from examgen.api.routes import generation, health, jobs
from examgen.config import settings
from examgen.db.connection import check_db, close_db_pool
from examgen.dependencies import ServiceContainer, build_container
from examgen.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built services (tests). When omitted, startup connects to
            PostgreSQL and builds the production container.
    """
    configure_logging()

    app = FastAPI(
        title="Examgen AI Service",
        description="Turns uploaded course PDFs into categorized exam questions",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.container = container
    app.state.reaper_task = None

    # Allow all origins in development, only the frontend in production
    allowed_origins = ["*"] if settings.is_development else [settings.FRONTEND_URL]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(generation.router, tags=["Generation"])
    app.include_router(jobs.router, tags=["Jobs"])

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup."""
        if app.state.container is None:
            try:
                app.state.container = await build_container(settings)
                await check_db(app.state.container.pool)
                logger.info("Database connection validated")
            except Exception as e:
                logger.error(f"Service initialization failed: {e}")
                raise

        config = app.state.container.config
        logger.info(f"Examgen AI Service starting in {config.ENVIRONMENT} mode")
        logger.info(f"LLM provider: {config.LLM_PROVIDER}, dispatch: {config.DISPATCH_MODE}")

        if config.REAPER_ENABLED:
            reaper = app.state.container.reaper
            app.state.reaper_task = asyncio.create_task(
                reaper.run_periodically(config.REAPER_INTERVAL_SECONDS)
            )

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown."""
        task = app.state.reaper_task
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            app.state.reaper_task = None

        container = app.state.container
        if container is not None:
            await close_db_pool(container.pool)

        logger.info("Examgen AI Service shutting down")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "examgen.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
