"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text

from storytime.api.dependencies import get_together_client
from storytime.api.errors import register_exception_handlers
from storytime.api.v1.router import router as api_router
from storytime.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Storytime API...")
    logger.info(f"Environment: {settings.environment}")
    if not settings.together_api_key:
        logger.critical("TOGETHER_API_KEY is not set; story generation will return 500")

    yield

    # Shutdown: release provider HTTP sessions
    await get_together_client().close()
    logger.info("Shutting down Storytime API...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    docs_kwargs = {}
    if settings.is_production:
        docs_kwargs = {"docs_url": None, "redoc_url": None, "openapi_url": None}

    app = FastAPI(
        title="Storytime",
        description="Children's story generation backend for the Storytime mobile app",
        version="0.1.0",
        lifespan=lifespan,
        **docs_kwargs,
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Lightweight health check with DB connectivity test."""
        from storytime.infrastructure.database import async_session_factory

        try:
            async with async_session_factory() as session:
                await session.execute(text("SELECT 1"))
            return JSONResponse({"status": "healthy", "database": "connected"})
        except Exception:
            return JSONResponse(
                {"status": "unhealthy", "database": "disconnected"},
                status_code=503,
            )

    return app


# Create app instance
app = create_app()
