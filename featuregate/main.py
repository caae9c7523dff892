"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from featuregate.core.config import Settings, get_settings
from featuregate.core.container import Container
from featuregate.core.exceptions import NotFoundError
from featuregate.core.logging import configure_logging
from featuregate.api.routes import router as api_router
from featuregate.api.middleware.logging import LoggingMiddleware
from featuregate.api.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await app.state.container.initialize()
        logger.info(
            "app_started",
            environment=settings.environment,
            backend=settings.evaluator.backend,
            cache_backend=settings.evaluator.cache_backend,
        )

        yield

        await app.state.container.shutdown()
        logger.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.container = Container(settings)

    # RequestIdMiddleware wraps LoggingMiddleware so request logs carry the id
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content={"error": exc.code, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": str(exc) if settings.debug else "An error occurred",
            },
        )

    @app.get("/health")
    async def health_check():
        """Liveness probe; does not touch the configuration backend."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "featuregate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        workers=settings.workers,
    )
