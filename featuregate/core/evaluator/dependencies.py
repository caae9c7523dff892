"""
FastAPI dependencies for flag evaluation.

Usage:
    from featuregate.core.evaluator.dependencies import Evaluation

    @router.post("/evaluate")
    async def evaluate(environment: str, evaluation: Evaluation):
        result = await evaluation.evaluate(environment, "new-ui", {"key": "user-1"})
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request

from featuregate.core.container import Container

from .backends.database import DatabaseConfigBackend
from .interfaces import ConfigBackend
from .service import EvaluationService
from featuregate.services.config import ConfigService


def get_container(request: Request) -> Container:
    """Get the application's container."""
    return request.app.state.container


async def get_config_backend(
    container: Container = Depends(get_container),
) -> AsyncGenerator[ConfigBackend, None]:
    """
    Get configuration backend based on EVAL_BACKEND.

    - "memory": In-memory (development/testing)
    - "database": SQL, one session per request
    """
    if not container.uses_database:
        yield container.memory_backend
        return

    async with container.session_factory() as session:
        try:
            yield DatabaseConfigBackend(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_evaluation_service(
    backend: ConfigBackend = Depends(get_config_backend),
    container: Container = Depends(get_container),
) -> EvaluationService:
    """Get evaluation service instance."""
    return EvaluationService(backend, cache=container.flag_cache)


async def get_config_service(
    backend: ConfigBackend = Depends(get_config_backend),
    container: Container = Depends(get_container),
) -> ConfigService:
    """Get configuration write service instance."""
    return ConfigService(backend, cache=container.flag_cache, publisher=container.publisher)


# Type alias for cleaner injection
Evaluation = Annotated[EvaluationService, Depends(get_evaluation_service)]
