"""
FastAPI dependencies.

Provides dependency injection for database sessions, the task queue, and services.
"""

from typing import Annotated

from arq.connections import ArqRedis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quill_core.services import ArticleService, TranslationService
from quill_database.session import get_session

# Global Redis connection pool for the task queue, set by the app lifespan
redis_pool: ArqRedis | None = None


async def get_redis_pool() -> ArqRedis:
    """
    Get the global Redis connection pool for arq.

    Returns:
        ArqRedis connection pool.

    Raises:
        RuntimeError: If Redis pool not initialized.
    """
    if redis_pool is None:
        raise RuntimeError("Redis pool not initialized")
    return redis_pool


# Service dependencies
def get_article_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    pool: Annotated[ArqRedis, Depends(get_redis_pool)],
) -> ArticleService:
    """Get article service instance."""
    return ArticleService(session, pool)


def get_translation_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TranslationService:
    """Get translation service instance."""
    return TranslationService(session)
