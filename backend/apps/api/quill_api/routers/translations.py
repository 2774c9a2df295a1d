"""
Translations router.

Provides translation service status, per-article status summaries,
regeneration of single translations, and background bulk operations.
"""

from typing import Annotated

from arq.connections import ArqRedis
from fastapi import APIRouter, Depends, HTTPException, status

from quill_core import get_logger
from quill_core.redis_keys import RedisKeys
from quill_core.schemas import (
    ArticleTranslationStatus,
    QueuedTaskResponse,
    RegenerateTranslationResponse,
    TranslateArticlesRequest,
    TranslationServiceStatus,
)
from quill_core.services import TranslationService
from quill_core.services.translation_providers import ProviderError

from ..dependencies import get_redis_pool, get_translation_service

logger = get_logger(__name__)

router = APIRouter()


@router.get("/status")
async def get_translation_service_status(
    translation_service: Annotated[TranslationService, Depends(get_translation_service)],
) -> TranslationServiceStatus:
    """
    Get translation service status.

    Returns:
        Provider mode and translation counts.
    """
    return await translation_service.get_service_status()


@router.get("/status/{identifier}")
async def get_article_translation_status(
    identifier: str,
    translation_service: Annotated[TranslationService, Depends(get_translation_service)],
) -> ArticleTranslationStatus:
    """
    Get an article's translations and their status counts.

    Args:
        identifier: Article ID or slug.
        translation_service: Translation service.

    Returns:
        Translation rows with total/completed/failed/pending counts.

    Raises:
        HTTPException: If article not found.
    """
    try:
        return await translation_service.get_translation_status(identifier)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None


@router.post("/{translation_id}/regenerate")
async def regenerate_translation(
    translation_id: str,
    translation_service: Annotated[TranslationService, Depends(get_translation_service)],
) -> RegenerateTranslationResponse:
    """
    Re-translate one translation, ignoring the cached result.

    Args:
        translation_id: Translation ID.
        translation_service: Translation service.

    Returns:
        The regenerated translation's identifiers.

    Raises:
        HTTPException: If the translation is missing, its article cannot be
            translated, or the provider failed.
    """
    try:
        translation = await translation_service.regenerate_translation(translation_id)
    except ValueError as e:
        if "not found" in str(e):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except ProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from None

    return RegenerateTranslationResponse(
        translation_id=translation.id,
        article_id=translation.article_id,
        language=translation.language,
        message="Translation regenerated",
    )


@router.post("/retry-failed", status_code=status.HTTP_202_ACCEPTED)
async def retry_failed_translations(
    pool: Annotated[ArqRedis, Depends(get_redis_pool)],
    article_id: str | None = None,
) -> QueuedTaskResponse:
    """
    Queue a retry of every failed translation.

    Args:
        pool: Task queue.
        article_id: Restrict to one article. None = all articles.

    Returns:
        Whether the task was queued.
    """
    job = await pool.enqueue_job(RedisKeys.RETRY_FAILED_TRANSLATIONS_TASK, article_id)
    logger.info("Queued retry of failed translations", extra={"article_id": article_id})
    return QueuedTaskResponse(
        task=RedisKeys.RETRY_FAILED_TRANSLATIONS_TASK,
        queued=job is not None,
        message="Failed translations will be retried in the background",
    )


@router.post("/bulk", status_code=status.HTTP_202_ACCEPTED)
async def translate_articles(
    data: TranslateArticlesRequest,
    pool: Annotated[ArqRedis, Depends(get_redis_pool)],
) -> QueuedTaskResponse:
    """
    Queue translation of several articles into one language.

    Args:
        data: Article IDs and target language.
        pool: Task queue.

    Returns:
        Whether the task was queued.
    """
    article_ids = list(dict.fromkeys(data.article_ids))
    job = await pool.enqueue_job(RedisKeys.TRANSLATE_ARTICLES_TASK, article_ids, data.language)
    logger.info(
        "Queued bulk translation",
        extra={"articles": len(article_ids), "language": data.language},
    )
    return QueuedTaskResponse(
        task=RedisKeys.TRANSLATE_ARTICLES_TASK,
        queued=job is not None,
        message=f"{len(article_ids)} article(s) queued for translation to {data.language}",
    )
