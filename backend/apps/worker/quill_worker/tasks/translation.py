"""Translation worker tasks.

Runs the batched translation pipeline for an article's worklist,
schedules the deferred retry of failed languages, and performs bulk
translation, bulk retries and retention cleanup.
"""

from contextlib import AbstractAsyncContextManager
from datetime import timedelta
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from quill_core import get_logger
from quill_core.config import translation_settings
from quill_core.redis_keys import RedisKeys
from quill_core.services.translation_pipeline import TranslationPipeline
from quill_core.services.translation_providers import TranslationProvider
from quill_core.services.translation_service import TranslationService
from quill_database.session import get_session_context, get_session_factory

logger = get_logger(__name__)


def _session_factory(ctx: dict[str, Any]) -> Any:
    return ctx.get("session_factory") or get_session_factory()


def _session(ctx: dict[str, Any]) -> AbstractAsyncContextManager[AsyncSession]:
    factory = ctx.get("session_factory")
    if factory is not None:
        return factory()
    return get_session_context()


def _provider(ctx: dict[str, Any]) -> TranslationProvider | None:
    return ctx.get("translation_provider")


async def _schedule_retry(ctx: dict[str, Any], article_id: str, languages: list[str]) -> bool:
    """
    Queue one deferred retry of the languages this run failed.

    The retry job id is derived from the current run's job id, so every
    run gets its own retry and a redelivered run does not queue a second.

    Returns:
        Whether a retry job was queued.
    """
    redis = ctx.get("redis")
    if redis is None:
        logger.warning(
            "No task queue in worker context, retry not scheduled",
            extra={"article_id": article_id, "languages": languages},
        )
        return False

    run_id = ctx.get("job_id") or uuid4().hex
    delay = timedelta(seconds=translation_settings.translation_retry_delay_seconds)
    job = await redis.enqueue_job(
        RedisKeys.RETRY_TRANSLATIONS_TASK,
        article_id,
        languages,
        _job_id=RedisKeys.translation_retry_job(article_id, run_id),
        _defer_by=delay,
    )
    if job is None:
        logger.warning(
            "Translation retry already queued for this run",
            extra={"article_id": article_id, "languages": languages, "run_id": run_id},
        )
        return False

    logger.info(
        "Scheduled translation retry",
        extra={
            "article_id": article_id,
            "languages": languages,
            "delay_seconds": delay.total_seconds(),
        },
    )
    return True


async def process_article_translations_task(
    ctx: dict[str, Any],
    article_id: str,
    languages: list[str],
    force: bool = False,
    is_retry: bool = False,
) -> dict[str, Any]:
    """
    Translate an article into a worklist of languages.

    Args:
        ctx: Worker context.
        article_id: Article UUID.
        languages: Language codes, processed in batches in this order.
        force: Re-translate even if recent translations exist.
        is_retry: Whether this run is the deferred retry of a previous run.

    Returns:
        Result dictionary with status and counts.
    """
    logger.info(
        "Starting translation task",
        extra={"article_id": article_id, "languages": languages, "is_retry": is_retry},
    )

    pipeline = TranslationPipeline(_session_factory(ctx), _provider(ctx))
    try:
        summary = await pipeline.process_translations(article_id, languages, force=force)
    except ValueError as e:
        logger.error("Translation task aborted", extra={"article_id": article_id, "error": str(e)})
        return {"status": "error", "article_id": article_id, "message": str(e)}

    retry_scheduled = False
    failed_languages = summary.failed_languages
    if failed_languages and not is_retry:
        retry_scheduled = await _schedule_retry(ctx, article_id, failed_languages)

    return {
        "status": "success",
        "article_id": article_id,
        "successful": summary.successful,
        "failed": summary.failed,
        "skipped": summary.skipped,
        "failed_languages": failed_languages,
        "retry_scheduled": retry_scheduled,
    }


async def retry_article_translations_task(
    ctx: dict[str, Any],
    article_id: str,
    languages: list[str],
) -> dict[str, Any]:
    """Deferred retry of the languages that failed; never schedules another."""
    return await process_article_translations_task(ctx, article_id, languages, is_retry=True)


async def retry_failed_translations_task(
    ctx: dict[str, Any],
    article_id: str | None = None,
) -> dict[str, Any]:
    """
    Force a new attempt for every failed translation.

    Args:
        ctx: Worker context.
        article_id: Restrict to one article. None = all articles.

    Returns:
        Result dictionary with per-translation outcomes.
    """
    async with _session(ctx) as session:
        service = TranslationService(session, _provider(ctx))
        results = await service.retry_failed_translations(article_id)

        for retried_article_id in {r["article_id"] for r in results if r["success"]}:
            await service.update_available_languages(retried_article_id)

    succeeded = sum(1 for r in results if r["success"])
    logger.info(
        "Retried failed translations",
        extra={"article_id": article_id, "retried": len(results), "succeeded": succeeded},
    )
    return {
        "status": "success",
        "retried": len(results),
        "succeeded": succeeded,
        "results": results,
    }


async def translate_articles_task(
    ctx: dict[str, Any],
    article_ids: list[str],
    language: str,
) -> dict[str, Any]:
    """
    Translate several articles into one language, one after another.

    Args:
        ctx: Worker context.
        article_ids: Article UUIDs, processed in order.
        language: Target language code.

    Returns:
        Result dictionary with per-article outcomes.
    """
    async with _session(ctx) as session:
        service = TranslationService(session, _provider(ctx))
        results = await service.translate_multiple_articles(article_ids, language)

        translated = dict.fromkeys(r["article_id"] for r in results if r["success"])
        for translated_article_id in translated:
            await service.update_available_languages(translated_article_id)

    succeeded = sum(1 for r in results if r["success"])
    logger.info(
        "Translated articles",
        extra={"language": language, "articles": len(results), "succeeded": succeeded},
    )
    return {
        "status": "success",
        "language": language,
        "translated": succeeded,
        "failed": len(results) - succeeded,
        "results": results,
    }


async def cleanup_translation_jobs_task(
    ctx: dict[str, Any],
    days: int | None = None,
) -> dict[str, Any]:
    """Delete finished translation jobs past the retention window."""
    async with _session(ctx) as session:
        result = await TranslationService(session).cleanup_old_jobs(days)

    logger.info("Cleaned up translation jobs", extra=result.model_dump())
    return {"status": "success", **result.model_dump()}
