"""
Quill worker - arq entry point.

Run with ``arq quill_worker.main.WorkerSettings``.
"""

from typing import Any

from arq import cron
from arq.connections import RedisSettings

from quill_core import get_logger, init_logging
from quill_core.config import translation_settings
from quill_core.redis_keys import RedisKeys
from quill_core.services.translation_providers import create_translation_provider
from quill_database.session import close_database, init_database

from .config import settings
from .tasks.translation import (
    cleanup_translation_jobs_task,
    process_article_translations_task,
    retry_article_translations_task,
    retry_failed_translations_task,
    translate_articles_task,
)

logger = get_logger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """
    Worker startup hook.

    Initializes logging, the database, and the shared translation
    provider.

    Args:
        ctx: Worker context.
    """
    init_logging(settings.log_level)
    init_database(settings.database_url)
    ctx["translation_provider"] = create_translation_provider(translation_settings)
    logger.info(
        "Quill worker started",
        extra={
            "version": settings.version,
            "translation_mode": "REAL" if translation_settings.groq_configured else "MOCK",
        },
    )


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown hook."""
    await close_database()
    logger.info("Quill worker stopped")


class WorkerSettings:
    """arq worker configuration."""

    functions = [
        process_article_translations_task,
        retry_article_translations_task,
        retry_failed_translations_task,
        translate_articles_task,
        cleanup_translation_jobs_task,
    ]

    cron_jobs = [
        cron(
            cleanup_translation_jobs_task,
            name=RedisKeys.CLEANUP_TRANSLATION_JOBS_TASK,
            hour={settings.cleanup_hour},
            minute={0},
        ),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    max_jobs = settings.max_jobs
    job_timeout = settings.job_timeout_seconds
