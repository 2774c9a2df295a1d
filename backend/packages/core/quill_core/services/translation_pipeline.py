"""
Batched translation pipeline.

Runs an article's language worklist in small batches. Languages inside a
batch are translated concurrently, each on its own database session;
batches run sequentially with a pause in between to stay under provider
rate limits. One failing language never aborts the run.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from quill_core import get_logger, utils
from quill_core.config import TranslationSettings, translation_settings
from quill_core.content import hash_content
from quill_core.schemas.translation import BatchSummary, LanguageResult
from quill_core.services.translation_policy import as_utc
from quill_core.services.translation_providers import (
    TranslationProvider,
    create_translation_provider,
)
from quill_core.services.translation_service import TranslationService
from quill_database.models import Article, TranslationStatus

logger = get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]


def make_batches(languages: list[str], size: int) -> list[list[str]]:
    """Split a worklist into consecutive batches of at most ``size``."""
    return [languages[i : i + size] for i in range(0, len(languages), size)]


class TranslationPipeline:
    """Batch scheduler for an article's translation worklist."""

    def __init__(
        self,
        session_factory: SessionFactory,
        provider: TranslationProvider | None = None,
        settings: TranslationSettings | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            session_factory: Callable returning a new AsyncSession; used as
                an async context manager, one session per language.
            provider: Translation provider shared by all languages.
            settings: Translation settings. Defaults to the global instance.
        """
        self.session_factory = session_factory
        self.settings = settings or translation_settings
        self.provider = provider or create_translation_provider(self.settings)

    async def process_translations(
        self, article_id: str, languages: list[str], force: bool = False
    ) -> BatchSummary:
        """
        Translate an article into every language of the worklist.

        Args:
            article_id: Article UUID.
            languages: Worklist of language codes, processed in order.
            force: Re-translate even if a recent translation exists.

        Returns:
            Per-language results and successful/failed/skipped counts.

        Raises:
            ValueError: If the article does not exist.
        """
        async with self.session_factory() as session:
            article = await session.get(Article, article_id)
            if not article:
                raise ValueError(f"Article {article_id} not found")
            original_language = article.original_language
            content_hash = hash_content(article.title, article.content)

        batches = make_batches(languages, self.settings.translation_batch_size)
        logger.info(
            "Starting translation run",
            extra={
                "article_id": article_id,
                "languages": languages,
                "batches": len(batches),
                "force": force,
            },
        )

        results: list[LanguageResult] = []
        for index, batch in enumerate(batches):
            logger.info(
                "Processing translation batch",
                extra={"article_id": article_id, "batch": index + 1, "languages": batch},
            )
            outcomes = await asyncio.gather(
                *(
                    self._process_language(
                        article_id, language, original_language, content_hash, force
                    )
                    for language in batch
                ),
                return_exceptions=True,
            )

            batch_results: list[LanguageResult] = []
            for language, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "Translation task crashed",
                        extra={"article_id": article_id, "language": language},
                        exc_info=outcome,
                    )
                    outcome = LanguageResult(
                        language=language,
                        success=False,
                        action="failed",
                        error=str(outcome) or type(outcome).__name__,
                        timestamp=datetime.now(UTC),
                    )
                batch_results.append(outcome)
            results.extend(batch_results)

            # A failed refresh demotes a completed translation
            if any(r.action != "skipped" for r in batch_results):
                await self.refresh_available_languages(article_id)

            if index < len(batches) - 1:
                await utils.sleep(self.settings.translation_batch_delay_seconds)

        summary = BatchSummary.from_results(results, batches=len(batches))
        logger.info(
            "Translation run finished",
            extra={
                "article_id": article_id,
                "successful": summary.successful,
                "failed": summary.failed,
                "skipped": summary.skipped,
            },
        )
        return summary

    async def refresh_available_languages(self, article_id: str) -> list[str]:
        """Recompute the article's available languages on a fresh session."""
        async with self.session_factory() as session:
            service = TranslationService(session, self.provider, self.settings)
            return await service.update_available_languages(article_id)

    async def _process_language(
        self,
        article_id: str,
        language: str,
        original_language: str,
        content_hash: str,
        force: bool,
    ) -> LanguageResult:
        if language == original_language:
            return LanguageResult(
                language=language,
                success=True,
                action="skipped",
                reason="Original language",
                timestamp=datetime.now(UTC),
            )

        try:
            async with self.session_factory() as session:
                service = TranslationService(session, self.provider, self.settings)
                existing = await service.get_existing(article_id, language)

                content_changed = False
                if existing and existing.status == TranslationStatus.COMPLETED:
                    content_changed = existing.content_hash != content_hash
                    recent_cutoff = datetime.now(UTC) - timedelta(
                        hours=self.settings.translation_recent_window_hours
                    )
                    recent = as_utc(existing.updated_at) > recent_cutoff
                    if recent and not force and not content_changed:
                        return LanguageResult(
                            language=language,
                            success=True,
                            action="skipped",
                            reason="Recent translation exists",
                            translation_id=existing.id,
                            timestamp=datetime.now(UTC),
                        )

                existed = existing is not None
                translation = await service.translate_article(
                    article_id, language, force=force or content_changed
                )
                return LanguageResult(
                    language=language,
                    success=True,
                    action="updated" if existed else "created",
                    translation_id=translation.id,
                    timestamp=datetime.now(UTC),
                )
        except Exception as e:
            logger.warning(
                "Language translation failed",
                extra={"article_id": article_id, "language": language, "error": str(e)},
            )
            return LanguageResult(
                language=language,
                success=False,
                action="failed",
                error=str(e) or type(e).__name__,
                timestamp=datetime.now(UTC),
            )
