"""
Translation service.

Translates one article into one language and persists the outcome through
the TranslationJob and ArticleTranslation tables. Also serves translation
reads, the available-languages aggregate, retries and housekeeping.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quill_core import get_logger
from quill_core.config import TranslationSettings, translation_settings
from quill_core.content import calculate_quality_score, extract_plain_text, hash_content
from quill_core.schemas.translation import (
    ArticleTranslationStatus,
    AvailableLanguage,
    CleanupResult,
    TranslationResponse,
    TranslationResult,
    TranslationServiceStatus,
    TranslationSource,
    TranslationStatusSummary,
)
from quill_core.services.translation_providers import (
    TranslationProvider,
    create_translation_provider,
)
from quill_database.models import (
    Article,
    ArticleStatus,
    ArticleTranslation,
    TranslationJob,
    TranslationStatus,
)
from quill_database.models.base import generate_uuid
from quill_database.upsert import insert_for

logger = get_logger(__name__)


class TranslationService:
    """Translation management service."""

    def __init__(
        self,
        session: AsyncSession,
        provider: TranslationProvider | None = None,
        settings: TranslationSettings | None = None,
    ) -> None:
        """
        Initialize translation service.

        Args:
            session: Database session.
            provider: Translation provider. Built from settings when omitted.
            settings: Translation settings. Defaults to the global instance.
        """
        self.session = session
        self.settings = settings or translation_settings
        self._provider = provider

    @property
    def provider(self) -> TranslationProvider:
        if self._provider is None:
            self._provider = create_translation_provider(self.settings)
        return self._provider

    async def translate_article(
        self,
        article_id: str,
        language: str,
        force: bool = False,
        ai_model: str | None = None,
    ) -> ArticleTranslation:
        """
        Translate an article into one language.

        Without ``force``, a completed translation is served from the table
        and a translation that already failed too often is not retried.

        Args:
            article_id: Article UUID.
            language: Target language code.
            force: Re-translate even if a completed translation exists.
            ai_model: Model identifier. Defaults to the configured model.

        Returns:
            The completed translation row.

        Raises:
            ValueError: If the article is missing, unpublished, or the
                translation exhausted its attempts.
            ProviderError: If the provider failed and no fallback applied.
        """
        logger.info(
            "Translating article",
            extra={"article_id": article_id, "language": language, "force": force},
        )

        article = await self._get_article(article_id)
        if not article:
            raise ValueError(f"Article {article_id} not found")
        if article.status != ArticleStatus.PUBLISHED:
            raise ValueError("Article must be published to translate")

        if not force:
            existing = await self.get_existing(article_id, language)
            if existing and existing.status == TranslationStatus.COMPLETED:
                logger.info(
                    "Translation already exists",
                    extra={"article_id": article_id, "language": language},
                )
                await self._record_access(existing)
                await self.session.commit()
                return existing
            if (
                existing
                and existing.status == TranslationStatus.FAILED
                and existing.attempt_count >= self.settings.translation_max_attempts
            ):
                logger.warning(
                    "Max translation attempts reached",
                    extra={"article_id": article_id, "language": language},
                )
                raise ValueError("Max retry attempts reached")

        model = ai_model or self.settings.translation_model
        source = TranslationSource.model_validate(article)
        content_hash = hash_content(article.title, article.content)

        job = await self._start_job(article_id, language, model)
        job_id = job.id
        await self.session.commit()

        try:
            result = await self.provider.translate(source, language, model)
            translation = await self._save_translation(
                article_id, language, result, model, content_hash
            )
            await self._finish_job(job_id)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            await self._fail(article_id, language, job_id, str(e) or type(e).__name__)
            await self.session.commit()
            logger.exception(
                "Failed to translate article",
                extra={"article_id": article_id, "language": language},
            )
            raise

        logger.info(
            "Translated article",
            extra={
                "article_id": article_id,
                "language": language,
                "translated_by": result.translated_by,
                "confidence": result.confidence,
            },
        )
        return translation

    async def get_existing(self, article_id: str, language: str) -> ArticleTranslation | None:
        stmt = (
            select(ArticleTranslation)
            .where(
                ArticleTranslation.article_id == article_id,
                ArticleTranslation.language == language,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_translation(self, article_id: str, language: str) -> ArticleTranslation | None:
        """
        Get a translation and record the access.

        Args:
            article_id: Article UUID.
            language: Language code.

        Returns:
            Translation row or None if not found.
        """
        translation = await self.get_existing(article_id, language)
        if translation:
            await self._record_access(translation)
            await self.session.commit()
        return translation

    async def get_article_translations(
        self, article_id: str, include_failed: bool = False
    ) -> list[ArticleTranslation]:
        """
        List an article's translations ordered by language.

        Args:
            article_id: Article UUID.
            include_failed: Include rows that are not completed.
        """
        stmt = select(ArticleTranslation).where(ArticleTranslation.article_id == article_id)
        if not include_failed:
            stmt = stmt.where(ArticleTranslation.status == TranslationStatus.COMPLETED)
        stmt = stmt.order_by(ArticleTranslation.language, ArticleTranslation.updated_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_available_languages(self, article_id: str) -> list[AvailableLanguage]:
        """
        Languages an article can be read in, original first.

        Raises:
            ValueError: If the article does not exist.
        """
        article = await self._get_article(article_id)
        if not article:
            raise ValueError(f"Article {article_id} not found")

        languages = [
            AvailableLanguage(
                language=article.original_language,
                is_original=True,
                confidence=1.0,
                quality_score=5,
            )
        ]
        for translation in await self.get_article_translations(article_id):
            if translation.language == article.original_language:
                continue
            languages.append(
                AvailableLanguage(
                    language=translation.language,
                    is_original=False,
                    confidence=translation.confidence or 0.95,
                    quality_score=translation.quality_score or 3,
                )
            )
        return languages

    async def update_available_languages(self, article_id: str) -> list[str]:
        """
        Recompute ``Article.available_languages``.

        The value is the sorted union of the original language and every
        language with a completed translation. It is only written when it
        differs from what is stored.

        Returns:
            The up-to-date language list.

        Raises:
            ValueError: If the article does not exist.
        """
        article = await self.session.get(Article, article_id, populate_existing=True)
        if not article:
            raise ValueError(f"Article {article_id} not found")

        stmt = select(ArticleTranslation.language).where(
            ArticleTranslation.article_id == article_id,
            ArticleTranslation.status == TranslationStatus.COMPLETED,
        )
        completed = (await self.session.scalars(stmt)).all()
        available = sorted({article.original_language, *completed})

        if list(article.available_languages or []) != available:
            article.available_languages = available
            await self.session.commit()
            logger.info(
                "Updated available languages",
                extra={"article_id": article_id, "languages": available},
            )
        return available

    async def retry_failed_translations(self, article_id: str | None = None) -> list[dict[str, Any]]:
        """
        Force a new attempt for every failed translation.

        Args:
            article_id: Restrict to one article. None = all articles.

        Returns:
            One result dict per retried translation.
        """
        stmt = select(ArticleTranslation.article_id, ArticleTranslation.language).where(
            ArticleTranslation.status == TranslationStatus.FAILED
        )
        if article_id:
            stmt = stmt.where(ArticleTranslation.article_id == article_id)
        failed = (await self.session.execute(stmt)).all()

        results: list[dict[str, Any]] = []
        for failed_article_id, language in failed:
            try:
                translation = await self.translate_article(failed_article_id, language, force=True)
                results.append(
                    {
                        "article_id": failed_article_id,
                        "language": language,
                        "success": True,
                        "translation_id": translation.id,
                    }
                )
            except Exception as e:
                results.append(
                    {
                        "article_id": failed_article_id,
                        "language": language,
                        "success": False,
                        "error": str(e),
                    }
                )
        return results

    async def translate_multiple_articles(
        self, article_ids: list[str], language: str
    ) -> list[dict[str, Any]]:
        """
        Translate several articles into one language, one at a time.

        A failing article is recorded in the results and does not stop the
        remaining ones.

        Args:
            article_ids: Article UUIDs.
            language: Target language code.

        Returns:
            One result dict per article.
        """
        results: list[dict[str, Any]] = []
        for article_id in article_ids:
            try:
                translation = await self.translate_article(article_id, language)
                results.append(
                    {"article_id": article_id, "success": True, "translation_id": translation.id}
                )
            except Exception as e:
                results.append({"article_id": article_id, "success": False, "error": str(e)})
        return results

    async def regenerate_translation(self, translation_id: str) -> ArticleTranslation:
        """
        Force a fresh translation for an existing translation row.

        Args:
            translation_id: ArticleTranslation UUID.

        Returns:
            The regenerated translation.

        Raises:
            ValueError: If the translation or its article cannot be translated.
            ProviderError: If the provider failed and no fallback applied.
        """
        existing = await self.session.get(ArticleTranslation, translation_id)
        if not existing:
            raise ValueError(f"Translation {translation_id} not found")

        article_id, language = existing.article_id, existing.language
        translation = await self.translate_article(article_id, language, force=True)
        await self.update_available_languages(article_id)
        return translation

    async def cleanup_old_jobs(self, days: int | None = None) -> CleanupResult:
        """
        Delete finished translation jobs past the retention window.

        Args:
            days: Retention in days. Defaults to the configured retention.
        """
        days = days if days is not None else self.settings.translation_job_retention_days
        cutoff = datetime.now(UTC) - timedelta(days=days)

        deleted_failed = await self.session.execute(
            delete(TranslationJob).where(
                TranslationJob.status == TranslationStatus.FAILED,
                TranslationJob.updated_at < cutoff,
            ).execution_options(synchronize_session=False)
        )
        deleted_completed = await self.session.execute(
            delete(TranslationJob).where(
                TranslationJob.status == TranslationStatus.COMPLETED,
                TranslationJob.updated_at < cutoff,
            ).execution_options(synchronize_session=False)
        )
        await self.session.commit()

        failed_count = deleted_failed.rowcount or 0
        completed_count = deleted_completed.rowcount or 0
        return CleanupResult(
            deleted_failed_jobs=failed_count,
            deleted_completed_jobs=completed_count,
            total=failed_count + completed_count,
        )

    async def get_service_status(self) -> TranslationServiceStatus:
        """Summarize provider mode and translation counts."""
        total = await self.session.scalar(select(func.count(ArticleTranslation.id))) or 0
        completed = (
            await self.session.scalar(
                select(func.count(ArticleTranslation.id)).where(
                    ArticleTranslation.status == TranslationStatus.COMPLETED
                )
            )
            or 0
        )
        configured = self.settings.groq_configured
        return TranslationServiceStatus(
            groq_configured=configured,
            mode="REAL" if configured else "MOCK",
            total_translations=total,
            completed_translations=completed,
            success_rate=(completed / total) * 100 if total else 0.0,
            message=(
                "Real AI translations enabled with Groq API"
                if configured
                else "Mock translations (set GROQ_API_KEY to enable Groq)"
            ),
        )

    async def get_translation_status(self, identifier: str) -> ArticleTranslationStatus:
        """
        Summarize an article's translations by status.

        Args:
            identifier: Article UUID or slug.

        Raises:
            ValueError: If no article matches the identifier.
        """
        article = await self._get_article(identifier)
        if not article:
            result = await self.session.execute(select(Article).where(Article.slug == identifier))
            article = result.scalar_one_or_none()
        if not article:
            raise ValueError(f"Article {identifier} not found")

        translations = await self.get_article_translations(article.id, include_failed=True)
        statuses = [t.status for t in translations]
        return ArticleTranslationStatus(
            article_id=article.id,
            title=article.title,
            auto_translate=article.auto_translate,
            target_languages=list(article.target_languages or []),
            translations=[TranslationResponse.model_validate(t) for t in translations],
            summary=TranslationStatusSummary(
                total=len(statuses),
                completed=statuses.count(TranslationStatus.COMPLETED),
                failed=statuses.count(TranslationStatus.FAILED),
                pending=sum(
                    1
                    for s in statuses
                    if s in (TranslationStatus.PENDING, TranslationStatus.PROCESSING)
                ),
            ),
        )

    async def _get_article(self, article_id: str) -> Article | None:
        return await self.session.get(Article, article_id, populate_existing=True)

    async def _record_access(self, translation: ArticleTranslation) -> None:
        # Access telemetry must not refresh updated_at, which drives staleness
        await self.session.execute(
            update(ArticleTranslation)
            .where(ArticleTranslation.id == translation.id)
            .values(
                last_accessed=datetime.now(UTC),
                access_count=ArticleTranslation.access_count + 1,
                updated_at=ArticleTranslation.updated_at,
            )
        )

    async def _start_job(self, article_id: str, language: str, model: str) -> TranslationJob:
        """Upsert the job row to PROCESSING in one statement."""
        now = datetime.now(UTC)
        stmt = insert_for(self.session, TranslationJob).values(
            id=generate_uuid(),
            article_id=article_id,
            target_language=language,
            status=TranslationStatus.PROCESSING.value,
            attempt_count=1,
            ai_model=model,
            priority=1,
            started_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["article_id", "target_language"],
            set_={
                "status": stmt.excluded.status,
                "attempt_count": TranslationJob.attempt_count + 1,
                "ai_model": stmt.excluded.ai_model,
                "started_at": stmt.excluded.started_at,
                "completed_at": None,
                "error_message": None,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        result = await self.session.scalars(
            stmt.returning(TranslationJob),
            execution_options={"populate_existing": True},
        )
        return result.one()

    async def _save_translation(
        self,
        article_id: str,
        language: str,
        result: TranslationResult,
        model: str,
        content_hash: str,
    ) -> ArticleTranslation:
        """Upsert the completed translation in one statement."""
        now = datetime.now(UTC)
        values: dict[str, Any] = {
            "title": result.title,
            "excerpt": result.excerpt,
            "content": result.content,
            "plain_text": result.plain_text or extract_plain_text(result.content),
            "meta_title": result.meta_title,
            "meta_description": result.meta_description,
            "keywords": result.keywords,
            "status": TranslationStatus.COMPLETED.value,
            "content_hash": content_hash,
            "translated_by": result.translated_by,
            "ai_model": model,
            "confidence": result.confidence,
            "quality_score": calculate_quality_score(result.confidence, result.needs_review),
            "needs_review": result.needs_review,
            "attempt_count": 0,
            "updated_at": now,
        }
        stmt = insert_for(self.session, ArticleTranslation).values(
            id=generate_uuid(),
            article_id=article_id,
            language=language,
            access_count=0,
            created_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["article_id", "language"],
            set_={key: getattr(stmt.excluded, key) for key in values},
        )
        rows = await self.session.scalars(
            stmt.returning(ArticleTranslation),
            execution_options={"populate_existing": True},
        )
        return rows.one()

    async def _finish_job(self, job_id: str) -> None:
        now = datetime.now(UTC)
        await self.session.execute(
            update(TranslationJob)
            .where(TranslationJob.id == job_id)
            .values(
                status=TranslationStatus.COMPLETED.value,
                completed_at=now,
                error_message=None,
            )
        )

    async def _fail(self, article_id: str, language: str, job_id: str, error: str) -> None:
        await self.session.execute(
            update(TranslationJob)
            .where(TranslationJob.id == job_id)
            .values(status=TranslationStatus.FAILED.value, error_message=error)
        )
        await self.session.execute(
            update(ArticleTranslation)
            .where(
                ArticleTranslation.article_id == article_id,
                ArticleTranslation.language == language,
            )
            .values(
                status=TranslationStatus.FAILED.value,
                attempt_count=ArticleTranslation.attempt_count + 1,
            )
        )
