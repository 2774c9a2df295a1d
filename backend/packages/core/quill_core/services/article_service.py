"""
Article service.

Creates, updates and reads articles, and turns article mutations into
background translation work.
"""

import re
import unicodedata
from datetime import UTC, datetime, timedelta

from arq.connections import ArqRedis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quill_core import get_logger
from quill_core.config import TranslationSettings, translation_settings
from quill_core.content import extract_plain_text, hash_content
from quill_core.redis_keys import RedisKeys
from quill_core.schemas.article import ArticleCreate, ArticleResponse, ArticleUpdate
from quill_core.schemas.translation import TranslationPlan, TriggerTranslationsResponse
from quill_core.services.translation_policy import (
    ArticleChanges,
    plan_translations,
    should_check_translations,
)
from quill_core.services.translation_service import TranslationService
from quill_database.models import (
    Article,
    ArticleStatus,
    ArticleTranslation,
    TranslationStatus,
)
from quill_database.models.base import generate_uuid

logger = get_logger(__name__)


def slugify(text: str) -> str:
    """Lowercase ASCII slug with hyphens; "article" when nothing is left."""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug[:280] or "article"


def normalize_languages(languages: list[str], original_language: str) -> list[str]:
    """
    Normalize an article's target language list.

    Codes are stripped and deduplicated; blanks and the original language
    are dropped; the result is sorted.
    """
    cleaned = {language.strip() for language in languages if language and language.strip()}
    cleaned.discard(original_language)
    return sorted(cleaned)


class ArticleService:
    """Article management service."""

    def __init__(
        self,
        session: AsyncSession,
        redis_pool: ArqRedis | None = None,
        settings: TranslationSettings | None = None,
    ) -> None:
        """
        Initialize article service.

        Args:
            session: Database session.
            redis_pool: arq pool used to queue translation work. Without it
                mutations still succeed but nothing is queued.
            settings: Translation settings. Defaults to the global instance.
        """
        self.session = session
        self.redis_pool = redis_pool
        self.settings = settings or translation_settings

    async def create_article(self, data: ArticleCreate) -> ArticleResponse:
        """
        Create an article.

        Publishing on creation triggers translations for every target
        language.

        Args:
            data: Article creation data.

        Returns:
            Created article.
        """
        original_language = data.original_language or self.settings.default_original_language
        now = datetime.now(UTC)

        article = Article(
            id=generate_uuid(),
            slug=await self._unique_slug(slugify(data.title)),
            title=data.title,
            excerpt=data.excerpt,
            content=data.content,
            plain_text=extract_plain_text(data.content),
            meta_title=data.meta_title,
            meta_description=data.meta_description,
            keywords=list(data.keywords),
            status=data.status.value,
            original_language=original_language,
            auto_translate=data.auto_translate,
            target_languages=normalize_languages(data.target_languages, original_language),
            available_languages=[original_language],
            published_at=now if data.status == ArticleStatus.PUBLISHED else None,
        )
        self.session.add(article)
        await self.session.commit()

        logger.info("Created article", extra={"article_id": article.id, "slug": article.slug})

        if article.status == ArticleStatus.PUBLISHED:
            await self._handle_translation_triggers(article, ArticleChanges.created())

        return ArticleResponse.model_validate(article)

    async def update_article(self, slug: str, data: ArticleUpdate) -> ArticleResponse:
        """
        Update an article.

        Only fields present in the request are changed. The resulting
        changes feed the translation trigger policy; trigger failures are
        logged and never fail the update.

        Args:
            slug: Article slug.
            data: Update data.

        Returns:
            Updated article.

        Raises:
            ValueError: If the article is not found.
        """
        article = await self._get_by_slug(slug)
        if not article:
            raise ValueError("Article not found")

        fields = data.model_fields_set
        old_content_hash = hash_content(None, article.content)
        old_title = article.title
        old_status = article.status
        old_targets = list(article.target_languages or [])

        if "title" in fields and data.title is not None:
            article.title = data.title
        if "content" in fields:
            article.content = data.content
            article.plain_text = extract_plain_text(data.content)
        for field in ("excerpt", "meta_title", "meta_description"):
            if field in fields:
                setattr(article, field, getattr(data, field))
        if "keywords" in fields and data.keywords is not None:
            article.keywords = list(data.keywords)
        if "auto_translate" in fields and data.auto_translate is not None:
            article.auto_translate = data.auto_translate
        if "target_languages" in fields and data.target_languages is not None:
            article.target_languages = normalize_languages(
                data.target_languages, article.original_language
            )
        if "status" in fields and data.status is not None:
            article.status = data.status.value
            if data.status == ArticleStatus.PUBLISHED and article.published_at is None:
                article.published_at = datetime.now(UTC)

        changes = ArticleChanges(
            content_changed=hash_content(None, article.content) != old_content_hash,
            title_changed=article.title != old_title,
            status_changed=article.status != old_status,
            target_languages_changed=list(article.target_languages or []) != old_targets,
        )

        await self.session.commit()
        logger.info(
            "Updated article",
            extra={"article_id": article.id, "changes": changes.model_dump()},
        )

        if changes.has_changes:
            await self._handle_translation_triggers(article, changes)

        return ArticleResponse.model_validate(article)

    async def publish_article(self, slug: str) -> ArticleResponse:
        """Publish an article; see update_article."""
        return await self.update_article(slug, ArticleUpdate(status=ArticleStatus.PUBLISHED))

    async def get_article(self, slug: str, language: str | None = None) -> ArticleResponse:
        """
        Get an article, optionally in a translated language.

        Requesting a language also recomputes the article's available
        languages. A completed translation is merged over the original
        fields; otherwise the original is returned untranslated.

        Args:
            slug: Article slug.
            language: Requested language code.

        Returns:
            Article, translated when possible.

        Raises:
            ValueError: If the article is not found.
        """
        article = await self._get_by_slug(slug)
        if not article:
            raise ValueError("Article not found")

        if not language:
            return ArticleResponse.model_validate(article)

        translation_service = TranslationService(self.session, settings=self.settings)
        await translation_service.update_available_languages(article.id)
        response = ArticleResponse.model_validate(article)

        if language == article.original_language:
            return response

        translation = await translation_service.get_translation(article.id, language)
        if not translation or translation.status != TranslationStatus.COMPLETED:
            return response

        return response.model_copy(
            update={
                "title": translation.title or response.title,
                "excerpt": translation.excerpt or response.excerpt,
                "content": (
                    translation.content if translation.content is not None else response.content
                ),
                "plain_text": translation.plain_text or response.plain_text,
                "meta_title": translation.meta_title or response.meta_title,
                "meta_description": translation.meta_description or response.meta_description,
                "keywords": translation.keywords or response.keywords,
                "is_translated": True,
                "translation_language": language,
                "translation_quality": translation.quality_score,
                "translation_confidence": translation.confidence,
                "translation_needs_review": translation.needs_review,
            }
        )

    async def trigger_manual_translations(
        self, article_id: str, languages: list[str], force: bool = False
    ) -> TriggerTranslationsResponse:
        """
        Queue translations for an article on request.

        Args:
            article_id: Article UUID.
            languages: Languages to translate into.
            force: Re-translate even if recent translations exist.

        Returns:
            What was queued.

        Raises:
            ValueError: If the article is missing, unpublished, or has
                auto-translation disabled.
        """
        article = await self.session.get(Article, article_id)
        if not article:
            raise ValueError(f"Article {article_id} not found")
        if article.status != ArticleStatus.PUBLISHED:
            raise ValueError("Article must be published to translate")
        if not article.auto_translate:
            raise ValueError("Auto-translation is disabled for this article")

        worklist = list(dict.fromkeys(code.strip() for code in languages if code.strip()))
        queued = await self._enqueue_translations(article_id, worklist, force)
        return TriggerTranslationsResponse(
            article_id=article_id,
            languages=worklist,
            queued=queued,
            message=(
                f"Translation queued for {len(worklist)} languages"
                if queued
                else "Translation queue unavailable"
            ),
        )

    async def _get_by_slug(self, slug: str) -> Article | None:
        result = await self.session.execute(select(Article).where(Article.slug == slug))
        return result.scalar_one_or_none()

    async def _unique_slug(self, base: str) -> str:
        slug = base
        suffix = 1
        while await self._get_by_slug(slug):
            suffix += 1
            slug = f"{base}-{suffix}"
        return slug

    async def _handle_translation_triggers(
        self, article: Article, changes: ArticleChanges
    ) -> TranslationPlan | None:
        """
        Evaluate the trigger policy and queue the resulting worklist.

        Never raises: the article write that led here has already
        succeeded.
        """
        article_id = article.id
        try:
            if not should_check_translations(article, changes):
                return None

            stmt = select(ArticleTranslation.language, ArticleTranslation.updated_at).where(
                ArticleTranslation.article_id == article_id,
                ArticleTranslation.status == TranslationStatus.COMPLETED,
            )
            rows = (await self.session.execute(stmt)).all()
            completed = {language: updated_at for language, updated_at in rows}

            plan = plan_translations(
                article,
                changes,
                completed,
                stale_after=timedelta(hours=self.settings.translation_stale_after_hours),
            )
            if plan.triggered:
                logger.info(
                    "Translations triggered",
                    extra={"article_id": article_id, "new": plan.new, "updates": plan.updates},
                )
                await self._enqueue_translations(article_id, plan.languages)
            return plan
        except Exception:
            logger.exception(
                "Failed to evaluate translation triggers", extra={"article_id": article_id}
            )
            return None

    async def _enqueue_translations(
        self, article_id: str, languages: list[str], force: bool = False
    ) -> bool:
        if not languages:
            return False
        if self.redis_pool is None:
            logger.warning(
                "Task queue unavailable, translations not queued",
                extra={"article_id": article_id, "languages": languages},
            )
            return False
        try:
            await self.redis_pool.enqueue_job(
                RedisKeys.PROCESS_TRANSLATIONS_TASK, article_id, languages, force
            )
        except Exception:
            logger.exception(
                "Failed to queue translations",
                extra={"article_id": article_id, "languages": languages},
            )
            return False
        return True
