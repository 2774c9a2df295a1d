"""Tests for article service."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update

from quill_core.redis_keys import RedisKeys
from quill_core.schemas import ArticleCreate, ArticleUpdate
from quill_core.services.article_service import (
    ArticleService,
    normalize_languages,
    slugify,
)
from quill_core.services.translation_service import TranslationService
from quill_database.models import ArticleStatus, ArticleTranslation


def test_slugify():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("Café au lait") == "cafe-au-lait"
    assert slugify("!!!") == "article"


def test_normalize_languages():
    """Dedupe, drop blanks and the original, sort."""
    assert normalize_languages(["fr", " de", "fr", "", "en"], "en") == ["de", "fr"]


class TestCreateArticle:
    """Test ArticleService.create_article method."""

    @pytest.mark.asyncio
    async def test_draft_does_not_trigger(self, db_session, test_mock_redis):
        service = ArticleService(db_session, test_mock_redis)

        article = await service.create_article(
            ArticleCreate(title="Draft Post", target_languages=["fr"])
        )

        assert article.slug == "draft-post"
        assert article.available_languages == ["en"]
        assert article.published_at is None
        assert test_mock_redis.enqueued_jobs == []

    @pytest.mark.asyncio
    async def test_published_triggers_all_targets(self, db_session, test_mock_redis):
        service = ArticleService(db_session, test_mock_redis)

        article = await service.create_article(
            ArticleCreate(
                title="Launch Day",
                content="We shipped",
                status=ArticleStatus.PUBLISHED,
                target_languages=["fr", "de", "en", "fr"],
            )
        )

        assert article.target_languages == ["de", "fr"]
        assert article.published_at is not None
        assert test_mock_redis.enqueued_jobs == [
            (RedisKeys.PROCESS_TRANSLATIONS_TASK, (article.id, ["de", "fr"], False))
        ]

    @pytest.mark.asyncio
    async def test_auto_translate_disabled_never_triggers(self, db_session, test_mock_redis):
        service = ArticleService(db_session, test_mock_redis)

        await service.create_article(
            ArticleCreate(
                title="Local Only",
                status=ArticleStatus.PUBLISHED,
                auto_translate=False,
                target_languages=["fr"],
            )
        )

        assert test_mock_redis.enqueued_jobs == []

    @pytest.mark.asyncio
    async def test_duplicate_titles_get_unique_slugs(self, db_session):
        service = ArticleService(db_session)

        first = await service.create_article(ArticleCreate(title="Same Title"))
        second = await service.create_article(ArticleCreate(title="Same Title"))

        assert first.slug == "same-title"
        assert second.slug == "same-title-2"

    @pytest.mark.asyncio
    async def test_queue_failure_does_not_fail_create(self, db_session):
        redis = AsyncMock()
        redis.enqueue_job.side_effect = ConnectionError("redis down")
        service = ArticleService(db_session, redis)

        article = await service.create_article(
            ArticleCreate(title="Resilient", status=ArticleStatus.PUBLISHED, target_languages=["fr"])
        )

        assert article.id
        redis.enqueue_job.assert_awaited_once()


class TestUpdateArticle:
    """Test ArticleService.update_article method."""

    @pytest.mark.asyncio
    async def test_not_found(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            await ArticleService(db_session).update_article("nope", ArticleUpdate(title="x"))

    @pytest.mark.asyncio
    async def test_publish_sets_published_at_and_triggers(
        self, db_session, draft_article, test_mock_redis
    ):
        service = ArticleService(db_session, test_mock_redis)

        article = await service.publish_article(draft_article.slug)

        assert article.status == ArticleStatus.PUBLISHED
        assert article.published_at is not None
        assert test_mock_redis.enqueued_jobs == [
            (RedisKeys.PROCESS_TRANSLATIONS_TASK, (draft_article.id, ["fr"], False))
        ]

    @pytest.mark.asyncio
    async def test_republish_keeps_published_at(self, db_session, draft_article, test_mock_redis):
        service = ArticleService(db_session, test_mock_redis)
        first = await service.publish_article(draft_article.slug)
        await service.update_article(draft_article.slug, ArticleUpdate(status=ArticleStatus.DRAFT))

        second = await service.publish_article(draft_article.slug)

        assert second.published_at == first.published_at

    @pytest.mark.asyncio
    async def test_fresh_translations_not_refreshed_on_edit(
        self, db_session, published_article, fake_provider, test_mock_redis
    ):
        """Edits within the staleness window leave existing translations alone."""
        await TranslationService(db_session, fake_provider).translate_article(
            published_article.id, "fr"
        )
        await TranslationService(db_session, fake_provider).translate_article(
            published_article.id, "de"
        )
        service = ArticleService(db_session, test_mock_redis)

        await service.update_article(published_article.slug, ArticleUpdate(content="Edited"))

        assert test_mock_redis.enqueued_jobs == []

    @pytest.mark.asyncio
    async def test_stale_translations_refreshed_on_edit(
        self, db_session, published_article, fake_provider, test_mock_redis
    ):
        await TranslationService(db_session, fake_provider).translate_article(
            published_article.id, "fr"
        )
        await db_session.execute(
            update(ArticleTranslation).values(updated_at=datetime.now(UTC) - timedelta(days=2))
        )
        await db_session.commit()
        service = ArticleService(db_session, test_mock_redis)

        await service.update_article(published_article.slug, ArticleUpdate(title="New Title"))

        # de is new, fr is stale
        assert test_mock_redis.enqueued_jobs == [
            (RedisKeys.PROCESS_TRANSLATIONS_TASK, (published_article.id, ["de", "fr"], False))
        ]

    @pytest.mark.asyncio
    async def test_unchanged_content_does_not_trigger(
        self, db_session, published_article, test_mock_redis
    ):
        service = ArticleService(db_session, test_mock_redis)

        await service.update_article(
            published_article.slug, ArticleUpdate(content=published_article.content)
        )

        assert test_mock_redis.enqueued_jobs == []

    @pytest.mark.asyncio
    async def test_target_language_change_triggers_new_language(
        self, db_session, published_article, fake_provider, test_mock_redis
    ):
        for language in ("fr", "de"):
            await TranslationService(db_session, fake_provider).translate_article(
                published_article.id, language
            )
        service = ArticleService(db_session, test_mock_redis)

        article = await service.update_article(
            published_article.slug, ArticleUpdate(target_languages=["fr", "de", "es"])
        )

        assert article.target_languages == ["de", "es", "fr"]
        assert test_mock_redis.enqueued_jobs == [
            (RedisKeys.PROCESS_TRANSLATIONS_TASK, (published_article.id, ["es"], False))
        ]

    @pytest.mark.asyncio
    async def test_policy_failure_does_not_fail_update(
        self, db_session, published_article, test_mock_redis
    ):
        service = ArticleService(db_session, test_mock_redis)

        with patch(
            "quill_core.services.article_service.plan_translations",
            side_effect=RuntimeError("policy exploded"),
        ):
            article = await service.update_article(
                published_article.slug, ArticleUpdate(title="Still Saved")
            )

        assert article.title == "Still Saved"
        assert test_mock_redis.enqueued_jobs == []


class TestGetArticle:
    """Test ArticleService.get_article method."""

    @pytest.mark.asyncio
    async def test_original_without_language(self, db_session, published_article):
        article = await ArticleService(db_session).get_article(published_article.slug)

        assert article.title == "Understanding Machine Learning"
        assert article.is_translated is False

    @pytest.mark.asyncio
    async def test_translation_overlay(self, db_session, published_article, fake_provider):
        await TranslationService(db_session, fake_provider).translate_article(
            published_article.id, "fr"
        )

        article = await ArticleService(db_session).get_article(published_article.slug, "fr")

        assert article.title == "Understanding Machine Learning (fr)"
        assert article.is_translated is True
        assert article.translation_language == "fr"
        assert article.translation_quality == 5
        assert article.translation_confidence == 0.92
        assert article.translation_needs_review is False
        # Reading with a language heals the availability cache
        assert article.available_languages == ["en", "fr"]

    @pytest.mark.asyncio
    async def test_missing_translation_falls_back_to_original(
        self, db_session, published_article
    ):
        article = await ArticleService(db_session).get_article(published_article.slug, "ja")

        assert article.title == "Understanding Machine Learning"
        assert article.is_translated is False

    @pytest.mark.asyncio
    async def test_not_found(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            await ArticleService(db_session).get_article("missing")


class TestTriggerManualTranslations:
    """Test ArticleService.trigger_manual_translations method."""

    @pytest.mark.asyncio
    async def test_queues_languages(self, db_session, published_article, test_mock_redis):
        service = ArticleService(db_session, test_mock_redis)

        response = await service.trigger_manual_translations(
            published_article.id, ["es", "it", "es"], force=True
        )

        assert response.queued is True
        assert response.languages == ["es", "it"]
        assert test_mock_redis.enqueued_jobs == [
            (RedisKeys.PROCESS_TRANSLATIONS_TASK, (published_article.id, ["es", "it"], True))
        ]

    @pytest.mark.asyncio
    async def test_unpublished_rejected(self, db_session, draft_article, test_mock_redis):
        service = ArticleService(db_session, test_mock_redis)

        with pytest.raises(ValueError, match="must be published"):
            await service.trigger_manual_translations(draft_article.id, ["fr"])

    @pytest.mark.asyncio
    async def test_auto_translate_disabled_rejected(
        self, db_session, published_article, test_mock_redis
    ):
        published_article.auto_translate = False
        await db_session.commit()
        service = ArticleService(db_session, test_mock_redis)

        with pytest.raises(ValueError, match="disabled"):
            await service.trigger_manual_translations(published_article.id, ["fr"])

    @pytest.mark.asyncio
    async def test_without_queue_reports_not_queued(self, db_session, published_article):
        response = await ArticleService(db_session).trigger_manual_translations(
            published_article.id, ["fr"]
        )

        assert response.queued is False
