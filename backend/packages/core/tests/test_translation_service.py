"""Tests for translation service."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select, update

from quill_core.services.translation_providers import ProviderError
from quill_core.services.translation_service import TranslationService
from quill_database.models import ArticleTranslation, TranslationJob, TranslationStatus


class TestTranslateArticle:
    """Test TranslationService.translate_article method."""

    @pytest.mark.asyncio
    async def test_article_not_found_raises(
        self, db_session, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)

        with pytest.raises(ValueError, match="not found"):
            await service.translate_article("missing-id", "fr")

    @pytest.mark.asyncio
    async def test_unpublished_article_raises(
        self, db_session, draft_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)

        with pytest.raises(ValueError, match="must be published"):
            await service.translate_article(draft_article.id, "fr")

        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_completed_translation_served_from_table(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        """Without force the stored translation is returned and its access recorded."""
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        first = await service.translate_article(published_article.id, "fr")

        second = await service.translate_article(published_article.id, "fr")

        assert second.id == first.id
        assert fake_provider.calls == ["fr"]
        refreshed = await service.get_existing(published_article.id, "fr")
        assert refreshed.access_count == 1
        assert refreshed.last_accessed is not None

    @pytest.mark.asyncio
    async def test_force_upserts_in_place(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        first = await service.translate_article(published_article.id, "fr")

        second = await service.translate_article(published_article.id, "fr", force=True)

        assert second.id == first.id
        assert fake_provider.calls == ["fr", "fr"]
        rows = (await db_session.execute(select(ArticleTranslation))).scalars().all()
        jobs = (await db_session.execute(select(TranslationJob))).scalars().all()
        assert len(rows) == 1
        assert len(jobs) == 1
        assert jobs[0].attempt_count == 2

    @pytest.mark.asyncio
    async def test_max_attempts_reached(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")
        await db_session.execute(
            update(ArticleTranslation)
            .where(ArticleTranslation.article_id == published_article.id)
            .values(status="failed", attempt_count=3)
        )
        await db_session.commit()

        with pytest.raises(ValueError, match="Max retry attempts reached"):
            await service.translate_article(published_article.id, "fr")

        assert fake_provider.calls == ["fr"]

    @pytest.mark.asyncio
    async def test_provider_failure_marks_job_failed(
        self, db_session, published_article, failing_provider_factory, translation_test_settings
    ):
        service = TranslationService(
            db_session, failing_provider_factory("fr"), translation_test_settings
        )

        with pytest.raises(Exception, match="failed after 3 attempts"):
            await service.translate_article(published_article.id, "fr")

        job = (await db_session.execute(select(TranslationJob))).scalar_one()
        assert job.status == "failed"
        assert job.attempt_count == 1
        assert "failed after 3 attempts" in job.error_message


class TestQueries:
    """Test translation reads and aggregates."""

    @pytest.mark.asyncio
    async def test_update_available_languages(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")
        await service.translate_article(published_article.id, "de")

        languages = await service.update_available_languages(published_article.id)

        assert languages == ["de", "en", "fr"]
        await db_session.refresh(published_article)
        assert published_article.available_languages == ["de", "en", "fr"]

    @pytest.mark.asyncio
    async def test_update_available_languages_unchanged_is_noop(
        self, db_session, published_article, translation_test_settings
    ):
        service = TranslationService(db_session, settings=translation_test_settings)
        before = published_article.updated_at

        languages = await service.update_available_languages(published_article.id)

        assert languages == ["en"]
        await db_session.refresh(published_article)
        assert published_article.updated_at == before

    @pytest.mark.asyncio
    async def test_get_available_languages_original_first(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")

        languages = await service.get_available_languages(published_article.id)

        assert [(lang.language, lang.is_original) for lang in languages] == [
            ("en", True),
            ("fr", False),
        ]
        assert languages[0].confidence == 1.0
        assert languages[0].quality_score == 5
        assert languages[1].confidence == 0.92

    @pytest.mark.asyncio
    async def test_get_article_translations_excludes_failed(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")
        await service.translate_article(published_article.id, "de")
        await db_session.execute(
            update(ArticleTranslation)
            .where(ArticleTranslation.language == "de")
            .values(status="failed")
        )
        await db_session.commit()

        completed = await service.get_article_translations(published_article.id)
        everything = await service.get_article_translations(
            published_article.id, include_failed=True
        )

        assert [t.language for t in completed] == ["fr"]
        assert [t.language for t in everything] == ["de", "fr"]

    @pytest.mark.asyncio
    async def test_retry_failed_translations(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")
        await db_session.execute(
            update(ArticleTranslation).values(status="failed", attempt_count=3)
        )
        await db_session.commit()

        results = await service.retry_failed_translations(published_article.id)

        assert [(r["language"], r["success"]) for r in results] == [("fr", True)]
        translation = await service.get_existing(published_article.id, "fr")
        assert translation.status == "completed"
        assert translation.attempt_count == 0

    @pytest.mark.asyncio
    async def test_cleanup_old_jobs(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")
        await service.translate_article(published_article.id, "de")
        await db_session.execute(
            update(TranslationJob)
            .where(TranslationJob.target_language == "fr")
            .values(updated_at=datetime.now(UTC) - timedelta(days=45))
        )
        await db_session.commit()

        result = await service.cleanup_old_jobs(days=30)

        assert result.deleted_completed_jobs == 1
        assert result.deleted_failed_jobs == 0
        assert result.total == 1
        remaining = (await db_session.execute(select(TranslationJob.target_language))).scalars()
        assert list(remaining) == ["de"]

    @pytest.mark.asyncio
    async def test_service_status_mock_mode(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        await service.translate_article(published_article.id, "fr")

        status = await service.get_service_status()

        assert status.mode == "MOCK"
        assert status.groq_configured is False
        assert status.total_translations == 1
        assert status.completed_translations == 1
        assert status.success_rate == 100.0


class TestTranslateMultipleArticles:
    """Test TranslationService.translate_multiple_articles method."""

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_remaining_articles(
        self, db_session, published_article, draft_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)

        results = await service.translate_multiple_articles(
            [draft_article.id, "missing-id", published_article.id], "fr"
        )

        assert [r["success"] for r in results] == [False, False, True]
        assert "must be published" in results[0]["error"]
        assert "not found" in results[1]["error"]
        assert results[2]["translation_id"]
        assert fake_provider.calls == ["fr"]


class TestRegenerateTranslation:
    """Test TranslationService.regenerate_translation method."""

    @pytest.mark.asyncio
    async def test_forces_fresh_translation(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        original = await service.translate_article(published_article.id, "fr")

        regenerated = await service.regenerate_translation(original.id)

        assert regenerated.id == original.id
        assert fake_provider.calls == ["fr", "fr"]
        assert published_article.available_languages == ["en", "fr"]

    @pytest.mark.asyncio
    async def test_missing_translation_raises(
        self, db_session, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)

        with pytest.raises(ValueError, match="not found"):
            await service.regenerate_translation("missing-id")

    @pytest.mark.asyncio
    async def test_provider_failure_marks_translation_failed(
        self,
        db_session,
        published_article,
        fake_provider,
        failing_provider_factory,
        translation_test_settings,
    ):
        translation = await TranslationService(
            db_session, fake_provider, translation_test_settings
        ).translate_article(published_article.id, "fr")
        translation_id = translation.id
        service = TranslationService(
            db_session, failing_provider_factory("fr"), translation_test_settings
        )

        with pytest.raises(ProviderError):
            await service.regenerate_translation(translation_id)

        stored = await service.get_existing(published_article.id, "fr")
        assert stored.status == TranslationStatus.FAILED


class TestTranslationStatus:
    """Test TranslationService.get_translation_status method."""

    @pytest.mark.asyncio
    async def test_counts_by_status(
        self, db_session, published_article, fake_provider, translation_test_settings
    ):
        service = TranslationService(db_session, fake_provider, translation_test_settings)
        for language in ("fr", "de", "es"):
            await service.translate_article(published_article.id, language)
        await db_session.execute(
            update(ArticleTranslation)
            .where(ArticleTranslation.language == "de")
            .values(status=TranslationStatus.FAILED.value)
        )
        await db_session.execute(
            update(ArticleTranslation)
            .where(ArticleTranslation.language == "es")
            .values(status=TranslationStatus.PROCESSING.value)
        )
        await db_session.commit()

        status = await service.get_translation_status(published_article.id)

        assert status.article_id == published_article.id
        assert status.target_languages == ["fr", "de"]
        assert [t.language for t in status.translations] == ["de", "es", "fr"]
        assert status.summary.total == 3
        assert status.summary.completed == 1
        assert status.summary.failed == 1
        assert status.summary.pending == 1

    @pytest.mark.asyncio
    async def test_accepts_slug(self, db_session, published_article, translation_test_settings):
        service = TranslationService(db_session, settings=translation_test_settings)

        status = await service.get_translation_status(published_article.slug)

        assert status.article_id == published_article.id
        assert status.summary.total == 0

    @pytest.mark.asyncio
    async def test_unknown_identifier_raises(self, db_session, translation_test_settings):
        service = TranslationService(db_session, settings=translation_test_settings)

        with pytest.raises(ValueError, match="not found"):
            await service.get_translation_status("no-such-article")
