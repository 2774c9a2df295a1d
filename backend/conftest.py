"""Global pytest fixtures for testing."""

import contextlib
import os
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import dotenv
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from quill_api.main import app
from quill_core.config import TranslationSettings
from quill_core.schemas.translation import TranslationResult, TranslationSource
from quill_core.services.translation_providers import ProviderError, TranslationProvider
from quill_database import Base
from quill_database.models import Article, ArticleStatus
from quill_database.session import get_session

with contextlib.suppress(OSError):
    dotenv.load_dotenv()


class MockArqRedis:
    """Mock ArqRedis for testing."""

    def __init__(self):
        self.enqueued_jobs: list[tuple[str, tuple[Any, ...]]] = []
        self.enqueued_options: list[dict[str, Any]] = []
        self._job_ids: set[str] = set()

    async def enqueue_job(self, func_name: str, *args: Any, **kwargs: Any) -> str | None:
        """Mock enqueue_job that records calls without actually queuing.

        Like arq, a second job with an already queued ``_job_id`` is refused.
        """
        job_id = kwargs.get("_job_id")
        if job_id is not None:
            if job_id in self._job_ids:
                return None
            self._job_ids.add(job_id)
        self.enqueued_jobs.append((func_name, args))
        self.enqueued_options.append(kwargs)
        return job_id or func_name

    async def close(self) -> None:
        return None

    def reset(self) -> None:
        """Reset all recorded jobs."""
        self.enqueued_jobs.clear()
        self.enqueued_options.clear()
        self._job_ids.clear()


class FakeTranslationProvider(TranslationProvider):
    """Deterministic provider that records calls and can fail per language."""

    def __init__(self, failures: dict[str, Exception] | None = None, confidence: float = 0.92):
        self.failures = failures or {}
        self.confidence = confidence
        self.calls: list[str] = []

    async def translate(
        self, source: TranslationSource, target_language: str, model: str
    ) -> TranslationResult:
        self.calls.append(target_language)
        if target_language in self.failures:
            raise self.failures[target_language]
        return TranslationResult(
            title=f"{source.title} ({target_language})",
            excerpt=f"{source.excerpt} ({target_language})" if source.excerpt else None,
            content=source.content,
            keywords=[f"{k}-{target_language}" for k in source.keywords],
            confidence=self.confidence,
            needs_review=False,
        )


# Global mock redis instance for testing
mock_redis = MockArqRedis()

# Optional external test database; defaults to a throwaway SQLite file per test
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Safety check: ensure tests only run on a test database
if TEST_DATABASE_URL and "_test" not in TEST_DATABASE_URL and "/test" not in TEST_DATABASE_URL:
    raise RuntimeError(
        f"Safety check failed: TEST_DATABASE_URL must point to a test database "
        f"(name should contain 'test'). Current: {TEST_DATABASE_URL}"
    )


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'quill_test.db'}"
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    engine = create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
        connect_args=connect_args,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory handing out independent sessions, as the worker does."""
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and redis overrides."""
    from quill_api.dependencies import get_redis_pool

    async def override_get_session():
        yield db_session

    async def override_get_redis_pool():
        return mock_redis

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_redis_pool] = override_get_redis_pool

    # Reset mock redis state before each test
    mock_redis.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def test_mock_redis() -> MockArqRedis:
    """Provide access to the mock redis instance for testing."""
    mock_redis.reset()
    return mock_redis


@pytest.fixture
def translation_test_settings() -> TranslationSettings:
    """Translation settings with delays disabled and no Groq credential."""
    return TranslationSettings(
        groq_api_key="",
        translation_request_base_delay=0,
        translation_parse_base_delay=0,
        translation_batch_delay_seconds=0,
        translation_retry_delay_seconds=300,
    )


@pytest.fixture
def fake_provider() -> FakeTranslationProvider:
    """Provide a recording translation provider."""
    return FakeTranslationProvider()


@pytest.fixture
def failing_provider_factory():
    """Build providers that fail for the given languages."""

    def _build(*languages: str, error: Exception | None = None) -> FakeTranslationProvider:
        failure = error or ProviderError("Groq API failed after 3 attempts", status_code=500)
        return FakeTranslationProvider(failures={language: failure for language in languages})

    return _build


@pytest_asyncio.fixture
async def published_article(db_session: AsyncSession) -> Article:
    """Create a published article targeting French and German."""
    article = Article(
        slug="understanding-machine-learning",
        title="Understanding Machine Learning",
        excerpt="A gentle introduction",
        content={
            "type": "doc",
            "content": [
                {
                    "type": "paragraph",
                    "content": [{"type": "text", "text": "Machine learning is a subset of AI."}],
                }
            ],
        },
        plain_text="Machine learning is a subset of AI.",
        keywords=["ml", "ai"],
        status=ArticleStatus.PUBLISHED.value,
        original_language="en",
        auto_translate=True,
        target_languages=["fr", "de"],
        available_languages=["en"],
    )
    db_session.add(article)
    await db_session.commit()
    await db_session.refresh(article)
    return article


@pytest_asyncio.fixture
async def draft_article(db_session: AsyncSession) -> Article:
    """Create a draft article targeting French."""
    article = Article(
        slug="draft-notes",
        title="Draft Notes",
        content="Work in progress",
        status=ArticleStatus.DRAFT.value,
        original_language="en",
        auto_translate=True,
        target_languages=["fr"],
        available_languages=["en"],
    )
    db_session.add(article)
    await db_session.commit()
    await db_session.refresh(article)
    return article
