"""
Article translation model definitions.

This module defines the ArticleTranslation model holding translated
content, and the TranslationJob model tracking the latest attempt to
produce it.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .article import JSONType
from .base import Base, TimestampMixin, generate_uuid


class TranslationStatus(str, Enum):
    """Translation and job status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ArticleTranslation(Base, TimestampMixin):
    """
    Translated article content.

    One row per (article, language). Rows are updated in place on
    re-translation; the compound unique key prevents duplicates.

    Attributes:
        id: Unique translation identifier (UUID).
        article_id: Parent article reference.
        language: Target language code (e.g. "fr", "de").
        title: Translated title.
        excerpt: Translated excerpt.
        content: Translated content, same structure as the source.
        plain_text: Text extracted from the translated content.
        meta_title: Translated SEO title.
        meta_description: Translated SEO description.
        keywords: Translated keywords.
        status: Translation status.
        content_hash: Hash of the source title/content at translation time.
        translated_by: "AI" or "MOCK".
        ai_model: Model identifier used.
        confidence: Model-reported confidence (0..1).
        quality_score: Derived quality score (1..5).
        needs_review: Whether a human should review the translation.
        attempt_count: Consecutive failed attempts.
        last_accessed: Last time the translation was served.
        access_count: Number of times the translation was served.
    """

    __tablename__ = "article_translations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    article_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    language: Mapped[str] = mapped_column(String(10), nullable=False)

    title: Mapped[str | None] = mapped_column(String(500))
    excerpt: Mapped[str | None] = mapped_column(Text)
    content: Mapped[Any] = mapped_column(JSONType)
    plain_text: Mapped[str | None] = mapped_column(Text)
    meta_title: Mapped[str | None] = mapped_column(String(500))
    meta_description: Mapped[str | None] = mapped_column(String(1000))
    keywords: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    status: Mapped[TranslationStatus] = mapped_column(
        String(20), default=TranslationStatus.PENDING, nullable=False
    )
    content_hash: Mapped[str | None] = mapped_column(String(64))
    translated_by: Mapped[str | None] = mapped_column(String(20))
    ai_model: Mapped[str | None] = mapped_column(String(100))
    confidence: Mapped[float | None] = mapped_column(Float)
    quality_score: Mapped[int | None] = mapped_column(Integer)
    needs_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Access telemetry
    last_accessed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    access_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    article = relationship("Article", back_populates="translations")

    # Constraints
    __table_args__ = (
        UniqueConstraint("article_id", "language", name="uq_article_translation_lang"),
    )


class TranslationJob(Base, TimestampMixin):
    """
    Latest attempt to translate an article into one language.

    Kept apart from ArticleTranslation so in-flight and failed work does
    not pollute the content table.

    Attributes:
        id: Unique job identifier (UUID).
        article_id: Parent article reference.
        target_language: Target language code.
        status: Job status (processing/completed/failed).
        attempt_count: Number of attempts made.
        error_message: Error of the last failed attempt.
        ai_model: Model identifier used.
        priority: Scheduling priority.
        started_at: Start of the latest attempt.
        completed_at: Completion time of the latest successful attempt.
    """

    __tablename__ = "translation_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    article_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[TranslationStatus] = mapped_column(
        String(20), default=TranslationStatus.PENDING, nullable=False, index=True
    )
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text)
    ai_model: Mapped[str | None] = mapped_column(String(100))
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    article = relationship("Article", back_populates="translation_jobs")

    # Constraints
    __table_args__ = (
        UniqueConstraint(
            "article_id", "target_language", name="uq_translation_job_article_lang"
        ),
    )
