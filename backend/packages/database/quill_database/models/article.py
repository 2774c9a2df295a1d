"""
Article model definition.

This module defines the Article model, the source of truth for
content that gets translated.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, generate_uuid

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class ArticleStatus(str, Enum):
    """Article status enumeration."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Article(Base, TimestampMixin):
    """
    Article model.

    Attributes:
        id: Unique article identifier (UUID).
        slug: URL slug (unique, indexed).
        title: Article title.
        excerpt: Short summary.
        content: Rich-text document (JSON) or plain string.
        plain_text: Text extracted from content.
        meta_title: SEO title.
        meta_description: SEO description.
        keywords: SEO keywords.
        status: Publication status.
        original_language: Language code the article is written in.
        auto_translate: Whether publishing/updating triggers translations.
        target_languages: Language codes to translate into.
        available_languages: Sorted codes the article can be displayed in
            (original + completed translations). Derived, kept in sync by
            the translation pipeline.
        published_at: First publication time.
    """

    __tablename__ = "articles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    slug: Mapped[str] = mapped_column(String(300), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    excerpt: Mapped[str | None] = mapped_column(Text)
    content: Mapped[Any] = mapped_column(JSONType)
    plain_text: Mapped[str | None] = mapped_column(Text)

    # SEO
    meta_title: Mapped[str | None] = mapped_column(String(500))
    meta_description: Mapped[str | None] = mapped_column(String(1000))
    keywords: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    status: Mapped[ArticleStatus] = mapped_column(
        String(20), default=ArticleStatus.DRAFT, nullable=False, index=True
    )

    # Translation settings
    original_language: Mapped[str] = mapped_column(String(10), default="en", nullable=False)
    auto_translate: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    target_languages: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    available_languages: Mapped[list[str]] = mapped_column(
        JSONType, default=list, nullable=False
    )

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    translations = relationship(
        "ArticleTranslation", back_populates="article", cascade="all, delete-orphan"
    )
    translation_jobs = relationship(
        "TranslationJob", back_populates="article", cascade="all, delete-orphan"
    )
