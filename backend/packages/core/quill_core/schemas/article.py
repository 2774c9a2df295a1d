"""
Article schemas.

Request and response models for article operations.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quill_database.models import ArticleStatus


class ArticleCreate(BaseModel):
    """Create article request."""

    title: str = Field(min_length=1, max_length=500)
    excerpt: str | None = None
    content: Any = None
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    status: ArticleStatus = ArticleStatus.DRAFT
    original_language: str = "en"
    auto_translate: bool = True
    target_languages: list[str] = Field(default_factory=list)


class ArticleUpdate(BaseModel):
    """Update article request. Only provided fields are changed."""

    title: str | None = Field(None, min_length=1, max_length=500)
    excerpt: str | None = None
    content: Any = None
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] | None = None
    status: ArticleStatus | None = None
    auto_translate: bool | None = None
    target_languages: list[str] | None = None


class ArticleResponse(BaseModel):
    """Article response model, optionally carrying a translation overlay."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    title: str
    excerpt: str | None
    content: Any = None
    plain_text: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    status: ArticleStatus
    original_language: str
    auto_translate: bool
    target_languages: list[str] = Field(default_factory=list)
    available_languages: list[str] = Field(default_factory=list)
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    # Translation overlay
    is_translated: bool = False
    translation_language: str | None = None
    translation_quality: int | None = None
    translation_confidence: float | None = None
    translation_needs_review: bool | None = None
