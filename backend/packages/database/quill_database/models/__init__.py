"""
Database models package.

This module exports all SQLAlchemy models for the Quill application.
"""

from .article import Article, ArticleStatus
from .article_translation import ArticleTranslation, TranslationJob, TranslationStatus
from .base import Base, TimestampMixin

__all__ = [
    "Base",
    "TimestampMixin",
    "Article",
    "ArticleStatus",
    # Translation models
    "ArticleTranslation",
    "TranslationJob",
    "TranslationStatus",
]
