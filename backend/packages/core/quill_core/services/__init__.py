"""
Business logic services.

This package contains the service layer for the translation pipeline
and the article operations that trigger it.
"""

from .article_service import ArticleService
from .translation_pipeline import TranslationPipeline
from .translation_service import TranslationService

__all__ = [
    "ArticleService",
    "TranslationPipeline",
    "TranslationService",
]
