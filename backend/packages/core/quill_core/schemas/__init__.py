"""
Pydantic schemas for API requests and responses.
"""

from .article import ArticleCreate, ArticleResponse, ArticleUpdate
from .translation import (
    ArticleTranslationStatus,
    AvailableLanguage,
    BatchSummary,
    CleanupResult,
    LanguageResult,
    QueuedTaskResponse,
    RegenerateTranslationResponse,
    TranslateArticlesRequest,
    TranslationPlan,
    TranslationResponse,
    TranslationResult,
    TranslationServiceStatus,
    TranslationSource,
    TranslationStatusSummary,
    TriggerTranslationsRequest,
    TriggerTranslationsResponse,
)

__all__ = [
    # Article
    "ArticleCreate",
    "ArticleUpdate",
    "ArticleResponse",
    # Translation
    "TranslationSource",
    "TranslationResult",
    "LanguageResult",
    "BatchSummary",
    "TranslationPlan",
    "TranslationResponse",
    "AvailableLanguage",
    "TriggerTranslationsRequest",
    "TriggerTranslationsResponse",
    "CleanupResult",
    "TranslationServiceStatus",
    "TranslationStatusSummary",
    "ArticleTranslationStatus",
    "RegenerateTranslationResponse",
    "TranslateArticlesRequest",
    "QueuedTaskResponse",
]
