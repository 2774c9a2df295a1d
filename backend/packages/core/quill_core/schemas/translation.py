"""
Translation schemas.

Models for the translation pipeline: provider input/output, per-language
batch results, trigger plans, and API responses.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TranslationSource(BaseModel):
    """Article fields sent to a translation provider."""

    model_config = ConfigDict(from_attributes=True)

    title: str
    excerpt: str | None = None
    content: Any = None
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)


class TranslationResult(BaseModel):
    """Translated article fields returned by a provider."""

    title: str
    excerpt: str | None = None
    content: Any = None
    plain_text: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    confidence: float = Field(0.9, ge=0, le=1)
    needs_review: bool = False
    translated_by: Literal["AI", "MOCK"] = "AI"


LanguageAction = Literal["created", "updated", "skipped", "failed"]


class LanguageResult(BaseModel):
    """Outcome of one language inside a pipeline run."""

    language: str
    success: bool
    action: LanguageAction
    reason: str | None = None
    translation_id: str | None = None
    error: str | None = None
    timestamp: datetime | None = None


class BatchSummary(BaseModel):
    """Aggregate outcome of a pipeline run over a language worklist."""

    successful: int = 0
    failed: int = 0
    skipped: int = 0
    batches: int = 0
    results: list[LanguageResult] = Field(default_factory=list)

    @property
    def failed_languages(self) -> list[str]:
        """Languages whose translation attempt failed."""
        return [r.language for r in self.results if r.action == "failed"]

    @classmethod
    def from_results(cls, results: list[LanguageResult], batches: int = 0) -> "BatchSummary":
        """Build a summary, counting each action once."""
        return cls(
            successful=sum(1 for r in results if r.action in ("created", "updated")),
            failed=sum(1 for r in results if r.action == "failed"),
            skipped=sum(1 for r in results if r.action == "skipped"),
            batches=batches,
            results=results,
        )


class TranslationPlan(BaseModel):
    """Languages an article mutation needs translated."""

    new: list[str] = Field(default_factory=list)
    updates: list[str] = Field(default_factory=list)

    @property
    def languages(self) -> list[str]:
        """Merged worklist: new languages first, then stale updates."""
        return [*self.new, *self.updates]

    @property
    def triggered(self) -> bool:
        return bool(self.new or self.updates)


class TranslationResponse(BaseModel):
    """Translation response model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    article_id: str
    language: str
    title: str | None
    excerpt: str | None
    content: Any = None
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    status: str
    translated_by: str | None = None
    ai_model: str | None = None
    confidence: float | None = None
    quality_score: int | None = None
    needs_review: bool = False
    attempt_count: int = 0
    updated_at: datetime


class AvailableLanguage(BaseModel):
    """A language an article can be read in."""

    language: str
    is_original: bool
    confidence: float
    quality_score: int


class TriggerTranslationsRequest(BaseModel):
    """Manual translation trigger request."""

    languages: list[str] = Field(min_length=1)
    force: bool = False


class TriggerTranslationsResponse(BaseModel):
    """Manual translation trigger response."""

    article_id: str
    languages: list[str]
    queued: bool
    message: str


class CleanupResult(BaseModel):
    """Counts of translation jobs purged by the retention cleanup."""

    deleted_failed_jobs: int
    deleted_completed_jobs: int
    total: int


class TranslationServiceStatus(BaseModel):
    """Translation service health summary."""

    groq_configured: bool
    mode: Literal["REAL", "MOCK"]
    total_translations: int
    completed_translations: int
    success_rate: float
    message: str


class TranslationStatusSummary(BaseModel):
    """Per-status counts of an article's translations."""

    total: int
    completed: int
    failed: int
    pending: int


class ArticleTranslationStatus(BaseModel):
    """An article's translation rows with their status summary."""

    article_id: str
    title: str
    auto_translate: bool
    target_languages: list[str]
    translations: list[TranslationResponse]
    summary: TranslationStatusSummary


class RegenerateTranslationResponse(BaseModel):
    """Result of regenerating one translation."""

    translation_id: str
    article_id: str
    language: str
    message: str


class TranslateArticlesRequest(BaseModel):
    """Bulk translation request: several articles into one language."""

    article_ids: list[str] = Field(min_length=1)
    language: str = Field(min_length=1)


class QueuedTaskResponse(BaseModel):
    """Acknowledgement for a background task request."""

    task: str
    queued: bool
    message: str
