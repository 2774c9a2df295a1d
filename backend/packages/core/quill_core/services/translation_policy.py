"""
Translation trigger policy.

Decides, for an article mutation, which target languages need new or
refreshed translations.
"""

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from quill_core.schemas.translation import TranslationPlan
from quill_database.models import Article, ArticleStatus


class ArticleChanges(BaseModel):
    """What an article mutation changed."""

    model_config = ConfigDict(frozen=True)

    content_changed: bool = False
    title_changed: bool = False
    status_changed: bool = False
    target_languages_changed: bool = False

    @property
    def has_changes(self) -> bool:
        return (
            self.content_changed
            or self.title_changed
            or self.status_changed
            or self.target_languages_changed
        )

    @classmethod
    def created(cls) -> "ArticleChanges":
        """Changes implied by creating an article: everything is new."""
        return cls(
            content_changed=True,
            title_changed=True,
            status_changed=True,
            target_languages_changed=True,
        )


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def should_check_translations(article: Article, changes: ArticleChanges) -> bool:
    """Whether a mutation can lead to translation work at all."""
    return (
        article.status == ArticleStatus.PUBLISHED
        and bool(article.auto_translate)
        and bool(article.target_languages)
        and changes.has_changes
    )


def plan_translations(
    article: Article,
    changes: ArticleChanges,
    completed: Mapping[str, datetime],
    stale_after: timedelta = timedelta(hours=24),
    now: datetime | None = None,
) -> TranslationPlan:
    """
    Compute the languages an article mutation needs translated.

    A language without a completed translation is "new". A completed
    translation is refreshed only when the title or content changed and
    the translation is older than ``stale_after``; fresher translations are
    left alone so rapid edits do not thrash the provider.

    Args:
        article: The article after the mutation.
        changes: What the mutation changed.
        completed: Language code -> ``updated_at`` of completed translations.
        stale_after: Minimum age before a changed article is re-translated.
        now: Current time (defaults to UTC now).

    Returns:
        Disjoint new/update language lists.
    """
    plan = TranslationPlan()
    if not should_check_translations(article, changes):
        return plan

    now = now or datetime.now(UTC)
    seen: set[str] = set()
    for language in article.target_languages:
        if language == article.original_language or language in seen:
            continue
        seen.add(language)

        translated_at = completed.get(language)
        if translated_at is None:
            plan.new.append(language)
        elif changes.content_changed or changes.title_changed:
            if now - as_utc(translated_at) > stale_after:
                plan.updates.append(language)

    return plan
