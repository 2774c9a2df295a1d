"""
Articles router.

Provides endpoints for writing and reading articles and for managing
their translations.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from quill_core.schemas import (
    ArticleCreate,
    ArticleResponse,
    ArticleUpdate,
    AvailableLanguage,
    TranslationResponse,
    TriggerTranslationsRequest,
    TriggerTranslationsResponse,
)
from quill_core.services import ArticleService, TranslationService

from ..dependencies import get_article_service, get_translation_service

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_article(
    data: ArticleCreate,
    article_service: Annotated[ArticleService, Depends(get_article_service)],
) -> ArticleResponse:
    """
    Create an article.

    Translations are queued in the background when the article is
    created published.

    Args:
        data: Article creation data.
        article_service: Article service.

    Returns:
        Created article.
    """
    return await article_service.create_article(data)


@router.get("/{slug}")
async def get_article(
    slug: str,
    article_service: Annotated[ArticleService, Depends(get_article_service)],
    language: str | None = None,
) -> ArticleResponse:
    """
    Get an article, translated when a completed translation exists.

    Args:
        slug: Article slug.
        article_service: Article service.
        language: Optional language code.

    Returns:
        Article details.

    Raises:
        HTTPException: If article not found.
    """
    try:
        return await article_service.get_article(slug, language)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None


@router.patch("/{slug}")
async def update_article(
    slug: str,
    data: ArticleUpdate,
    article_service: Annotated[ArticleService, Depends(get_article_service)],
) -> ArticleResponse:
    """
    Update an article.

    Args:
        slug: Article slug.
        data: Fields to change.
        article_service: Article service.

    Returns:
        Updated article.

    Raises:
        HTTPException: If article not found.
    """
    try:
        return await article_service.update_article(slug, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None


@router.post("/{slug}/publish")
async def publish_article(
    slug: str,
    article_service: Annotated[ArticleService, Depends(get_article_service)],
) -> ArticleResponse:
    """Publish an article."""
    try:
        return await article_service.publish_article(slug)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None


@router.post("/{article_id}/translations", status_code=status.HTTP_202_ACCEPTED)
async def trigger_translations(
    article_id: str,
    data: TriggerTranslationsRequest,
    article_service: Annotated[ArticleService, Depends(get_article_service)],
) -> TriggerTranslationsResponse:
    """
    Queue translations for an article.

    Args:
        article_id: Article identifier.
        data: Languages and force flag.
        article_service: Article service.

    Returns:
        What was queued.

    Raises:
        HTTPException: If the article is missing or cannot be translated.
    """
    try:
        return await article_service.trigger_manual_translations(
            article_id, data.languages, data.force
        )
    except ValueError as e:
        if "not found" in str(e):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None


@router.get("/{article_id}/translations")
async def list_translations(
    article_id: str,
    translation_service: Annotated[TranslationService, Depends(get_translation_service)],
    include_failed: bool = False,
) -> list[TranslationResponse]:
    """
    List an article's translations.

    Args:
        article_id: Article identifier.
        translation_service: Translation service.
        include_failed: Include translations that are not completed.

    Returns:
        Translations ordered by language.
    """
    translations = await translation_service.get_article_translations(article_id, include_failed)
    return [TranslationResponse.model_validate(t) for t in translations]


@router.get("/{article_id}/languages")
async def list_available_languages(
    article_id: str,
    translation_service: Annotated[TranslationService, Depends(get_translation_service)],
) -> list[AvailableLanguage]:
    """Languages an article can be read in, original first."""
    try:
        return await translation_service.get_available_languages(article_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
