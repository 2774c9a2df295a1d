"""
Translation provider abstraction.

Article translation goes through a chat-completion LLM (Groq) when an
API key is configured, with a deterministic mock provider used when no
key is set or when the real provider fails with a transient
network/rate-limit class error.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import httpx

from quill_core import get_logger, utils
from quill_core.config import TranslationSettings
from quill_core.content import extract_plain_text
from quill_core.schemas.translation import TranslationResult, TranslationSource

logger = get_logger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"

# Retried with backoff; 401/403/404 fail immediately
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

# Error messages that indicate a transient condition worth masking with a mock
_FALLBACK_MARKERS = (
    "network",
    "timeout",
    "timed out",
    "rate limit",
    "connection",
    "econnrefused",
    "etimedout",
)


class ProviderError(Exception):
    """Base class for translation provider failures."""

    fallback_eligible = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """Credentials were rejected (401/403)."""


class ProviderModelNotFoundError(ProviderError):
    """The requested model does not exist (404)."""


class ProviderRateLimitError(ProviderError):
    """Rate limit still exceeded after all retries (429)."""

    fallback_eligible = True


class ProviderNetworkError(ProviderError):
    """Connection, DNS or timeout failure after all retries."""

    fallback_eligible = True


class TranslationParseError(ProviderError):
    """The model kept returning a response that is not the expected JSON."""


def _is_retryable(error: httpx.HTTPError) -> bool:
    """Whether a failed request should be attempted again."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    # No HTTP status at all: refused, reset, DNS failure, timeout
    return isinstance(error, httpx.RequestError)


def should_fall_back_to_mock(error: Exception) -> bool:
    """Whether a provider failure may be masked by a mock translation."""
    if isinstance(error, ProviderError) and error.fallback_eligible:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _FALLBACK_MARKERS)


def build_translation_prompt(target_language: str) -> str:
    """Instructions sent ahead of the JSON-serialized source article."""
    return f"""You are a professional translator. Translate the following content to {target_language}.

CRITICAL REQUIREMENTS:
1. Maintain EXACT original meaning and tone
2. Keep technical/specialized terms as-is if no direct translation exists
3. Preserve ALL markdown/HTML formatting, structure, and styling
4. Translate SEO elements naturally while maintaining keywords
5. Return response in valid JSON format only

RETURN JSON FORMAT:
{{
  "title": "translated title here",
  "excerpt": "translated excerpt here",
  "content": "translated content (same JSON structure as input)",
  "metaTitle": "translated meta title or null",
  "metaDescription": "translated meta description or null",
  "keywords": ["translated", "keywords", "array"],
  "confidence": 0.95,
  "needsReview": false
}}

Important:
- If content is JSON/structured (like rich-text editor documents), preserve the exact structure
- Only translate text nodes, not structure
- Mark needsReview as true if you're unsure about technical terms

Translate the following content:"""


def build_translation_request(source: TranslationSource, target_language: str) -> str:
    """Full prompt: instructions followed by the source fields as JSON."""
    payload = {
        "originalTitle": source.title,
        "originalExcerpt": source.excerpt,
        "originalContent": source.content,
        "originalMetaTitle": source.meta_title,
        "originalMetaDescription": source.meta_description,
        "originalKeywords": source.keywords,
        "targetLanguage": target_language,
    }
    serialized = json.dumps(payload, indent=2, ensure_ascii=False)
    return f"{build_translation_prompt(target_language)}\n\n{serialized}"


class GroqClient:
    """Async client for the Groq chat-completion endpoint."""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.groq.com/openai/v1/chat/completions",
        timeout: float = 30.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, prompt: str, model: str) -> dict[str, Any]:
        return {
            "messages": [{"role": "user", "content": prompt}],
            "model": model,
            "temperature": 0.3,
            "max_tokens": 4000,
            "top_p": 1,
            "stream": False,
            "response_format": {"type": "json_object"},
        }

    async def generate_content(self, prompt: str, model: str = DEFAULT_MODEL) -> str:
        """
        Send a prompt and return the model's message content.

        Retries transient failures with exponential backoff
        (base_delay, 2x, 4x ...).

        Args:
            prompt: Full user prompt.
            model: Model identifier.

        Returns:
            Raw message content from the first choice.

        Raises:
            ProviderError: Classified failure once retries are exhausted or
                the failure is not retryable.
        """
        last_error: httpx.HTTPError | None = None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, self.max_attempts + 1):
                logger.info(
                    "Sending translation request to Groq API",
                    extra={"model": model, "attempt": attempt, "max_attempts": self.max_attempts},
                )
                try:
                    response = await client.post(
                        self.api_url,
                        json=self._payload(prompt, model),
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    last_error = e
                    status_code = (
                        e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                    )
                    logger.warning(
                        "Groq API attempt failed",
                        extra={
                            "attempt": attempt,
                            "max_attempts": self.max_attempts,
                            "status_code": status_code,
                            "error": repr(e),
                        },
                    )
                    if not _is_retryable(e) or attempt >= self.max_attempts:
                        break
                    delay = self.base_delay * 2 ** (attempt - 1)
                    logger.info("Retrying Groq request", extra={"delay_seconds": delay})
                    await utils.sleep(delay)
                    continue

                return self._extract_content(response)

        if last_error is None:
            raise ProviderError(f"Groq API not attempted (max_attempts={self.max_attempts})")
        raise self._classify(last_error, model)

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Unexpected Groq API response shape: {e!r}") from e
        return content or ""

    def _classify(self, error: httpx.HTTPError, model: str) -> ProviderError:
        """Turn the last HTTP failure into a descriptive provider error."""
        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            if status_code in (401, 403):
                return ProviderAuthError(
                    "Invalid Groq API key. Please check GROQ_API_KEY in your environment",
                    status_code,
                )
            if status_code == 404:
                return ProviderModelNotFoundError(
                    f'Groq model "{model}" not found. Try using "{DEFAULT_MODEL}"',
                    status_code,
                )
            if status_code == 429:
                return ProviderRateLimitError(
                    "Groq API rate limit exceeded. Please wait and try again.", status_code
                )
            return ProviderError(
                f"Groq API failed after {self.max_attempts} attempts: "
                f"{self._error_detail(error.response)}",
                status_code,
            )

        if isinstance(error, httpx.TimeoutException):
            return ProviderNetworkError(
                f"Network error: request timed out ({type(error).__name__}). "
                "Check your internet connection."
            )
        return ProviderNetworkError(
            f"Network error: connection failed ({type(error).__name__}: {error}). "
            "Check your internet connection."
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            return str(response.json()["error"]["message"])
        except (ValueError, KeyError, TypeError):
            return response.text[:200] or f"HTTP {response.status_code}"


class TranslationProvider(ABC):
    """Base class for article translation providers."""

    @abstractmethod
    async def translate(
        self, source: TranslationSource, target_language: str, model: str = DEFAULT_MODEL
    ) -> TranslationResult:
        """Translate an article's fields into ``target_language``."""


class MockTranslationProvider(TranslationProvider):
    """Deterministic placeholder translations; never calls out."""

    async def translate(
        self, source: TranslationSource, target_language: str, model: str = DEFAULT_MODEL
    ) -> TranslationResult:
        logger.info("Using mock translation", extra={"target_language": target_language})
        tag = f"[{target_language.upper()}]"
        return TranslationResult(
            title=f"{tag} {source.title}",
            excerpt=f"{tag} {source.excerpt}" if source.excerpt else source.excerpt,
            content=source.content,
            plain_text=extract_plain_text(source.content),
            meta_title=source.meta_title,
            meta_description=source.meta_description,
            keywords=list(source.keywords),
            confidence=0.5,
            needs_review=True,
            translated_by="MOCK",
        )


class GroqTranslationProvider(TranslationProvider):
    """Groq-backed provider with a retry loop around response parsing."""

    def __init__(
        self,
        client: GroqClient,
        parse_attempts: int = 2,
        parse_base_delay: float = 0.5,
    ) -> None:
        self.client = client
        self.parse_attempts = parse_attempts
        self.parse_base_delay = parse_base_delay

    async def translate(
        self, source: TranslationSource, target_language: str, model: str = DEFAULT_MODEL
    ) -> TranslationResult:
        prompt = build_translation_request(source, target_language)
        last_error: Exception | None = None

        for attempt in range(1, self.parse_attempts + 1):
            # Network/auth failures are final here; GroqClient already retried them
            raw = await self.client.generate_content(prompt, model)
            try:
                result = self._parse(raw, source)
            except ValueError as e:
                last_error = e
                logger.warning(
                    "Failed to parse Groq response",
                    extra={"attempt": attempt, "max_attempts": self.parse_attempts, "error": str(e)},
                )
                if attempt < self.parse_attempts:
                    await utils.sleep(self.parse_base_delay * 2 ** (attempt - 1))
                continue

            logger.info(
                "Groq translation successful",
                extra={"target_language": target_language, "attempt": attempt},
            )
            return result

        raise TranslationParseError(
            f"Groq translation failed after {self.parse_attempts} attempts: {last_error}"
        )

    @staticmethod
    def _parse(raw: str, source: TranslationSource) -> TranslationResult:
        """
        Parse the model's JSON, filling missing fields from the source.

        Raises:
            ValueError: If the text is not a JSON object or fields are invalid.
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        content = data.get("content") or source.content
        confidence = data.get("confidence")
        return TranslationResult(
            title=data.get("title") or source.title,
            excerpt=data.get("excerpt") or source.excerpt,
            content=content,
            plain_text=extract_plain_text(content),
            meta_title=data.get("metaTitle") or source.meta_title,
            meta_description=data.get("metaDescription") or source.meta_description,
            keywords=data.get("keywords") or list(source.keywords),
            confidence=confidence if confidence is not None else 0.9,
            needs_review=bool(data.get("needsReview", False)),
            translated_by="AI",
        )


class FallbackProvider(TranslationProvider):
    """Provider wrapper that falls back to a mock on transient failures."""

    def __init__(self, primary: TranslationProvider, fallback: TranslationProvider) -> None:
        self.primary = primary
        self.fallback = fallback

    async def translate(
        self, source: TranslationSource, target_language: str, model: str = DEFAULT_MODEL
    ) -> TranslationResult:
        try:
            return await self.primary.translate(source, target_language, model)
        except Exception as e:
            if not should_fall_back_to_mock(e):
                raise
            logger.warning(
                "Primary translation provider failed; falling back to mock translation",
                extra={"target_language": target_language, "error": str(e)},
            )
            return await self.fallback.translate(source, target_language, model)


def create_translation_provider(
    settings: TranslationSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TranslationProvider:
    """
    Create a translation provider from settings.

    Without a Groq API key, returns MockTranslationProvider. Otherwise
    returns the Groq provider wrapped in a FallbackProvider.

    Args:
        settings: Translation settings.
        transport: Optional httpx transport (tests).
    """
    if not settings.groq_configured:
        logger.warning("GROQ_API_KEY is not set; using mock translations")
        return MockTranslationProvider()

    logger.info("Using Groq translation provider", extra={"model": settings.translation_model})
    client = GroqClient(
        api_key=settings.groq_api_key,
        api_url=settings.groq_api_url,
        timeout=settings.translation_timeout_seconds,
        max_attempts=settings.translation_request_attempts,
        base_delay=settings.translation_request_base_delay,
        transport=transport,
    )
    return FallbackProvider(
        primary=GroqTranslationProvider(
            client,
            parse_attempts=settings.translation_parse_attempts,
            parse_base_delay=settings.translation_parse_base_delay,
        ),
        fallback=MockTranslationProvider(),
    )
