"""
Article content helpers.

Content hashing for staleness detection, plain-text extraction from
rich-text documents, and translation quality scoring.
"""

import hashlib
import json
import math
from typing import Any

EMPTY_CONTENT_HASH = "empty"


def _canonical(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_content(title: str | None, content: Any) -> str:
    """
    Hash an article's title and content.

    Uses a 64-bit BLAKE2b digest over a canonical serialization, so that
    structured documents with reordered keys hash identically.

    Args:
        title: Article title.
        content: Rich-text document, string or None.

    Returns:
        Hex digest, or ``"empty"`` when there is nothing to hash.
    """
    if not title and not content:
        return EMPTY_CONTENT_HASH

    digest = hashlib.blake2b(digest_size=8)
    digest.update(_canonical(title or "").encode("utf-8"))
    digest.update(b"\x00")
    digest.update(_canonical(content if content is not None else "").encode("utf-8"))
    return digest.hexdigest()


def _text_from_nodes(nodes: list[Any]) -> list[str]:
    parts: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        if node.get("type") == "text" and node.get("text"):
            parts.append(node["text"])
        children = node.get("content")
        if isinstance(children, list):
            parts.extend(_text_from_nodes(children))
    return parts


def extract_plain_text(content: Any) -> str:
    """
    Extract plain text from article content.

    Rich-text documents (``{"type": "doc", "content": [...]}``) are walked
    for text nodes; strings are returned unchanged; other structures are
    serialized to JSON.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, dict) and content.get("type") == "doc":
        children = content.get("content")
        if isinstance(children, list):
            return " ".join(_text_from_nodes(children)).strip()
        return ""
    return json.dumps(content, ensure_ascii=False)


def calculate_quality_score(confidence: float, needs_review: bool) -> int:
    """
    Derive a 1-5 quality score from model confidence.

    Args:
        confidence: Model confidence in [0, 1].
        needs_review: Whether the translation was flagged for review.

    Returns:
        Quality score between 1 and 5.
    """
    score = math.floor(confidence * 10)
    if needs_review:
        score = max(1, score - 3)
    return max(1, min(5, math.ceil(score / 2)))
