"""Request preparation for content generation.

This module validates inbound requests, normalizes topic and keyword text,
and clamps option values before they reach prompt building.
"""

import re
from dataclasses import dataclass
from typing import List

from contentgen.exceptions import InputValidationError
from contentgen.schemas import (
    Collection,
    GenerationOptions,
    GenerationRequest,
    Product,
    TopicSuggestionRequest,
)

MAX_KEYWORDS = 12
LENGTH_BUCKETS = {"short", "medium", "long"}
FAQ_STYLES = {"none", "brief", "detailed"}


@dataclass
class PreparedRequest:
    """Normalized payload consumed by prompt building and generation."""

    topic: str
    keywords: List[str]
    products: List[Product]
    options: GenerationOptions


@dataclass
class PreparedTopicRequest:
    keywords: List[str]
    products: List[Product]
    collections: List[Collection]
    content_type: str


def _normalize_text(text: str) -> str:
    """Normalize whitespace and remove hidden zero-width characters."""
    text = (text or "").replace("\u200b", "")
    return re.sub(r"\s+", " ", text).strip()


def _clean_keywords(keywords: List[str]) -> List[str]:
    """Drop blanks, deduplicate case-insensitively, and cap keyword count."""
    cleaned = []
    seen = set()
    for keyword in keywords or []:
        normalized = _normalize_text(keyword)
        key = normalized.lower()
        if not key or key in seen:
            continue
        seen.add(key)
        cleaned.append(normalized)
    return cleaned[:MAX_KEYWORDS]


def _normalize_options(options: GenerationOptions) -> GenerationOptions:
    length = options.article_length.lower().strip()
    faq_style = options.faq_style.lower().strip()
    return options.model_copy(
        update={
            # Unknown buckets fall back instead of failing the request.
            "article_length": length if length in LENGTH_BUCKETS else "medium",
            "faq_style": faq_style if faq_style in FAQ_STYLES else "detailed",
            "num_h2s": min(max(options.num_h2s, 1), 12),
        }
    )


def subtopic_count(topic: str) -> int:
    """Target number of cluster subtopics, scaled by topic length (3..7)."""
    return min(max(3, len(topic) // 10), 7)


def prepare_request(request: GenerationRequest) -> PreparedRequest:
    """Validate a generation request and return its normalized form."""
    topic = _normalize_text(request.topic)
    if not topic:
        raise InputValidationError("A topic is required to generate content")

    return PreparedRequest(
        topic=topic,
        keywords=_clean_keywords(request.keywords),
        products=list(request.products),
        options=_normalize_options(request.options),
    )


def prepare_topic_request(request: TopicSuggestionRequest) -> PreparedTopicRequest:
    keywords = _clean_keywords(request.keywords)
    if not keywords and not request.products and not request.collections:
        raise InputValidationError(
            "At least one keyword or product/collection is required"
        )
    return PreparedTopicRequest(
        keywords=keywords,
        products=list(request.products),
        collections=list(request.collections),
        content_type=_normalize_text(request.content_type) or "blog",
    )
