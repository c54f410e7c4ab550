"""HTML text helpers used to fill article fields the model left out."""

import math
import re

from bs4 import BeautifulSoup

from contentgen.schemas import Article

WORDS_PER_MINUTE = 200
META_DESCRIPTION_LIMIT = 160


def html_to_text(html: str) -> str:
    """Return visible text from an HTML fragment with whitespace collapsed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for bad in soup(["script", "style", "noscript"]):
        bad.extract()
    return re.sub(r"\s+", " ", " ".join(soup.stripped_strings)).strip()


def close_open_tags(html: str) -> str:
    """Re-serialize a (possibly truncated) fragment so every tag is closed."""
    return str(BeautifulSoup(html, "html.parser"))


def estimate_reading_time(html: str) -> str:
    words = len(html_to_text(html).split())
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return f"{minutes} min read"


def derive_meta_description(html: str, limit: int = META_DESCRIPTION_LIMIT) -> str:
    text = html_to_text(html)
    if len(text) <= limit:
        return text
    # Cut on a word boundary and leave room for the ellipsis.
    cut = text[: limit - 3].rsplit(" ", 1)[0].rstrip(",.;:")
    return f"{cut}..."


def enrich_article(article: Article) -> Article:
    """Fill reading time and meta description when the model omitted them."""
    update = {}
    if not article.estimated_reading_time:
        update["estimated_reading_time"] = estimate_reading_time(article.content)
    if not article.meta_description:
        description = derive_meta_description(article.content)
        if description:
            update["meta_description"] = description
    return article.model_copy(update=update) if update else article
