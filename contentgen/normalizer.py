"""Best-effort conversion of model completions into articles and clusters.

Completions are supposed to be JSON but routinely arrive wrapped in code
fences, surrounded by prose, syntactically broken, or not JSON at all. The
normalizer tries four strategies in order and stops at the first one that
yields a value of the requested shape:

1. pull a JSON candidate out of a code fence or the first bracketed span
2. parse the candidate strictly
3. rewrite the candidate with `repair_json` and parse again
4. split the raw text on "Article N:" style markers and build articles

It never raises for bad input; every outcome is a `NormalizationResult`.
"""

import html
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import ValidationError

from contentgen.enrichment import close_open_tags, html_to_text
from contentgen.exceptions import JSONRepairError
from contentgen.lenient_json import STRING_CLOSERS, closes_string, repair_json
from contentgen.schemas import Article, Cluster, TopicSuggestion

logger = logging.getLogger(__name__)

SINGLE = "single"
CLUSTER = "cluster"
TOPICS = "topics"
MODES = (SINGLE, CLUSTER, TOPICS)

MANUAL_CONTENT_CAP = 5000
PLACEHOLDER_SUBTOPICS = 3

FAILURE_MESSAGES = {
    SINGLE: "Could not parse the generated content",
    CLUSTER: "Could not parse the generated content cluster",
    TOPICS: "Could not parse topic suggestions",
}

_JSON_FENCE_RE = re.compile(r"```[ \t]*json[ \t]*\r?\n(.*?)```", re.S | re.I)
_PLAIN_FENCE_RE = re.compile(r"```[ \t]*\r?\n(.*?)```", re.S)
_OPEN_FENCE_RE = re.compile(r"```[ \t]*(?:json)?[ \t]*\r?\n(.*)$", re.S | re.I)

_MARKER_RE = re.compile(
    r"^[ \t>#*_]*(?P<kind>pillar|article|subtopic)(?:[ \t]+article)?"
    r"(?:[ \t]*#?(?P<num>\d+))?[ \t]*(?:\*\*|__)?"
    r"(?:[ \t]*[:.)]|[ \t]+[-–])(?:[ \t]*(?:\*\*|__))?[ \t]*",
    re.I | re.M,
)
_LABEL_RE = re.compile(
    r"^[#*_ \t]*(?P<label>title|meta description|description|tags|keywords|content)"
    r"[ \t]*(?:\*\*|__)?[ \t]*:[ \t]*(?:\*\*|__)?[ \t]*(?P<value>.*)$",
    re.I,
)
_HTML_HINT_RE = re.compile(r"<(?:p|h[1-6]|ul|ol|div|table|section)\b", re.I)
_VALUE_STARTS = set("{[,:")


class ShapeError(ValueError):
    """Decoded JSON does not have the requested article/cluster shape."""


@dataclass
class NormalizationResult:
    success: bool
    article: Optional[Article] = None
    cluster: Optional[Cluster] = None
    topics: Optional[List[TopicSuggestion]] = None
    message: Optional[str] = None
    # direct | repaired | manual | placeholder
    strategy: Optional[str] = None
    degraded: bool = False


# -- strategy 1: candidate extraction ---------------------------------------


def _balanced_span(text: str, start: int) -> str:
    """Return text from `start` to its matching bracket, or to end of text."""
    depth = 0
    closers = None
    escaped = False
    previous = ""
    for index in range(start, len(text)):
        ch = text[index]
        if closers is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch in closers and closes_string(text, index):
                closers = None
                previous = ch
            continue
        if ch in " \t\r\n":
            continue
        # Quotes open strings only where a key or value can start, as in repair_json.
        opens_string = ch in STRING_CLOSERS and previous in _VALUE_STARTS
        previous = ch
        if opens_string:
            closers = STRING_CLOSERS[ch]
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return text[start:].rstrip()


def extract_candidate(text: str, mode: str = SINGLE) -> str:
    """Locate the JSON-looking part of a completion."""
    text = (text or "").strip()
    for pattern in (_JSON_FENCE_RE, _PLAIN_FENCE_RE):
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    # A fence that was never closed usually means the output was cut off.
    match = _OPEN_FENCE_RE.search(text)
    if match and match.group(1).strip():
        text = match.group(1).strip()

    # Topic lists are arrays, so prose braces before them are skipped.
    if mode == TOPICS and "[" in text:
        return _balanced_span(text, text.find("["))
    starts = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if starts:
        return _balanced_span(text, min(starts))
    return text


# -- shape coercion ---------------------------------------------------------


def _coerce_article(value: Any) -> Article:
    if not isinstance(value, dict):
        raise ShapeError(f"expected an article object, got {type(value).__name__}")
    try:
        return Article.model_validate(value)
    except ValidationError as exc:
        raise ShapeError(str(exc)) from exc


def _coerce_articles(values: Any) -> List[Article]:
    if not isinstance(values, list):
        raise ShapeError("expected a list of articles")
    articles = []
    for position, value in enumerate(values):
        try:
            articles.append(_coerce_article(value))
        except ShapeError as exc:
            logger.warning("Skipping malformed article at index %d: %s", position, exc)
    return articles


def overview_pillar(title: str, subtopics: List[Article], topic: str = "") -> Article:
    """Synthesize a pillar article that introduces and lists the subtopics."""
    title = (title or topic or (subtopics[0].title if subtopics else "")).strip()
    if not title:
        raise ShapeError("cannot build a pillar without a title or topic")
    items = "".join(f"<li>{html.escape(article.title)}</li>" for article in subtopics)
    content = (
        f"<h1>{html.escape(title)}</h1>"
        f"<p>An overview of {html.escape(title)} and the guides in this series.</p>"
    )
    if items:
        content += f"<ul>{items}</ul>"
    return Article(title=title, content=content, tags=[topic] if topic else None)


def coerce_single(value: Any) -> Article:
    if isinstance(value, list):
        if not value:
            raise ShapeError("empty list")
        value = value[0]
    if isinstance(value, dict) and isinstance(value.get("article"), dict):
        value = value["article"]
    return _coerce_article(value)


def coerce_cluster(value: Any, topic: str = "") -> Cluster:
    if isinstance(value, list):
        subtopics = _coerce_articles(value)
        if not subtopics:
            raise ShapeError("no usable articles in list")
        return Cluster(pillar=overview_pillar("", subtopics, topic), subtopics=subtopics)

    if not isinstance(value, dict):
        raise ShapeError(f"expected a cluster object, got {type(value).__name__}")
    if isinstance(value.get("cluster"), dict):
        value = value["cluster"]

    raw_subtopics = value.get("subtopics", value.get("articles", []))
    subtopics = _coerce_articles(raw_subtopics or [])

    main_topic = value.get("mainTopic", value.get("main_topic"))
    if "pillar" in value:
        try:
            pillar = _coerce_article(value["pillar"])
        except ShapeError as exc:
            if not subtopics:
                raise
            logger.warning("Replacing unusable pillar with an overview: %s", exc)
            title = main_topic if isinstance(main_topic, str) else ""
            pillar = overview_pillar(title, subtopics, topic)
    else:
        if isinstance(main_topic, dict):
            pillar = _coerce_article(main_topic)
        elif isinstance(main_topic, str) and main_topic.strip():
            pillar = overview_pillar(main_topic, subtopics, topic)
        elif subtopics:
            pillar = overview_pillar("", subtopics, topic)
        else:
            raise ShapeError("cluster object has neither pillar nor subtopics")

    return Cluster(pillar=pillar, subtopics=subtopics)


def coerce_topics(value: Any) -> List[TopicSuggestion]:
    if isinstance(value, dict):
        value = value.get("topics", value.get("suggestions", [value]))
    if not isinstance(value, list):
        raise ShapeError("expected a list of topic suggestions")
    topics = []
    for item in value:
        if not isinstance(item, dict):
            continue
        try:
            topics.append(TopicSuggestion.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed topic suggestion: %s", exc)
    if not topics:
        raise ShapeError("no usable topic suggestions")
    return topics


def _coerce(value: Any, mode: str, topic: str):
    if mode == SINGLE:
        return coerce_single(value)
    if mode == CLUSTER:
        return coerce_cluster(value, topic)
    return coerce_topics(value)


# -- strategy 4: manual extraction ------------------------------------------


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")[:60]


def _clean_heading(line: str) -> str:
    return line.strip().strip("#*_").strip()


def _section_content(lines: List[str]) -> str:
    body = "\n".join(lines).strip()
    if _HTML_HINT_RE.search(body):
        return close_open_tags(body[:MANUAL_CONTENT_CAP])
    paragraphs = []
    used = 0
    for line in lines:
        remaining = MANUAL_CONTENT_CAP - used
        if remaining <= 0:
            break
        text = line[:remaining]
        used += len(text)
        paragraphs.append(f"<p>{html.escape(text)}</p>")
    return "".join(paragraphs)


@dataclass
class _Section:
    kind: str
    article: Article


def _build_section(kind: str, body: str, number: int, topic: str) -> Optional[_Section]:
    lines = [line.strip() for line in body.splitlines() if line.strip()]
    title = ""
    meta_description = None
    tags: List[str] = [topic] if topic else []
    content_lines: List[str] = []

    for line in lines:
        label = _LABEL_RE.match(line)
        if label:
            name = label.group("label").lower()
            value = label.group("value").strip().strip("*_").strip()
            if name == "title" and not title:
                title = value
                continue
            if name in ("meta description", "description") and meta_description is None:
                meta_description = value or None
                continue
            if name in ("tags", "keywords"):
                tags.extend(tag.strip() for tag in value.split(",") if tag.strip())
                continue
            if name == "content":
                if value:
                    content_lines.append(value)
                continue
        if not title:
            title = _clean_heading(line)
            continue
        content_lines.append(line)

    if not title:
        return None
    article = Article(
        id=f"{_slug(topic) or 'article'}-{number}",
        title=title,
        content=_section_content(content_lines),
        meta_description=meta_description,
        tags=tags or None,
    )
    return _Section(kind=kind, article=article)


def extract_sections(text: str, topic: str = "") -> List["_Section"]:
    """Split free text on article markers into low-fidelity articles."""
    text = text or ""
    markers = [
        match
        for match in _MARKER_RE.finditer(text)
        # Article/subtopic markers must carry a number; a pillar needs none.
        if match.group("num") or match.group("kind").lower() == "pillar"
    ]
    sections = []
    for index, match in enumerate(markers):
        end = markers[index + 1].start() if index + 1 < len(markers) else len(text)
        section = _build_section(
            match.group("kind").lower(), text[match.end() : end], index + 1, topic
        )
        if section is not None:
            sections.append(section)
    return sections


def _from_sections(sections: List[_Section], mode: str, topic: str):
    if mode == SINGLE:
        return sections[0].article
    if mode == TOPICS:
        return [
            TopicSuggestion(
                title=section.article.title,
                description=html_to_text(section.article.content)[:300],
                keywords=[tag for tag in section.article.tags or [] if tag != topic],
            )
            for section in sections
        ]
    pillars = [section.article for section in sections if section.kind == "pillar"]
    subtopics = [section.article for section in sections if section.kind != "pillar"]
    pillar = pillars[0] if pillars else overview_pillar("", subtopics, topic)
    return Cluster(pillar=pillar, subtopics=subtopics)


# -- placeholder and results ------------------------------------------------


def placeholder_cluster(topic: str, keywords: Optional[List[str]] = None) -> Cluster:
    """Deterministic stand-in cluster derived only from the topic."""
    topic = (topic or "").strip() or "Untitled topic"
    notice = "<p>Content generation is currently having difficulties. Please try again later.</p>"
    escaped = html.escape(topic)
    pillar = Article(
        title=topic,
        meta_description=f"A comprehensive guide about {topic}",
        content=f"<h1>{escaped}</h1>{notice}",
        tags=list(keywords or [])[:3],
    )
    subtopics = [
        Article(
            title=f"{topic} - Aspect {number}",
            meta_description=f"Learn about important aspects of {topic}",
            content=f"<h1>{escaped} - Aspect {number}</h1>{notice}",
            tags=[],
        )
        for number in range(1, PLACEHOLDER_SUBTOPICS + 1)
    ]
    return Cluster(pillar=pillar, subtopics=subtopics)


def failure_result(
    mode: str,
    message: str,
    topic: str = "",
    keywords: Optional[List[str]] = None,
) -> NormalizationResult:
    """Failed result; cluster failures carry a flagged placeholder."""
    if mode == CLUSTER:
        return NormalizationResult(
            success=False,
            cluster=placeholder_cluster(topic, keywords),
            message=message,
            strategy="placeholder",
            degraded=True,
        )
    return NormalizationResult(success=False, message=message)


def _success(mode: str, value, strategy: str) -> NormalizationResult:
    result = NormalizationResult(
        success=True, strategy=strategy, degraded=strategy == "manual"
    )
    if mode == SINGLE:
        result.article = value
    elif mode == CLUSTER:
        result.cluster = value
    else:
        result.topics = value
    return result


def normalize_response(
    text: Optional[str],
    mode: str = SINGLE,
    topic: str = "",
    keywords: Optional[List[str]] = None,
) -> NormalizationResult:
    """Turn a raw completion into an article, cluster, or topic list.

    Args:
        text: Raw completion text.
        mode: ``single``, ``cluster`` or ``topics``.
        topic: Original request topic, used for tags, ids and synthesized pillars.
        keywords: Request keywords, used only for the cluster placeholder.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown normalization mode: {mode!r}")

    raw = text or ""
    if not raw.strip():
        logger.warning("Empty %s completion", mode)
        return failure_result(mode, "The model returned an empty response", topic, keywords)

    logger.debug("Raw %s completion (first 200 chars): %s", mode, raw[:200])
    candidate = extract_candidate(raw, mode)

    try:
        value = _coerce(json.loads(candidate), mode, topic)
        logger.debug("Parsed %s completion directly", mode)
        return _success(mode, value, "direct")
    except (ValueError, RecursionError) as exc:
        logger.info("Direct parse of %s completion failed: %s", mode, exc)

    try:
        repaired = repair_json(candidate)
        value = _coerce(json.loads(repaired), mode, topic)
        logger.info("Parsed %s completion after syntax repair", mode)
        return _success(mode, value, "repaired")
    except (JSONRepairError, ValueError, RecursionError) as exc:
        logger.info("Repaired parse of %s completion failed: %s", mode, exc)

    sections = extract_sections(raw, topic)
    if sections:
        logger.warning(
            "Recovered %d section(s) from %s completion by manual extraction",
            len(sections),
            mode,
        )
        return _success(mode, _from_sections(sections, mode, topic), "manual")

    logger.error("All normalization strategies failed for %s completion", mode)
    return failure_result(mode, FAILURE_MESSAGES[mode], topic, keywords)
