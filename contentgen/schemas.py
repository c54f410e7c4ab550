"""Pydantic schemas for the content generation API.

Wire payloads use camelCase; the model's own JSON (``meta_description``,
``suggested_tags`` ...) is accepted through validation aliases so parsed
completions can be validated directly into these types.
"""

from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Product(BaseModel):
    """Store product referenced by a generation request."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    title: str
    description: Optional[str] = None
    price: Optional[str] = None


class Collection(BaseModel):
    """Store collection used as topic-suggestion context."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    title: str
    description: Optional[str] = None


class GenerationOptions(BaseModel):
    """Presentation preferences rendered into the prompt."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tone_of_voice: str = Field(default="professional", alias="toneOfVoice")
    writing_perspective: str = Field(default="third-person", alias="writingPerspective")
    intro_style: str = Field(default="problem-focused", alias="introStyle")
    buyer_profile: str = Field(default="general", alias="buyerProfile")
    copywriter: str = Field(default="Expert SEO Content Writer")
    style: str = Field(default="authoritative")
    gender: str = Field(default="neutral")
    faq_style: str = Field(
        default="detailed", alias="faqStyle", description="none | brief | detailed"
    )
    article_length: str = Field(
        default="medium", alias="articleLength", description="short | medium | long"
    )
    num_h2s: int = Field(default=5, alias="numH2s")
    enable_tables: bool = Field(default=True, alias="enableTables")
    enable_lists: bool = Field(default=True, alias="enableLists")
    enable_citations: bool = Field(default=True, alias="enableCitations")


class GenerationRequest(BaseModel):
    """Inbound payload for single posts and clusters."""

    topic: str = Field(..., description="Main topic of the post or cluster.")
    keywords: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class TopicSuggestionRequest(BaseModel):
    """Inbound payload for topic brainstorming."""

    model_config = ConfigDict(populate_by_name=True)

    keywords: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    collections: List[Collection] = Field(default_factory=list)
    content_type: str = Field(default="blog", alias="contentType")


class Article(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    title: str
    content: str = ""
    meta_description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("metaDescription", "meta_description"),
        serialization_alias="metaDescription",
    )
    tags: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("tags", "suggested_tags", "suggestedTags"),
    )
    estimated_reading_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("estimatedReadingTime", "estimated_reading_time"),
        serialization_alias="estimatedReadingTime",
    )

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _content_text(cls, value):
        return "" if value is None else str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        # Models occasionally return "a, b, c" instead of a list.
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        if isinstance(value, list):
            return [str(tag).strip() for tag in value if str(tag).strip()]
        return value

    @field_validator("estimated_reading_time", mode="before")
    @classmethod
    def _reading_time_text(cls, value):
        if value is None:
            return None
        return str(value)


class Cluster(BaseModel):
    """A pillar article plus its ordered subtopic articles."""

    pillar: Article
    subtopics: List[Article] = Field(default_factory=list)

    def to_legacy(self) -> "LegacyCluster":
        return LegacyCluster(main_topic=self.pillar.title, subtopics=list(self.subtopics))


class LegacyCluster(BaseModel):
    """Older cluster shape still consumed by some callers."""

    model_config = ConfigDict(populate_by_name=True)

    main_topic: str = Field(alias="mainTopic")
    subtopics: List[Article] = Field(default_factory=list)


class TopicSuggestion(BaseModel):
    title: str
    description: str = ""
    keywords: List[str] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value):
        if isinstance(value, str):
            return [kw.strip() for kw in value.split(",") if kw.strip()]
        return value or []


# How a response body was recovered from the completion.
Strategy = Literal["direct", "repaired", "manual", "placeholder"]


class SinglePostResponse(BaseModel):
    success: bool
    article: Optional[Article] = None
    message: Optional[str] = None
    degraded: bool = False
    strategy: Optional[Strategy] = None


class ClusterResponse(BaseModel):
    """Cluster outcome; failures may still carry a placeholder cluster."""

    success: bool
    cluster: Optional[Union[Cluster, LegacyCluster]] = None
    message: Optional[str] = None
    degraded: bool = False
    strategy: Optional[Strategy] = None


class TopicSuggestionResponse(BaseModel):
    success: bool
    topics: List[TopicSuggestion] = Field(default_factory=list)
    message: Optional[str] = None


class StatusResponse(BaseModel):
    success: bool
    message: str
