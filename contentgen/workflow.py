"""Review state for a generated cluster before it is written to the blog.

Mirrors what an operator does on the review screen: tick articles, apply a
bulk draft/publish/schedule action, edit titles and bodies, attach images,
then push everything to the content store.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Protocol

from contentgen.exceptions import WorkflowError
from contentgen.schemas import Cluster

logger = logging.getLogger(__name__)

STATUSES = ("draft", "published", "scheduled")
DEFAULT_SCHEDULE_TIME = "09:30"


@dataclass
class WorkflowImage:
    id: str
    url: str = ""
    alt: str = ""
    source: Optional[str] = None
    is_featured: bool = False
    is_content_image: bool = False


@dataclass
class WorkflowArticle:
    id: str
    title: str
    content: str
    tags: List[str] = field(default_factory=list)
    status: str = "draft"
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    images: List[WorkflowImage] = field(default_factory=list)


class ContentStore(Protocol):
    """Blog publishing backend; returns the store's id for the saved article."""

    def save_article(self, article: WorkflowArticle) -> str:
        ...


def _validate_time(value: str) -> str:
    try:
        datetime.strptime(value, "%H:%M")
    except (TypeError, ValueError) as exc:
        raise WorkflowError(f"Invalid schedule time: {value!r}") from exc
    return value


class ClusterWorkflow:
    def __init__(self, main_topic: str, articles: Optional[List[WorkflowArticle]] = None):
        self.main_topic = main_topic
        self.articles: List[WorkflowArticle] = list(articles or [])
        self.selected: Dict[str, bool] = {}

    def load_cluster(self, cluster: Cluster) -> List[WorkflowArticle]:
        """Replace the working set with the cluster's subtopic articles."""
        self.articles = [
            WorkflowArticle(
                id=f"article-{index}",
                title=article.title or f"Article {index + 1}",
                content=article.content or "<p>Content is being processed...</p>",
                tags=[self.main_topic, *(article.tags or [])[:3]],
            )
            for index, article in enumerate(cluster.subtopics)
        ]
        self.selected = {}
        logger.info("Loaded %d article(s) for review", len(self.articles))
        return self.articles

    def get(self, article_id: str) -> WorkflowArticle:
        for article in self.articles:
            if article.id == article_id:
                return article
        raise WorkflowError(f"Unknown article: {article_id}")

    # -- selection --------------------------------------------------------

    def toggle_selection(self, article_id: str) -> bool:
        self.get(article_id)
        self.selected[article_id] = not self.selected.get(article_id, False)
        return self.selected[article_id]

    def select_all(self, select: bool = True) -> None:
        self.selected = {article.id: select for article in self.articles}

    def is_selected(self, article_id: str) -> bool:
        return self.selected.get(article_id, False)

    @property
    def selected_count(self) -> int:
        return sum(1 for value in self.selected.values() if value)

    # -- status -----------------------------------------------------------

    def _set_status(
        self,
        article: WorkflowArticle,
        status: str,
        scheduled_date: Optional[str],
        scheduled_time: Optional[str],
    ) -> None:
        article.status = status
        article.scheduled_date = scheduled_date if status == "scheduled" else None
        article.scheduled_time = scheduled_time if status == "scheduled" else None

    def apply_bulk_action(
        self,
        status: str,
        scheduled_date: Optional[date] = None,
        scheduled_time: str = DEFAULT_SCHEDULE_TIME,
    ) -> str:
        """Apply a status to every selected article and clear the selection."""
        if status not in STATUSES:
            raise WorkflowError(f"Unknown status: {status!r}")
        count = self.selected_count
        if count == 0:
            raise WorkflowError("Please select at least one article to apply action")

        date_text = None
        if status == "scheduled":
            if scheduled_date is None or not scheduled_time:
                raise WorkflowError("Scheduling requires a date and time")
            date_text = scheduled_date.strftime("%Y-%m-%d")
            _validate_time(scheduled_time)

        for article in self.articles:
            if self.is_selected(article.id):
                self._set_status(article, status, date_text, scheduled_time)
        self.selected = {}

        message = f"{count} article{'s' if count > 1 else ''} set to {status}"
        if status == "scheduled":
            message += f" for {date_text} at {scheduled_time}"
        logger.info(message)
        return message

    def update_status(
        self,
        article_id: str,
        status: str,
        scheduled_date: Optional[str] = None,
        scheduled_time: Optional[str] = None,
    ) -> WorkflowArticle:
        if status not in STATUSES:
            raise WorkflowError(f"Unknown status: {status!r}")
        if status == "scheduled" and scheduled_time:
            _validate_time(scheduled_time)
        article = self.get(article_id)
        self._set_status(article, status, scheduled_date, scheduled_time)
        return article

    # -- edits ------------------------------------------------------------

    def update_title(self, article_id: str, title: str) -> WorkflowArticle:
        article = self.get(article_id)
        article.title = title
        return article

    def update_content(self, article_id: str, content: str) -> WorkflowArticle:
        article = self.get(article_id)
        article.content = content
        return article

    # -- images -----------------------------------------------------------

    def image_search_keyword(self, article_id: str) -> str:
        """Seed query for the image search: first tag, else first two title words."""
        article = self.get(article_id)
        if article.tags:
            return article.tags[0]
        return " ".join(article.title.split()[:2])

    def set_images(self, article_id: str, images: List[WorkflowImage]) -> WorkflowArticle:
        article = self.get(article_id)
        featured = [image for image in images if image.is_featured]
        if len(featured) > 1:
            raise WorkflowError("Only one featured image is allowed per article")
        article.images = list(images)
        return article

    # -- publishing -------------------------------------------------------

    def publish(self, store: ContentStore) -> Dict[str, str]:
        """Write every article to the store; returns article id -> store id."""
        saved = {}
        for article in self.articles:
            saved[article.id] = store.save_article(article)
            logger.info("Saved %s as %s (%s)", article.id, saved[article.id], article.status)
        return saved
