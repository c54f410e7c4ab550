"""Content generation service used by the API layer.

`ContentGenerator` owns no global state: the completion backend is passed in,
so tests and alternative deployments can swap it freely.
"""

import logging

from contentgen.completion import CompletionBackend
from contentgen.enrichment import enrich_article
from contentgen.exceptions import CompletionError
from contentgen.normalizer import (
    CLUSTER,
    SINGLE,
    TOPICS,
    failure_result,
    normalize_response,
)
from contentgen.pipeline import prepare_request, prepare_topic_request
from contentgen.prompting import (
    build_cluster_prompt,
    build_single_post_prompt,
    build_topic_prompt,
)
from contentgen.schemas import (
    Cluster,
    ClusterResponse,
    GenerationRequest,
    SinglePostResponse,
    TopicSuggestionRequest,
    TopicSuggestionResponse,
)

logger = logging.getLogger(__name__)


class ContentGenerator:
    """Generates single posts, clusters, and topic ideas for a store blog."""

    def __init__(self, backend: CompletionBackend, include_placeholder: bool = True):
        self.backend = backend
        self.include_placeholder = include_placeholder

    def generate_single_post(self, request: GenerationRequest) -> SinglePostResponse:
        """Generate one blog post.

        Raises:
            InputValidationError: if the topic is blank.
        """
        prepared = prepare_request(request)
        logger.info("Generating single post for topic %r", prepared.topic)

        try:
            text = self.backend.complete(build_single_post_prompt(prepared))
        except CompletionError as exc:
            logger.error("Single post generation failed: %s", exc)
            return SinglePostResponse(
                success=False, message="Failed to generate content with Claude AI"
            )

        result = normalize_response(text, SINGLE, topic=prepared.topic)
        if not result.success:
            return SinglePostResponse(success=False, message=result.message)
        return SinglePostResponse(
            success=True,
            article=enrich_article(result.article),
            degraded=result.degraded,
            strategy=result.strategy,
        )

    def generate_cluster(self, request: GenerationRequest, legacy: bool = False) -> ClusterResponse:
        """Generate a pillar article with subtopics.

        Failures are reported as ``success=False``; when placeholders are
        enabled the response still carries a stand-in cluster flagged with
        ``strategy="placeholder"`` so the caller can decide whether to show it.
        """
        prepared = prepare_request(request)
        logger.info("Generating content cluster for topic %r", prepared.topic)

        try:
            text = self.backend.complete(build_cluster_prompt(prepared))
            result = normalize_response(
                text, CLUSTER, topic=prepared.topic, keywords=prepared.keywords
            )
        except CompletionError as exc:
            logger.error("Cluster generation failed: %s", exc)
            result = failure_result(
                CLUSTER,
                "Failed to generate content cluster with Claude AI",
                prepared.topic,
                prepared.keywords,
            )

        cluster = result.cluster
        if cluster is not None and result.success:
            cluster = Cluster(
                pillar=enrich_article(cluster.pillar),
                subtopics=[enrich_article(article) for article in cluster.subtopics],
            )
        if not result.success and not self.include_placeholder:
            cluster = None
        if cluster is not None and legacy:
            cluster = cluster.to_legacy()

        return ClusterResponse(
            success=result.success,
            cluster=cluster,
            message=result.message,
            degraded=result.degraded,
            strategy=result.strategy,
        )

    def suggest_topics(self, request: TopicSuggestionRequest) -> TopicSuggestionResponse:
        prepared = prepare_topic_request(request)
        logger.info("Generating topic suggestions for %d keyword(s)", len(prepared.keywords))

        try:
            text = self.backend.complete(build_topic_prompt(prepared))
        except CompletionError as exc:
            logger.error("Topic suggestion failed: %s", exc)
            return TopicSuggestionResponse(
                success=False, message="Failed to generate topic suggestions"
            )

        result = normalize_response(text, TOPICS)
        if not result.success:
            return TopicSuggestionResponse(success=False, message=result.message)
        return TopicSuggestionResponse(success=True, topics=result.topics)
