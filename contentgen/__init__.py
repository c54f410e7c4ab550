"""Application package for store blog content generation and normalization."""

from .completion import AnthropicBackend, CompletionBackend, build_backend
from .generator import ContentGenerator
from .lenient_json import repair_json
from .normalizer import NormalizationResult, normalize_response, placeholder_cluster
from .pipeline import prepare_request, prepare_topic_request
from .schemas import (
    Article,
    Cluster,
    GenerationOptions,
    GenerationRequest,
    TopicSuggestionRequest,
)
from .workflow import ClusterWorkflow

__all__ = [
    "AnthropicBackend",
    "Article",
    "Cluster",
    "ClusterWorkflow",
    "CompletionBackend",
    "ContentGenerator",
    "GenerationOptions",
    "GenerationRequest",
    "NormalizationResult",
    "TopicSuggestionRequest",
    "build_backend",
    "normalize_response",
    "placeholder_cluster",
    "prepare_request",
    "prepare_topic_request",
    "repair_json",
]
