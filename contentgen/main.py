"""FastAPI application entrypoint for store content generation."""

from functools import lru_cache
import logging
from typing import Literal

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from contentgen.completion import CompletionBackend, build_backend
from contentgen.config import configure_logging, get_settings
from contentgen.exceptions import InputValidationError
from contentgen.generator import ContentGenerator
from contentgen.schemas import (
    ClusterResponse,
    GenerationRequest,
    SinglePostResponse,
    StatusResponse,
    TopicSuggestionRequest,
    TopicSuggestionResponse,
)

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Store Content Generator", version="1.0.0")


@lru_cache(maxsize=1)
def get_backend() -> CompletionBackend:
    """Return the process-wide completion backend, built on first use."""
    return build_backend(get_settings())


def get_generator(backend: CompletionBackend = Depends(get_backend)) -> ContentGenerator:
    return ContentGenerator(backend, include_placeholder=get_settings().include_placeholder)


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    if any(error.get("loc", ())[-1:] == ("topic",) for error in errors):
        message = "Topic is required"
    return _failure(400, message)


@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError):
    return _failure(400, str(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return _failure(500, str(exc) or "Unknown error occurred")


@app.get("/health")
def health_check():
    """Return service liveness and the configured completion backend."""
    model = settings.local_model_path if settings.backend == "local" else settings.model
    return {"status": "ok", "backend": settings.backend, "model": model}


@app.get("/api/content/test", response_model=StatusResponse)
def test_connection(backend: CompletionBackend = Depends(get_backend)):
    """Check that the completion backend is configured."""
    status = backend.check()
    if not status["success"]:
        return _failure(400, status["message"])
    return StatusResponse(**status)


@app.post(
    "/api/content/single-post",
    response_model=SinglePostResponse,
    response_model_exclude_none=True,
)
def generate_single_post(
    payload: GenerationRequest, generator: ContentGenerator = Depends(get_generator)
):
    logger.info('Generating single post content for topic: "%s"', payload.topic)
    return generator.generate_single_post(payload)


@app.post(
    "/api/content/cluster",
    response_model=ClusterResponse,
    response_model_exclude_none=True,
)
def generate_cluster(
    payload: GenerationRequest,
    shape: Literal["pillar", "legacy"] = "pillar",
    generator: ContentGenerator = Depends(get_generator),
):
    logger.info('Generating cluster content for topic: "%s"', payload.topic)
    return generator.generate_cluster(payload, legacy=shape == "legacy")


@app.post(
    "/api/content/topics",
    response_model=TopicSuggestionResponse,
    response_model_exclude_none=True,
)
def suggest_topics(
    payload: TopicSuggestionRequest, generator: ContentGenerator = Depends(get_generator)
):
    return generator.suggest_topics(payload)
