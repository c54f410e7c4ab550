"""Runtime settings loaded from the environment (and an optional `.env`)."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Project root .env first, then the working directory.
load_dotenv(Path(__file__).resolve().parents[1] / ".env")
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    anthropic_api_key: str
    anthropic_base_url: str
    model: str
    backend: str
    local_model_path: str
    timeout: float
    include_placeholder: bool
    log_level: str


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def get_settings() -> Settings:
    return Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com"),
        model=os.getenv("CONTENTGEN_MODEL", "claude-3-7-sonnet-20250219"),
        backend=os.getenv("CONTENTGEN_BACKEND", "anthropic").strip().lower(),
        # Hub id or local fine-tuned artifacts for the offline backend.
        local_model_path=os.getenv("MODEL_PATH", "google/flan-t5-base"),
        timeout=float(os.getenv("CONTENTGEN_TIMEOUT", "120")),
        include_placeholder=_env_flag("CONTENTGEN_INCLUDE_PLACEHOLDER", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)
