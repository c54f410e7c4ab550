"""Completion backends that turn a `Prompt` into raw model text."""

import logging
from typing import Dict, List

import requests

from contentgen.config import Settings
from contentgen.exceptions import CompletionError
from contentgen.prompting import Prompt

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class CompletionBackend:
    """Interface for anything that can answer a system + user prompt."""

    name = "base"
    model = ""

    def complete(self, prompt: Prompt) -> str:
        raise NotImplementedError

    def check(self) -> Dict:
        """Report whether the backend is usable without calling the model."""
        return {"success": True, "message": f"{self.name} backend is configured"}


class AnthropicBackend(CompletionBackend):
    """Calls the Anthropic Messages API over plain HTTP."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.anthropic.com",
        timeout: float = 120,
        session: requests.Session = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, payload: Dict) -> Dict:
        if not self.api_key:
            raise CompletionError("ANTHROPIC_API_KEY is not set")
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        url = f"{self.base_url}/v1/messages"
        try:
            resp = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CompletionError(f"Request to completion API failed: {exc}") from exc

        if resp.status_code >= 400:
            detail = resp.text[:300]
            try:
                detail = resp.json().get("error", {}).get("message", detail)
            except ValueError:
                pass
            raise CompletionError(f"Completion API returned HTTP {resp.status_code}: {detail}")

        try:
            return resp.json()
        except ValueError as exc:
            raise CompletionError("Completion API returned a non-JSON body") from exc

    def complete(self, prompt: Prompt) -> str:
        payload = {
            "model": self.model,
            "max_tokens": prompt.max_tokens,
            "system": prompt.system,
            "messages": [{"role": "user", "content": prompt.user}],
        }
        if prompt.temperature is not None:
            payload["temperature"] = prompt.temperature

        data = self._post(payload)
        blocks: List[Dict] = data.get("content") or []
        text = "".join(
            block.get("text", "") for block in blocks if block.get("type") == "text"
        )
        if not text.strip():
            raise CompletionError("Empty response from completion API")
        if data.get("stop_reason") == "max_tokens":
            logger.warning("Completion hit max_tokens=%d; output may be truncated", prompt.max_tokens)
        return text

    def check(self) -> Dict:
        if not self.api_key:
            return {"success": False, "message": "Claude API key is not configured"}
        return {"success": True, "message": "Claude API connection successful"}


def build_backend(settings: Settings) -> CompletionBackend:
    """Construct the backend selected by `CONTENTGEN_BACKEND`."""
    if settings.backend == "local":
        # Imported lazily so the API backend never pulls in torch.
        from contentgen.local_model import LocalSeq2SeqBackend

        return LocalSeq2SeqBackend(settings.local_model_path)
    if settings.backend != "anthropic":
        raise ValueError(f"Unknown completion backend: {settings.backend!r}")
    return AnthropicBackend(
        api_key=settings.anthropic_api_key,
        model=settings.model,
        base_url=settings.anthropic_base_url,
        timeout=settings.timeout,
    )
