"""Thin client for OpenAI-compatible chat completion endpoints."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import requests

from leadparser.core.errors import (
    AIConfigurationError,
    AuthenticationError,
    CompletionServiceError,
    CompletionTimeoutError,
    RateLimitError,
)
from leadparser.core.utils import get_config_value, load_env_file

logger = logging.getLogger(__name__)
DEFAULT_SECRET_FILE = Path(__file__).resolve().parents[2] / "secrets" / "groq.env"
DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_TIMEOUT = 30
_AI_ENV_LOADED = False

Message = Dict[str, str]


def _ensure_ai_env() -> None:
    """Load AI credentials from a local secrets file once per process."""

    global _AI_ENV_LOADED
    if _AI_ENV_LOADED:
        return

    _AI_ENV_LOADED = True
    secret_location = os.getenv("AI_SECRET_FILE")
    path = Path(secret_location).expanduser() if secret_location else DEFAULT_SECRET_FILE
    load_env_file(path)


@dataclass(frozen=True)
class Completion:
    text: str
    tokens_used: int = 0


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class CompletionClient:
    """Send chat messages and return the first choice plus token usage."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        _ensure_ai_env()
        self.api_key = api_key or get_config_value("GROQ_API_KEY")
        self.model = model or get_config_value("GROQ_MODEL", DEFAULT_MODEL)
        self.base_url = (base_url or get_config_value("GROQ_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = timeout
        self.session = session or (requests.Session() if self.api_key else None)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
    ) -> Completion:
        if not self.api_key or self.session is None:
            raise AIConfigurationError("GROQ_API_KEY is not configured")

        payload = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise CompletionTimeoutError(f"Completion request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise CompletionServiceError(f"Completion request failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError("Completion service rate limit reached", retry_after=_retry_after(response))
        if response.status_code in (401, 403):
            raise AuthenticationError(f"Completion service rejected credentials (HTTP {response.status_code})")
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise CompletionServiceError(f"Completion service returned HTTP {response.status_code}") from exc

        try:
            body = response.json()
            text = body["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise CompletionServiceError("Completion service returned an unexpected payload") from exc

        usage = body.get("usage") or {}
        tokens = int(usage.get("total_tokens") or 0)
        logger.debug("Completion used %d tokens", tokens)
        return Completion(text=text, tokens_used=tokens)
