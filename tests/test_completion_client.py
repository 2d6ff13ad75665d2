"""Tests for the chat completion client against a fake HTTP session."""
from typing import Any, Dict, Optional

import pytest
import requests

from leadparser.core.errors import (
    AIConfigurationError,
    AuthenticationError,
    CompletionServiceError,
    CompletionTimeoutError,
    RateLimitError,
)
from leadparser.processing.completion import CompletionClient


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.requests: list[Dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _client(response: Any) -> CompletionClient:
    return CompletionClient(
        api_key="test-key",
        model="test-model",
        base_url="https://llm.example.com/v1/",
        session=FakeSession(response),
    )


def test_complete_returns_text_and_token_usage():
    payload = {"choices": [{"message": {"content": '{"ok": true}'}}], "usage": {"total_tokens": 42}}
    client = _client(FakeResponse(payload=payload))

    completion = client.complete([{"role": "user", "content": "hi"}], temperature=0.2, max_tokens=10)

    assert completion.text == '{"ok": true}'
    assert completion.tokens_used == 42
    request = client.session.requests[0]
    assert request["url"] == "https://llm.example.com/v1/chat/completions"
    assert request["headers"]["Authorization"] == "Bearer test-key"
    assert request["json"]["model"] == "test-model"
    assert request["json"]["max_tokens"] == 10
    assert request["timeout"] == 30


def test_rate_limit_carries_retry_after():
    client = _client(FakeResponse(status_code=429, headers={"Retry-After": "2"}))

    with pytest.raises(RateLimitError) as excinfo:
        client.complete([{"role": "user", "content": "hi"}])

    assert excinfo.value.retry_after == 2.0


@pytest.mark.parametrize("status", [401, 403])
def test_rejected_credentials(status):
    with pytest.raises(AuthenticationError):
        _client(FakeResponse(status_code=status)).complete([])


def test_server_error_and_bad_payload_are_service_errors():
    with pytest.raises(CompletionServiceError):
        _client(FakeResponse(status_code=502)).complete([])
    with pytest.raises(CompletionServiceError):
        _client(FakeResponse(payload={"choices": []})).complete([])
    with pytest.raises(CompletionServiceError):
        _client(FakeResponse(payload=ValueError("not json"))).complete([])


def test_transport_failures_are_typed():
    with pytest.raises(CompletionTimeoutError):
        _client(requests.Timeout("slow")).complete([])
    with pytest.raises(CompletionServiceError):
        _client(requests.ConnectionError("down")).complete([])


def test_missing_key_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)

    client = CompletionClient(api_key=None)

    assert not client.configured
    with pytest.raises(AIConfigurationError):
        client.complete([])
