"""Typed failures raised by the parsing pipeline."""
from __future__ import annotations

from typing import Optional


class LeadParserError(Exception):
    """Base class for every error raised on purpose by leadparser."""

    user_message = "Parsing failed. Please try again."

    def __init__(self, message: str, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        if user_message:
            self.user_message = user_message


class AIConfigurationError(LeadParserError):
    """The completion service has no credential configured."""

    user_message = "AI parsing is not configured. Set GROQ_API_KEY or use the standard parser."


class CompletionServiceError(LeadParserError):
    """The remote completion service failed or answered with an error status."""

    user_message = "The AI service is unavailable right now."


class CompletionTimeoutError(CompletionServiceError):
    user_message = "The AI service took too long to answer."


class RateLimitError(CompletionServiceError):
    """Too many requests; ``retry_after`` holds the suggested wait in seconds."""

    user_message = "The AI service is rate limiting requests. Wait a moment and retry."

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(CompletionServiceError):
    user_message = "The AI service rejected the configured API key."


class CorruptedResponseError(LeadParserError):
    """The call succeeded but the model did not return parseable JSON."""

    user_message = (
        "The pasted data could not be understood. It may be corrupted or in an "
        "unsupported layout."
    )
