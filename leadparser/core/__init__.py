"""Core models, errors, and configuration helpers."""

from leadparser.core.errors import (
    AIConfigurationError,
    AuthenticationError,
    CompletionServiceError,
    CompletionTimeoutError,
    CorruptedResponseError,
    LeadParserError,
    RateLimitError,
)
from leadparser.core.models import (
    CustomerRecord,
    LEAD_SIZES,
    ParseMetadata,
    ParseResult,
    PartialRecord,
)

__all__ = [
    "AIConfigurationError",
    "AuthenticationError",
    "CompletionServiceError",
    "CompletionTimeoutError",
    "CorruptedResponseError",
    "CustomerRecord",
    "LEAD_SIZES",
    "LeadParserError",
    "ParseMetadata",
    "ParseResult",
    "PartialRecord",
    "RateLimitError",
]
