"""AI extraction pipeline: completion client, cache, prompts and parser."""

from leadparser.processing.ai_parser import AI_PARSER_PRESETS, AIDataParser, AIParsingConfig, parse_with_ai
from leadparser.processing.cache import ParseCache
from leadparser.processing.completion import Completion, CompletionClient

__all__ = [
    "AI_PARSER_PRESETS",
    "AIDataParser",
    "AIParsingConfig",
    "Completion",
    "CompletionClient",
    "ParseCache",
    "parse_with_ai",
]
