"""Universal customer data parser for door-to-door sales lead pastes."""

from leadparser.core.models import CustomerRecord, ParseResult
from leadparser.ingestion.parser import UniversalDataParser, parse_universal_data
from leadparser.processing.ai_parser import AIDataParser, parse_with_ai
from leadparser.security.gate import validate_security_requirements

__all__ = [
    "AIDataParser",
    "CustomerRecord",
    "ParseResult",
    "UniversalDataParser",
    "parse_universal_data",
    "parse_with_ai",
    "validate_security_requirements",
]
