"""Malicious-content screening for pasted text."""
from __future__ import annotations

import re
import unicodedata
from typing import List

MALICIOUS_PATTERNS = (
    re.compile(r"<script\b", re.IGNORECASE),
    # A label such as "Data: July 29" is not a URI.
    re.compile(r"\b(?:javascript|vbscript|data):(?!\s)", re.IGNORECASE),
    re.compile(r"\$\{.*?\}|<%.*?%>|\{\{.*?\}\}", re.DOTALL),
    re.compile(r"\b(?:DROP\s+TABLE|DELETE\s+FROM|INSERT\s+INTO)\b", re.IGNORECASE),
    re.compile(r"\bUPDATE\s+\S+\s+SET\b", re.IGNORECASE),
)

DEFAULT_MAX_LINE_LENGTH = 10_000
DEFAULT_MAX_CONTROL_RATIO = 0.1


def control_character_ratio(text: str) -> float:
    if not text:
        return 0.0
    flagged = sum(
        1 for char in text if char not in "\n\r\t" and unicodedata.category(char).startswith("C")
    )
    return flagged / len(text)


def validate_content(
    text: str,
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    max_control_ratio: float = DEFAULT_MAX_CONTROL_RATIO,
) -> List[str]:
    """Return the reasons ``text`` must be rejected; empty when it is safe."""

    errors: List[str] = []
    if any(pattern.search(text) for pattern in MALICIOUS_PATTERNS):
        errors.append("Potentially malicious content detected")

    if any(len(line) > max_line_length for line in text.split("\n")):
        errors.append(f"Lines exceed maximum length of {max_line_length} characters")

    if control_character_ratio(text) > max_control_ratio:
        errors.append("Excessive control characters detected")

    return errors
