"""Declarative field pattern table and the first-match-wins extractor."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Pattern, Tuple


class FieldType(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    NAME = "NAME"
    ADDRESS = "ADDRESS"
    DATE = "DATE"
    TIME = "TIME"
    LEAD_SIZE = "LEAD_SIZE"
    ORDER_NUMBER = "ORDER_NUMBER"


@dataclass(frozen=True)
class FieldSpec:
    """Ordered patterns for one field; a capturing group marks the value."""

    patterns: Tuple[Pattern[str], ...]
    weight: int
    required: bool = False


_MONTHS = "January|February|March|April|May|June|July|August|September|October|November|December"
_MONTH_ABBR = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sept|Sep|Oct|Nov|Dec"
_WEEKDAYS = "Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday"
_STREET_SUFFIXES = "St|Street|Ave|Avenue|Rd|Road|Dr|Drive|Blvd|Boulevard|Ln|Lane|Ct|Court|Pl|Place|Way|Circle|Cir"
_AMPM = r"[ap]\.?m\.?(?![A-Za-z])"

FIELD_PATTERNS: Dict[FieldType, FieldSpec] = {
    FieldType.EMAIL: FieldSpec(
        patterns=(
            re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})"),
            re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        ),
        weight=100,
        required=True,
    ),
    FieldType.PHONE: FieldSpec(
        patterns=(
            re.compile(r"(?<!\d)\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)"),
            re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b"),
            re.compile(r"\(\d{3}\)\s*\d{3}[-.\s]?\d{4}"),
            re.compile(r"\d{10}"),
        ),
        weight=95,
        required=True,
    ),
    FieldType.NAME: FieldSpec(
        patterns=(
            re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b"),
            re.compile(r"\b[A-Z][a-z]+\s+[A-Z]\.\s+[A-Z][a-z]+\b"),
            re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\s+[A-Z][a-z]+\b"),
        ),
        weight=85,
        required=True,
    ),
    FieldType.ADDRESS: FieldSpec(
        patterns=(
            re.compile(rf"\b\d+\s+[A-Za-z\s]+?(?:{_STREET_SUFFIXES})\b", re.IGNORECASE),
            re.compile(r"\b\d+\s+[A-Za-z\s]+,\s*[A-Za-z\s]+,\s*[A-Z]{2}\s*\d{5}"),
            re.compile(r"Service\s+[Aa]ddress:?\s*(.+)", re.IGNORECASE),
        ),
        weight=80,
    ),
    FieldType.DATE: FieldSpec(
        patterns=(
            re.compile(rf"\b(?:{_MONTHS})\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b", re.IGNORECASE),
            re.compile(rf"\b(?:{_MONTH_ABBR})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b", re.IGNORECASE),
            re.compile(
                rf"\b(?:{_WEEKDAYS}),?\s+(?:{_MONTHS})\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b",
                re.IGNORECASE,
            ),
            re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
            re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
            re.compile(r"Installation\s*[Dd]ate:?\s*(.+)", re.IGNORECASE),
        ),
        weight=75,
    ),
    FieldType.TIME: FieldSpec(
        patterns=(
            re.compile(
                rf"\b\d{{1,2}}(?::\d{{2}})?\s*(?:{_AMPM})?\s*[-–]\s*\d{{1,2}}(?::\d{{2}})?\s*{_AMPM}",
                re.IGNORECASE,
            ),
            re.compile(rf"\b\d{{1,2}}:\d{{2}}\s*{_AMPM}", re.IGNORECASE),
            re.compile(rf"\b\d{{1,2}}\s*{_AMPM}", re.IGNORECASE),
            re.compile(r"Installation\s*[Tt]ime:?\s*(.+)", re.IGNORECASE),
        ),
        weight=70,
    ),
    FieldType.LEAD_SIZE: FieldSpec(
        patterns=(
            re.compile(r"\b500\s*MB(?:PS|SP)?\b", re.IGNORECASE),
            re.compile(r"\b1\s*GIG\b", re.IGNORECASE),
            re.compile(r"\b2\s*GIG\b", re.IGNORECASE),
            re.compile(r"\b500\s*Mbps?\b", re.IGNORECASE),
            re.compile(r"\b1000\s*Mbps?\b", re.IGNORECASE),
            re.compile(r"\b2000\s*Mbps?\b", re.IGNORECASE),
            re.compile(r"\b[12]\s*GB\b", re.IGNORECASE),
        ),
        weight=65,
    ),
    FieldType.ORDER_NUMBER: FieldSpec(
        patterns=(
            re.compile(r"Order\s*(?:Number|#):?\s*([A-Z0-9\-]+)", re.IGNORECASE),
            re.compile(r"\b[A-Z]{2,4}\d{4,8}\b"),
            # Ten digit runs are phone numbers.
            re.compile(r"\b(?:\d{6,9}|\d{11,12})\b"),
        ),
        weight=60,
    ),
}

EMAIL_SHAPE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def _value(match: re.Match) -> str:
    if match.re.groups:
        return (match.group(1) or "").strip()
    return match.group(0).strip()


def extract_field(field_type: FieldType, text: str) -> Optional[str]:
    """Return the first value any pattern of ``field_type`` finds in ``text``."""

    if not text:
        return None
    for pattern in FIELD_PATTERNS[field_type].patterns:
        match = pattern.search(text)
        if match:
            value = _value(match)
            if value:
                return value
    return None


def extract_all(field_type: FieldType, text: str) -> List[str]:
    """Return every distinct value for ``field_type``, pattern by pattern."""

    found: List[str] = []
    if not text:
        return found
    for pattern in FIELD_PATTERNS[field_type].patterns:
        for match in pattern.finditer(text):
            value = _value(match)
            if value and value not in found:
                found.append(value)
    return found


def find_spans(field_type: FieldType, text: str) -> List[Tuple[str, int, int]]:
    """Return ``(value, start, end)`` for every match of every pattern."""

    spans: List[Tuple[str, int, int]] = []
    for pattern in FIELD_PATTERNS[field_type].patterns:
        for match in pattern.finditer(text):
            value = _value(match)
            if value:
                spans.append((value, match.start(), match.end()))
    return spans


def is_valid_email(value: str) -> bool:
    return bool(value) and EMAIL_SHAPE.fullmatch(value.strip()) is not None


def is_valid_phone(value: str) -> bool:
    digits = re.sub(r"\D", "", value or "")
    return len(digits) == 10 or (len(digits) == 11 and digits.startswith("1"))


_NON_NAME_WORDS = frozenset(
    word.lower()
    for word in (_STREET_SUFFIXES + "|" + _MONTHS + "|" + _MONTH_ABBR + "|" + _WEEKDAYS).split("|")
) | {
    "please", "thanks", "thank", "hi", "hello", "dear", "regards", "best", "contact", "call",
    "email", "phone", "service", "address", "street", "installation", "install", "customer",
    "order", "plan", "fiber", "total", "sales", "week", "rep", "the", "new", "mr", "mrs", "ms",
}


def is_plausible_name(candidate: str, context: str = "") -> bool:
    """Reject NAME matches that are really street names, dates or greetings."""

    if not candidate:
        return False
    if "service address" in context.lower():
        return False
    words = candidate.lower().replace(".", "").split()
    return not any(word in _NON_NAME_WORDS for word in words)
