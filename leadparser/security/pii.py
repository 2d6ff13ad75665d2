"""PII detection with risk tiers, and masking of the risky matches."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Pattern, Tuple


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


@dataclass(frozen=True)
class PIIPattern:
    pii_type: str
    pattern: Pattern[str]
    risk: RiskLevel


@dataclass(frozen=True)
class PIIAnalysis:
    has_pii: bool = False
    pii_types: Tuple[str, ...] = ()
    sensitive_fields: Tuple[str, ...] = ()
    risk_level: RiskLevel = RiskLevel.LOW


PII_PATTERNS: Tuple[PIIPattern, ...] = (
    PIIPattern("EMAIL", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), RiskLevel.MEDIUM),
    PIIPattern(
        "PHONE",
        re.compile(r"(?<!\d)(?:\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}|\d{10})(?!\d)"),
        RiskLevel.MEDIUM,
    ),
    PIIPattern("SSN", re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), RiskLevel.HIGH),
    PIIPattern("CREDIT_CARD", re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b"), RiskLevel.HIGH),
    PIIPattern(
        "ADDRESS",
        re.compile(
            r"\b\d+\s+[A-Za-z\s]+?(?:Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Boulevard|Blvd|Lane|Ln)\b",
            re.IGNORECASE,
        ),
        RiskLevel.LOW,
    ),
    PIIPattern(
        "DATE_OF_BIRTH",
        re.compile(r"\b(?:0[1-9]|1[0-2])/(?:0[1-9]|[12]\d|3[01])/(?:19|20)\d{2}\b"),
        RiskLevel.HIGH,
    ),
    PIIPattern("IP_ADDRESS", re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"), RiskLevel.MEDIUM),
)

HIGH_RISK_KEYWORDS = (
    "medical", "health", "diagnosis", "treatment", "medication",
    "bank", "account", "routing", "financial", "income", "salary",
    "ssn", "social security",
)
SAMPLES_PER_TYPE = 3


def detect_pii(text: str) -> PIIAnalysis:
    """Run every PII family over ``text`` and grade the overall risk."""

    pii_types: List[str] = []
    samples: List[str] = []
    risk = RiskLevel.LOW

    for spec in PII_PATTERNS:
        matches = [match.group(0) for match in spec.pattern.finditer(text)]
        if not matches:
            continue
        pii_types.append(spec.pii_type)
        samples.extend(matches[:SAMPLES_PER_TYPE])
        if _RISK_RANK[spec.risk] > _RISK_RANK[risk]:
            risk = spec.risk

    has_pii = bool(pii_types)
    lowered = text.lower()
    if has_pii and any(keyword in lowered for keyword in HIGH_RISK_KEYWORDS):
        risk = RiskLevel.HIGH

    return PIIAnalysis(
        has_pii=has_pii,
        pii_types=tuple(pii_types),
        sensitive_fields=tuple(dict.fromkeys(samples)),
        risk_level=risk,
    )


def mask_email(match: re.Match) -> str:
    local, _, domain = match.group(0).partition("@")
    if len(local) > 2:
        local = local[0] + "*" * (len(local) - 2) + local[-1]
    return f"{local}@{domain}"


def mask_digits(match: re.Match) -> str:
    """Replace every digit with ``X`` so punctuation keeps its place."""

    return re.sub(r"\d", "X", match.group(0))


# High-risk families run first so their digits are gone before the phone pattern sees them.
MASKERS: Dict[str, Callable[[re.Match], str]] = {
    "SSN": mask_digits,
    "CREDIT_CARD": mask_digits,
    "EMAIL": mask_email,
    "PHONE": mask_digits,
    "IP_ADDRESS": mask_digits,
}
_PATTERNS_BY_TYPE = {spec.pii_type: spec.pattern for spec in PII_PATTERNS}


def sanitize(text: str, analysis: PIIAnalysis) -> str:
    """Mask detected PII, but only when the overall risk is MEDIUM or HIGH."""

    if not analysis.has_pii or analysis.risk_level == RiskLevel.LOW:
        return text

    sanitized = text
    for pii_type, masker in MASKERS.items():
        if pii_type in analysis.pii_types:
            sanitized = _PATTERNS_BY_TYPE[pii_type].sub(masker, sanitized)
    return sanitized
