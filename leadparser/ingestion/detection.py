"""Heuristic format classifier and delimiter/header detection."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Pattern, Sequence, Tuple, Union

from leadparser.ingestion.patterns import FIELD_PATTERNS, FieldType

Indicator = Union[str, Pattern[str]]

SAMPLE_SIZE = 10
FALLBACK_FORMAT = "FREE_TEXT"
FALLBACK_CONFIDENCE = 60
CHECKMARKS = re.compile("[✓◦•]")


@dataclass(frozen=True)
class FormatSpec:
    indicators: Tuple[Indicator, ...]
    confidence: int
    description: str


# Iteration order decides ties.
FORMAT_PATTERNS: Dict[str, FormatSpec] = {
    "SALES_REPORT": FormatSpec(
        ("Week ", "Total Sales:", "Order number:", "Service address:", "✓", "◦", "•"),
        95,
        "Sales report with checkmarks and labeled order fields",
    ),
    "SPREADSHEET_TSV": FormatSpec(
        ("\t", "Rep ID", "Street Address", "Installation Date", "Fiber Plan"),
        90,
        "Tab-separated spreadsheet export",
    ),
    "SPREADSHEET_CSV": FormatSpec(
        (",", "Name", "Email", "Phone", "Address"),
        85,
        "Comma-separated spreadsheet export",
    ),
    "PIPE_DELIMITED": FormatSpec(("|",), 80, "Pipe-delimited rows"),
    "STRUCTURED_TEXT": FormatSpec(
        (
            ":", "Customer:", "Name:", "Email:", "Phone:", "Address:",
            "Cliente:", "Nombre:", "Correo:", "Teléfono:", "Telefono:", "Dirección:", "Direccion:",
            "Kunde:", "Telefon:", "Adresse:",
        ),
        85,
        "Labeled 'Field: value' lines",
    ),
    "FREE_TEXT": FormatSpec((), 60, "Unstructured narrative text"),
    "MIXED_FORMAT": FormatSpec(
        ("@", re.compile(r"\d{3}[-.\s]?\d{3}[-.\s]?\d{4}"), re.compile(r"\b\d+\s+[A-Za-z]")),
        70,
        "Rows mixing several delimiters",
    ),
}


class Delimiter(NamedTuple):
    name: str
    pattern: Pattern[str]
    weight: int

    def split(self, line: str) -> List[str]:
        return [part.strip() for part in self.pattern.split(line)]


DELIMITERS: Tuple[Delimiter, ...] = (
    Delimiter("tab", re.compile("\t"), 100),
    Delimiter("comma", re.compile(","), 90),
    Delimiter("pipe", re.compile(r"\|"), 85),
    Delimiter("semicolon", re.compile(";"), 80),
    Delimiter("multiple_spaces", re.compile(r"\s{2,}"), 75),
    Delimiter("colon", re.compile(":"), 70),
    Delimiter("dash", re.compile("-"), 65),
)
COMMA = DELIMITERS[1]
PIPE = DELIMITERS[2]

HEADER_KEYWORDS = ("name", "email", "phone", "address", "date", "time", "customer", "rep", "id")
SUMMARY_MARKERS = ("week ", "total sales:", "completed:", "cancels:", "monthly total", "orders")


def _count(indicator: Indicator, text: str) -> int:
    if isinstance(indicator, str):
        return text.lower().count(indicator.lower())
    return len(indicator.findall(text))


def score_formats(lines: Sequence[str]) -> Dict[str, float]:
    """Score every archetype against the first lines of the input."""

    sample_lines = list(lines[:SAMPLE_SIZE])
    sample = "\n".join(sample_lines)
    total_lines = len(lines)
    scores: Dict[str, float] = {}

    for name, spec in FORMAT_PATTERNS.items():
        score = 0.0
        matched = 0
        for indicator in spec.indicators:
            hits = _count(indicator, sample)
            if hits:
                matched += 1
                score += hits * (10 if isinstance(indicator, str) else 15)
        if matched > 1:
            score *= 1.5
        scores[name] = score * (spec.confidence / 100)

    tabs, commas, pipes = sample.count("\t"), sample.count(","), sample.count("|")
    if tabs > commas and tabs > pipes:
        scores["SPREADSHEET_TSV"] += 20
    elif commas > tabs and commas > pipes:
        scores["SPREADSHEET_CSV"] += 20
    elif pipes > tabs and pipes > commas:
        scores["PIPE_DELIMITED"] += 20

    email_pattern = FIELD_PATTERNS[FieldType.EMAIL].patterns[0]
    phone_pattern = FIELD_PATTERNS[FieldType.PHONE].patterns[0]
    for pattern in (email_pattern, phone_pattern):
        if len(pattern.findall(sample)) > total_lines * 0.3:
            scores["SPREADSHEET_CSV"] += 15
            scores["SPREADSHEET_TSV"] += 15

    if CHECKMARKS.search(sample):
        scores["SALES_REPORT"] += 30

    # Prose that names several contacts in one sentence is narrative, not a row.
    for line in sample_lines:
        if len(email_pattern.findall(line)) >= 2:
            scores["FREE_TEXT"] += 100

    return scores


def detect_format(lines: Sequence[str]) -> Tuple[str, int]:
    """Return the winning archetype and its confidence clamped to [60, 100]."""

    scores = score_formats(lines)
    best_format, best_score = FALLBACK_FORMAT, 0.0
    for name, score in scores.items():
        if score > best_score:
            best_format, best_score = name, score

    if best_score == 0:
        return FALLBACK_FORMAT, FALLBACK_CONFIDENCE
    return best_format, round(min(100.0, max(60.0, best_score)))


def detect_delimiter(lines: Sequence[str]) -> Delimiter:
    """Pick the delimiter with the best hit count times preference weight."""

    sample = "\n".join(lines[:5])
    best, best_score = COMMA, 0
    for delimiter in DELIMITERS:
        score = len(delimiter.pattern.findall(sample)) * delimiter.weight
        if score > best_score:
            best, best_score = delimiter, score
    return best


def detect_headers(line: str, delimiter: Delimiter) -> bool:
    """True when more than 30% of the cells look like column names."""

    cells = delimiter.split(line)
    if not cells:
        return False
    hits = sum(1 for cell in cells if any(keyword in cell.lower() for keyword in HEADER_KEYWORDS))
    return hits > len(cells) * 0.3


def is_header_line(line: str) -> bool:
    """Report and summary lines such as ``Week 3`` or ``Total Sales: 12``."""

    lowered = line.lower()
    return any(marker in lowered for marker in SUMMARY_MARKERS)
