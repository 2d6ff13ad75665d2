"""Prompt templates for the AI parser and decoding of its JSON answers."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Sequence

from leadparser.core.errors import CorruptedResponseError

FORMAT_SAMPLE_CHARS = 2000
VALIDATION_SAMPLE_SIZE = 5

KNOWN_FORMATS = (
    "SALES_REPORT",
    "SPREADSHEET_CSV",
    "SPREADSHEET_TSV",
    "PIPE_DELIMITED",
    "STRUCTURED_TEXT",
    "MIXED_FORMAT",
    "FREE_TEXT",
    "JSON_ARRAY",
    "XML_FORMAT",
)

SYSTEM_PROMPT = (
    "You extract customer leads for a fiber internet sales team. Respond ONLY with a JSON object. "
    "Copy names, emails and phone numbers exactly as written and never invent placeholder values."
)

_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)


def format_detection_prompt(text: str) -> str:
    sample = text[:FORMAT_SAMPLE_CHARS]
    formats = "\n".join(f"- {name}" for name in KNOWN_FORMATS)
    return (
        "Classify the layout of this customer data sample.\n\n"
        f"DATA SAMPLE:\n{sample}\n\n"
        f"Choose one of:\n{formats}\n\n"
        "Respond with ONLY this JSON:\n"
        '{"format": "FORMAT_NAME", "confidence": 85, "reasoning": "short explanation", '
        '"hasHeaders": true}'
    )


def extraction_prompt(chunk: str, detected_format: str) -> str:
    return (
        f"The data below is in {detected_format} layout. Extract every customer.\n\n"
        f"DATA:\n{chunk}\n\n"
        "Rules:\n"
        "1. Names follow checkmarks or bullets (✓, •, ◦) or sit in a name column. Plan names such as "
        "2GIG or 500MB are never customer names.\n"
        "2. Phones are formatted (XXX) XXX-XXXX.\n"
        "3. Join address fragments that span several lines, e.g. '440 E McPherson Dr, Mebane, NC 27302'.\n"
        "4. Dates become YYYY-MM-DD ('Tuesday, July 29, 2025' -> '2025-07-29'). Keep time windows as "
        "written ('4-6 p.m').\n"
        "5. leadSize is one of 500MB, 1GIG, 2GIG.\n"
        "6. Order numbers usually follow 'Order number:'. Status markers like '((INSTALLED))' go to notes.\n"
        "7. Leave a field empty when the data does not contain it.\n\n"
        "Respond with ONLY this JSON:\n"
        '{"customers": [{"name": "", "email": "", "phone": "", "serviceAddress": "", '
        '"installationDate": "", "installationTime": "", "leadSize": "2GIG", "isReferral": false, '
        '"referralSource": "", "orderNumber": "", "notes": "", "confidence": 90}]}'
    )


def validation_prompt(customers: Sequence[Dict[str, Any]]) -> str:
    sample = json.dumps(list(customers[:VALIDATION_SAMPLE_SIZE]), indent=2, ensure_ascii=False)
    return (
        "Review these extracted customer records for accuracy and completeness.\n\n"
        f"RECORDS:\n{sample}\n\n"
        "Check email and phone shape, YYYY-MM-DD dates, H:MM AM/PM times and missing information.\n"
        "Respond with ONLY this JSON:\n"
        '{"overallQuality": 85, '
        '"issues": [{"customerIndex": 0, "field": "email", "issue": "why", "suggestion": "fixed value"}], '
        '"confidenceAdjustments": [{"customerIndex": 0, "newConfidence": 75, "reason": "why"}]}'
    )


def parse_json_payload(text: str) -> Dict[str, Any]:
    """Decode a model answer, tolerating Markdown fences and chatter around the JSON."""

    cleaned = (text or "").strip()
    fenced = _FENCE.search(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()
    else:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start != -1 and end > start:
            cleaned = cleaned[start:end + 1]

    try:
        payload = json.loads(cleaned)
    except ValueError as exc:
        raise CorruptedResponseError(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise CorruptedResponseError("Model response is not a JSON object")
    return payload
