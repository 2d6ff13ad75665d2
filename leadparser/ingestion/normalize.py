"""Normalisers applied to raw field matches before they land on a record."""
from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Optional

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

DECORATIONS = re.compile("[✅\U0001F4B0✓✔◦•]")
_ORDINAL = re.compile(r"(\d{1,2})(?:st|nd|rd|th)\b")
_WEEKDAY_DATE = re.compile(
    r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday),?\s+([a-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})"
)
_MONTH_DATE = re.compile(r"([a-z]{3,})\.?\s+(\d{1,2}),?\s+(\d{4})")
_SLASH_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})\b")
_ISO_DATE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_SINGLE_TIME = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m\.?", re.IGNORECASE)

DEFAULT_INSTALL_TIME = "10:00 AM"


def default_install_date(today: Optional[date] = None) -> str:
    """Installation date used when none could be parsed: one week out."""

    return ((today or date.today()) + timedelta(days=7)).isoformat()


def clean_text(text: str) -> str:
    return DECORATIONS.sub("", text or "").strip()


def format_phone(phone: str, allow_country_code: bool = False) -> str:
    """Render ten digit numbers as ``(XXX) XXX-XXXX``; leave anything else as found."""

    digits = re.sub(r"\D", "", phone or "")
    if allow_country_code and len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return (phone or "").strip()


def _iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_and_format_date(value: Optional[str], default: str) -> str:
    """Normalise a date string to ``YYYY-MM-DD``.

    Tries the weekday form, then month-name form, then ``M/D/Y`` and finally
    ISO. Anything that does not produce a real calendar date yields
    ``default``.
    """

    if not value or value.strip().lower() in {"null", "none", "n/a"}:
        return default

    text = _ORDINAL.sub(r"\1", value.strip().lower())

    match = _WEEKDAY_DATE.search(text)
    if match and match.group(1) in MONTHS:
        parsed = _iso(int(match.group(3)), MONTHS[match.group(1)], int(match.group(2)))
        if parsed:
            return parsed

    for match in _MONTH_DATE.finditer(text):
        month = MONTHS.get(match.group(1))
        if month:
            parsed = _iso(int(match.group(3)), month, int(match.group(2)))
            if parsed:
                return parsed

    match = _SLASH_DATE.search(text)
    if match:
        year = int(match.group(3))
        if year < 100:
            year += 2000
        parsed = _iso(year, int(match.group(1)), int(match.group(2)))
        if parsed:
            return parsed

    match = _ISO_DATE.search(text)
    if match:
        parsed = _iso(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if parsed:
            return parsed

    return default


def format_time(value: str) -> str:
    """Collapse whitespace and render single times as ``H:MM AM``; ranges stay as written."""

    collapsed = re.sub(r"\s+", " ", value or "").strip()
    match = _SINGLE_TIME.fullmatch(collapsed)
    if not match:
        return collapsed
    hour, minutes, meridiem = match.groups()
    return f"{int(hour)}:{minutes or '00'} {meridiem.upper()}M"


def parse_lead_size(value: Optional[str]) -> str:
    """Map plan text onto 500MB, 1GIG or 2GIG, checking 500 before 1 before 2."""

    lowered = (value or "").lower()
    if "500" in lowered:
        return "500MB"
    if "1000" in lowered or ("1" in lowered and ("gig" in lowered or "gb" in lowered)):
        return "1GIG"
    if "2000" in lowered or ("2" in lowered and ("gig" in lowered or "gb" in lowered)):
        return "2GIG"
    return "2GIG"
