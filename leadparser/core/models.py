"""Data models for customer records extracted from pasted lead data."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

LEAD_SIZES = ("500MB", "1GIG", "2GIG")
DEFAULT_LEAD_SIZE = "2GIG"

# Per-field points used for record confidence and for ranking candidate parses.
FIELD_WEIGHTS = {
    "name": 25,
    "email": 30,
    "phone": 25,
    "service_address": 15,
    "installation_date": 3,
    "installation_time": 2,
}


@dataclass(frozen=True)
class CustomerRecord:
    """A complete customer lead, ready to be stored or exported."""

    name: str
    email: str
    phone: str
    service_address: str
    installation_date: str
    installation_time: str
    is_referral: bool = False
    referral_source: str = ""
    lead_size: str = DEFAULT_LEAD_SIZE
    order_number: Optional[str] = None
    notes: Optional[str] = None
    confidence: int = 0
    inferred_fields: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dictionary representation for JSON and CSV output."""

        data = asdict(self)
        data["inferred_fields"] = list(self.inferred_fields)
        return data


@dataclass
class PartialRecord:
    """Mutable accumulator filled field by field while a strategy reads lines."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    service_address: Optional[str] = None
    installation_date: Optional[str] = None
    installation_time: Optional[str] = None
    is_referral: bool = False
    referral_source: Optional[str] = None
    lead_size: Optional[str] = None
    order_number: Optional[str] = None
    notes: Optional[str] = None

    def has_minimum_fields(self) -> bool:
        return bool(self.name or self.email or self.phone)

    def parsing_score(self) -> int:
        return sum(weight for name, weight in FIELD_WEIGHTS.items() if getattr(self, name))


@dataclass
class ParseMetadata:
    total_lines: int = 0
    empty_lines: int = 0
    header_lines: int = 0
    data_lines: int = 0
    average_fields_per_line: float = 0.0
    ai_processing_time: Optional[float] = None
    tokens_used: Optional[int] = None
    cost_estimate: Optional[float] = None


@dataclass
class ParseResult:
    """Aggregate output of a parse call: records plus diagnostics."""

    customers: List[CustomerRecord] = field(default_factory=list)
    format_detected: str = "FREE_TEXT"
    confidence: float = 0.0
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: ParseMetadata = field(default_factory=ParseMetadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customers": [customer.to_dict() for customer in self.customers],
            "format_detected": self.format_detected,
            "confidence": self.confidence,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "metadata": asdict(self.metadata),
        }
