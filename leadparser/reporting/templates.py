"""Mapping utilities to align customer records with the CRM import template."""
from typing import Any, Dict, Iterable, List

from leadparser.core.models import CustomerRecord


TEMPLATE_HEADERS = [
    "Name",
    "Email",
    "Phone",
    "Service_Address",
    "Installation_Date",
    "Installation_Time",
    "Lead_Size",
    "Referral",
    "Referral_Source",
    "Order_Number",
    "Notes",
    "Confidence",
    "Inferred_Fields",
]


def _clean_text(value: str | None) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def record_to_template_row(record: CustomerRecord) -> Dict[str, Any]:
    """Convert a CustomerRecord into the CRM template dictionary."""

    return {
        "Name": _clean_text(record.name),
        "Email": record.email or "",
        "Phone": record.phone or "",
        "Service_Address": _clean_text(record.service_address),
        "Installation_Date": record.installation_date or "",
        "Installation_Time": record.installation_time or "",
        "Lead_Size": record.lead_size or "",
        "Referral": "yes" if record.is_referral else "no",
        "Referral_Source": _clean_text(record.referral_source),
        "Order_Number": record.order_number or "",
        "Notes": _clean_text(record.notes),
        "Confidence": str(record.confidence),
        "Inferred_Fields": ";".join(record.inferred_fields),
    }


def records_to_template_rows(records: Iterable[CustomerRecord]) -> List[Dict[str, Any]]:
    """Convert an iterable of CustomerRecord objects into template-aligned rows."""

    return [record_to_template_row(record) for record in records]
