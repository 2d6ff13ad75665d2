"""Turn partial records into complete ones and revalidate them."""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, List, Optional

from leadparser.core.models import DEFAULT_LEAD_SIZE, LEAD_SIZES, CustomerRecord, PartialRecord
from leadparser.ingestion.normalize import DEFAULT_INSTALL_TIME
from leadparser.ingestion.patterns import is_valid_email, is_valid_phone

logger = logging.getLogger(__name__)

FALLBACK_PHONE = "555-000-0000"
FALLBACK_ADDRESS = "Address not provided"
FALLBACK_EMAIL_DOMAIN = "example.com"

COMPLETE_CONTACT_BONUS = 20
REAL_ADDRESS_BONUS = 10
SCHEDULE_BONUS = 5


def fallback_name(email: Optional[str], placeholder_index: int) -> str:
    """Derive a display name from an email local part, else a numbered placeholder."""

    if email and "@" in email:
        local = email.split("@", 1)[0]
        spaced = re.sub(r"[._]+", " ", local).strip()
        if spaced:
            return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)
    return f"Unknown Customer {placeholder_index}"


def fallback_email(name: str) -> str:
    tokens = [re.sub(r"[^a-z0-9]", "", token) for token in name.lower().split()]
    local = ".".join(token for token in tokens if token) or "customer"
    return f"{local}@{FALLBACK_EMAIL_DOMAIN}"


def complete_record(partial: PartialRecord, default_date: str, placeholder_index: int = 1) -> CustomerRecord:
    """Freeze a partial record, filling gaps with deterministic fallbacks.

    The starting confidence is the weighted sum of the fields that were
    actually extracted; ``inferred_fields`` lists the ones that were not.
    """

    inferred: List[str] = []

    name = partial.name
    if not name:
        name = fallback_name(partial.email, placeholder_index)
        inferred.append("name")

    email = partial.email
    if not email:
        email = fallback_email(name)
        inferred.append("email")

    phone = partial.phone
    if not phone:
        phone = FALLBACK_PHONE
        inferred.append("phone")

    address = partial.service_address
    if not address:
        address = FALLBACK_ADDRESS
        inferred.append("service_address")

    installation_date = partial.installation_date
    if not installation_date:
        installation_date = default_date
        inferred.append("installation_date")

    installation_time = partial.installation_time
    if not installation_time:
        installation_time = DEFAULT_INSTALL_TIME
        inferred.append("installation_time")

    lead_size = partial.lead_size if partial.lead_size in LEAD_SIZES else DEFAULT_LEAD_SIZE

    return CustomerRecord(
        name=name,
        email=email,
        phone=phone,
        service_address=address,
        installation_date=installation_date,
        installation_time=installation_time,
        is_referral=partial.is_referral,
        referral_source=partial.referral_source or "",
        lead_size=lead_size,
        order_number=partial.order_number,
        notes=partial.notes,
        confidence=partial.parsing_score(),
        inferred_fields=tuple(inferred),
    )


def validate_and_enhance(record: CustomerRecord, warnings: List[str]) -> CustomerRecord:
    """Recheck email and phone shape, then add completeness bonuses."""

    email = record.email
    inferred = list(record.inferred_fields)

    if not is_valid_email(email):
        warnings.append(f"Invalid email format for {record.name}: {email}")
        email = fallback_email(record.name)
        if "email" not in inferred:
            inferred.append("email")

    if not is_valid_phone(record.phone):
        warnings.append(f"Invalid phone format for {record.name}: {record.phone}")

    confidence = record.confidence
    if not {"name", "email", "phone"} & set(inferred):
        confidence += COMPLETE_CONTACT_BONUS
    if "service_address" not in inferred:
        confidence += REAL_ADDRESS_BONUS
    if "installation_date" not in inferred and "installation_time" not in inferred:
        confidence += SCHEDULE_BONUS

    return replace(
        record,
        email=email,
        confidence=max(0, min(100, confidence)),
        inferred_fields=tuple(inferred),
    )


def validate_records(records: Iterable[CustomerRecord], warnings: List[str]) -> List[CustomerRecord]:
    validated = [validate_and_enhance(record, warnings) for record in records]
    logger.debug("Validated %d records", len(validated))
    return validated
