"""One extraction strategy per input archetype.

Each strategy segments the cleaned input lines into customer-sized chunks
and fills :class:`PartialRecord` objects with the field extractors. Work is
guarded line by line (or record by record for free text) so a single bad
line lands in ``errors`` instead of aborting the parse.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from leadparser.core.models import PartialRecord
from leadparser.ingestion.detection import (
    PIPE,
    Delimiter,
    detect_delimiter,
    detect_headers,
    is_header_line,
)
from leadparser.ingestion.normalize import (
    clean_text,
    format_phone,
    format_time,
    parse_and_format_date,
    parse_lead_size,
)
from leadparser.ingestion.patterns import (
    FIELD_PATTERNS,
    FieldType,
    extract_all,
    extract_field,
    find_spans,
    is_plausible_name,
)

logger = logging.getLogger(__name__)

CITY_STATE_ZIP = re.compile(r"^[A-Za-z][A-Za-z .'-]*,?\s+[A-Z]{2}\s+\d{5}(?:-\d{4})?$")
STREET_START = re.compile(r"\d+\s+[A-Za-z]")
AFFIRMATIVE = {"yes", "y", "true", "1", "x"}
NEGATIVE = {"no", "n", "false", "0", "none", "-"}


@dataclass
class ParseContext:
    """Per-call state shared by a strategy: the lines plus diagnostics sinks."""

    lines: List[str]
    default_date: str
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def record_error(self, index: int, exc: Exception, unit: str = "line") -> None:
        self.errors.append(f"Error parsing {unit} {index + 1}: {exc}")
        logger.warning("Skipped %s %d after %s", unit, index + 1, type(exc).__name__)


def populate(text: str, record: PartialRecord, default_date: str) -> None:
    """Run every field extractor over ``text`` and fill the fields still empty."""

    if not record.email:
        record.email = extract_field(FieldType.EMAIL, text)
    if not record.phone:
        phone = extract_field(FieldType.PHONE, text)
        if phone:
            record.phone = format_phone(phone)
    if not record.service_address:
        address = extract_field(FieldType.ADDRESS, text)
        if address:
            record.service_address = clean_text(address)
    if not record.installation_date:
        found = extract_field(FieldType.DATE, text)
        if found:
            record.installation_date = parse_and_format_date(found, default_date)
    if not record.installation_time:
        found = extract_field(FieldType.TIME, text)
        if found:
            record.installation_time = format_time(found)
    if not record.lead_size:
        found = extract_field(FieldType.LEAD_SIZE, text)
        if found:
            record.lead_size = parse_lead_size(found)
    if not record.order_number:
        record.order_number = extract_field(FieldType.ORDER_NUMBER, text)
    if not record.name:
        for candidate in extract_all(FieldType.NAME, text):
            if is_plausible_name(candidate, text):
                record.name = clean_text(candidate)
                break


def append_locality(record: PartialRecord, line: str) -> bool:
    """Attach a ``City, ST 12345`` continuation line to the current address."""

    if not record.service_address or not CITY_STATE_ZIP.match(line):
        return False
    if line not in record.service_address:
        record.service_address = f"{record.service_address}, {line}"
    return True


def apply_referral(record: PartialRecord, value: str) -> None:
    lowered = value.strip().lower()
    if lowered in NEGATIVE:
        return
    record.is_referral = True
    if lowered not in AFFIRMATIVE and not record.referral_source:
        record.referral_source = value.strip()


class ExtractionStrategy:
    """Base class: turn the parse context into partial records."""

    formats: Tuple[str, ...] = ()

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        raise NotImplementedError


class SalesReportStrategy(ExtractionStrategy):
    """Checkmark-delimited blocks, one customer per glyph line."""

    formats = ("SALES_REPORT",)
    BOUNDARY = re.compile(r"^[✓✔◦•]\s*(.+)")

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        records: List[PartialRecord] = []
        current: Optional[PartialRecord] = None
        collecting = False

        for index, line in enumerate(context.lines):
            if is_header_line(line):
                continue
            try:
                boundary = self.BOUNDARY.match(line)
                if boundary or ("@" in line and not collecting):
                    self._emit(current, records)
                    current = self._start_record(line, boundary, context)
                    collecting = True
                elif current is not None and current.name:
                    self._parse_line(line, current, context)
            except Exception as exc:
                context.record_error(index, exc)

        self._emit(current, records)
        return records

    def _start_record(self, line: str, boundary: Optional[re.Match], context: ParseContext) -> PartialRecord:
        record = PartialRecord()
        if boundary:
            name = clean_text(boundary.group(1))
            record.name = name if "@" not in name else None
        populate(line, record, context.default_date)
        return record

    def _parse_line(self, line: str, record: PartialRecord, context: ParseContext) -> None:
        if append_locality(record, line):
            return
        populate(line, record, context.default_date)

    @staticmethod
    def _emit(record: Optional[PartialRecord], records: List[PartialRecord]) -> None:
        if record is None or not record.name:
            return
        if record.email or record.phone or record.service_address:
            records.append(record)


ADDRESS_PARTS = ("street", "unit", "city", "state", "zip")


def resolve_header(header: str) -> Optional[str]:
    """Map a spreadsheet column title onto a record field key."""

    lowered = header.strip().lower()
    if not lowered:
        return None
    if "email" in lowered or "e-mail" in lowered:
        return "email"
    if any(token in lowered for token in ("phone", "tel", "mobile", "cell")):
        return "phone"
    if "address" in lowered or "street" in lowered:
        return "street"
    if "city" in lowered:
        return "city"
    if lowered == "st" or "state" in lowered:
        return "state"
    if "zip" in lowered or "postal" in lowered:
        return "zip"
    if "unit" in lowered or "apt" in lowered:
        return "unit"
    if "time" in lowered:
        return "time"
    if ("date" in lowered or "install" in lowered) and "order" not in lowered:
        return "date"
    if any(token in lowered for token in ("size", "plan", "fiber", "package", "speed")):
        return "lead_size"
    if ("order" in lowered or "#" in lowered) and "date" not in lowered:
        return "order_number"
    if "referral" in lowered or "referred" in lowered:
        return "referral"
    if ("name" in lowered and "rep" not in lowered) or lowered == "customer":
        return "name"
    if "note" in lowered or "status" in lowered:
        return "notes"
    return None


def assemble_address(parts: Dict[str, str]) -> str:
    street = " ".join(filter(None, (parts.get("street"), parts.get("unit"))))
    region = " ".join(filter(None, (parts.get("state"), parts.get("zip"))))
    return ", ".join(filter(None, (street, parts.get("city"), region)))


class SpreadsheetStrategy(ExtractionStrategy):
    """Delimited rows, mapped by header names when the first row has them."""

    formats = ("SPREADSHEET_TSV", "SPREADSHEET_CSV")

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        lines = context.lines
        records: List[PartialRecord] = []
        if not lines:
            return records

        delimiter = detect_delimiter(lines)
        columns: Optional[List[Optional[str]]] = None
        start = 0
        if detect_headers(lines[0], delimiter):
            columns = [resolve_header(cell) for cell in delimiter.split(lines[0])]
            start = 1
        logger.debug("Spreadsheet rows split on %s (headers=%s)", delimiter.name, columns is not None)

        for index in range(start, len(lines)):
            line = lines[index]
            try:
                record = self._parse_row(line, delimiter, columns, context)
                if record.has_minimum_fields():
                    records.append(record)
            except Exception as exc:
                context.record_error(index, exc)
        return records

    def _parse_row(
        self,
        line: str,
        delimiter: Delimiter,
        columns: Optional[Sequence[Optional[str]]],
        context: ParseContext,
    ) -> PartialRecord:
        cells = delimiter.split(line)
        if columns:
            return self._from_columns(cells, columns, context)
        return self._from_positions(line, cells, context)

    def _from_columns(
        self, cells: Sequence[str], columns: Sequence[Optional[str]], context: ParseContext
    ) -> PartialRecord:
        record = PartialRecord()
        address_parts: Dict[str, str] = {}
        for key, value in zip(columns, cells):
            if not key or not value:
                continue
            if key in ADDRESS_PARTS:
                address_parts.setdefault(key, clean_text(value))
            elif key == "name" and not record.name:
                record.name = clean_text(value)
            elif key == "email" and not record.email:
                record.email = value
            elif key == "phone" and not record.phone:
                record.phone = format_phone(value)
            elif key == "date" and not record.installation_date:
                record.installation_date = parse_and_format_date(value, context.default_date)
            elif key == "time" and not record.installation_time:
                record.installation_time = format_time(value)
            elif key == "lead_size" and not record.lead_size:
                record.lead_size = parse_lead_size(value)
            elif key == "order_number" and not record.order_number:
                record.order_number = value
            elif key == "referral":
                apply_referral(record, value)
            elif key == "notes" and not record.notes:
                record.notes = value
        if address_parts:
            record.service_address = assemble_address(address_parts)
        return record

    def _from_positions(self, line: str, cells: Sequence[str], context: ParseContext) -> PartialRecord:
        record = PartialRecord()
        phone_pattern = FIELD_PATTERNS[FieldType.PHONE].patterns[0]
        date_patterns = FIELD_PATTERNS[FieldType.DATE].patterns
        name_patterns = FIELD_PATTERNS[FieldType.NAME].patterns

        for position, cell in enumerate(cells):
            if not cell:
                continue
            if "@" in cell and not record.email:
                record.email = extract_field(FieldType.EMAIL, cell) or cell
            elif not record.phone and phone_pattern.search(cell):
                record.phone = format_phone(cell)
            elif not record.installation_date and any(p.search(cell) for p in date_patterns):
                record.installation_date = parse_and_format_date(cell, context.default_date)
            elif not record.name and position == 0 and any(p.search(cell) for p in name_patterns):
                record.name = clean_text(cell)
            elif not record.service_address and len(cell) > 10 and STREET_START.search(cell):
                record.service_address = clean_text(cell)

        # Dates and plans are often split across cells ("July 29", " 2025").
        populate(line, record, context.default_date)
        return record


class PipeDelimitedStrategy(ExtractionStrategy):
    formats = ("PIPE_DELIMITED",)

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        records: List[PartialRecord] = []
        for index, line in enumerate(context.lines):
            if index == 0 and "@" not in line and detect_headers(line, PIPE):
                continue
            try:
                record = self._parse_line(line, context)
                if record.has_minimum_fields():
                    records.append(record)
            except Exception as exc:
                context.record_error(index, exc)
        return records

    def _parse_line(self, line: str, context: ParseContext) -> PartialRecord:
        record = PartialRecord()
        for segment in PIPE.split(line):
            if segment:
                populate(segment, record, context.default_date)
        return record


# Label words per record field; English, Spanish and German spellings.
LABELS: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "full name", "customer name", "customer", "client", "cliente", "nombre", "kunde"),
    "email": ("email", "e-mail", "email address", "mail", "correo", "correo electrónico"),
    "phone": (
        "phone", "phone number", "tel", "telephone", "mobile", "cell",
        "teléfono", "telefono", "telefon",
    ),
    "service_address": (
        "address", "addr", "service address", "street address",
        "dirección", "direccion", "adresse",
    ),
    "installation_date": ("date", "install date", "installation date", "fecha", "datum"),
    "installation_time": ("time", "install time", "installation time", "hora", "uhrzeit", "zeit"),
    "lead_size": ("size", "plan", "package", "speed", "fiber plan", "paquete", "paket"),
    "order_number": ("order", "order number", "order #", "order no", "pedido", "bestellnummer"),
    "referral_source": ("referral", "referral source", "referred by"),
    "notes": ("notes", "note", "status", "notas", "notizen"),
}
_LABEL_TO_FIELD = {label: name for name, labels in LABELS.items() for label in labels}
_LABEL_ALTERNATION = "|".join(re.escape(label) for label in sorted(_LABEL_TO_FIELD, key=len, reverse=True))
LABEL_PATTERN = re.compile(
    rf"(?:^|(?<=[,;|]))\s*(?:[-*✓◦•]\s*)?(?P<label>{_LABEL_ALTERNATION})\s*[:：]",
    re.IGNORECASE,
)


def labeled_values(line: str) -> List[Tuple[str, str]]:
    """Split a line into ``(field, value)`` pairs for every label it carries."""

    matches = list(LABEL_PATTERN.finditer(line))
    pairs: List[Tuple[str, str]] = []
    for position, match in enumerate(matches):
        end = matches[position + 1].start() if position + 1 < len(matches) else len(line)
        value = line[match.end():end].strip().rstrip(",;|").strip()
        pairs.append((_LABEL_TO_FIELD[match.group("label").lower()], value))
    return pairs


class StructuredTextStrategy(ExtractionStrategy):
    """``Label: value`` lines; a repeated label starts the next customer."""

    formats = ("STRUCTURED_TEXT",)

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        records: List[PartialRecord] = []
        current = PartialRecord()

        for index, line in enumerate(context.lines):
            try:
                pairs = labeled_values(line)
                if not pairs:
                    self._absorb_unlabeled(line, current)
                    continue
                for field_name, value in pairs:
                    if not value:
                        continue
                    if getattr(current, field_name) and current.has_minimum_fields():
                        self._emit(current, records)
                        current = PartialRecord()
                    self._assign(current, field_name, value, context)
            except Exception as exc:
                context.record_error(index, exc)

        self._emit(current, records)
        return records

    def _assign(self, record: PartialRecord, field_name: str, value: str, context: ParseContext) -> None:
        if getattr(record, field_name):
            return
        if field_name == "name":
            record.name = clean_text(value) or None
        elif field_name == "email":
            record.email = extract_field(FieldType.EMAIL, value)
        elif field_name == "phone":
            phone = extract_field(FieldType.PHONE, value)
            record.phone = format_phone(phone) if phone else None
        elif field_name == "service_address":
            record.service_address = clean_text(value)
        elif field_name == "installation_date":
            record.installation_date = parse_and_format_date(value, context.default_date)
        elif field_name == "installation_time":
            record.installation_time = format_time(value)
        elif field_name == "lead_size":
            record.lead_size = parse_lead_size(value)
        elif field_name == "order_number":
            record.order_number = value.split()[0]
        elif field_name == "referral_source":
            apply_referral(record, value)
        elif field_name == "notes":
            record.notes = value

    @staticmethod
    def _absorb_unlabeled(line: str, record: PartialRecord) -> None:
        if append_locality(record, line):
            return
        if not record.email:
            record.email = extract_field(FieldType.EMAIL, line)
        if not record.phone:
            phone = extract_field(FieldType.PHONE, line)
            if phone:
                record.phone = format_phone(phone)

    @staticmethod
    def _emit(record: PartialRecord, records: List[PartialRecord]) -> None:
        if record.has_minimum_fields():
            records.append(record)


class MixedFormatStrategy(ExtractionStrategy):
    """Per line, keep whichever split scores best. Lines are not reconciled."""

    formats = ("MIXED_FORMAT",)
    CANDIDATES = (
        re.compile(","),
        re.compile("\t"),
        re.compile(r"\|"),
        re.compile(";"),
        re.compile(r"\s{2,}"),
    )

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        records: List[PartialRecord] = []
        for index, line in enumerate(context.lines):
            try:
                record = self._parse_line(line, context)
                if record is not None and record.has_minimum_fields():
                    records.append(record)
            except Exception as exc:
                context.record_error(index, exc)
        return records

    def _parse_line(self, line: str, context: ParseContext) -> Optional[PartialRecord]:
        best: Optional[PartialRecord] = None
        best_score = 0
        for candidate in self.CANDIDATES:
            record = PartialRecord()
            for part in candidate.split(line):
                populate(part.strip(), record, context.default_date)
            score = record.parsing_score()
            if score > best_score:
                best, best_score = record, score

        whole = PartialRecord()
        populate(line, whole, context.default_date)
        if whole.parsing_score() > best_score:
            return whole
        return best


class FreeTextStrategy(ExtractionStrategy):
    """One record per distinct email, built from the prose around it."""

    formats = ("FREE_TEXT",)
    WINDOW = 200

    def extract(self, context: ParseContext) -> List[PartialRecord]:
        text = " ".join(context.lines)
        emails = extract_all(FieldType.EMAIL, text)
        if not emails:
            context.warnings.append("No email addresses found in the text")
            return []

        records: List[PartialRecord] = []
        for index, email in enumerate(emails):
            try:
                records.append(self._record_for(text, email, context))
            except Exception as exc:
                context.record_error(index, exc, unit="record")
        return records

    def _record_for(self, text: str, email: str, context: ParseContext) -> PartialRecord:
        position = text.find(email)
        window_start = max(0, position - self.WINDOW)
        window = text[window_start:min(len(text), position + self.WINDOW)]
        anchor = (position - window_start, position - window_start + len(email))

        record = PartialRecord(email=email)
        phone = self._nearest(find_spans(FieldType.PHONE, window), anchor)
        if phone:
            record.phone = format_phone(phone)
        address = self._nearest(find_spans(FieldType.ADDRESS, window), anchor)
        if address:
            record.service_address = clean_text(address)
        found = self._nearest(find_spans(FieldType.DATE, window), anchor)
        if found:
            record.installation_date = parse_and_format_date(found, context.default_date)
        found = self._nearest(find_spans(FieldType.TIME, window), anchor)
        if found:
            record.installation_time = format_time(found)
        found = self._nearest(find_spans(FieldType.LEAD_SIZE, window), anchor)
        if found:
            record.lead_size = parse_lead_size(found)
        record.order_number = self._nearest(find_spans(FieldType.ORDER_NUMBER, window), anchor)

        names = [span for span in find_spans(FieldType.NAME, window) if is_plausible_name(span[0])]
        name = self._nearest(names, anchor, prefer_before=True)
        if name:
            record.name = clean_text(name)
        return record

    @staticmethod
    def _nearest(
        spans: Sequence[Tuple[str, int, int]], anchor: Tuple[int, int], prefer_before: bool = False
    ) -> Optional[str]:
        best: Optional[str] = None
        best_key: Optional[Tuple[int, int]] = None
        anchor_start, anchor_end = anchor
        for value, start, end in spans:
            if start < anchor_end and end > anchor_start:
                continue
            before = end <= anchor_start
            distance = anchor_start - end if before else start - anchor_end
            key = (0 if before or not prefer_before else 1, distance)
            if best_key is None or key < best_key:
                best, best_key = value, key
        return best


_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    SalesReportStrategy(),
    SpreadsheetStrategy(),
    PipeDelimitedStrategy(),
    StructuredTextStrategy(),
    MixedFormatStrategy(),
    FreeTextStrategy(),
)
STRATEGY_REGISTRY: Dict[str, ExtractionStrategy] = {
    name: strategy for strategy in _STRATEGIES for name in strategy.formats
}


def strategy_for(format_name: str) -> ExtractionStrategy:
    """Return the strategy registered for ``format_name`` (free text otherwise)."""

    return STRATEGY_REGISTRY.get(format_name, STRATEGY_REGISTRY["FREE_TEXT"])
