"""Heuristic entry point: detect the format, extract, complete, validate."""
from __future__ import annotations

import logging
import re
from datetime import date
from typing import List, Optional

from leadparser.core.models import CustomerRecord, ParseMetadata, ParseResult
from leadparser.ingestion.completion import complete_record, validate_records
from leadparser.ingestion.detection import detect_format, is_header_line
from leadparser.ingestion.normalize import default_install_date
from leadparser.ingestion.strategies import ParseContext, strategy_for

logger = logging.getLogger(__name__)

_FIELD_SPLIT = re.compile(r"[,\t|]")


class UniversalDataParser:
    """Parse arbitrarily formatted pasted lead data into customer records.

    ``today`` anchors the one-week-out default installation date so repeated
    parses of the same text are identical.
    """

    def __init__(self, data: Optional[str], today: Optional[date] = None) -> None:
        self.data = (data or "").strip()
        self.lines: List[str] = [line.strip() for line in self.data.split("\n") if line.strip()]
        self.today = today or date.today()
        self.default_date = default_install_date(self.today)
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def parse(self) -> ParseResult:
        format_detected = "ERROR"
        try:
            format_detected, confidence = detect_format(self.lines)
            strategy = strategy_for(format_detected)
            logger.info(
                "Detected %s (confidence %s) across %d lines", format_detected, confidence, len(self.lines)
            )

            context = ParseContext(
                lines=self.lines,
                default_date=self.default_date,
                warnings=self.warnings,
                errors=self.errors,
            )
            partials = strategy.extract(context)
            customers: List[CustomerRecord] = []
            placeholders = 0
            for partial in partials:
                if not partial.name and not partial.email:
                    placeholders += 1
                customers.append(complete_record(partial, self.default_date, placeholders or 1))
            customers = validate_records(customers, self.warnings)
        except Exception as exc:
            logger.exception("Critical parsing error while handling %s input", format_detected)
            self.errors.append(f"Critical parsing error: {exc}")
            return ParseResult(
                customers=[],
                format_detected="ERROR",
                confidence=0,
                warnings=self.warnings,
                errors=self.errors,
                metadata=self.generate_metadata(),
            )

        logger.info("Extracted %d customer records", len(customers))
        return ParseResult(
            customers=customers,
            format_detected=format_detected,
            confidence=confidence,
            warnings=self.warnings,
            errors=self.errors,
            metadata=self.generate_metadata(),
        )

    def generate_metadata(self) -> ParseMetadata:
        header_lines = sum(1 for line in self.lines if is_header_line(line))
        raw_line_count = len(self.data.split("\n")) if self.data else 0
        field_counts = [len(_FIELD_SPLIT.split(line)) for line in self.lines]
        average = sum(field_counts) / len(field_counts) if field_counts else 0.0
        return ParseMetadata(
            total_lines=len(self.lines),
            empty_lines=raw_line_count - len(self.lines),
            header_lines=header_lines,
            data_lines=len(self.lines) - header_lines,
            average_fields_per_line=round(average, 2),
        )


def parse_universal_data(data: Optional[str], today: Optional[date] = None) -> ParseResult:
    """Parse ``data`` with a fresh :class:`UniversalDataParser`."""

    return UniversalDataParser(data, today=today).parse()
