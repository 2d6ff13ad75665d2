"""Heuristic lead extraction: patterns, format detection, strategies."""

from leadparser.ingestion.batching import BatchSplitter
from leadparser.ingestion.detection import detect_format
from leadparser.ingestion.parser import UniversalDataParser, parse_universal_data
from leadparser.ingestion.patterns import FieldType, extract_field

__all__ = [
    "BatchSplitter",
    "FieldType",
    "UniversalDataParser",
    "detect_format",
    "extract_field",
    "parse_universal_data",
]
