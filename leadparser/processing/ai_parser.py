"""AI-backed lead extraction with caching, batching, cost control and fallback."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from leadparser.core.errors import AIConfigurationError, CompletionServiceError, LeadParserError
from leadparser.core.models import CustomerRecord, ParseResult, PartialRecord
from leadparser.core.utils import is_enabled
from leadparser.ingestion.batching import BatchSplitter
from leadparser.ingestion.completion import complete_record
from leadparser.ingestion.normalize import (
    clean_text,
    default_install_date,
    format_phone,
    format_time,
    parse_and_format_date,
    parse_lead_size,
)
from leadparser.ingestion.parser import UniversalDataParser, parse_universal_data
from leadparser.ingestion.patterns import is_valid_email
from leadparser.processing.cache import ParseCache, default_cache
from leadparser.processing.completion import CompletionClient
from leadparser.processing.prompts import (
    KNOWN_FORMATS,
    SYSTEM_PROMPT,
    VALIDATION_SAMPLE_SIZE,
    extraction_prompt,
    format_detection_prompt,
    parse_json_payload,
    validation_prompt,
)
from leadparser.security.gate import SecurityGate, default_gate

logger = logging.getLogger(__name__)

COST_PER_TOKEN = 0.000001
CACHE_HIT_WARNING = "Result served from cache"
ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
PLACEHOLDER_NAMES = {"unknown customer", "customer", "n/a", "none", "500mb", "1gig", "2gig", "2gb", "1gb"}
PLACEHOLDER_EMAILS = {"customer@example.com"}

EDITABLE_FIELDS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "serviceAddress": "service_address",
    "service_address": "service_address",
    "installationDate": "installation_date",
    "installation_date": "installation_date",
    "installationTime": "installation_time",
    "installation_time": "installation_time",
    "leadSize": "lead_size",
    "lead_size": "lead_size",
}


@dataclass(frozen=True)
class AIParsingConfig:
    max_tokens: int = 8000
    temperature: float = 0.1
    batch_size: int = 50
    cost_threshold: float = 0.50
    enable_fallback: bool = True
    enable_caching: bool = True
    batch_delay: float = 1.0
    request_timeout: float = 30.0
    model: Optional[str] = None


AI_PARSER_PRESETS: Dict[str, AIParsingConfig] = {
    "FAST_AND_CHEAP": AIParsingConfig(max_tokens=4000, temperature=0.2, batch_size=100, cost_threshold=0.10),
    "BALANCED": AIParsingConfig(max_tokens=8000, temperature=0.1, batch_size=50, cost_threshold=0.50),
    "HIGH_ACCURACY": AIParsingConfig(max_tokens=16000, temperature=0.05, batch_size=25, cost_threshold=2.00),
    "MAXIMUM_ACCURACY": AIParsingConfig(max_tokens=32000, temperature=0.01, batch_size=10, cost_threshold=10.00),
}


def estimate_cost(tokens: int) -> float:
    return tokens * COST_PER_TOKEN


def preprocess(text: str) -> str:
    """Normalise line endings, expand tabs and drop zero-width characters."""

    normalized = (text or "").strip().replace("\r\n", "\n").replace("\t", "    ")
    return ZERO_WIDTH.sub("", normalized)


def _pick(item: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def _is_masked_phone(value: str) -> bool:
    """The gate masks phone digits with ``X``; such a value carries no number."""

    return "X" in value or not any(char.isdigit() for char in value)


class AIDataParser:
    """Two stages: :meth:`_try_ai`, then the heuristic parser when it raises.

    The completion client, cache, security gate and sleep function are all
    injectable so tests control time and the remote service.
    """

    def __init__(
        self,
        config: Optional[AIParsingConfig] = None,
        client: Optional[CompletionClient] = None,
        cache: Optional[ParseCache] = None,
        security_gate: Optional[SecurityGate] = None,
        sleep: Callable[[float], None] = time.sleep,
        today: Optional[date] = None,
    ) -> None:
        self.config = config or AIParsingConfig()
        self.disabled = is_enabled("AI_PARSING_DISABLED")
        self.client = client
        if self.client is None and not self.disabled:
            self.client = CompletionClient(timeout=self.config.request_timeout)
            if not self.client.configured:
                raise AIConfigurationError("GROQ_API_KEY is not configured for AI parsing")
        self.cache = cache if cache is not None else default_cache()
        self.security_gate = security_gate or default_gate()
        self.sleep = sleep
        self.today = today or date.today()
        self.default_date = default_install_date(self.today)

    def parse(self, raw_text: str, client_context: Optional[Dict[str, Any]] = None) -> ParseResult:
        started = time.perf_counter()
        if self.disabled:
            result = parse_universal_data(raw_text, today=self.today)
            result.warnings.insert(0, "AI parsing is disabled; used the standard parser")
            return result

        security = self.security_gate.validate(raw_text, client_context)
        if not security.is_valid:
            logger.warning("AI parse rejected by security gate with %d errors", len(security.errors))
            return ParseResult(
                format_detected="REJECTED",
                confidence=0,
                warnings=list(security.warnings),
                errors=list(security.errors),
            )

        try:
            result = self._try_ai(preprocess(security.sanitized_data))
        except LeadParserError as exc:
            if not self.config.enable_fallback:
                raise
            logger.warning("AI parsing failed with %s; using the standard parser", type(exc).__name__)
            # The local parser never sends data anywhere, so it reads the unmasked text.
            result = parse_universal_data(preprocess(raw_text), today=self.today)
            result.warnings.insert(0, f"AI parsing failed, used standard parser: {exc.user_message}")

        result.warnings[:0] = security.warnings
        result.metadata.ai_processing_time = round((time.perf_counter() - started) * 1000, 2)
        return result

    def _try_ai(self, text: str) -> ParseResult:
        if self.config.enable_caching:
            cached = self.cache.get(text)
            if cached is not None:
                logger.info("AI parse served from cache")
                cached.warnings.append(CACHE_HIT_WARNING)
                cached.metadata.tokens_used = 0
                cached.metadata.cost_estimate = 0.0
                return cached

        tokens = 0
        warnings: List[str] = []
        errors: List[str] = []
        detected_format, confidence, used = self._detect_format(text)
        tokens += used

        chunks = BatchSplitter.split(text, max_rows_per_chunk=self.config.batch_size).chunks
        customers: List[CustomerRecord] = []
        succeeded = 0
        for position, chunk in enumerate(chunks):
            if position:
                self.sleep(self.config.batch_delay)
            logger.info("Extracting batch %d/%d (%d rows)", position + 1, len(chunks), chunk.row_count)
            try:
                batch, used = self._extract_batch(chunk.data, detected_format, offset=len(customers))
            except LeadParserError as exc:
                if not self.config.enable_fallback:
                    raise
                errors.append(f"Batch {position + 1} failed: {exc}")
                logger.warning("Batch %d failed with %s", position + 1, type(exc).__name__)
                continue
            succeeded += 1
            tokens += used
            customers.extend(batch)
            if estimate_cost(tokens) > self.config.cost_threshold:
                warnings.append(
                    f"Cost threshold ${self.config.cost_threshold:.2f} exceeded after batch "
                    f"{position + 1} of {len(chunks)}; returning partial results"
                )
                logger.warning("Stopping AI extraction early at estimated cost $%.4f", estimate_cost(tokens))
                break

        if chunks and not succeeded:
            raise CompletionServiceError(f"All {len(chunks)} extraction batches failed")

        if customers:
            try:
                customers, used = self._validate(customers)
                tokens += used
            except LeadParserError as exc:
                warnings.append(f"AI validation skipped: {exc.user_message}")

        metadata = UniversalDataParser(text, today=self.today).generate_metadata()
        metadata.tokens_used = tokens
        metadata.cost_estimate = round(estimate_cost(tokens), 6)
        result = ParseResult(
            customers=customers,
            format_detected=detected_format,
            confidence=confidence,
            warnings=warnings,
            errors=errors,
            metadata=metadata,
        )
        if self.config.enable_caching and customers:
            self.cache.set(text, result)
        return result

    def _complete(self, prompt: str, max_tokens: Optional[int] = None):
        return self.client.complete(
            [{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
            model=self.config.model,
            temperature=self.config.temperature,
            max_tokens=max_tokens or self.config.max_tokens,
        )

    def _detect_format(self, text: str) -> Tuple[str, int, int]:
        completion = self._complete(format_detection_prompt(text), max_tokens=500)
        try:
            payload = parse_json_payload(completion.text)
        except LeadParserError:
            return "FREE_TEXT", 50, completion.tokens_used

        detected = str(payload.get("format") or "FREE_TEXT").upper()
        if detected not in KNOWN_FORMATS:
            detected = "FREE_TEXT"
        try:
            confidence = int(payload.get("confidence") or 60)
        except (TypeError, ValueError):
            confidence = 60
        return detected, max(0, min(100, confidence)), completion.tokens_used

    def _extract_batch(self, chunk: str, detected_format: str, offset: int = 0) -> Tuple[List[CustomerRecord], int]:
        completion = self._complete(extraction_prompt(chunk, detected_format))
        payload = parse_json_payload(completion.text)
        items = payload.get("customers")
        if not isinstance(items, list):
            raise LeadParserError("Extraction response has no customers list")

        records: List[CustomerRecord] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            record = self._coerce(item, placeholder_index=offset + len(records) + 1)
            if record is not None:
                records.append(record)
        return records, completion.tokens_used

    def _coerce(self, item: Dict[str, Any], placeholder_index: int) -> Optional[CustomerRecord]:
        """Run a model record through the same normalisers and fallbacks as the heuristics."""

        name = clean_text(_pick(item, "name"))
        if name.lower() in PLACEHOLDER_NAMES or len(name) <= 2:
            name = ""
        email = _pick(item, "email")
        if "*" in email or email.lower() in PLACEHOLDER_EMAILS or not is_valid_email(email):
            email = ""
        phone = _pick(item, "phone")
        if _is_masked_phone(phone):
            phone = ""
        installation_date = _pick(item, "installationDate", "installation_date")
        installation_time = _pick(item, "installationTime", "installation_time")
        lead_size = _pick(item, "leadSize", "lead_size")
        referral_source = _pick(item, "referralSource", "referral_source")

        partial = PartialRecord(
            name=name or None,
            email=email or None,
            phone=format_phone(phone, allow_country_code=True) if phone else None,
            service_address=clean_text(_pick(item, "serviceAddress", "service_address")) or None,
            installation_date=(
                parse_and_format_date(installation_date, self.default_date) if installation_date else None
            ),
            installation_time=format_time(installation_time) if installation_time else None,
            is_referral=bool(item.get("isReferral") or item.get("is_referral") or referral_source),
            referral_source=referral_source or None,
            lead_size=parse_lead_size(lead_size) if lead_size else None,
            order_number=_pick(item, "orderNumber", "order_number") or None,
            notes=_pick(item, "notes") or None,
        )
        if not partial.has_minimum_fields():
            return None

        record = complete_record(partial, self.default_date, placeholder_index)
        reported = item.get("confidence")
        if isinstance(reported, (int, float)) and not isinstance(reported, bool):
            record = replace(record, confidence=max(0, min(100, int(reported))))
        return record

    def _validate(self, customers: List[CustomerRecord]) -> Tuple[List[CustomerRecord], int]:
        sample = [customer.to_dict() for customer in customers[:VALIDATION_SAMPLE_SIZE]]
        completion = self._complete(validation_prompt(sample), max_tokens=2000)
        try:
            payload = parse_json_payload(completion.text)
        except LeadParserError:
            return customers, completion.tokens_used
        return self.apply_validation(customers, payload), completion.tokens_used

    def apply_validation(self, customers: List[CustomerRecord], payload: Dict[str, Any]) -> List[CustomerRecord]:
        """Apply field suggestions and confidence adjustments back by record index."""

        updated = list(customers)
        for issue in payload.get("issues") or []:
            if not isinstance(issue, dict):
                continue
            index = issue.get("customerIndex")
            field_name = EDITABLE_FIELDS.get(str(issue.get("field")))
            suggestion = issue.get("suggestion")
            if not isinstance(index, int) or not 0 <= index < len(updated) or not field_name or not suggestion:
                continue
            value = self._normalise_suggestion(field_name, str(suggestion))
            if value is None:
                continue
            record = updated[index]
            inferred = tuple(name for name in record.inferred_fields if name != field_name)
            updated[index] = replace(record, inferred_fields=inferred, **{field_name: value})

        for adjustment in payload.get("confidenceAdjustments") or []:
            if not isinstance(adjustment, dict):
                continue
            index = adjustment.get("customerIndex")
            confidence = adjustment.get("newConfidence")
            if isinstance(index, int) and 0 <= index < len(updated) and isinstance(confidence, (int, float)):
                updated[index] = replace(updated[index], confidence=max(0, min(100, int(confidence))))
        return updated

    def _normalise_suggestion(self, field_name: str, value: str) -> Optional[str]:
        if field_name == "email":
            return value if is_valid_email(value) and "*" not in value else None
        if field_name == "phone":
            return None if _is_masked_phone(value) else format_phone(value, allow_country_code=True)
        if field_name == "installation_date":
            return parse_and_format_date(value, self.default_date)
        if field_name == "installation_time":
            return format_time(value)
        if field_name == "lead_size":
            return parse_lead_size(value)
        return clean_text(value) or None


def parse_with_ai(
    raw_text: str,
    config: Optional[AIParsingConfig] = None,
    preset: Optional[str] = None,
    client_context: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> ParseResult:
    """Parse ``raw_text`` through the AI pipeline.

    ``preset`` picks one of :data:`AI_PARSER_PRESETS` when no explicit
    ``config`` is given. Extra keyword arguments reach :class:`AIDataParser`.
    """

    if config is None and preset:
        try:
            config = AI_PARSER_PRESETS[preset.upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown AI preset {preset!r}; choose from {sorted(AI_PARSER_PRESETS)}") from exc
    return AIDataParser(config=config, **kwargs).parse(raw_text, client_context)
