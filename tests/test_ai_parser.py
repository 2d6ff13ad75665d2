"""Tests for the AI parsing pipeline using a scripted completion client."""
import json
import re

import pytest

from conftest import CSV_ONE_LINER, FakeCompletionClient
from leadparser.core.errors import (
    AIConfigurationError,
    CompletionTimeoutError,
    CorruptedResponseError,
    RateLimitError,
)
from leadparser.core.models import CustomerRecord
from leadparser.processing.ai_parser import (
    AI_PARSER_PRESETS,
    AIDataParser,
    AIParsingConfig,
    parse_with_ai,
    preprocess,
)
from leadparser.processing.cache import ParseCache
from leadparser.processing.completion import Completion
from leadparser.processing.prompts import parse_json_payload
from leadparser.security.audit import AuditLog
from leadparser.security.gate import SecurityGate

LEADS = "\n".join(
    [
        "Jane Doe, jane@example.com, 555-123-4567, 123 Main St",
        "John Smith, john@example.com, 555-987-6543, 42 Elm Road",
        "Ana Ruiz, ana@example.com, 555-222-3333, 9 Pine St",
    ]
)
FORMAT_ANSWER = '{"format": "SPREADSHEET_CSV", "confidence": 88, "reasoning": "commas"}'


def _extraction(*customers: dict) -> str:
    return "```json\n" + json.dumps({"customers": list(customers)}) + "\n```"


JANE = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "5551234567",
    "serviceAddress": "123 Main St",
    "installationDate": "July 29, 2025",
    "installationTime": "2pm",
    "leadSize": "1 gig",
    "confidence": 90,
}
JOHN = {"name": "John Smith", "email": "john@example.com", "phone": "+1 555 987 6543"}
NO_ISSUES = '{"overallQuality": 90, "issues": [], "confidenceAdjustments": []}'


@pytest.fixture
def build_parser(ai_enabled, fake_client_factory, today):
    """Create an AIDataParser wired to fakes; returns (parser, client, sleeps)."""

    def _build(responses, config=None, cache=None, tokens_per_call=100):
        client = fake_client_factory(responses, tokens_per_call=tokens_per_call)
        sleeps = []
        parser = AIDataParser(
            config=config or AIParsingConfig(),
            client=client,
            cache=cache if cache is not None else ParseCache(),
            security_gate=SecurityGate(audit_log=AuditLog()),
            sleep=sleeps.append,
            today=today,
        )
        return parser, client, sleeps

    return _build


def test_ai_parse_normalises_model_output(build_parser):
    validation = '{"issues": [], "confidenceAdjustments": [{"customerIndex": 0, "newConfidence": 95}]}'
    parser, client, _ = build_parser([FORMAT_ANSWER, _extraction(JANE), validation])

    result = parser.parse(LEADS.split("\n")[0])

    assert result.format_detected == "SPREADSHEET_CSV"
    assert result.confidence == 88
    customer = result.customers[0]
    assert customer.phone == "(555) 123-4567"
    assert customer.installation_date == "2025-07-29"
    assert customer.installation_time == "2:00 PM"
    assert customer.lead_size == "1GIG"
    assert customer.confidence == 95
    assert result.metadata.tokens_used == 300
    assert result.metadata.cost_estimate == pytest.approx(0.0003)
    assert result.metadata.ai_processing_time is not None
    assert "Data has been sanitized to remove sensitive information" in result.warnings
    assert len(client.calls) == 3


def test_model_only_sees_sanitized_text(build_parser):
    parser, client, _ = build_parser([FORMAT_ANSWER, _extraction(JANE), NO_ISSUES])

    parser.parse(LEADS.split("\n")[0])

    prompt = client.calls[1]["messages"][1]["content"]
    assert "jane@example.com" not in prompt
    assert "j**e@example.com" in prompt
    assert "XXX-XXX-XXXX" in prompt


def test_country_code_phone_and_placeholders_are_cleaned(build_parser):
    placeholder = {"name": "Unknown Customer", "email": "customer@example.com"}
    parser, _, _ = build_parser([FORMAT_ANSWER, _extraction(JOHN, placeholder), NO_ISSUES])

    result = parser.parse(LEADS.split("\n")[1])

    assert [c.name for c in result.customers] == ["John Smith"]
    assert result.customers[0].phone == "(555) 987-6543"
    assert "service_address" in result.customers[0].inferred_fields


def test_second_identical_parse_is_served_from_cache(build_parser):
    parser, client, _ = build_parser([FORMAT_ANSWER, _extraction(JANE), NO_ISSUES])

    parser.parse(LEADS.split("\n")[0])
    second = parser.parse(LEADS.split("\n")[0])

    assert any("cache" in warning for warning in second.warnings)
    assert second.metadata.tokens_used == 0
    assert len(client.calls) == 3
    assert second.customers[0].email == "jane@example.com"


def test_batches_sleep_between_calls(build_parser):
    config = AIParsingConfig(batch_size=1, batch_delay=0.5)
    parser, client, sleeps = build_parser(
        [FORMAT_ANSWER, _extraction(JANE), _extraction(JOHN), NO_ISSUES], config=config
    )

    result = parser.parse("\n".join(LEADS.split("\n")[:2]))

    assert [c.name for c in result.customers] == ["Jane Doe", "John Smith"]
    assert sleeps == [0.5]
    assert len(client.calls) == 4


def test_cost_threshold_stops_early_and_keeps_partial_results(build_parser):
    config = AIParsingConfig(batch_size=1, cost_threshold=0.0001)
    parser, client, sleeps = build_parser([FORMAT_ANSWER, _extraction(JANE), NO_ISSUES], config=config)

    result = parser.parse(LEADS)

    assert [c.name for c in result.customers] == ["Jane Doe"]
    assert any("Cost threshold" in warning for warning in result.warnings)
    assert sleeps == []
    assert len(client.calls) == 3


def test_corrupt_format_answer_defaults_to_free_text(build_parser):
    parser, _, _ = build_parser(["not json at all", _extraction(JANE), NO_ISSUES])

    result = parser.parse(LEADS.split("\n")[0])

    assert result.format_detected == "FREE_TEXT"
    assert result.confidence == 50
    assert len(result.customers) == 1


def test_failed_batch_is_recorded_while_others_succeed(build_parser):
    config = AIParsingConfig(batch_size=1, batch_delay=0)
    parser, _, _ = build_parser(
        [FORMAT_ANSWER, _extraction(JANE), "garbage", NO_ISSUES], config=config
    )

    result = parser.parse("\n".join(LEADS.split("\n")[:2]))

    assert [c.name for c in result.customers] == ["Jane Doe"]
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Batch 2 failed")


def test_service_failure_falls_back_to_heuristics(build_parser):
    parser, _, _ = build_parser([CompletionTimeoutError("timed out")])

    result = parser.parse(CSV_ONE_LINER)

    assert result.format_detected == "SPREADSHEET_CSV"
    assert result.customers[0].email == "john@email.com"
    assert "AI parsing failed, used standard parser: The AI service took too long to answer." in result.warnings


def test_all_batches_failing_falls_back(build_parser):
    parser, _, _ = build_parser([FORMAT_ANSWER, "garbage"])

    result = parser.parse(CSV_ONE_LINER)

    assert result.customers[0].name == "John Smith"
    assert any(warning.startswith("AI parsing failed") for warning in result.warnings)


def test_errors_propagate_when_fallback_disabled(build_parser):
    config = AIParsingConfig(enable_fallback=False)
    parser, _, _ = build_parser([RateLimitError("slow down", retry_after=3)], config=config)

    with pytest.raises(RateLimitError) as excinfo:
        parser.parse(CSV_ONE_LINER)
    assert excinfo.value.retry_after == 3


def test_corrupted_extraction_is_distinguishable(build_parser):
    config = AIParsingConfig(enable_fallback=False)
    parser, _, _ = build_parser([FORMAT_ANSWER, "I could not read that"], config=config)

    with pytest.raises(CorruptedResponseError):
        parser.parse(CSV_ONE_LINER)


def test_rejected_input_never_reaches_the_model(build_parser):
    parser, client, _ = build_parser([])

    result = parser.parse("<script>alert(1)</script>")

    assert result.format_detected == "REJECTED"
    assert result.customers == []
    assert "Potentially malicious content detected" in result.errors
    assert client.calls == []


def test_validation_suggestions_apply_by_index(build_parser):
    parser, _, _ = build_parser([])
    record = CustomerRecord(
        name="Jane Doe",
        email="jane@example.com",
        phone="555-000-0000",
        service_address="Address not provided",
        installation_date="2025-07-29",
        installation_time="10:00 AM",
        confidence=60,
        inferred_fields=("phone",),
    )
    payload = {
        "issues": [
            {"customerIndex": 0, "field": "phone", "suggestion": "555 222 3333"},
            {"customerIndex": 7, "field": "email", "suggestion": "x@example.com"},
            {"customerIndex": 0, "field": "email", "suggestion": "j***e@example.com"},
        ],
        "confidenceAdjustments": [{"customerIndex": 0, "newConfidence": 140}],
    }

    updated = parser.apply_validation([record], payload)[0]

    assert updated.phone == "(555) 222-3333"
    assert updated.inferred_fields == ()
    assert updated.email == "jane@example.com"
    assert updated.confidence == 100


def test_disabled_ai_uses_standard_parser(today):
    result = parse_with_ai(CSV_ONE_LINER, today=today)

    assert result.warnings[0] == "AI parsing is disabled; used the standard parser"
    assert result.customers[0].name == "John Smith"


def test_missing_credentials_raise(ai_enabled, monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)

    with pytest.raises(AIConfigurationError):
        AIDataParser()


def test_unknown_preset_is_rejected(today):
    with pytest.raises(ValueError, match="Unknown AI preset"):
        parse_with_ai(CSV_ONE_LINER, preset="TURBO", today=today)


def test_presets_trade_cost_for_accuracy():
    assert AI_PARSER_PRESETS["FAST_AND_CHEAP"].batch_size == 100
    assert AI_PARSER_PRESETS["MAXIMUM_ACCURACY"].cost_threshold == 10.00
    assert AI_PARSER_PRESETS["BALANCED"] == AIParsingConfig()


def test_preprocess_normalises_whitespace_and_zero_width():
    assert preprocess(" a\r\nb\tc\u200b ") == "a\nb    c"


def test_parse_json_payload_tolerates_fences_and_chatter():
    assert parse_json_payload('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_payload('Sure! {"a": 2} hope that helps') == {"a": 2}
    with pytest.raises(CorruptedResponseError):
        parse_json_payload("[1, 2]")
    with pytest.raises(CorruptedResponseError):
        parse_json_payload("nothing here")


class EchoingClient(FakeCompletionClient):
    """Answers the extraction prompt with the contact values it was actually sent."""

    def complete(self, messages, **kwargs):
        completion = super().complete(messages, **kwargs)
        if completion.text != "ECHO":
            return completion
        prompt = messages[-1]["content"]
        echoed = {
            "name": "Jane Doe",
            "email": re.search(r"j\*+e@example\.com", prompt).group(0),
            "phone": re.search(r"X{3}-X{3}-X{4}", prompt).group(0),
            "serviceAddress": "123 Main St",
        }
        return Completion(text=_extraction(echoed), tokens_used=completion.tokens_used)


def test_masked_values_echoed_by_the_model_are_treated_as_missing(ai_enabled, today):
    client = EchoingClient([FORMAT_ANSWER, "ECHO", NO_ISSUES])
    parser = AIDataParser(
        client=client,
        cache=ParseCache(),
        security_gate=SecurityGate(audit_log=AuditLog()),
        sleep=lambda seconds: None,
        today=today,
    )

    result = parser.parse("Jane Doe, jane@example.com, 555-123-4567, 123 Main St")

    customer = result.customers[0]
    assert customer.phone == "555-000-0000"
    assert customer.email == "jane.doe@example.com"
    assert {"phone", "email"} <= set(customer.inferred_fields)
    assert customer.service_address == "123 Main St"


def test_masked_phone_suggestion_is_ignored(build_parser):
    parser, _, _ = build_parser([])
    record = CustomerRecord(
        name="Jane Doe",
        email="jane@example.com",
        phone="555-000-0000",
        service_address="123 Main St",
        installation_date="2025-07-29",
        installation_time="10:00 AM",
        inferred_fields=("phone",),
    )
    payload = {"issues": [{"customerIndex": 0, "field": "phone", "suggestion": "XXX-XXX-XXXX"}]}

    updated = parser.apply_validation([record], payload)[0]

    assert updated.phone == "555-000-0000"
    assert updated.inferred_fields == ("phone",)
