"""End-to-end tests for the heuristic parser and its strategies."""
import re

import pytest

from conftest import CSV_ONE_LINER, CSV_WITH_HEADERS, FREE_TEXT, PIPE_ROWS, SALES_REPORT, STRUCTURED_TEXT
from leadparser.core.models import LEAD_SIZES
from leadparser.ingestion import strategies
from leadparser.ingestion.parser import UniversalDataParser, parse_universal_data
from leadparser.ingestion.strategies import MixedFormatStrategy, ParseContext, SpreadsheetStrategy

SPANISH_BLOCK = "Nombre: Juan Perez\nCorreo: juan@example.com\nTeléfono: 555-123-4567"
GERMAN_BLOCK = "Kunde: Hans Becker\nE-Mail: hans@example.de\nTelefon: 555-987-6543"
MIXED_ROWS = "Jane Doe jane@example.com 555-123-4567 123 Main St\nJohn Smith john@example.com 555-987-6543 42 Elm Road"
ALL_FIXTURES = [SALES_REPORT, CSV_ONE_LINER, CSV_WITH_HEADERS, STRUCTURED_TEXT, PIPE_ROWS, FREE_TEXT]
PLACEHOLDER_NAME = re.compile(r"^Unknown Customer \d+$")


def test_spreadsheet_one_liner(today):
    result = parse_universal_data(CSV_ONE_LINER, today=today)

    assert result.format_detected == "SPREADSHEET_CSV"
    assert len(result.customers) == 1
    customer = result.customers[0]
    assert customer.name == "John Smith"
    assert customer.email == "john@email.com"
    assert "555" in customer.phone
    assert customer.service_address == "123 Main St"
    assert customer.installation_date == "2025-07-29"
    assert customer.lead_size == "2GIG"
    assert customer.installation_time == "10:00 AM"
    assert customer.inferred_fields == ("installation_time",)


def test_spreadsheet_headers_map_columns(today):
    result = parse_universal_data(CSV_WITH_HEADERS, today=today)

    assert [c.name for c in result.customers] == ["Jane Doe", "John Smith"]
    assert result.customers[1].service_address == "42 Elm Road"
    assert result.customers[0].phone == "(555) 123-4567"
    assert result.metadata.total_lines == 3


def test_spreadsheet_headers_assemble_split_address(today):
    data = "\n".join(
        [
            "Customer Name\tEmail\tStreet\tCity\tState\tZip",
            "Jane Doe\tjane@example.com\t12 Pine St\tMebane\tNC\t27302",
        ]
    )

    customer = parse_universal_data(data, today=today).customers[0]

    assert customer.service_address == "12 Pine St, Mebane, NC 27302"


def test_no_email_addresses_yields_warning_and_no_records(today):
    result = parse_universal_data("Call me maybe tomorrow", today=today)

    assert result.customers == []
    assert result.errors == []
    assert result.format_detected == "FREE_TEXT"
    assert result.confidence == 60
    assert any("No email addresses" in warning for warning in result.warnings)


def test_sales_report_block_is_one_complete_record(today):
    result = parse_universal_data(SALES_REPORT, today=today)

    assert result.format_detected == "SALES_REPORT"
    assert len(result.customers) == 1
    customer = result.customers[0]
    assert customer.name == "Jane Doe"
    assert customer.email == "jane.doe@example.com"
    assert customer.phone == "(555) 987-6543"
    assert customer.service_address == "456 Oak Avenue"
    assert customer.lead_size == "2GIG"
    assert not {"name", "email", "phone", "service_address"} & set(customer.inferred_fields)
    assert customer.confidence == 100


def test_sales_report_appends_city_line_and_skips_summary(today):
    data = "\n".join(
        [
            "Week 30 - Total Sales: 2",
            "✓ Maria Lopez",
            "maria.lopez@example.com",
            "Service address: 440 E McPherson Dr",
            "Mebane, NC 27302",
            "Order number: FX12345",
            "• Tom Reed",
            "tom.reed@example.com",
        ]
    )

    result = parse_universal_data(data, today=today)

    assert [c.name for c in result.customers] == ["Maria Lopez", "Tom Reed"]
    first = result.customers[0]
    assert first.service_address == "440 E McPherson Dr, Mebane, NC 27302"
    assert first.order_number == "FX12345"


def test_structured_text_splits_on_repeated_label(today):
    result = parse_universal_data(STRUCTURED_TEXT, today=today)

    assert result.format_detected == "STRUCTURED_TEXT"
    assert [c.email for c in result.customers] == ["jane@example.com", "john@example.com"]
    assert result.customers[0].service_address == "123 Main St"
    assert "service_address" in result.customers[1].inferred_fields


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (SPANISH_BLOCK, ("Juan Perez", "juan@example.com", "(555) 123-4567")),
        (GERMAN_BLOCK, ("Hans Becker", "hans@example.de", "(555) 987-6543")),
    ],
)
def test_structured_text_with_localized_labels(data, expected, today):
    result = parse_universal_data(data, today=today)

    assert result.format_detected == "STRUCTURED_TEXT"
    assert [(c.name, c.email, c.phone) for c in result.customers] == [expected]


def test_pipe_rows_become_records(today):
    result = parse_universal_data(PIPE_ROWS, today=today)

    assert result.format_detected == "PIPE_DELIMITED"
    assert [c.lead_size for c in result.customers] == ["2GIG", "500MB"]
    assert result.customers[1].name == "John Smith"


def test_free_text_builds_one_record_per_email(today):
    result = parse_universal_data(FREE_TEXT, today=today)

    assert result.format_detected == "FREE_TEXT"
    by_email = {c.email: c for c in result.customers}
    assert by_email["jane@example.com"].name == "Jane Doe"
    assert by_email["jane@example.com"].phone == "(555) 123-4567"
    assert by_email["john@example.com"].name == "John Smith"
    assert by_email["john@example.com"].phone == "(555) 987-6543"


def test_parse_is_idempotent(today):
    for data in ALL_FIXTURES:
        assert parse_universal_data(data, today=today).to_dict() == parse_universal_data(data, today=today).to_dict()


@pytest.mark.parametrize("data", ALL_FIXTURES)
def test_every_record_satisfies_field_invariants(data, today):
    for customer in parse_universal_data(data, today=today).customers:
        assert customer.lead_size in LEAD_SIZES
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", customer.installation_date)
        assert 0 <= customer.confidence <= 100
        has_real_name = not PLACEHOLDER_NAME.match(customer.name)
        has_real_email = "email" not in customer.inferred_fields
        has_real_phone = "phone" not in customer.inferred_fields
        assert has_real_name or has_real_email or has_real_phone


def test_one_bad_row_is_contained(monkeypatch, today):
    data = "\n".join(
        [
            "Name,Email,Phone",
            "Jane Doe,jane@example.com,555-123-4567",
            "Broken Row,broken@example.com,555-000-1111",
            "John Smith,john@example.com,555-987-6543",
        ]
    )
    original = SpreadsheetStrategy._parse_row

    def sometimes_failing(self, line, delimiter, columns, context):
        if line.startswith("Broken"):
            raise ValueError("boom")
        return original(self, line, delimiter, columns, context)

    monkeypatch.setattr(SpreadsheetStrategy, "_parse_row", sometimes_failing)

    result = parse_universal_data(data, today=today)

    assert [c.name for c in result.customers] == ["Jane Doe", "John Smith"]
    assert result.errors == ["Error parsing line 3: boom"]


def test_critical_failure_returns_error_result(monkeypatch, today, caplog):
    def explode(lines):
        raise RuntimeError("classifier down")

    monkeypatch.setattr("leadparser.ingestion.parser.detect_format", explode)
    caplog.set_level("ERROR")

    result = parse_universal_data(CSV_ONE_LINER, today=today)

    assert result.format_detected == "ERROR"
    assert result.confidence == 0
    assert result.customers == []
    assert result.errors == ["Critical parsing error: classifier down"]
    assert "Critical parsing error" in caplog.text


def test_unknown_format_falls_back_to_free_text_strategy():
    assert strategies.strategy_for("XML_FORMAT") is strategies.STRATEGY_REGISTRY["FREE_TEXT"]


def test_metadata_counts_lines_and_headers(today):
    parser = UniversalDataParser("Week 1 Total Sales: 2\n\n✓ Jane Doe\njane@example.com", today=today)

    metadata = parser.generate_metadata()

    assert metadata.total_lines == 3
    assert metadata.empty_lines == 1
    assert metadata.header_lines == 1
    assert metadata.data_lines == 2


def test_empty_input_yields_empty_result(today):
    result = parse_universal_data("", today=today)

    assert result.customers == []
    assert result.metadata.total_lines == 0


def test_mixed_rows_are_parsed_line_by_line(today):
    result = parse_universal_data(MIXED_ROWS, today=today)

    assert result.format_detected == "MIXED_FORMAT"
    assert [(c.name, c.service_address) for c in result.customers] == [
        ("Jane Doe", "123 Main St"),
        ("John Smith", "42 Elm Road"),
    ]
    assert result.customers[1].phone == "(555) 987-6543"


def test_mixed_line_keeps_the_best_scoring_split():
    context = ParseContext(lines=["Jane Doe; jane@example.com; Service address: 123 Main St"], default_date="2025-08-05")

    records = MixedFormatStrategy().extract(context)

    assert len(records) == 1
    assert records[0].name == "Jane Doe"
    assert records[0].email == "jane@example.com"
    assert records[0].service_address == "123 Main St"


def test_mixed_line_left_whole_when_splitting_loses_fields(monkeypatch):
    monkeypatch.setattr(MixedFormatStrategy, "CANDIDATES", (re.compile(","),))
    context = ParseContext(lines=["Jane Doe called about install on July 29, 2025"], default_date="2025-08-05")

    records = MixedFormatStrategy().extract(context)

    assert records[0].name == "Jane Doe"
    assert records[0].installation_date == "2025-07-29"


def test_mixed_lines_are_not_merged():
    context = ParseContext(lines=["Jane Doe; jane@example.com", "555-123-4567; 123 Main St"], default_date="2025-08-05")

    records = MixedFormatStrategy().extract(context)

    assert len(records) == 2
    assert records[0].name == "Jane Doe" and records[0].phone is None
    assert records[1].name is None and records[1].phone == "(555) 123-4567"
    assert records[1].service_address == "123 Main St"
