"""Export helpers for parsed customer records."""

from leadparser.reporting.sinks import push_to_google_sheets, write_csv, write_excel, write_json
from leadparser.reporting.templates import TEMPLATE_HEADERS, records_to_template_rows

__all__ = [
    "TEMPLATE_HEADERS",
    "push_to_google_sheets",
    "records_to_template_rows",
    "write_csv",
    "write_excel",
    "write_json",
]
