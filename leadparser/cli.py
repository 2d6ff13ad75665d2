"""Command line entry point for parsing a pasted lead file."""
import argparse
from datetime import date
from pathlib import Path

from leadparser.core.logging import configure_logging
from leadparser.pipeline import run_pipeline
from leadparser.processing.ai_parser import AI_PARSER_PRESETS
from leadparser.security.gate import SECURITY_PRESETS


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI entry point."""

    parser = argparse.ArgumentParser(description="Parse pasted customer lead data into CRM rows")
    parser.add_argument(
        "input",
        type=Path,
        help="Text file holding the pasted lead data",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("output/customers.csv"),
        help="CSV file to write parsed customers to",
    )
    parser.add_argument(
        "--sink",
        choices=["csv", "json", "sheets", "excel"],
        default="csv",
        help="Where to forward parsed rows after writing the CSV",
    )
    parser.add_argument(
        "--ai",
        action="store_true",
        help="Use the AI extraction pipeline (falls back to the standard parser on failure)",
    )
    parser.add_argument(
        "--ai-preset",
        choices=sorted(AI_PARSER_PRESETS),
        help="AI parser preset trading cost against accuracy",
    )
    parser.add_argument(
        "--security",
        choices=sorted(SECURITY_PRESETS),
        help="Run the security gate with this preset before parsing",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        help="Reference date (YYYY-MM-DD) for default installation dates",
    )
    parser.add_argument(
        "--spreadsheet-id",
        help="Google Sheets spreadsheet ID for the sheets sink",
    )
    parser.add_argument(
        "--worksheet",
        default="Sheet1",
        help="Worksheet title inside the Google Sheets document",
    )
    parser.add_argument(
        "--service-account",
        type=Path,
        help="Path to a Google service account JSON key used for Sheets pushes",
    )
    parser.add_argument(
        "--excel-output",
        type=Path,
        default=Path("output/customers.xlsx"),
        help="Excel file to write when --sink=excel",
    )
    parser.add_argument(
        "--json-output",
        type=Path,
        default=Path("output/customers.json"),
        help="JSON file to write when --sink=json",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL or INFO)",
    )
    return parser


def main() -> None:
    """Entrypoint for running the pipeline from the command line."""

    args = build_parser().parse_args()
    configure_logging(args.log_level)
    output_path = run_pipeline(
        args.input,
        args.output,
        sink=args.sink,
        use_ai=args.ai,
        security_preset=args.security,
        ai_preset=args.ai_preset,
        today=args.today,
        spreadsheet_id=args.spreadsheet_id,
        worksheet_title=args.worksheet,
        service_account_path=args.service_account,
        excel_path=args.excel_output,
        json_path=args.json_output,
    )
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
