"""Pipeline orchestration: read pasted lead data, parse it, export rows."""
import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from leadparser.core.models import ParseResult
from leadparser.core.utils import load_env_file, read_file
from leadparser.ingestion.parser import parse_universal_data
from leadparser.processing.ai_parser import parse_with_ai
from leadparser.reporting.sinks import push_to_google_sheets, write_csv, write_excel, write_json
from leadparser.reporting.templates import records_to_template_rows
from leadparser.security.gate import create_security_gate

DEFAULT_SERVICE_ACCOUNT_PATHS = [
    Path("secrets/service_account.json"),
    Path("credentials/service_account.json"),
]
DEFAULT_SHEETS_ENV_FILE = Path("secrets/sheets.env")
_SHEETS_ENV_LOADED = False


logger = logging.getLogger(__name__)


def _ensure_sheets_env() -> None:
    """Populate Google Sheets env vars from secrets/sheets.env."""

    global _SHEETS_ENV_LOADED
    if _SHEETS_ENV_LOADED:
        return
    _SHEETS_ENV_LOADED = True

    env_path = Path(os.getenv("GOOGLE_SHEETS_ENV_FILE", DEFAULT_SHEETS_ENV_FILE))
    load_env_file(env_path)


def _default_service_account_path() -> Optional[Path]:
    for candidate in DEFAULT_SERVICE_ACCOUNT_PATHS:
        if candidate.exists():
            return candidate
    return None


def _resolve_sheets_target(
    spreadsheet_id: Optional[str],
    worksheet_title: str,
    explicit_account_path: Optional[Path],
) -> Dict[str, Any]:
    _ensure_sheets_env()
    spreadsheet_id = spreadsheet_id or os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID")
    if not spreadsheet_id:
        raise ValueError("spreadsheet_id is required when sink='sheets'")

    account_path = explicit_account_path or _default_service_account_path()
    if not account_path:
        raise ValueError(
            "Provide --service-account pointing to your Google credentials or place a file at "
            f"{DEFAULT_SERVICE_ACCOUNT_PATHS[0]}"
        )

    return {
        "spreadsheet_id": spreadsheet_id,
        "worksheet_title": worksheet_title,
        "service_account_path": account_path,
    }


def auto_sheets_target() -> Optional[Dict[str, Any]]:
    _ensure_sheets_env()
    if os.getenv("GOOGLE_SHEETS_AUTO_SYNC", "0") != "1":
        return None

    spreadsheet_id = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID")
    if not spreadsheet_id:
        logger.warning("Auto Sheets sync is enabled but GOOGLE_SHEETS_SPREADSHEET_ID is missing.")
        return None

    worksheet = os.getenv("GOOGLE_SHEETS_WORKSHEET", "Sheet1")
    account_env = os.getenv("GOOGLE_SHEETS_SERVICE_ACCOUNT")
    account_path = Path(account_env) if account_env else _default_service_account_path()
    if not account_path:
        logger.warning("Auto Sheets sync is enabled but no service account JSON was found.")
        return None

    return {
        "spreadsheet_id": spreadsheet_id,
        "worksheet_title": worksheet,
        "service_account_path": account_path,
    }


def parse_text(
    text: str,
    use_ai: bool = False,
    security_preset: Optional[str] = None,
    ai_preset: Optional[str] = None,
    today: Optional[date] = None,
) -> ParseResult:
    """Parse ``text`` with the heuristic or AI parser.

    The AI path always runs the security gate (``STANDARD`` unless a preset is
    named). The heuristic path keeps data local and only runs the gate when a
    ``security_preset`` is requested; a rejection there raises ``ValueError``.
    """

    gate = create_security_gate(security_preset) if security_preset else None
    if use_ai:
        return parse_with_ai(text, preset=ai_preset, security_gate=gate, today=today)

    if gate is not None:
        security = gate.validate(text, {"source": "pipeline"})
        if not security.is_valid:
            raise ValueError("Input rejected by security gate: " + "; ".join(security.errors))
        for warning in security.warnings:
            logger.warning("Security: %s", warning)
    return parse_universal_data(text, today=today)


def run_pipeline(
    input_path: Path,
    output_path: Path,
    sink: str = "csv",
    use_ai: bool = False,
    security_preset: Optional[str] = None,
    ai_preset: Optional[str] = None,
    today: Optional[date] = None,
    spreadsheet_id: str | None = None,
    worksheet_title: str = "Sheet1",
    service_account_path: Path | None = None,
    excel_path: Path | None = None,
    json_path: Path | None = None,
) -> Path:
    """Parse a pasted lead file and emit a CSV of customer rows."""

    logger.info("Pipeline starting for input %s", input_path)
    if not input_path.is_file():
        message = f"Input file {input_path} does not exist. Paste the lead data into a text file first."
        logger.error(message)
        raise ValueError(message)

    result = parse_text(
        read_file(input_path),
        use_ai=use_ai,
        security_preset=security_preset,
        ai_preset=ai_preset,
        today=today,
    )
    logger.info(
        "Parsed %d customers as %s (confidence %s)",
        len(result.customers),
        result.format_detected,
        result.confidence,
    )
    for warning in result.warnings:
        logger.warning("Parse warning: %s", warning)
    for error in result.errors:
        logger.error("Parse error: %s", error)

    if not result.customers:
        message = f"No customer records found in {input_path}. Check that the paste includes names, emails or phones."
        logger.error(message)
        raise ValueError(message)

    rows = records_to_template_rows(result.customers)
    write_csv(rows, output_path)
    logger.info("Wrote CSV output to %s", output_path)

    if sink == "excel":
        excel_target = excel_path or output_path.with_suffix(".xlsx")
        write_excel(rows, excel_target)
        logger.info("Wrote Excel output to %s", excel_target)
    elif sink == "json":
        json_target = json_path or output_path.with_suffix(".json")
        write_json(result, json_target)
        logger.info("Wrote JSON output to %s", json_target)
    elif sink == "sheets":
        sheets_target = _resolve_sheets_target(
            spreadsheet_id=spreadsheet_id,
            worksheet_title=worksheet_title,
            explicit_account_path=service_account_path,
        )
        _push_rows_to_sheets(rows, sheets_target)
    else:
        _maybe_auto_sync(rows)
    return output_path


def _push_rows_to_sheets(rows: List[Dict[str, Any]], target: Dict[str, Any]) -> None:
    push_to_google_sheets(
        rows,
        spreadsheet_id=target["spreadsheet_id"],
        worksheet_title=target["worksheet_title"],
        service_account_path=target["service_account_path"],
    )
    logger.info(
        "Pushed %d rows to Google Sheets document %s (worksheet %s)",
        len(rows),
        target["spreadsheet_id"],
        target["worksheet_title"],
    )


def _maybe_auto_sync(rows: Iterable[Dict[str, Any]]) -> None:
    target = auto_sheets_target()
    if not target:
        return
    _push_rows_to_sheets(list(rows), target)
