"""Security gate run before pasted text reaches a parser."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from leadparser.security.audit import AuditLog, ComplianceReport
from leadparser.security.content import validate_content
from leadparser.security.pii import PIIAnalysis, RiskLevel, detect_pii, sanitize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecurityConfig:
    enable_pii_detection: bool = True
    enable_data_sanitization: bool = True
    enable_audit_logging: bool = True
    max_data_size: int = 1024 * 1024
    retention_days: int = 30
    max_line_length: int = 10_000
    max_control_char_ratio: float = 0.1


SECURITY_PRESETS: Dict[str, SecurityConfig] = {
    "PERMISSIVE": SecurityConfig(
        enable_pii_detection=False,
        enable_data_sanitization=False,
        max_data_size=5 * 1024 * 1024,
        retention_days=7,
    ),
    "STANDARD": SecurityConfig(),
    "STRICT": SecurityConfig(max_data_size=512 * 1024, retention_days=90),
}


@dataclass
class SecurityValidationResult:
    is_valid: bool
    sanitized_data: str
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    pii_analysis: PIIAnalysis = field(default_factory=PIIAnalysis)


def estimate_tokens(text: str) -> int:
    """Rough token count (about four characters per token)."""

    return math.ceil(len(text) / 4)


class SecurityGate:
    """Size check, PII detection and masking, content screening, audit entry."""

    def __init__(self, config: Optional[SecurityConfig] = None, audit_log: Optional[AuditLog] = None) -> None:
        self.config = config or SecurityConfig()
        self.audit_log = audit_log or AuditLog(retention_days=self.config.retention_days)

    def validate(self, raw_text: str, client_context: Optional[Dict[str, Any]] = None) -> SecurityValidationResult:
        started = time.perf_counter()
        raw_text = raw_text or ""
        warnings: List[str] = []
        errors: List[str] = []

        size = len(raw_text.encode("utf-8"))
        if size > self.config.max_data_size:
            errors.append(f"Data size exceeds limit: {size} > {self.config.max_data_size} bytes")
            logger.warning("Rejected %d byte input above the %d byte limit", size, self.config.max_data_size)
            self._audit(raw_text, errors, started, PIIAnalysis(), client_context)
            return SecurityValidationResult(False, "", warnings, errors, PIIAnalysis())

        analysis = detect_pii(raw_text) if self.config.enable_pii_detection else PIIAnalysis()
        if analysis.risk_level == RiskLevel.HIGH:
            warnings.append(f"High-risk PII detected: {', '.join(analysis.pii_types)}")

        sanitized = raw_text
        if self.config.enable_data_sanitization:
            sanitized = sanitize(raw_text, analysis)
            if sanitized != raw_text:
                warnings.append("Data has been sanitized to remove sensitive information")

        errors.extend(
            validate_content(
                sanitized,
                max_line_length=self.config.max_line_length,
                max_control_ratio=self.config.max_control_char_ratio,
            )
        )

        self._audit(raw_text, errors, started, analysis, client_context)
        if errors:
            logger.warning("Security validation rejected input: %s", "; ".join(errors))
        else:
            logger.info(
                "Security validation passed (risk=%s, pii=%s)",
                analysis.risk_level.value,
                ",".join(analysis.pii_types) or "none",
            )
        return SecurityValidationResult(
            is_valid=not errors,
            sanitized_data=sanitized,
            warnings=warnings,
            errors=errors,
            pii_analysis=analysis,
        )

    def compliance_report(self) -> ComplianceReport:
        return self.audit_log.compliance_report(
            audit_logging_enabled=self.config.enable_audit_logging,
            pii_detection_enabled=self.config.enable_pii_detection,
        )

    def _audit(
        self,
        raw_text: str,
        errors: List[str],
        started: float,
        analysis: PIIAnalysis,
        client_context: Optional[Dict[str, Any]],
    ) -> None:
        if not self.config.enable_audit_logging:
            return
        self.audit_log.record(
            action="security_validation",
            data=raw_text,
            success=not errors,
            errors=tuple(errors),
            processing_time_ms=(time.perf_counter() - started) * 1000,
            token_count=estimate_tokens(raw_text),
            pii_detected=analysis.has_pii,
            client_context=client_context,
        )


def create_security_gate(preset: str = "STANDARD", audit_log: Optional[AuditLog] = None) -> SecurityGate:
    try:
        config = SECURITY_PRESETS[preset.upper()]
    except KeyError as exc:
        raise ValueError(f"Unknown security preset {preset!r}; choose from {sorted(SECURITY_PRESETS)}") from exc
    return SecurityGate(config, audit_log=audit_log)


_default_gate = create_security_gate("STANDARD")


def default_gate() -> SecurityGate:
    """Process-wide STANDARD gate shared by callers that do not bring their own."""

    return _default_gate


def validate_security_requirements(
    raw_text: str,
    client_context: Optional[Dict[str, Any]] = None,
    gate: Optional[SecurityGate] = None,
) -> SecurityValidationResult:
    return (gate or default_gate()).validate(raw_text, client_context)
