"""PII detection, content screening and audit logging around parsing."""

from leadparser.security.audit import AuditLog, AuditLogEntry, ComplianceReport
from leadparser.security.gate import (
    SECURITY_PRESETS,
    SecurityConfig,
    SecurityGate,
    SecurityValidationResult,
    create_security_gate,
    validate_security_requirements,
)
from leadparser.security.pii import PIIAnalysis, RiskLevel, detect_pii, sanitize

__all__ = [
    "AuditLog",
    "AuditLogEntry",
    "ComplianceReport",
    "PIIAnalysis",
    "RiskLevel",
    "SECURITY_PRESETS",
    "SecurityConfig",
    "SecurityGate",
    "SecurityValidationResult",
    "create_security_gate",
    "detect_pii",
    "sanitize",
    "validate_security_requirements",
]
