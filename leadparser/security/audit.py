"""Append-only audit trail of security validations."""
from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hash_data(data: str) -> str:
    """One-way fingerprint of the input; raw text is never kept."""

    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class AuditLogEntry:
    timestamp: datetime
    action: str
    data_hash: str
    success: bool
    processing_time_ms: float = 0.0
    token_count: int = 0
    pii_detected: bool = False
    errors: Tuple[str, ...] = ()
    client_context: Optional[Dict[str, Any]] = None


@dataclass
class ComplianceReport:
    total_events: int
    security_violations: int
    pii_detections: int
    last_audit_date: Optional[datetime]
    risk_level: str
    recommendations: List[str] = field(default_factory=list)


class AuditLog:
    """Thread-safe in-memory log pruned to a retention window on every write."""

    def __init__(self, retention_days: int = 30, clock: Optional[Clock] = None) -> None:
        self.retention_days = retention_days
        self._clock = clock or _utcnow
        self._entries: List[AuditLogEntry] = []
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        data: str,
        success: bool,
        errors: Tuple[str, ...] = (),
        processing_time_ms: float = 0.0,
        token_count: int = 0,
        pii_detected: bool = False,
        client_context: Optional[Dict[str, Any]] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            timestamp=self._clock(),
            action=action,
            data_hash=hash_data(data),
            success=success,
            processing_time_ms=processing_time_ms,
            token_count=token_count,
            pii_detected=pii_detected,
            errors=tuple(errors),
            client_context=dict(client_context) if client_context else None,
        )
        with self._lock:
            self._entries.append(entry)
            cutoff = entry.timestamp - timedelta(days=self.retention_days)
            self._entries = [item for item in self._entries if item.timestamp >= cutoff]
        logger.debug("Audit %s hash=%s success=%s", action, entry.data_hash, success)
        return entry

    def entries(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[AuditLogEntry]:
        with self._lock:
            snapshot = list(self._entries)
        if start is not None:
            snapshot = [entry for entry in snapshot if entry.timestamp >= start]
        if end is not None:
            snapshot = [entry for entry in snapshot if entry.timestamp <= end]
        return snapshot

    def compliance_report(
        self, audit_logging_enabled: bool = True, pii_detection_enabled: bool = True
    ) -> ComplianceReport:
        """Summarise violations and PII volume into a risk grade with advice."""

        entries = self.entries()
        total = len(entries)
        violations = sum(1 for entry in entries if not entry.success)
        pii_detections = sum(1 for entry in entries if entry.pii_detected)
        last = max((entry.timestamp for entry in entries), default=None)

        risk = "LOW"
        recommendations: List[str] = []
        violation_rate = violations / total if total else 0.0
        if violation_rate > 0.1:
            risk = "HIGH"
            recommendations.append("High security violation rate detected - review access controls")
        elif violation_rate > 0.05:
            risk = "MEDIUM"
            recommendations.append("Moderate security violations - consider additional monitoring")

        if pii_detections > 10:
            if risk == "LOW":
                risk = "MEDIUM"
            recommendations.append("High volume of PII processing - ensure data protection compliance")
        if not audit_logging_enabled:
            recommendations.append("Audit logging is disabled - enable for compliance")
        if not pii_detection_enabled:
            recommendations.append("PII detection is disabled - enable for data protection")

        return ComplianceReport(
            total_events=total,
            security_violations=violations,
            pii_detections=pii_detections,
            last_audit_date=last,
            risk_level=risk,
            recommendations=recommendations,
        )
