"""Compliance pre-checks and the decision audit trail."""

from medconsult.compliance.audit import AuditEvent, DecisionAuditLog, DecisionRecord
from medconsult.compliance.validator import ComplianceValidator, risk_level

__all__ = [
    "AuditEvent",
    "ComplianceValidator",
    "DecisionAuditLog",
    "DecisionRecord",
    "risk_level",
]
