"""
Decision Audit Log - Tamper-evident trail of clinical decisions.

Each decision produces two entries: a decision record and a general
audit event. Audit events are chained by hash so that edits to earlier
entries can be detected.
"""

import hashlib
import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from medconsult.models.compliance import AuditReference
from medconsult.models.consultation import utc_now


logger = logging.getLogger(__name__)


GENESIS_HASH = "0" * 64


@dataclass
class DecisionRecord:
    """One clinical decision produced by a consultation."""

    decision_id: str
    consultation_id: str
    patient_id: str
    user_id: str
    decision: str
    confidence: float
    ai_assisted: bool = True
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class AuditEvent:
    """A general audit trail entry, linked to the previous one by hash."""

    audit_id: str
    event_type: str
    user_id: str
    patient_id: str
    action: str
    details: dict[str, Any]
    timestamp: datetime
    previous_hash: str
    entry_hash: str = ""


def _hash_event(event: AuditEvent) -> str:
    body = asdict(event)
    body.pop("entry_hash")
    encoded = json.dumps(body, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class DecisionAuditLog:
    """
    In-memory audit trail.

    Entries are kept for the lifetime of the process; every write is also
    emitted as a log line so the trail survives in the log sink.
    """

    def __init__(self):
        self.decisions: list[DecisionRecord] = []
        self.events: list[AuditEvent] = []
        self._last_hash = GENESIS_HASH

    async def log_decision(
        self,
        consultation_id: str,
        patient_id: str,
        user_id: str,
        decision: str,
        confidence: float,
        details: Optional[dict] = None,
    ) -> AuditReference:
        """
        Record a clinical decision.

        Returns:
            AuditReference with the decision and audit event ids
        """
        record = DecisionRecord(
            decision_id=f"dec_{uuid.uuid4().hex[:16]}",
            consultation_id=consultation_id,
            patient_id=patient_id,
            user_id=user_id,
            decision=decision,
            confidence=confidence,
            details=dict(details or {}),
        )
        self.decisions.append(record)

        event = self.log_event(
            event_type="clinical_decision",
            user_id=user_id,
            patient_id=patient_id,
            action=f"Clinical decision: {decision}",
            details={
                "decision_id": record.decision_id,
                "consultation_id": consultation_id,
                "confidence": confidence,
                **record.details,
            },
        )

        logger.info(
            f"Clinical decision logged: {record.decision_id} for consultation "
            f"{consultation_id} (confidence {confidence:.2f})"
        )
        return AuditReference(decision_id=record.decision_id, audit_id=event.audit_id)

    def log_event(
        self,
        event_type: str,
        user_id: str,
        patient_id: str,
        action: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        """Append a general audit event to the hash chain."""
        event = AuditEvent(
            audit_id=f"aud_{uuid.uuid4().hex[:16]}",
            event_type=event_type,
            user_id=user_id,
            patient_id=patient_id,
            action=action,
            details=dict(details or {}),
            timestamp=utc_now(),
            previous_hash=self._last_hash,
        )
        event.entry_hash = _hash_event(event)
        self._last_hash = event.entry_hash
        self.events.append(event)

        if event_type in ("security_alert", "compliance_violation"):
            logger.warning(f"Audit {event_type}: {action} (user {user_id}, audit {event.audit_id})")
        return event

    def get_decision(self, decision_id: str) -> Optional[DecisionRecord]:
        return next((d for d in self.decisions if d.decision_id == decision_id), None)

    def verify_integrity(self) -> list[str]:
        """
        Walk the hash chain.

        Returns:
            Audit ids of entries that were modified or re-linked (empty if intact)
        """
        tampered = []
        previous = GENESIS_HASH
        for event in self.events:
            if event.previous_hash != previous or _hash_event(event) != event.entry_hash:
                tampered.append(event.audit_id)
            previous = event.entry_hash
        return tampered
