"""
Exceptions raised by the consultation engine.

Delegate-reported failures and unsafe consensus results are not
exceptions; they come back as typed results.
"""

from typing import Optional

from medconsult.models.compliance import ComplianceValidation


class ConsultationError(Exception):
    """Base class for consultation engine errors."""


class ComplianceRejectedError(ConsultationError):
    """Raised when the compliance pre-check blocks a consultation from starting."""

    def __init__(self, validation: ComplianceValidation):
        self.validation = validation
        reasons = "; ".join(v.description for v in validation.violations) or "unknown violation"
        super().__init__(f"Compliance check failed: {reasons}")


class DelegateSubmissionError(ConsultationError):
    """Raised when a task cannot be submitted to the delegate orchestrator."""


class DelegateStatusError(ConsultationError):
    """Raised when the delegate orchestrator cannot be queried for task status."""


class ConsultationNotFoundError(ConsultationError):
    """Raised when a consultation id is not in the active set."""

    def __init__(self, consultation_id: str):
        self.consultation_id = consultation_id
        super().__init__(f"Consultation {consultation_id} not found or already completed")


class PollingTimeoutError(ConsultationError):
    """Raised when polling gives up before the consultation finishes."""

    def __init__(self, consultation_id: str, attempts: int, reason: Optional[str] = None):
        self.consultation_id = consultation_id
        self.attempts = attempts
        message = f"Consultation {consultation_id} did not complete after {attempts} poll attempts"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
