"""
Medical Consultation Engine - Consultation Schemas

Request, in-flight task, and response/result models for the
orchestration task manager.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.agents import AgentResult, SelectedAgent
from medconsult.models.complexity import ComplexityScore
from medconsult.models.compliance import AuditReference, ComplianceValidation
from medconsult.models.consensus import ConsensusResult
from medconsult.models.enums import ProgressionRate, TaskStatus, UrgencyLevel
from medconsult.models.safety import SafetyValidationResult


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# REQUEST
# =============================================================================


class MedicalHistory(BaseModel):
    """Relevant past medical history."""

    conditions: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    surgeries: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.conditions or self.medications or self.allergies or self.surgeries)


class Demographics(BaseModel):
    """Patient demographics used by scoring and safety checks."""

    age: Optional[int] = Field(default=None, ge=0, le=130)
    sex: Optional[str] = Field(default=None, description="male, female or other")
    weight_kg: Optional[float] = Field(default=None, gt=0)
    pregnant: bool = False


class ConsultationRequest(BaseModel):
    """An incoming medical case to be analyzed by an agent panel."""

    model_config = ConfigDict(use_enum_values=True)

    patient_id: str
    user_id: str = "system"
    user_role: str = "physician"
    urgency: UrgencyLevel = UrgencyLevel.ROUTINE
    chief_complaint: str
    symptoms: list[str] = Field(default_factory=list)
    vitals: dict[str, Any] = Field(default_factory=dict)
    labs: dict[str, Any] = Field(default_factory=dict)
    imaging: dict[str, Any] = Field(default_factory=dict)
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    demographics: Demographics = Field(default_factory=Demographics)
    progression: ProgressionRate = ProgressionRate.STABLE
    previous_treatment_failures: int = Field(default=0, ge=0)
    additional_context: str = ""
    has_consent: bool = True


# =============================================================================
# IN-FLIGHT TASK
# =============================================================================

# Forward order of the lifecycle; terminal states share the last rank.
_STATUS_RANK = {
    TaskStatus.PENDING: 0,
    TaskStatus.SPAWNING_AGENTS: 1,
    TaskStatus.ANALYZING: 2,
    TaskStatus.COMPLETED: 3,
    TaskStatus.FAILED: 3,
}


class OrchestrationTask(BaseModel):
    """
    Mutable state of one in-flight consultation.

    Owned by the consultation manager; removed from the active set once
    the status is terminal.
    """

    model_config = ConfigDict(use_enum_values=True)

    consultation_id: str
    task_id: str
    status: TaskStatus = TaskStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = "Submitted to orchestrator"
    agent_count: int = 0
    complexity_score: ComplexityScore
    request: ConsultationRequest
    agents: list[SelectedAgent] = Field(default_factory=list)
    enrichment_sources: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return TaskStatus(self.status).is_terminal

    def advance(self, status: TaskStatus) -> bool:
        """
        Move the task forward to ``status``.

        Backward moves and moves out of a terminal state are ignored.

        Returns:
            True if the status changed
        """
        current = TaskStatus(self.status)
        target = TaskStatus(status)
        if current.is_terminal or _STATUS_RANK[target] <= _STATUS_RANK[current]:
            return False

        self.status = target.value
        self.updated_at = utc_now()
        if target.is_terminal:
            self.completed_at = self.updated_at
        return True


# =============================================================================
# RESPONSES
# =============================================================================


class ConsultationResponse(BaseModel):
    """Snapshot of a consultation that is still running."""

    model_config = ConfigDict(use_enum_values=True)

    consultation_id: str
    task_id: str
    status: TaskStatus
    progress: int = 0
    current_step: str = ""
    poll_url: str
    estimated_duration: int = Field(description="Estimated processing time in seconds")
    agents_selected: int
    complexity_score: float


class ConsultationResult(BaseModel):
    """Terminal result of a consultation, successful or failed."""

    model_config = ConfigDict(use_enum_values=True)

    consultation_id: str
    status: TaskStatus
    agents_spawned: int = 0
    consensus: ConsensusResult
    individual_analyses: list[AgentResult] = Field(default_factory=list)
    processing_time: float = Field(default=0.0, description="Seconds since the task was created")
    safety: Optional[SafetyValidationResult] = None
    compliance: Optional[ComplianceValidation] = None
    audit: Optional[AuditReference] = None
    enrichment_sources: list[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def requires_attention(self) -> bool:
        """True when a human must review the result before it is acted on."""
        if self.safety is None:
            return self.status == TaskStatus.COMPLETED
        return (not self.safety.safe) or self.safety.requires_human_review
