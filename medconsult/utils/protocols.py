"""
Shared Protocol definitions for type hints across the codebase.

These protocols define the interfaces expected from collaborators of the
consultation manager (delegate orchestrator, evidence providers,
compliance and audit services), allowing for dependency injection and testing.
"""

from typing import Optional, Protocol

from medconsult.models.agents import SelectedAgent
from medconsult.models.complexity import ComplexityScore
from medconsult.models.compliance import (
    AuditReference,
    ComplianceOperation,
    ComplianceValidation,
)
from medconsult.models.consultation import ConsultationRequest
from medconsult.models.delegate import DelegateStatus, DelegateSubmission, DelegateTask
from medconsult.models.enrichment import (
    ClinicalGuideline,
    DrugSafetyReport,
    EnrichedContext,
    ExpertDifferential,
    ImagingFindings,
    LiteratureSearchResult,
    RiskAssessment,
)
from medconsult.models.llm import LLMResponse


class LLMClientProtocol(Protocol):
    """Protocol defining the interface for LLM clients."""

    async def complete(
        self,
        model: str,
        messages: list[dict],
        temperature: float,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Complete a chat conversation with the LLM.

        Args:
            model: Model identifier (e.g., "openai/gpt-4o")
            messages: List of message dicts with "role" and "content"
            temperature: Sampling temperature (0-1)
            max_tokens: Optional maximum tokens to generate

        Returns:
            LLMResponse with content and token usage
        """
        ...


class DelegateClientProtocol(Protocol):
    """Protocol for the external multi-agent orchestrator."""

    async def submit(self, task: DelegateTask) -> DelegateSubmission:
        """Submit a task; raises DelegateSubmissionError on failure."""
        ...

    async def get_status(self, task_id: str) -> DelegateStatus:
        """Fetch task status; raises DelegateStatusError on failure."""
        ...

    async def cancel(self, task_id: str) -> bool:
        """Ask the orchestrator to stop a task. Returns True if accepted."""
        ...


class AgentSelectorProtocol(Protocol):
    """Protocol for choosing agents and building the delegate payload."""

    def select_agents(
        self,
        request: ConsultationRequest,
        complexity: ComplexityScore,
        rare_disease_suspicion: float = 0.0,
    ) -> list[SelectedAgent]:
        ...

    def build_task(
        self,
        request: ConsultationRequest,
        agents: list[SelectedAgent],
        complexity: ComplexityScore,
        enriched_context: Optional[EnrichedContext] = None,
    ) -> DelegateTask:
        ...


# =============================================================================
# EVIDENCE PROVIDERS
# =============================================================================


class LiteratureSearchProtocol(Protocol):
    async def search_literature(self, query: str, max_results: int = 10) -> LiteratureSearchResult:
        ...


class DrugSafetyProtocol(Protocol):
    async def check_interactions(
        self,
        medications: list[str],
        conditions: Optional[list[str]] = None,
        allergies: Optional[list[str]] = None,
        age: Optional[int] = None,
        weight_kg: Optional[float] = None,
    ) -> DrugSafetyReport:
        ...


class GuidelineProviderProtocol(Protocol):
    async def get_guidelines(self, conditions: list[str]) -> list[ClinicalGuideline]:
        ...


class RiskScorerProtocol(Protocol):
    async def assess(self, request: ConsultationRequest) -> RiskAssessment:
        ...


class ExpertDifferentialProtocol(Protocol):
    async def generate_differential(self, request: ConsultationRequest) -> ExpertDifferential:
        ...


class ImagingAnalyzerProtocol(Protocol):
    async def analyze(self, imaging: dict, clinical_context: str = "") -> ImagingFindings:
        ...


# =============================================================================
# COMPLIANCE / AUDIT
# =============================================================================


class ComplianceValidatorProtocol(Protocol):
    async def validate(self, operation: ComplianceOperation) -> ComplianceValidation:
        ...


class AuditLoggerProtocol(Protocol):
    async def log_decision(
        self,
        consultation_id: str,
        patient_id: str,
        user_id: str,
        decision: str,
        confidence: float,
        details: Optional[dict] = None,
    ) -> AuditReference:
        ...
