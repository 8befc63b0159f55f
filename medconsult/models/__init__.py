"""Data models for the consultation engine."""

from medconsult.models.agents import (
    AgentRecommendation,
    AgentResult,
    AgentSpec,
    DiagnosisOpinion,
    SelectedAgent,
)
from medconsult.models.complexity import (
    ComplexityBreakdown,
    ComplexityFactors,
    ComplexityScore,
    QuickCheckResult,
)
from medconsult.models.compliance import (
    AuditReference,
    ComplianceOperation,
    ComplianceValidation,
    ComplianceViolation,
    ComplianceWarning,
)
from medconsult.models.consensus import (
    ConsensusDiagnosis,
    ConsensusRecommendation,
    ConsensusResult,
    RankedDifferential,
)
from medconsult.models.consultation import (
    ConsultationRequest,
    ConsultationResponse,
    ConsultationResult,
    Demographics,
    MedicalHistory,
    OrchestrationTask,
)
from medconsult.models.delegate import DelegateStatus, DelegateSubmission, DelegateTask
from medconsult.models.enrichment import (
    ClinicalGuideline,
    ContraindicationFinding,
    DrugInteraction,
    DrugSafetyReport,
    EnrichedContext,
    ExpertDifferential,
    ExpertDifferentialEntry,
    ImagingFindings,
    LiteratureArticle,
    LiteratureSearchResult,
    RiskAssessment,
    RiskScore,
)
from medconsult.models.enums import (
    AlertSeverity,
    ComplexityTier,
    ComplianceRiskLevel,
    ConsensusQuality,
    DelegateTaskState,
    EvidenceStrength,
    InteractionSeverity,
    ProgressionRate,
    RecommendationType,
    RiskLevel,
    SpawnRule,
    TaskStatus,
    UrgencyLevel,
)
from medconsult.models.llm import LLMResponse
from medconsult.models.progress import ProgressCallback, ProgressUpdate
from medconsult.models.safety import (
    ContraindicationViolation,
    DoseViolation,
    InteractionConflict,
    SafetyAlert,
    SafetyValidationResult,
)

__all__ = [
    "AgentRecommendation",
    "AgentResult",
    "AgentSpec",
    "AlertSeverity",
    "AuditReference",
    "ClinicalGuideline",
    "ComplexityBreakdown",
    "ComplexityFactors",
    "ComplexityScore",
    "ComplexityTier",
    "ComplianceOperation",
    "ComplianceRiskLevel",
    "ComplianceValidation",
    "ComplianceViolation",
    "ComplianceWarning",
    "ConsensusDiagnosis",
    "ConsensusQuality",
    "ConsensusRecommendation",
    "ConsensusResult",
    "ConsultationRequest",
    "ConsultationResponse",
    "ConsultationResult",
    "ContraindicationFinding",
    "ContraindicationViolation",
    "DelegateTask",
    "DelegateStatus",
    "DelegateSubmission",
    "DelegateTaskState",
    "Demographics",
    "DiagnosisOpinion",
    "DoseViolation",
    "DrugInteraction",
    "DrugSafetyReport",
    "EnrichedContext",
    "EvidenceStrength",
    "ExpertDifferential",
    "ExpertDifferentialEntry",
    "ImagingFindings",
    "InteractionConflict",
    "InteractionSeverity",
    "LLMResponse",
    "LiteratureArticle",
    "LiteratureSearchResult",
    "MedicalHistory",
    "OrchestrationTask",
    "ProgressCallback",
    "ProgressUpdate",
    "ProgressionRate",
    "QuickCheckResult",
    "RankedDifferential",
    "RecommendationType",
    "RiskAssessment",
    "RiskLevel",
    "RiskScore",
    "SafetyAlert",
    "SafetyValidationResult",
    "SelectedAgent",
    "SpawnRule",
    "TaskStatus",
    "UrgencyLevel",
]
