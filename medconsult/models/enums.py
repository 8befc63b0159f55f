"""
Medical Consultation Engine - Enumerations

Centralized enum definitions shared by the models and services.
"""

from enum import Enum


class UrgencyLevel(str, Enum):
    """Clinical urgency tier of an incoming case."""

    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENT = "emergent"


class ProgressionRate(str, Enum):
    """Trend of the patient's condition."""

    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class TaskStatus(str, Enum):
    """Lifecycle state of an orchestration task."""

    PENDING = "pending"
    SPAWNING_AGENTS = "spawning_agents"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class DelegateTaskState(str, Enum):
    """Task states reported by the delegate orchestrator."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RecommendationType(str, Enum):
    """Kind of clinical recommendation an agent can make."""

    MEDICATION = "medication"
    PROCEDURE = "procedure"
    LAB = "lab"
    IMAGING = "imaging"
    REFERRAL = "referral"
    EDUCATION = "education"
    PREVENTIVE = "preventive"


class EvidenceStrength(str, Enum):
    """Strength of evidence behind the consensus diagnosis."""

    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very_strong"


class ConsensusQuality(str, Enum):
    """Overall quality grade of a consensus."""

    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class RiskLevel(str, Enum):
    """Risk tier used by the safety gate and risk stratification."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertSeverity(str, Enum):
    """Severity of a single safety alert or warning."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InteractionSeverity(str, Enum):
    """Severity of a drug-drug interaction."""

    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class ComplianceRiskLevel(str, Enum):
    """Risk level of a compliance validation."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ComplexityTier(str, Enum):
    """Coarse triage classification returned by quick checks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SpawnRule(str, Enum):
    """When a specialist agent is added to a consultation panel."""

    ALWAYS = "always"
    HIGH_URGENCY = "high_urgency"
    KEYWORD_TRIGGERED = "keyword_triggered"
    IMAGING_REQUESTS = "imaging_requests"
    LAB_REQUESTS = "lab_requests"
    DRUG_QUERIES = "drug_queries"
    SURGICAL_CANDIDATES = "surgical_candidates"
    COMPLEX_CASES = "complex_cases"
    RARE_SUSPICION = "rare_suspicion"
