"""
Medical Consultation Engine - Agent Schemas

Specialist agent specifications used for selection, and the per-agent
opinions returned by the delegate orchestrator.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import RecommendationType, SpawnRule, UrgencyLevel


# =============================================================================
# AGENT SPECIFICATIONS
# =============================================================================


class AgentSpec(BaseModel):
    """A specialist the delegate orchestrator can be asked to spawn."""

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    specialty: str
    display_name: str
    focus: str = Field(default="", description="One-line description of what the agent analyzes")
    spawn_rule: SpawnRule
    trigger_keywords: tuple[str, ...] = ()
    confidence_weight: float = Field(default=0.8, ge=0.0, le=1.0)


class SelectedAgent(BaseModel):
    """An agent chosen for a specific consultation, with the reason it was picked."""

    specialty: str
    display_name: str
    reason: str
    priority: str = Field(default="medium", description="high, medium or low")


# =============================================================================
# AGENT OPINIONS
# =============================================================================


class DiagnosisOpinion(BaseModel):
    """A diagnosis proposed by a single agent."""

    condition: str
    confidence: float = Field(ge=0.0, le=1.0, default=0.5)
    icd10_code: Optional[str] = None


class AgentRecommendation(BaseModel):
    """A typed recommendation proposed by a single agent."""

    model_config = ConfigDict(use_enum_values=True)

    type: RecommendationType
    recommendation: str
    priority: UrgencyLevel = UrgencyLevel.ROUTINE
    rationale: str = ""


class AgentResult(BaseModel):
    """One independent opinion produced by the delegate orchestrator."""

    agent_id: str
    specialty: str
    primary_diagnosis: Optional[DiagnosisOpinion] = None
    differential_diagnoses: list[DiagnosisOpinion] = Field(default_factory=list)
    recommendations: list[AgentRecommendation] = Field(default_factory=list)
    findings: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0, default=0.5)
    processing_time: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)
