"""
Medical Consultation Engine - Consensus Schemas

The aggregated opinion built from all agent results.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import (
    ConsensusQuality,
    EvidenceStrength,
    RecommendationType,
    UrgencyLevel,
)


class ConsensusDiagnosis(BaseModel):
    """The consensus primary diagnosis."""

    model_config = ConfigDict(use_enum_values=True)

    condition: str
    confidence: float = Field(ge=0.0, le=1.0)
    agreement_score: float = Field(
        ge=0.0,
        le=1.0,
        description="Fraction of agents whose primary diagnosis matches this condition",
    )
    evidence_strength: EvidenceStrength
    icd10_code: Optional[str] = None
    supporting_agents: list[str] = Field(default_factory=list)


class RankedDifferential(BaseModel):
    """A differential diagnosis merged across agents."""

    condition: str
    confidence: float = Field(ge=0.0, le=1.0)
    icd10_code: Optional[str] = None
    suggested_by: list[str] = Field(default_factory=list)


class ConsensusRecommendation(BaseModel):
    """A deduplicated recommendation with the agents that made it."""

    model_config = ConfigDict(use_enum_values=True)

    type: RecommendationType
    recommendation: str
    priority: UrgencyLevel = UrgencyLevel.ROUTINE
    rationale: str = ""
    suggested_by: list[str] = Field(default_factory=list)


class ConsensusResult(BaseModel):
    """Aggregated diagnostic opinion of the whole agent panel."""

    model_config = ConfigDict(use_enum_values=True)

    primary_diagnosis: ConsensusDiagnosis
    differential_diagnoses: list[RankedDifferential] = Field(default_factory=list)
    recommendations: list[ConsensusRecommendation] = Field(default_factory=list)
    overall_confidence: float = Field(ge=0.0, le=1.0)
    consensus_quality: ConsensusQuality
    agent_count: int = 0

    @property
    def medication_recommendations(self) -> list[ConsensusRecommendation]:
        """Recommendations of type medication."""
        return [r for r in self.recommendations if r.type == RecommendationType.MEDICATION]
