"""
Medical Consultation Engine - Enrichment Schemas

Results returned by the independent evidence providers that are queried
before a consultation is submitted.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import InteractionSeverity, RiskLevel


# =============================================================================
# LITERATURE
# =============================================================================


class LiteratureArticle(BaseModel):
    """An article returned by the literature search."""

    pmid: str
    title: str
    authors: list[str] = Field(default_factory=list)
    year: int = 0
    journal: str = ""
    doi: Optional[str] = None
    abstract: str = ""
    publication_types: list[str] = Field(default_factory=list)
    evidence_level: str = Field(
        default="other",
        description="meta_analysis, systematic_review, rct, observational, case_report or other",
    )

    @property
    def first_author(self) -> str:
        if self.authors:
            return self.authors[0].split()[0]
        return ""


class LiteratureSearchResult(BaseModel):
    """Articles found for a clinical query."""

    query: str
    total_count: int = 0
    articles: list[LiteratureArticle] = Field(default_factory=list)


# =============================================================================
# DRUG SAFETY
# =============================================================================


class DrugInteraction(BaseModel):
    """A known interaction between two drugs."""

    model_config = ConfigDict(use_enum_values=True)

    drug_a: str
    drug_b: str
    severity: InteractionSeverity
    effect: str
    management: str = ""


class ContraindicationFinding(BaseModel):
    """A drug contraindicated by one of the patient's conditions."""

    drug: str
    condition: str
    absolute: bool = True
    reason: str = ""


class DrugSafetyReport(BaseModel):
    """Interaction and contraindication screen for a medication list."""

    model_config = ConfigDict(use_enum_values=True)

    medications: list[str] = Field(default_factory=list)
    interactions: list[DrugInteraction] = Field(default_factory=list)
    contraindications: list[ContraindicationFinding] = Field(default_factory=list)
    allergy_alerts: list[str] = Field(default_factory=list)
    dosage_warnings: list[str] = Field(default_factory=list)
    overall_risk: RiskLevel = RiskLevel.LOW


# =============================================================================
# GUIDELINES
# =============================================================================


class ClinicalGuideline(BaseModel):
    """A published clinical practice guideline."""

    guideline_id: str
    title: str
    organization: str
    condition: str
    year: int
    recommendations: list[str] = Field(default_factory=list)
    evidence_grade: str = ""


# =============================================================================
# RISK STRATIFICATION
# =============================================================================


class RiskScore(BaseModel):
    """A single calculated clinical risk score."""

    model_config = ConfigDict(use_enum_values=True)

    name: str
    score: float
    risk_level: RiskLevel
    interpretation: str = ""
    components: dict[str, float] = Field(default_factory=dict)


class RiskAssessment(BaseModel):
    """All risk scores that could be calculated for a case."""

    model_config = ConfigDict(use_enum_values=True)

    scores: list[RiskScore] = Field(default_factory=list)
    overall_risk: RiskLevel = RiskLevel.LOW


# =============================================================================
# EXPERT MODEL / IMAGING
# =============================================================================


class ExpertDifferentialEntry(BaseModel):
    """One diagnosis proposed by the expert model."""

    condition: str
    probability: float = Field(ge=0.0, le=1.0, default=0.0)
    icd10_code: Optional[str] = None
    supporting_factors: list[str] = Field(default_factory=list)


class ExpertDifferential(BaseModel):
    """Differential diagnosis produced by the expert model."""

    model: str
    differentials: list[ExpertDifferentialEntry] = Field(default_factory=list)
    reasoning: str = ""


class ImagingFindings(BaseModel):
    """Findings returned by the imaging analysis service."""

    modality: str = ""
    findings: list[str] = Field(default_factory=list)
    impression: str = ""
    critical_finding: bool = False
    confidence: float = Field(ge=0.0, le=1.0, default=0.0)
    raw: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# AGGREGATE
# =============================================================================


class EnrichedContext(BaseModel):
    """
    Evidence gathered for one consultation.

    Every field is optional: None means the provider failed or did not
    apply. Failed branches are listed in ``failed_sources``.
    """

    literature: Optional[LiteratureSearchResult] = None
    drug_safety: Optional[DrugSafetyReport] = None
    guidelines: Optional[list[ClinicalGuideline]] = None
    risk_assessment: Optional[RiskAssessment] = None
    expert_differential: Optional[ExpertDifferential] = None
    imaging_findings: Optional[ImagingFindings] = None
    failed_sources: list[str] = Field(default_factory=list)

    @property
    def available_sources(self) -> list[str]:
        """Names of the branches that produced data."""
        names = [
            "literature",
            "drug_safety",
            "guidelines",
            "risk_assessment",
            "expert_differential",
            "imaging_findings",
        ]
        return [name for name in names if getattr(self, name)]
