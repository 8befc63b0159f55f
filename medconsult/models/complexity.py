"""
Medical Consultation Engine - Complexity Schemas

Input factors and derived scores for case complexity analysis.
"""

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import ComplexityTier, ProgressionRate, UrgencyLevel


class ComplexityFactors(BaseModel):
    """
    Immutable snapshot of the case signals that drive complexity scoring.

    Numeric ranges are not validated here; the analyzer clamps out-of-range
    values instead of rejecting them.
    """

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    # Symptoms
    symptom_count: int = 0
    symptom_severity: float = Field(default=0.3, description="0-1 severity estimate")
    symptom_duration: float = Field(default=0.5, description="0-1, longer is more complex")

    # Clinical data
    abnormal_vitals: float = Field(default=0.0, description="Fraction of abnormal vitals (0-1)")
    abnormal_labs: float = Field(default=0.0, description="Fraction of abnormal labs (0-1)")
    imaging_required: bool = False
    data_volume: float = Field(default=0.0, description="0-1 amount of clinical data supplied")

    # Patient
    patient_age: float = 50
    comorbidity_count: int = 0
    medication_count: int = 0
    allergy_count: int = 0
    previous_treatment_failures: int = 0

    # Diagnostic
    urgency_level: UrgencyLevel = UrgencyLevel.ROUTINE
    specialties_required: tuple[str, ...] = ()
    differential_breadth: float = Field(default=0.0, description="0-1 breadth of the differential")
    rare_disease_suspicion: float = Field(default=0.0, description="0-1 suspicion of rare disease")
    multi_system_involvement: bool = False
    progression_rate: ProgressionRate = ProgressionRate.STABLE


class ComplexityBreakdown(BaseModel):
    """The five sub-scores behind an overall complexity score."""

    model_config = ConfigDict(frozen=True)

    symptom_complexity: float = Field(ge=0.0, le=1.0)
    clinical_data_complexity: float = Field(ge=0.0, le=1.0)
    patient_complexity: float = Field(ge=0.0, le=1.0)
    diagnostic_complexity: float = Field(ge=0.0, le=1.0)
    urgency_complexity: float = Field(ge=0.0, le=1.0)


class ComplexityScore(BaseModel):
    """Output of the complexity analyzer."""

    model_config = ConfigDict(frozen=True)

    overall_score: float
    normalized_score: float = Field(ge=0.0, le=1.0)
    breakdown: ComplexityBreakdown
    agent_count_recommendation: int = Field(ge=1)
    estimated_processing_time: int = Field(description="Estimated processing time in seconds")


class QuickCheckResult(BaseModel):
    """Coarse triage from symptom count, urgency and comorbidities only."""

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    complexity: ComplexityTier
    agent_count: int
    score: float
