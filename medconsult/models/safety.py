"""
Medical Consultation Engine - Safety Schemas

Output of the safety gate that every consensus passes through.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import AlertSeverity, InteractionSeverity, RiskLevel


class SafetyAlert(BaseModel):
    """A critical alert or warning raised by the safety gate."""

    model_config = ConfigDict(use_enum_values=True)

    severity: AlertSeverity
    category: str = Field(description="dose, allergy, contraindication, pregnancy, interaction, confidence, ...")
    title: str
    message: str
    recommendation: str = ""


class DoseViolation(BaseModel):
    """A medication dose outside its known safe range."""

    drug: str
    dose: float
    unit: str = "mg"
    min_dose: float
    max_dose: float
    overdose: bool


class InteractionConflict(BaseModel):
    """A drug-drug interaction found among current and implied medications."""

    model_config = ConfigDict(use_enum_values=True)

    drug_a: str
    drug_b: str
    severity: InteractionSeverity
    effect: str = ""


class ContraindicationViolation(BaseModel):
    """A medication contraindicated by a condition, allergy or pregnancy."""

    drug: str
    reason: str
    absolute: bool


class SafetyValidationResult(BaseModel):
    """Verdict of the safety gate."""

    model_config = ConfigDict(use_enum_values=True)

    safe: bool
    overall_risk: RiskLevel
    critical_alerts: list[SafetyAlert] = Field(default_factory=list)
    warnings: list[SafetyAlert] = Field(default_factory=list)
    dose_violations: list[DoseViolation] = Field(default_factory=list)
    drug_interactions: list[InteractionConflict] = Field(default_factory=list)
    contraindications: list[ContraindicationViolation] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    safety_score: int = Field(ge=0, le=100)
    requires_human_review: bool
    error: Optional[str] = None
