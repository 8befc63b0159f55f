"""
Medical Consultation Engine - Compliance Schemas

Privacy/security pre-check of PHI access and the audit trail references.
"""

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import ComplianceRiskLevel


class ComplianceOperation(BaseModel):
    """An operation on patient data that must be validated before it runs."""

    type: str = Field(description="read, write, disclosure, ...")
    user_id: str
    user_role: str = ""
    patient_id: str
    data_accessed: list[str] = Field(default_factory=list)
    purpose: str = "treatment"
    has_consent: bool = False
    encryption_enabled: bool = True


class ComplianceViolation(BaseModel):
    """A rule the operation breaks."""

    rule: str
    severity: str = Field(description="critical, major or minor")
    description: str
    remediation: str = ""


class ComplianceWarning(BaseModel):
    """A concern that does not block the operation."""

    category: str
    description: str
    recommendation: str = ""


class ComplianceValidation(BaseModel):
    """Result of validating one operation."""

    model_config = ConfigDict(use_enum_values=True)

    compliant: bool
    violations: list[ComplianceViolation] = Field(default_factory=list)
    warnings: list[ComplianceWarning] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    risk_level: ComplianceRiskLevel = ComplianceRiskLevel.LOW


class AuditReference(BaseModel):
    """Identifiers of the audit trail entries written for a decision."""

    decision_id: str
    audit_id: str
