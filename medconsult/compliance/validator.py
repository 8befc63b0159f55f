"""
Compliance Validator - Privacy and security rule checks for PHI access.

Runs before a consultation starts (blocking) and again when a result is
produced (advisory, attached to the result).
"""

import logging

from medconsult.models.compliance import (
    ComplianceOperation,
    ComplianceValidation,
    ComplianceViolation,
    ComplianceWarning,
)
from medconsult.models.enums import ComplianceRiskLevel


logger = logging.getLogger(__name__)


PERMITTED_PURPOSES = {"treatment", "payment", "operations"}
MAX_FIELDS_WITHOUT_REVIEW = 10
MINIMUM_NECESSARY = "Minimum Necessary"


class ComplianceValidator:
    """
    Validates an operation on patient data.

    Stateless; a single instance can be shared by concurrent consultations.
    """

    async def validate(self, operation: ComplianceOperation) -> ComplianceValidation:
        """
        Validate one PHI operation.

        Args:
            operation: What is being accessed, by whom, and why

        Returns:
            ComplianceValidation; ``compliant`` is False if any violation was found
        """
        violations: list[ComplianceViolation] = []
        warnings: list[ComplianceWarning] = []
        recommendations: list[str] = []

        self._check_privacy_rule(operation, violations, warnings)
        self._check_security_rule(operation, violations)
        self._check_minimum_necessary(operation, warnings, recommendations)

        if violations:
            recommendations.append("IMMEDIATE ACTION REQUIRED: Address critical violations")
        if any(w.category == MINIMUM_NECESSARY for w in warnings):
            recommendations.append("Implement granular access controls for PHI")
        recommendations.append("Conduct regular HIPAA compliance audits (quarterly recommended)")
        recommendations.append("Provide annual HIPAA training to all workforce members")

        result = ComplianceValidation(
            compliant=not violations,
            violations=violations,
            warnings=warnings,
            recommendations=recommendations,
            risk_level=risk_level(violations, warnings),
        )

        log = logger.warning if violations else logger.info
        log(
            f"Compliance check for {operation.type} on patient {operation.patient_id}: "
            f"compliant={result.compliant}, violations={len(violations)}, "
            f"warnings={len(warnings)}, risk={result.risk_level}"
        )
        return result

    def _check_privacy_rule(
        self,
        operation: ComplianceOperation,
        violations: list[ComplianceViolation],
        warnings: list[ComplianceWarning],
    ) -> None:
        if operation.purpose.lower() not in PERMITTED_PURPOSES and not operation.has_consent:
            violations.append(
                ComplianceViolation(
                    rule="45 CFR § 164.508",
                    severity="critical",
                    description="PHI disclosure requires patient authorization",
                    remediation="Obtain valid patient consent before accessing PHI",
                )
            )

        if len(operation.data_accessed) > MAX_FIELDS_WITHOUT_REVIEW:
            warnings.append(
                ComplianceWarning(
                    category=MINIMUM_NECESSARY,
                    description="Large number of PHI fields accessed",
                    recommendation="Review if all fields are necessary for stated purpose",
                )
            )

    def _check_security_rule(
        self,
        operation: ComplianceOperation,
        violations: list[ComplianceViolation],
    ) -> None:
        if not operation.user_role:
            violations.append(
                ComplianceViolation(
                    rule="45 CFR § 164.308(a)(3)",
                    severity="major",
                    description="User role not specified - violates workforce security requirements",
                    remediation="Implement role-based access control (RBAC)",
                )
            )

        if not operation.encryption_enabled:
            violations.append(
                ComplianceViolation(
                    rule="45 CFR § 164.312(a)(2)(iv)",
                    severity="critical",
                    description="Encryption not enabled for ePHI",
                    remediation="Enable encryption for all PHI at rest and in transit",
                )
            )

    def _check_minimum_necessary(
        self,
        operation: ComplianceOperation,
        warnings: list[ComplianceWarning],
        recommendations: list[str],
    ) -> None:
        if "full_medical_record" in operation.data_accessed:
            warnings.append(
                ComplianceWarning(
                    category=MINIMUM_NECESSARY,
                    description="Full medical record accessed",
                    recommendation="Access only specific fields required for the stated purpose",
                )
            )
            recommendations.append(
                "Implement role-based data filtering to enforce minimum necessary principle"
            )


def risk_level(
    violations: list[ComplianceViolation],
    warnings: list[ComplianceWarning],
) -> ComplianceRiskLevel:
    """Overall risk from the worst violation, or the warning count."""
    severities = {v.severity for v in violations}
    if "critical" in severities:
        return ComplianceRiskLevel.CRITICAL
    if "major" in severities:
        return ComplianceRiskLevel.HIGH
    if violations or len(warnings) > 3:
        return ComplianceRiskLevel.MODERATE
    return ComplianceRiskLevel.LOW
