"""
Safety Gate - Validates a consensus before it is released.

Every check runs regardless of earlier findings; the result is a report,
not a short-circuit. Checks, in order:
1. Dose ranges of implied medications
2. Allergy cross-matches
3. Absolute / relative contraindications against patient conditions
4. Pregnancy category conflicts
5. Pairwise drug interactions (via the drug-safety collaborator)
6. AI confidence thresholds on critical recommendation types

A consensus that fails the gate is still returned, flagged as unsafe
and/or requiring human review.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from medconsult.models.consensus import ConsensusResult
from medconsult.models.consultation import ConsultationRequest
from medconsult.models.enums import (
    AlertSeverity,
    InteractionSeverity,
    RiskLevel,
)
from medconsult.models.safety import (
    ContraindicationViolation,
    DoseViolation,
    InteractionConflict,
    SafetyAlert,
    SafetyValidationResult,
)
from medconsult.safety import knowledge
from medconsult.utils.parsing import contains_term
from medconsult.utils.protocols import DrugSafetyProtocol


logger = logging.getLogger(__name__)


AI_CONFIDENCE_THRESHOLD = 0.7
DIAGNOSIS_CONFIDENCE_THRESHOLD = 0.6
CRITICAL_RECOMMENDATION_TYPES = {"diagnosis", "medication", "procedure"}

PENALTY_CRITICAL_ALERT = 25
PENALTY_ABSOLUTE_CONTRAINDICATION = 25
PENALTY_OVERDOSE = 20
PENALTY_CRITICAL_INTERACTION = 15
PENALTY_HIGH_WARNING = 10
PENALTY_MEDIUM_WARNING = 5

SEVERE_RENAL_TERMS = ["severe renal", "end stage renal", "esrd", "dialysis", "ckd stage 5"]


@dataclass
class ImpliedMedication:
    """A medication implied by a consensus recommendation."""
    drug: str
    text: str
    dose_mg: Optional[float] = None


@dataclass
class _Findings:
    """Accumulator shared by the individual checks."""
    critical_alerts: list[SafetyAlert] = field(default_factory=list)
    warnings: list[SafetyAlert] = field(default_factory=list)
    dose_violations: list[DoseViolation] = field(default_factory=list)
    interactions: list[InteractionConflict] = field(default_factory=list)
    contraindications: list[ContraindicationViolation] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    low_confidence_critical: bool = False

    def alert(self, category: str, title: str, message: str, recommendation: str = "") -> None:
        self.critical_alerts.append(SafetyAlert(
            severity=AlertSeverity.CRITICAL,
            category=category,
            title=title,
            message=message,
            recommendation=recommendation,
        ))

    def warn(
        self,
        severity: AlertSeverity,
        category: str,
        title: str,
        message: str,
        recommendation: str = "",
    ) -> None:
        self.warnings.append(SafetyAlert(
            severity=severity,
            category=category,
            title=title,
            message=message,
            recommendation=recommendation,
        ))


def implied_medications(consensus: ConsensusResult) -> list[ImpliedMedication]:
    """
    Medications implied by the consensus' medication recommendations.

    A recommendation naming several drugs yields one entry per drug, each
    dosed from its own part of the text.
    """
    medications = []
    for rec in consensus.medication_recommendations:
        mentions = knowledge.medication_mentions(rec.recommendation)
        if not mentions:
            drug = knowledge.identify_drug(rec.recommendation)
            if drug is None:
                continue
            mentions = [(drug, rec.recommendation)]
        for drug, segment in mentions:
            medications.append(ImpliedMedication(
                drug=drug,
                text=segment,
                dose_mg=knowledge.parse_dose_mg(segment),
            ))
    return medications


class SafetyGate:
    """
    Validates consensus results against medication safety rules.

    Args:
        drug_safety: Collaborator used for pairwise interaction checks
    """

    def __init__(self, drug_safety: DrugSafetyProtocol):
        self.drug_safety = drug_safety

    async def validate(
        self,
        consensus: ConsensusResult,
        request: ConsultationRequest,
    ) -> SafetyValidationResult:
        """
        Validate a consensus against the patient's context.

        Args:
            consensus: Consensus to check
            request: Original request (medications, allergies, conditions, demographics)

        Returns:
            SafetyValidationResult; never raises for unsafe content
        """
        findings = _Findings()
        medications = implied_medications(consensus)
        history = request.medical_history

        self._check_doses(medications, findings)
        self._check_allergies(medications, history.allergies, findings)
        self._check_contraindications(medications, history.conditions, findings)
        self._check_pregnancy(medications, request.demographics.pregnant, findings)
        await self._check_interactions(medications, request, findings)
        self._check_ai_confidence(consensus, findings)
        self._check_diagnosis(consensus, findings)
        self._check_special_populations(medications, request, findings)

        result = self._summarize(findings)

        logger.info(
            f"Safety gate: safe={result.safe}, risk={result.overall_risk}, "
            f"score={result.safety_score}, review={result.requires_human_review}"
        )
        return result

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _check_doses(self, medications: list[ImpliedMedication], findings: _Findings) -> None:
        for med in medications:
            dose_range = knowledge.DOSE_RANGES_MG.get(med.drug)
            if dose_range is None or med.dose_mg is None:
                continue
            low, high = dose_range
            if med.dose_mg > high:
                findings.dose_violations.append(DoseViolation(
                    drug=med.drug, dose=med.dose_mg, min_dose=low, max_dose=high, overdose=True,
                ))
                findings.alert(
                    "dose",
                    "Dose Exceeds Maximum",
                    f"{med.drug} {med.dose_mg:g} mg exceeds the maximum of {high:g} mg",
                    f"Reduce {med.drug} to at most {high:g} mg",
                )
            elif med.dose_mg < low:
                findings.dose_violations.append(DoseViolation(
                    drug=med.drug, dose=med.dose_mg, min_dose=low, max_dose=high, overdose=False,
                ))
                findings.warn(
                    AlertSeverity.MEDIUM,
                    "dose",
                    "Dose Below Therapeutic Range",
                    f"{med.drug} {med.dose_mg:g} mg is below the usual minimum of {low:g} mg",
                )

    def _check_allergies(
        self,
        medications: list[ImpliedMedication],
        allergies: list[str],
        findings: _Findings,
    ) -> None:
        for med in medications:
            for allergy in allergies:
                if not (knowledge.allergy_matches(med.drug, allergy) or contains_term(med.text, allergy)):
                    continue
                findings.alert(
                    "allergy",
                    "Allergy Alert",
                    f"Patient has a documented {allergy} allergy; {med.drug} is recommended",
                    f"Select an alternative to {med.drug}",
                )
                findings.contraindications.append(ContraindicationViolation(
                    drug=med.drug,
                    reason=f"Allergy: {allergy}",
                    absolute=True,
                ))

    def _check_contraindications(
        self,
        medications: list[ImpliedMedication],
        conditions: list[str],
        findings: _Findings,
    ) -> None:
        for med in medications:
            for condition in conditions:
                for contra in knowledge.ABSOLUTE_CONTRAINDICATIONS.get(med.drug, []):
                    if contains_term(condition, contra):
                        findings.contraindications.append(ContraindicationViolation(
                            drug=med.drug, reason=condition, absolute=True,
                        ))
                        findings.alert(
                            "contraindication",
                            "Absolute Contraindication",
                            f"{med.drug} is contraindicated in {condition}",
                            f"Do not use {med.drug}",
                        )
                for contra in knowledge.RELATIVE_CONTRAINDICATIONS.get(med.drug, []):
                    if contains_term(condition, contra):
                        findings.contraindications.append(ContraindicationViolation(
                            drug=med.drug, reason=condition, absolute=False,
                        ))
                        findings.warn(
                            AlertSeverity.MEDIUM,
                            "contraindication",
                            "Relative Contraindication",
                            f"Use {med.drug} with caution in {condition}",
                        )

    def _check_pregnancy(
        self,
        medications: list[ImpliedMedication],
        pregnant: bool,
        findings: _Findings,
    ) -> None:
        if not pregnant:
            return
        for med in medications:
            category = knowledge.PREGNANCY_CATEGORIES.get(med.drug)
            if category == "X":
                findings.alert(
                    "pregnancy",
                    "Pregnancy Contraindication",
                    f"{med.drug} is pregnancy category X",
                    f"Do not use {med.drug} during pregnancy",
                )
            elif category == "D":
                findings.warn(
                    AlertSeverity.HIGH,
                    "pregnancy",
                    "Pregnancy Risk",
                    f"{med.drug} is pregnancy category D; use only if benefit outweighs risk",
                )

    async def _check_interactions(
        self,
        medications: list[ImpliedMedication],
        request: ConsultationRequest,
        findings: _Findings,
    ) -> None:
        if not medications:
            return

        all_medications = list(request.medical_history.medications)
        all_medications.extend(med.drug for med in medications)

        try:
            report = await self.drug_safety.check_interactions(
                medications=all_medications,
                conditions=request.medical_history.conditions,
                allergies=request.medical_history.allergies,
                age=request.demographics.age,
                weight_kg=request.demographics.weight_kg,
            )
        except Exception as e:
            logger.warning(f"Drug interaction check failed: {e}")
            findings.warn(
                AlertSeverity.MEDIUM,
                "interaction",
                "Safety Check Incomplete",
                "Drug interaction check could not be completed",
                "Manually verify drug interactions",
            )
            return

        for interaction in report.interactions:
            findings.interactions.append(InteractionConflict(
                drug_a=interaction.drug_a,
                drug_b=interaction.drug_b,
                severity=interaction.severity,
                effect=interaction.effect,
            ))
            message = f"{interaction.drug_a} + {interaction.drug_b}: {interaction.effect}"
            if interaction.severity == InteractionSeverity.CRITICAL:
                findings.alert("interaction", "Critical Drug Interaction", message, interaction.management)
            elif interaction.severity == InteractionSeverity.MAJOR:
                findings.warn(
                    AlertSeverity.HIGH,
                    "interaction",
                    "Major Drug Interaction",
                    message,
                    interaction.management,
                )

    def _check_ai_confidence(self, consensus: ConsensusResult, findings: _Findings) -> None:
        types = {"diagnosis"} | {rec.type for rec in consensus.recommendations}
        critical_types = sorted(types & CRITICAL_RECOMMENDATION_TYPES)
        if not critical_types or consensus.overall_confidence >= AI_CONFIDENCE_THRESHOLD:
            return

        findings.low_confidence_critical = True
        findings.warn(
            AlertSeverity.HIGH,
            "confidence",
            "Low AI Confidence",
            f"Confidence {consensus.overall_confidence:.0%} is below "
            f"{AI_CONFIDENCE_THRESHOLD:.0%} for: {', '.join(critical_types)}",
            "Physician review required before acting on these recommendations",
        )
        findings.recommendations.append("Obtain physician review of the low-confidence recommendations")

    def _check_diagnosis(self, consensus: ConsensusResult, findings: _Findings) -> None:
        diagnosis = consensus.primary_diagnosis
        if diagnosis.confidence < DIAGNOSIS_CONFIDENCE_THRESHOLD:
            findings.warn(
                AlertSeverity.MEDIUM,
                "diagnosis",
                "Low Diagnostic Confidence",
                f"Primary diagnosis '{diagnosis.condition}' has confidence {diagnosis.confidence:.0%}",
                "Consider additional diagnostic workup",
            )
        if any(contains_term(diagnosis.condition, kw) for kw in knowledge.RARE_CONDITION_KEYWORDS):
            findings.recommendations.append(
                f"'{diagnosis.condition}' is uncommon; consider specialist confirmation"
            )

    def _check_special_populations(
        self,
        medications: list[ImpliedMedication],
        request: ConsultationRequest,
        findings: _Findings,
    ) -> None:
        if not medications:
            return
        age = request.demographics.age
        if age is not None and age < 18:
            findings.warn(
                AlertSeverity.HIGH,
                "population",
                "Pediatric Patient",
                "Medication doses require weight-based pediatric verification",
                "Verify pediatric dosing",
            )
        if any(
            contains_term(condition, term)
            for condition in request.medical_history.conditions
            for term in SEVERE_RENAL_TERMS
        ):
            findings.warn(
                AlertSeverity.HIGH,
                "population",
                "Severe Renal Disease",
                "Renally cleared medications may need dose adjustment",
                "Adjust doses for renal function",
            )

    # -------------------------------------------------------------------------
    # Verdict
    # -------------------------------------------------------------------------

    def _summarize(self, f: _Findings) -> SafetyValidationResult:
        absolute = [c for c in f.contraindications if c.absolute]
        overdoses = [d for d in f.dose_violations if d.overdose]
        critical_interactions = [i for i in f.interactions if i.severity == InteractionSeverity.CRITICAL]
        high_warnings = [w for w in f.warnings if w.severity == AlertSeverity.HIGH]
        medium_warnings = [w for w in f.warnings if w.severity == AlertSeverity.MEDIUM]

        safe = not f.critical_alerts and not absolute

        if f.critical_alerts or absolute or overdoses:
            risk = RiskLevel.CRITICAL
        elif high_warnings or critical_interactions:
            risk = RiskLevel.HIGH
        elif len(f.warnings) > 2 or f.interactions:
            risk = RiskLevel.MEDIUM
        else:
            risk = RiskLevel.LOW

        score = 100
        score -= PENALTY_CRITICAL_ALERT * len(f.critical_alerts)
        score -= PENALTY_ABSOLUTE_CONTRAINDICATION * len(absolute)
        score -= PENALTY_OVERDOSE * len(overdoses)
        score -= PENALTY_CRITICAL_INTERACTION * len(critical_interactions)
        score -= PENALTY_HIGH_WARNING * len(high_warnings)
        score -= PENALTY_MEDIUM_WARNING * len(medium_warnings)

        requires_review = (
            bool(f.critical_alerts)
            or risk in (RiskLevel.CRITICAL, RiskLevel.HIGH)
            or f.low_confidence_critical
        )

        recommendations = list(f.recommendations)
        for alert in f.critical_alerts + f.warnings:
            if alert.recommendation and alert.recommendation not in recommendations:
                recommendations.append(alert.recommendation)

        return SafetyValidationResult(
            safe=safe,
            overall_risk=risk,
            critical_alerts=f.critical_alerts,
            warnings=f.warnings,
            dose_violations=f.dose_violations,
            drug_interactions=f.interactions,
            contraindications=f.contraindications,
            recommendations=recommendations,
            safety_score=max(0, score),
            requires_human_review=requires_review,
        )


def failed_safety_result(error: str) -> SafetyValidationResult:
    """Result used when the gate itself could not run."""
    return SafetyValidationResult(
        safe=False,
        overall_risk=RiskLevel.CRITICAL,
        critical_alerts=[SafetyAlert(
            severity=AlertSeverity.CRITICAL,
            category="system",
            title="Safety Validation Failed",
            message=f"Safety validation could not be completed: {error}",
            recommendation="Manual safety review required",
        )],
        safety_score=0,
        requires_human_review=True,
        error=error,
    )
