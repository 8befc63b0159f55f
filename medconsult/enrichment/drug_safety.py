"""
Drug safety screening against the curated reference tables.

Used both as an enrichment branch (screening current medications before
submission) and by the safety gate for pairwise interaction checks.
"""

import logging
from typing import Optional

from medconsult.models.enrichment import (
    ContraindicationFinding,
    DrugInteraction,
    DrugSafetyReport,
)
from medconsult.models.enums import InteractionSeverity, RiskLevel
from medconsult.safety import knowledge
from medconsult.utils.parsing import contains_term


logger = logging.getLogger(__name__)


class DrugSafetyService:
    """Screens medication lists for interactions, contraindications and allergies."""

    async def check_interactions(
        self,
        medications: list[str],
        conditions: Optional[list[str]] = None,
        allergies: Optional[list[str]] = None,
        age: Optional[int] = None,
        weight_kg: Optional[float] = None,
    ) -> DrugSafetyReport:
        """
        Screen a medication list.

        Args:
            medications: Medication names (free text is accepted)
            conditions: Patient conditions for contraindication checks
            allergies: Documented allergies
            age: Patient age in years
            weight_kg: Patient weight

        Returns:
            DrugSafetyReport with all findings
        """
        conditions = conditions or []
        allergies = allergies or []

        interactions = [
            DrugInteraction(
                drug_a=a,
                drug_b=b,
                severity=severity,
                effect=effect,
                management=management,
            )
            for a, b, severity, effect, management in knowledge.find_interactions(medications)
        ]

        contraindications = []
        allergy_alerts = []
        drugs = []
        for medication in medications:
            named = [drug for drug, _ in knowledge.medication_mentions(medication)]
            drugs.extend(named or [knowledge.identify_drug(medication) or medication])

        for drug in drugs:
            for condition in conditions:
                for contra in knowledge.ABSOLUTE_CONTRAINDICATIONS.get(drug, []):
                    if contains_term(condition, contra):
                        contraindications.append(ContraindicationFinding(
                            drug=drug, condition=condition, absolute=True,
                            reason=f"{drug} is contraindicated in {contra}",
                        ))
                for contra in knowledge.RELATIVE_CONTRAINDICATIONS.get(drug, []):
                    if contains_term(condition, contra):
                        contraindications.append(ContraindicationFinding(
                            drug=drug, condition=condition, absolute=False,
                            reason=f"{drug} requires caution in {contra}",
                        ))
            for allergy in allergies:
                if knowledge.allergy_matches(drug, allergy):
                    allergy_alerts.append(f"{drug} conflicts with documented {allergy} allergy")

        dosage_warnings = []
        if medications:
            if age is not None and age >= 65:
                dosage_warnings.append("Elderly patient: consider reduced starting doses")
            if age is not None and age < 18:
                dosage_warnings.append("Pediatric patient: use weight-based dosing")
            if weight_kg is not None and weight_kg < 50:
                dosage_warnings.append("Low body weight: verify doses")

        report = DrugSafetyReport(
            medications=list(medications),
            interactions=interactions,
            contraindications=contraindications,
            allergy_alerts=allergy_alerts,
            dosage_warnings=dosage_warnings,
            overall_risk=self._overall_risk(interactions, contraindications, allergy_alerts),
        )

        logger.debug(
            f"Drug screen of {len(medications)} medications: {len(interactions)} interactions, "
            f"{len(contraindications)} contraindications, risk={report.overall_risk}"
        )
        return report

    @staticmethod
    def _overall_risk(
        interactions: list[DrugInteraction],
        contraindications: list[ContraindicationFinding],
        allergy_alerts: list[str],
    ) -> RiskLevel:
        severities = {i.severity for i in interactions}
        if allergy_alerts or InteractionSeverity.CRITICAL.value in severities:
            return RiskLevel.CRITICAL
        if InteractionSeverity.MAJOR.value in severities or any(c.absolute for c in contraindications):
            return RiskLevel.HIGH
        if interactions or contraindications:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
