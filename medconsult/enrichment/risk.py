"""
Clinical risk stratification.

Calculates the validated scores that can be derived from the request:
- CHA2DS2-VASc stroke risk when atrial fibrillation is documented
- qSOFA from vitals and mental status
"""

import logging

from medconsult.complexity.factors import find_vital
from medconsult.models.consultation import ConsultationRequest
from medconsult.models.enrichment import RiskAssessment, RiskScore
from medconsult.models.enums import RiskLevel
from medconsult.utils.parsing import contains_term


logger = logging.getLogger(__name__)


RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]

VASCULAR_DISEASE_TERMS = [
    "myocardial infarction", "coronary artery disease", "peripheral artery disease",
    "aortic plaque", "cad", "pad",
]
STROKE_TERMS = ["stroke", "tia", "transient ischemic attack", "thromboembolism"]
ALTERED_MENTATION_TERMS = ["confusion", "altered mental status", "disoriented", "lethargy", "gcs"]


def _has_any(texts: list[str], terms: list[str]) -> bool:
    return any(contains_term(text, term) for text in texts for term in terms)


class RiskStratificationService:
    """Computes clinical risk scores for a consultation request."""

    async def assess(self, request: ConsultationRequest) -> RiskAssessment:
        """
        Calculate every applicable risk score.

        Args:
            request: Consultation request

        Returns:
            RiskAssessment; empty when no score applies
        """
        scores = []

        conditions = request.medical_history.conditions
        if _has_any(conditions, ["atrial fibrillation", "afib"]):
            scores.append(self.cha2ds2_vasc(request))

        if request.vitals:
            scores.append(self.qsofa(request))

        overall = RiskLevel.LOW
        for score in scores:
            level = RiskLevel(score.risk_level)
            if RISK_ORDER.index(level) > RISK_ORDER.index(overall):
                overall = level

        logger.debug(f"Risk assessment: {[s.name for s in scores]} -> {overall.value}")
        return RiskAssessment(scores=scores, overall_risk=overall)

    def cha2ds2_vasc(self, request: ConsultationRequest) -> RiskScore:
        """CHA2DS2-VASc stroke risk score for atrial fibrillation."""
        conditions = request.medical_history.conditions
        age = request.demographics.age or 0
        sex = (request.demographics.sex or "").lower()

        components = {
            "congestive_heart_failure": 1.0 if _has_any(conditions, ["heart failure", "chf"]) else 0.0,
            "hypertension": 1.0 if _has_any(conditions, ["hypertension", "htn"]) else 0.0,
            "age": 2.0 if age >= 75 else (1.0 if age >= 65 else 0.0),
            "diabetes": 1.0 if _has_any(conditions, ["diabetes"]) else 0.0,
            "stroke_tia": 2.0 if _has_any(conditions, STROKE_TERMS) else 0.0,
            "vascular_disease": 1.0 if _has_any(conditions, VASCULAR_DISEASE_TERMS) else 0.0,
            "female_sex": 1.0 if sex in ("female", "f") else 0.0,
        }
        total = sum(components.values())

        if total >= 2:
            level = RiskLevel.HIGH
            interpretation = "Oral anticoagulation recommended"
        elif total == 1:
            level = RiskLevel.MEDIUM
            interpretation = "Consider oral anticoagulation"
        else:
            level = RiskLevel.LOW
            interpretation = "Anticoagulation generally not indicated"

        return RiskScore(
            name="CHA2DS2-VASc",
            score=total,
            risk_level=level,
            interpretation=interpretation,
            components=components,
        )

    def qsofa(self, request: ConsultationRequest) -> RiskScore:
        """Quick SOFA score for sepsis-related mortality risk."""
        respiratory_rate = find_vital(request.vitals, "respiratory_rate")
        systolic = find_vital(request.vitals, "systolic_bp")
        texts = [request.chief_complaint, *request.symptoms]

        components = {
            "respiratory_rate_22_plus": 1.0 if respiratory_rate is not None and respiratory_rate >= 22 else 0.0,
            "systolic_bp_100_or_less": 1.0 if systolic is not None and systolic <= 100 else 0.0,
            "altered_mentation": 1.0 if _has_any(texts, ALTERED_MENTATION_TERMS) else 0.0,
        }
        total = sum(components.values())

        if total >= 2:
            level = RiskLevel.HIGH
            interpretation = "High risk of poor outcome if infection is present"
        elif total == 1:
            level = RiskLevel.MEDIUM
            interpretation = "Monitor closely for deterioration"
        else:
            level = RiskLevel.LOW
            interpretation = "Low qSOFA risk"

        return RiskScore(
            name="qSOFA",
            score=total,
            risk_level=level,
            interpretation=interpretation,
            components=components,
        )
