"""
Tests for the safety gate.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from medconsult.enrichment.drug_safety import DrugSafetyService
from medconsult.models import (
    ConsensusDiagnosis,
    ConsensusRecommendation,
    ConsensusResult,
    ConsultationRequest,
    Demographics,
    MedicalHistory,
)
from medconsult.safety import SafetyGate, failed_safety_result, implied_medications
from medconsult.safety.knowledge import (
    allergy_matches,
    identify_drug,
    known_drugs,
    medication_mentions,
    parse_dose_mg,
)


def make_consensus(*medications: str, confidence: float = 0.9, condition: str = "Pneumonia") -> ConsensusResult:
    return ConsensusResult(
        primary_diagnosis=ConsensusDiagnosis(
            condition=condition,
            confidence=confidence,
            agreement_score=1.0,
            evidence_strength="very_strong",
        ),
        recommendations=[
            ConsensusRecommendation(type="medication", recommendation=text) for text in medications
        ],
        overall_confidence=confidence,
        consensus_quality="excellent",
        agent_count=3,
    )


@pytest.fixture
def gate():
    return SafetyGate(drug_safety=DrugSafetyService())


class TestKnowledge:
    """Tests for the reference table helpers."""

    def test_identify_known_drug(self):
        assert identify_drug("Start amoxicillin 500 mg three times daily") == "amoxicillin"

    def test_identify_unknown_drug_uses_first_word(self):
        assert identify_drug("Give zanubrutinib 160 mg") == "zanubrutinib"

    @pytest.mark.parametrize("text,expected", [
        ("ibuprofen 400 mg", 400.0),
        ("amoxicillin 1 g", 1000.0),
        ("levothyroxine 50 mcg", 0.05),
        ("rest and fluids", None),
    ])
    def test_parse_dose(self, text, expected):
        assert parse_dose_mg(text) == expected

    def test_allergy_cross_reactivity(self):
        assert allergy_matches("amoxicillin", "Penicillin") is True
        assert allergy_matches("ibuprofen", "NSAID allergy") is True
        assert allergy_matches("azithromycin", "penicillin") is False

    def test_known_drugs_order_is_stable(self):
        names = known_drugs()
        eleven = [n for n in names if len(n) == 11]

        assert eleven == sorted(eleven)
        assert names.index("amoxicillin") < names.index("ceftriaxone")

    def test_medication_mentions_splits_doses(self):
        mentions = medication_mentions("Ceftriaxone 1 g IV plus amoxicillin 500 mg")

        assert [drug for drug, _ in mentions] == ["ceftriaxone", "amoxicillin"]
        assert [parse_dose_mg(segment) for _, segment in mentions] == [1000.0, 500.0]

    def test_single_mention_keeps_whole_text(self):
        assert medication_mentions("500 mg of amoxicillin") == [("amoxicillin", "500 mg of amoxicillin")]


class TestSafetyGate:
    """Tests for the gate verdict."""

    @pytest.mark.asyncio
    async def test_clean_consensus_is_safe(self, gate, minimal_request):
        result = await gate.validate(make_consensus(), minimal_request)

        assert result.safe is True
        assert result.overall_risk == "low"
        assert result.safety_score == 100
        assert result.requires_human_review is False

    @pytest.mark.asyncio
    async def test_allergy_conflict_is_unsafe(self, gate, sample_request):
        consensus = make_consensus("Amoxicillin 500 mg three times daily")

        result = await gate.validate(consensus, sample_request)

        assert result.safe is False
        assert result.overall_risk == "critical"
        assert result.requires_human_review is True
        assert result.critical_alerts[0].category == "allergy"
        assert result.contraindications[0].absolute is True
        assert result.safety_score == 50

    @pytest.mark.asyncio
    async def test_allergy_in_multi_drug_recommendation(self, gate):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="Fever and cough",
            medical_history=MedicalHistory(allergies=["penicillin"]),
        )

        result = await gate.validate(make_consensus("Ceftriaxone 1 g IV plus amoxicillin 1 g"), request)

        assert result.safe is False
        assert [c.drug for c in result.contraindications] == ["amoxicillin"]
        assert result.critical_alerts[0].category == "allergy"

    @pytest.mark.asyncio
    async def test_interaction_within_one_recommendation(self, gate, minimal_request):
        result = await gate.validate(make_consensus("Warfarin 5 mg and aspirin 81 mg daily"), minimal_request)

        assert result.safe is False
        assert result.drug_interactions[0].severity == "critical"
        assert result.dose_violations == []

    @pytest.mark.asyncio
    async def test_overdose_raises_critical_alert(self, gate, minimal_request):
        result = await gate.validate(make_consensus("Ibuprofen 1200 mg every 6 hours"), minimal_request)

        assert result.safe is False
        assert result.overall_risk == "critical"
        assert result.dose_violations[0].overdose is True
        assert result.dose_violations[0].max_dose == 800
        assert result.safety_score == 55

    @pytest.mark.asyncio
    async def test_underdose_is_a_warning(self, gate, minimal_request):
        result = await gate.validate(make_consensus("Amoxicillin 100 mg daily"), minimal_request)

        assert result.safe is True
        assert result.dose_violations[0].overdose is False
        assert result.warnings[0].severity == "medium"

    @pytest.mark.asyncio
    async def test_critical_interaction_with_current_medication(self, gate):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="Atrial fibrillation follow-up",
            medical_history=MedicalHistory(medications=["warfarin 5 mg"]),
        )

        result = await gate.validate(make_consensus("Aspirin 81 mg daily"), request)

        assert result.safe is False
        assert result.drug_interactions[0].severity == "critical"
        assert any(a.title == "Critical Drug Interaction" for a in result.critical_alerts)

    @pytest.mark.asyncio
    async def test_pregnancy_category_x(self, gate):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="High cholesterol",
            demographics=Demographics(age=31, sex="female", pregnant=True),
        )

        result = await gate.validate(make_consensus("Atorvastatin 20 mg nightly"), request)

        assert result.safe is False
        assert result.critical_alerts[0].category == "pregnancy"

    @pytest.mark.asyncio
    async def test_absolute_contraindication(self, gate):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="Knee pain",
            medical_history=MedicalHistory(conditions=["Peptic ulcer disease"]),
        )

        result = await gate.validate(make_consensus("Ibuprofen 400 mg"), request)

        assert result.safe is False
        assert result.contraindications[0].reason == "Peptic ulcer disease"

    @pytest.mark.asyncio
    async def test_interaction_check_failure_is_reported(self, minimal_request):
        drug_safety = MagicMock()
        drug_safety.check_interactions = AsyncMock(side_effect=RuntimeError("service down"))
        gate = SafetyGate(drug_safety=drug_safety)

        result = await gate.validate(make_consensus("Azithromycin 500 mg daily"), minimal_request)

        assert result.safe is True
        assert len(result.warnings) == 1
        assert result.warnings[0].title == "Safety Check Incomplete"
        assert result.warnings[0].severity == "medium"
        assert result.safety_score == 95

    @pytest.mark.asyncio
    async def test_low_confidence_requires_review(self, gate, minimal_request):
        result = await gate.validate(make_consensus(confidence=0.5), minimal_request)

        assert result.safe is True
        assert result.requires_human_review is True
        assert result.overall_risk == "high"
        assert any(w.title == "Low AI Confidence" for w in result.warnings)

    @pytest.mark.asyncio
    async def test_no_medications_skips_interaction_check(self, minimal_request):
        drug_safety = MagicMock()
        drug_safety.check_interactions = AsyncMock()
        gate = SafetyGate(drug_safety=drug_safety)

        await gate.validate(make_consensus(), minimal_request)

        drug_safety.check_interactions.assert_not_called()


def test_implied_medications():
    consensus = make_consensus("Start amoxicillin 875 mg twice daily")

    meds = implied_medications(consensus)

    assert len(meds) == 1
    assert meds[0].drug == "amoxicillin"
    assert meds[0].dose_mg == 875.0


def test_failed_safety_result():
    result = failed_safety_result("gate crashed")

    assert result.safe is False
    assert result.overall_risk == "critical"
    assert result.safety_score == 0
    assert result.requires_human_review is True
    assert result.error == "gate crashed"


def test_implied_medications_one_per_drug():
    consensus = make_consensus("Ceftriaxone 1 g IV plus amoxicillin 500 mg")

    meds = implied_medications(consensus)

    assert [(m.drug, m.dose_mg) for m in meds] == [("ceftriaxone", 1000.0), ("amoxicillin", 500.0)]
