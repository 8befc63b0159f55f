"""
Tests for the evidence providers and the enrichment fan-out.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from medconsult.enrichment import (
    ClinicalGuidelinesService,
    DrugSafetyService,
    EnrichmentFanOut,
    RiskStratificationService,
    format_enriched_context,
)
from medconsult.models import (
    ConsultationRequest,
    Demographics,
    EnrichedContext,
    LiteratureSearchResult,
    MedicalHistory,
)


# ============================================================================
# Drug Safety
# ============================================================================

class TestDrugSafety:
    """Tests for the medication screen."""

    @pytest.mark.asyncio
    async def test_warfarin_aspirin_is_critical(self):
        report = await DrugSafetyService().check_interactions(["warfarin 5 mg", "aspirin 81 mg"])

        assert len(report.interactions) == 1
        assert report.interactions[0].severity == "critical"
        assert report.overall_risk == "critical"

    @pytest.mark.asyncio
    async def test_moderate_interaction(self):
        report = await DrugSafetyService().check_interactions(["lisinopril", "ibuprofen"])

        assert report.interactions[0].severity == "moderate"
        assert report.overall_risk == "medium"

    @pytest.mark.asyncio
    async def test_allergy_and_contraindication(self):
        report = await DrugSafetyService().check_interactions(
            ["amoxicillin 500 mg", "metformin"],
            conditions=["Chronic kidney disease stage 3"],
            allergies=["penicillin"],
        )

        assert report.allergy_alerts == ["amoxicillin conflicts with documented penicillin allergy"]
        assert report.contraindications[0].drug == "metformin"
        assert report.contraindications[0].absolute is False
        assert report.overall_risk == "critical"

    @pytest.mark.asyncio
    async def test_elderly_dosage_warning(self):
        report = await DrugSafetyService().check_interactions(["atorvastatin"], age=80)

        assert report.dosage_warnings == ["Elderly patient: consider reduced starting doses"]
        assert report.overall_risk == "low"


# ============================================================================
# Guidelines
# ============================================================================

class TestGuidelines:
    """Tests for guideline lookup."""

    @pytest.mark.asyncio
    async def test_newest_first(self):
        service = ClinicalGuidelinesService()

        guidelines = await service.get_guidelines(["chest pain", "shortness of breath", "hypertension"])

        assert [g.year for g in guidelines] == [2024, 2021, 2017]
        assert guidelines[0].organization == "GOLD"

    @pytest.mark.asyncio
    async def test_no_duplicates(self):
        service = ClinicalGuidelinesService()

        guidelines = await service.get_guidelines(["pneumonia", "productive cough"])

        assert len(guidelines) == 1

    @pytest.mark.asyncio
    async def test_no_match(self):
        assert await ClinicalGuidelinesService().get_guidelines(["ingrown toenail"]) == []


# ============================================================================
# Risk Stratification
# ============================================================================

class TestRiskStratification:
    """Tests for clinical risk scores."""

    @pytest.mark.asyncio
    async def test_cha2ds2_vasc(self):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="Palpitations",
            medical_history=MedicalHistory(conditions=["Atrial fibrillation", "Hypertension", "Type 2 diabetes"]),
            demographics=Demographics(age=76, sex="female"),
        )

        assessment = await RiskStratificationService().assess(request)

        assert len(assessment.scores) == 1
        score = assessment.scores[0]
        assert score.name == "CHA2DS2-VASc"
        assert score.score == 5
        assert score.components["age"] == 2.0
        assert score.risk_level == "high"
        assert assessment.overall_risk == "high"

    @pytest.mark.asyncio
    async def test_qsofa(self):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="Fever and confusion",
            vitals={"RR": 24, "BP": "95/60", "HR": 118},
        )

        assessment = await RiskStratificationService().assess(request)

        score = assessment.scores[0]
        assert score.name == "qSOFA"
        assert score.score == 3
        assert score.risk_level == "high"

    @pytest.mark.asyncio
    async def test_normal_vitals_are_low_risk(self):
        request = ConsultationRequest(
            patient_id="p1",
            chief_complaint="Annual physical",
            vitals={"respiratory_rate": 14, "systolic_bp": 118},
        )

        assessment = await RiskStratificationService().assess(request)

        assert assessment.scores[0].score == 0
        assert assessment.overall_risk == "low"

    @pytest.mark.asyncio
    async def test_nothing_to_score(self, minimal_request):
        assessment = await RiskStratificationService().assess(minimal_request)

        assert assessment.scores == []
        assert assessment.overall_risk == "low"


# ============================================================================
# Fan-Out
# ============================================================================

def failing_literature():
    literature = MagicMock()
    literature.search_literature = AsyncMock(side_effect=RuntimeError("PubMed unavailable"))
    return literature


class TestEnrichmentFanOut:
    """Tests for concurrent evidence gathering."""

    @pytest.mark.asyncio
    async def test_failed_branch_does_not_affect_others(self, sample_request):
        fanout = EnrichmentFanOut(
            literature=failing_literature(),
            drug_safety=DrugSafetyService(),
            guidelines=ClinicalGuidelinesService(),
            risk=RiskStratificationService(),
        )

        context = await fanout.enrich(sample_request)

        assert context.literature is None
        assert context.failed_sources == ["literature"]
        assert context.drug_safety is not None
        assert context.guidelines
        assert context.risk_assessment is not None
        assert context.expert_differential is None
        assert set(context.available_sources) == {"drug_safety", "guidelines", "risk_assessment"}

    @pytest.mark.asyncio
    async def test_unmet_preconditions_skip_providers(self, minimal_request):
        literature = MagicMock()
        literature.search_literature = AsyncMock()
        drug_safety = MagicMock()
        drug_safety.check_interactions = AsyncMock()
        risk = MagicMock()
        risk.assess = AsyncMock()
        imaging = MagicMock()
        imaging.analyze = AsyncMock()

        fanout = EnrichmentFanOut(
            literature=literature,
            drug_safety=drug_safety,
            guidelines=ClinicalGuidelinesService(),
            risk=risk,
            imaging=imaging,
        )

        context = await fanout.enrich(minimal_request)

        literature.search_literature.assert_not_called()
        drug_safety.check_interactions.assert_not_called()
        risk.assess.assert_not_called()
        imaging.analyze.assert_not_called()
        assert context.failed_sources == []
        assert context.guidelines[0].condition == "migraine"

    @pytest.mark.asyncio
    async def test_literature_query_uses_complaint_and_symptoms(self, sample_request):
        literature = MagicMock()
        literature.search_literature = AsyncMock(
            return_value=LiteratureSearchResult(query="q", total_count=0)
        )
        fanout = EnrichmentFanOut(literature=literature, max_articles=3)

        context = await fanout.enrich(sample_request)

        literature.search_literature.assert_called_once_with(
            "Productive cough and fever for three days cough fever shortness of breath",
            max_results=3,
        )
        assert context.literature.query == "q"

    @pytest.mark.asyncio
    async def test_slow_branch_times_out(self, sample_request):
        async def slow(*args, **kwargs):
            await asyncio.sleep(5)

        literature = MagicMock()
        literature.search_literature = AsyncMock(side_effect=slow)
        fanout = EnrichmentFanOut(
            literature=literature,
            guidelines=ClinicalGuidelinesService(),
            timeout=0.05,
        )

        context = await fanout.enrich(sample_request)

        assert context.failed_sources == ["literature"]
        assert context.guidelines

    @pytest.mark.asyncio
    async def test_no_providers(self, sample_request):
        context = await EnrichmentFanOut().enrich(sample_request)

        assert context == EnrichedContext()


class TestFormatEnrichedContext:
    """Tests for prompt rendering of enrichment results."""

    def test_empty_context_renders_nothing(self):
        assert format_enriched_context(EnrichedContext()) == ""

    @pytest.mark.asyncio
    async def test_sections(self, sample_request):
        fanout = EnrichmentFanOut(
            drug_safety=DrugSafetyService(),
            guidelines=ClinicalGuidelinesService(),
        )
        context = await fanout.enrich(sample_request)

        text = format_enriched_context(context)

        assert "### Medication Safety" in text
        assert "### Clinical Guidelines" in text
        assert "ATS/IDSA 2019" in text
