"""
Tests for consensus building.
"""

import pytest

from medconsult.consensus import (
    UNABLE_TO_DETERMINE,
    build_consensus,
    empty_consensus,
    grade_consensus,
    merge_differentials,
    merge_recommendations,
)
from medconsult.models import AgentRecommendation, AgentResult, DiagnosisOpinion


class TestBuildConsensus:
    """Tests for primary diagnosis aggregation."""

    def test_empty_input_returns_sentinel(self):
        result = build_consensus([])

        assert result.primary_diagnosis.condition == UNABLE_TO_DETERMINE
        assert result.overall_confidence == 0.0
        assert result.consensus_quality == "poor"
        assert result.agent_count == 0
        assert result == empty_consensus()

    def test_majority_wins(self, pneumonia_results):
        result = build_consensus(pneumonia_results)

        assert result.primary_diagnosis.condition == "Pneumonia"
        assert result.primary_diagnosis.agreement_score == pytest.approx(2 / 3)
        assert result.primary_diagnosis.supporting_agents == ["pulmonology", "infectious_disease"]
        assert result.agent_count == 3

    def test_confidence_is_mean_over_all_agents(self, pneumonia_results):
        result = build_consensus(pneumonia_results)

        assert result.overall_confidence == pytest.approx((0.85 + 0.8 + 0.6) / 3)
        assert result.primary_diagnosis.confidence == result.overall_confidence

    def test_identical_agents_agree_fully(self, make_agent_result):
        results = [make_agent_result(f"agent_{i}", "Migraine", 0.9) for i in range(4)]

        result = build_consensus(results)

        assert result.primary_diagnosis.agreement_score == 1.0
        assert result.primary_diagnosis.evidence_strength == "very_strong"
        assert result.consensus_quality == "excellent"

    def test_tie_goes_to_first_seen(self, make_agent_result):
        results = [
            make_agent_result("a", "Gastritis", 0.7),
            make_agent_result("b", "GERD", 0.7),
        ]

        assert build_consensus(results).primary_diagnosis.condition == "Gastritis"

    def test_no_primary_diagnoses(self):
        results = [AgentResult(agent_id="a", specialty="general", confidence=0.4)]

        result = build_consensus(results)

        assert result.primary_diagnosis.condition == "Unknown"
        assert result.primary_diagnosis.agreement_score == 0.0
        assert result.agent_count == 1


class TestGrading:
    """Tests for the shared grading thresholds."""

    @pytest.mark.parametrize("agreement,confidence,strength,quality", [
        (1.0, 0.9, "very_strong", "excellent"),
        (0.7, 0.6, "strong", "good"),
        (0.5, 0.4, "moderate", "fair"),
        (0.2, 0.2, "weak", "poor"),
        (0.8, 0.8, "strong", "good"),
    ])
    def test_grades(self, agreement, confidence, strength, quality):
        assert grade_consensus(agreement, confidence) == (strength, quality)


class TestMerging:
    """Tests for differential and recommendation merging."""

    def test_differentials_keep_highest_confidence(self, make_agent_result):
        first = make_agent_result("a", "Pneumonia", differentials=["Bronchitis"])
        second = AgentResult(
            agent_id="b",
            specialty="pulmonology",
            differential_diagnoses=[DiagnosisOpinion(condition="Bronchitis", confidence=0.7, icd10_code="J40")],
        )

        merged = merge_differentials([first, second])

        assert len(merged) == 1
        assert merged[0].condition == "Bronchitis"
        assert merged[0].confidence == 0.7
        assert merged[0].suggested_by == ["a", "b"]
        assert merged[0].icd10_code == "J40"

    def test_differentials_sorted_by_confidence(self, pneumonia_results):
        merged = merge_differentials(pneumonia_results)

        assert [d.condition for d in merged] == ["Bronchitis", "Pneumonia"]

    def test_recommendations_deduplicated(self, make_agent_result):
        rec = AgentRecommendation(type="imaging", recommendation="Chest x-ray")
        results = [
            make_agent_result("a", "Pneumonia", recommendations=[rec]),
            make_agent_result("b", "Pneumonia", recommendations=[rec]),
            make_agent_result("c", "Pneumonia", recommendations=[
                AgentRecommendation(type="lab", recommendation="Chest x-ray"),
            ]),
        ]

        merged = merge_recommendations(results)

        assert len(merged) == 2
        assert merged[0].suggested_by == ["a", "b"]
        assert merged[1].type == "lab"
