"""
Consensus Builder - Aggregates independent agent opinions into one result.

Pure and deterministic for a given input order:
- The primary diagnosis is the condition named by the most agents
  (ties go to the condition seen first).
- Overall confidence is the mean over the whole panel, not only the
  agents in the winning group.
- Evidence strength and consensus quality are graded from the same
  combined score with the same thresholds.
"""

from typing import Optional

from medconsult.models.agents import AgentResult
from medconsult.models.consensus import (
    ConsensusDiagnosis,
    ConsensusRecommendation,
    ConsensusResult,
    RankedDifferential,
)
from medconsult.models.enums import ConsensusQuality, EvidenceStrength


UNABLE_TO_DETERMINE = "Unable to determine"
UNKNOWN_CONDITION = "Unknown"

# (threshold, evidence strength, consensus quality), checked top-down with ">"
GRADE_THRESHOLDS: list[tuple[float, EvidenceStrength, ConsensusQuality]] = [
    (0.8, EvidenceStrength.VERY_STRONG, ConsensusQuality.EXCELLENT),
    (0.6, EvidenceStrength.STRONG, ConsensusQuality.GOOD),
    (0.4, EvidenceStrength.MODERATE, ConsensusQuality.FAIR),
]


def grade_consensus(agreement: float, confidence: float) -> tuple[EvidenceStrength, ConsensusQuality]:
    """
    Grade a consensus from its agreement and confidence.

    Both outputs use the same combined score and thresholds.
    """
    combined = (agreement + confidence) / 2
    for threshold, strength, quality in GRADE_THRESHOLDS:
        if combined > threshold:
            return strength, quality
    return EvidenceStrength.WEAK, ConsensusQuality.POOR


def empty_consensus(condition: str = UNABLE_TO_DETERMINE) -> ConsensusResult:
    """Sentinel consensus used when there is nothing to aggregate."""
    return ConsensusResult(
        primary_diagnosis=ConsensusDiagnosis(
            condition=condition,
            confidence=0.0,
            agreement_score=0.0,
            evidence_strength=EvidenceStrength.WEAK,
        ),
        differential_diagnoses=[],
        recommendations=[],
        overall_confidence=0.0,
        consensus_quality=ConsensusQuality.POOR,
        agent_count=0,
    )


def build_consensus(results: list[AgentResult]) -> ConsensusResult:
    """
    Build a consensus from individual agent results.

    Args:
        results: Agent opinions, in the order they were returned

    Returns:
        ConsensusResult; the "Unable to determine" sentinel when empty
    """
    if not results:
        return empty_consensus()

    total = len(results)
    overall_confidence = sum(r.confidence for r in results) / total

    # Group by exact condition; dicts keep first-seen order for ties.
    groups: dict[str, list[AgentResult]] = {}
    for result in results:
        if result.primary_diagnosis is None:
            continue
        groups.setdefault(result.primary_diagnosis.condition, []).append(result)

    winner: Optional[list[AgentResult]] = None
    for members in groups.values():
        if winner is None or len(members) > len(winner):
            winner = members

    if winner:
        condition = winner[0].primary_diagnosis.condition
        agreement = len(winner) / total
        icd10_code = next(
            (m.primary_diagnosis.icd10_code for m in winner if m.primary_diagnosis.icd10_code),
            None,
        )
        supporting = [m.agent_id for m in winner]
    else:
        condition = UNKNOWN_CONDITION
        agreement = 0.0
        icd10_code = None
        supporting = []

    evidence_strength, quality = grade_consensus(agreement, overall_confidence)

    return ConsensusResult(
        primary_diagnosis=ConsensusDiagnosis(
            condition=condition,
            confidence=overall_confidence,
            agreement_score=agreement,
            evidence_strength=evidence_strength,
            icd10_code=icd10_code,
            supporting_agents=supporting,
        ),
        differential_diagnoses=merge_differentials(results),
        recommendations=merge_recommendations(results),
        overall_confidence=overall_confidence,
        consensus_quality=quality,
        agent_count=total,
    )


def merge_differentials(results: list[AgentResult]) -> list[RankedDifferential]:
    """
    Merge differentials by condition, keeping the highest confidence.

    Sorted by confidence descending; equal confidences keep first-seen order.
    """
    merged: dict[str, RankedDifferential] = {}
    for result in results:
        for dx in result.differential_diagnoses:
            entry = merged.get(dx.condition)
            if entry is None:
                merged[dx.condition] = RankedDifferential(
                    condition=dx.condition,
                    confidence=dx.confidence,
                    icd10_code=dx.icd10_code,
                    suggested_by=[result.agent_id],
                )
                continue
            if result.agent_id not in entry.suggested_by:
                entry.suggested_by.append(result.agent_id)
            if dx.confidence > entry.confidence:
                entry.confidence = dx.confidence
            if entry.icd10_code is None and dx.icd10_code:
                entry.icd10_code = dx.icd10_code

    return sorted(merged.values(), key=lambda d: d.confidence, reverse=True)


def merge_recommendations(results: list[AgentResult]) -> list[ConsensusRecommendation]:
    """Deduplicate recommendations by (type, text), preserving first-seen order."""
    merged: dict[tuple[str, str], ConsensusRecommendation] = {}
    for result in results:
        for rec in result.recommendations:
            key = (rec.type, rec.recommendation)
            entry = merged.get(key)
            if entry is None:
                merged[key] = ConsensusRecommendation(
                    type=rec.type,
                    recommendation=rec.recommendation,
                    priority=rec.priority,
                    rationale=rec.rationale,
                    suggested_by=[result.agent_id],
                )
            elif result.agent_id not in entry.suggested_by:
                entry.suggested_by.append(result.agent_id)

    return list(merged.values())
