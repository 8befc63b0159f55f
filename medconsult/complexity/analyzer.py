"""
Complexity Analyzer - Maps case signals to a severity score and agent count.

The score is a weighted sum of five sub-scores (symptom, clinical data,
patient, diagnostic and urgency complexity). The normalized score then
picks the number of specialist agents through a five-band step function.

quick_check() is a separate, coarser triage heuristic for callers that
only know the symptom count, urgency and comorbidity count. It does not
reuse analyze() and is not expected to agree with it.
"""

import logging
import math
from typing import Optional

from medconsult.config import ComplexityWeights
from medconsult.models.complexity import (
    ComplexityBreakdown,
    ComplexityFactors,
    ComplexityScore,
    QuickCheckResult,
)
from medconsult.models.enums import ComplexityTier, ProgressionRate, UrgencyLevel


logger = logging.getLogger(__name__)


# =============================================================================
# LOOKUP TABLES
# =============================================================================

URGENCY_FACTORS: dict[str, float] = {
    UrgencyLevel.ROUTINE.value: 0.3,
    UrgencyLevel.URGENT.value: 0.6,
    UrgencyLevel.EMERGENT.value: 1.0,
}
DEFAULT_URGENCY_FACTOR = 0.5

PROGRESSION_FACTORS: dict[str, float] = {
    ProgressionRate.IMPROVING.value: 0.2,
    ProgressionRate.STABLE.value: 0.5,
    ProgressionRate.WORSENING.value: 0.9,
}

SECONDS_PER_AGENT = 15
DEFAULT_MAX_AGENTS = 15
MAX_PATIENT_AGE = 130


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _ratio(count: float, ceiling: float) -> float:
    """Count divided by its clinical ceiling, capped at 1.0."""
    return min(max(count, 0) / ceiling, 1.0)


def age_factor(age: float) -> float:
    """
    U-shaped age risk curve.

    Pediatric patients map to 0.5-1.0 (higher when younger), adults to a
    shallow 0.3-0.5 ramp, and the elderly to 0.5-0.9.
    """
    age = _clamp(age, 0, MAX_PATIENT_AGE)
    if age < 18:
        return 0.5 + (18 - age) / 36
    if age <= 65:
        return 0.3 + (age - 18) / 235
    return 0.5 + min((age - 65) / 35, 0.4)


class ComplexityAnalyzer:
    """
    Scores case complexity and recommends an agent count.

    Stateless apart from its configuration; analyze() is a pure function
    of its input.
    """

    def __init__(
        self,
        weights: Optional[ComplexityWeights] = None,
        max_agents: int = DEFAULT_MAX_AGENTS,
    ):
        """
        Initialize the analyzer.

        Args:
            weights: Sub-score weights (defaults sum to 1.0)
            max_agents: Upper bound for the agent count recommendation
        """
        if max_agents < 1:
            raise ValueError("max_agents must be at least 1")
        self.weights = weights or ComplexityWeights()
        self.max_agents = max_agents

    def analyze(self, factors: ComplexityFactors) -> ComplexityScore:
        """
        Compute the complexity score for a case.

        Out-of-range inputs are clamped rather than rejected.

        Args:
            factors: Case signals

        Returns:
            ComplexityScore with sub-scores, agent count and time estimate
        """
        breakdown = ComplexityBreakdown(
            symptom_complexity=self._symptom_complexity(factors),
            clinical_data_complexity=self._clinical_data_complexity(factors),
            patient_complexity=self._patient_complexity(factors),
            diagnostic_complexity=self._diagnostic_complexity(factors),
            urgency_complexity=self._urgency_complexity(factors),
        )

        w = self.weights
        # The diagnostic sub-score carries both the specialty and the
        # rare-disease weight.
        overall = (
            breakdown.symptom_complexity * w.symptoms
            + breakdown.urgency_complexity * w.urgency
            + breakdown.patient_complexity * w.history
            + breakdown.clinical_data_complexity * w.data_volume
            + breakdown.diagnostic_complexity * w.specialties
            + breakdown.diagnostic_complexity * w.rare_disease
        )
        normalized = _clamp(overall)

        agent_count = self.recommend_agent_count(normalized)
        processing_time = self.estimate_processing_time(agent_count, normalized)

        logger.debug(
            f"Complexity {normalized:.3f} -> {agent_count} agents, ~{processing_time}s"
        )

        return ComplexityScore(
            overall_score=overall,
            normalized_score=normalized,
            breakdown=breakdown,
            agent_count_recommendation=agent_count,
            estimated_processing_time=processing_time,
        )

    # -------------------------------------------------------------------------
    # Sub-scores
    # -------------------------------------------------------------------------

    def _symptom_complexity(self, f: ComplexityFactors) -> float:
        count = _ratio(f.symptom_count, 10)
        return _clamp((count + _clamp(f.symptom_severity) + _clamp(f.symptom_duration)) / 3)

    def _clinical_data_complexity(self, f: ComplexityFactors) -> float:
        imaging = 0.5 if f.imaging_required else 0.0
        return _clamp(
            _clamp(f.abnormal_vitals) * 0.3
            + _clamp(f.abnormal_labs) * 0.3
            + imaging * 0.2
            + _clamp(f.data_volume) * 0.2
        )

    def _patient_complexity(self, f: ComplexityFactors) -> float:
        return _clamp(
            age_factor(f.patient_age) * 0.2
            + _ratio(f.comorbidity_count, 5) * 0.3
            + _ratio(f.medication_count, 10) * 0.2
            + _ratio(f.allergy_count, 5) * 0.1
            + _ratio(f.previous_treatment_failures, 3) * 0.2
        )

    def _diagnostic_complexity(self, f: ComplexityFactors) -> float:
        multi_system = 0.8 if f.multi_system_involvement else 0.2
        progression = PROGRESSION_FACTORS.get(f.progression_rate, 0.5)
        return _clamp(
            _ratio(len(f.specialties_required), 5) * 0.25
            + _clamp(f.differential_breadth) * 0.2
            + _clamp(f.rare_disease_suspicion) * 0.25
            + multi_system * 0.2
            + progression * 0.1
        )

    def _urgency_complexity(self, f: ComplexityFactors) -> float:
        return URGENCY_FACTORS.get(f.urgency_level, DEFAULT_URGENCY_FACTOR)

    # -------------------------------------------------------------------------
    # Agent count and timing
    # -------------------------------------------------------------------------

    def recommend_agent_count(self, normalized_score: float) -> int:
        """
        Five-band step function from score to agent count.

        Band edges are monotonic: the top of each band never exceeds the
        bottom of the next one.
        """
        s = _clamp(normalized_score)
        if s < 0.2:
            count = 1
        elif s < 0.4:
            count = math.floor(2 + s * 5)
        elif s < 0.6:
            count = math.floor(3 + s * 5)
        elif s < 0.8:
            count = math.floor(5 + s * 5)
        else:
            count = 8 + math.floor((s - 0.8) * 35)
        return max(1, min(count, self.max_agents))

    def estimate_processing_time(self, agent_count: int, normalized_score: float) -> int:
        """Estimated wall-clock seconds for the agent panel, rounded up."""
        return math.ceil(
            agent_count
            * SECONDS_PER_AGENT
            * (1 + normalized_score)
            * (0.7 + 0.3 * agent_count / self.max_agents)
        )

    # -------------------------------------------------------------------------
    # Coarse triage
    # -------------------------------------------------------------------------

    @staticmethod
    def quick_check(
        symptom_count: int,
        urgency: str,
        comorbidity_count: int,
    ) -> QuickCheckResult:
        """
        Coarse triage from three signals.

        Independent of analyze(); the two may disagree for the same case.
        """
        score = 0.0

        if symptom_count > 5:
            score += 0.3
        elif symptom_count > 2:
            score += 0.15

        if urgency == UrgencyLevel.EMERGENT:
            score += 0.5
        elif urgency == UrgencyLevel.URGENT:
            score += 0.25

        if comorbidity_count > 3:
            score += 0.3
        elif comorbidity_count > 1:
            score += 0.15

        if score < 0.3:
            tier, agents = ComplexityTier.LOW, 1
        elif score < 0.5:
            tier, agents = ComplexityTier.MEDIUM, 3
        elif score < 0.7:
            tier, agents = ComplexityTier.HIGH, 6
        else:
            tier, agents = ComplexityTier.CRITICAL, 10

        return QuickCheckResult(complexity=tier, agent_count=agents, score=score)

    @staticmethod
    def describe(score: ComplexityScore) -> str:
        """Human-readable description of a complexity score."""
        s = score.normalized_score
        agents = score.agent_count_recommendation
        if s < 0.2:
            return f"Simple case - {agents} agent sufficient for routine analysis"
        if s < 0.4:
            return f"Low-moderate complexity - {agents} agents for focused analysis"
        if s < 0.6:
            return f"Moderate complexity - {agents} agents for multi-specialty review"
        if s < 0.8:
            return f"High complexity - {agents} agents for comprehensive analysis"
        return f"Very high complexity - {agents} agents for exhaustive multi-specialty consultation"
