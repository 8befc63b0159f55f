"""
Enrichment Fan-Out - Concurrent evidence gathering before submission.

All applicable branches run as one asyncio.gather batch. A branch that
raises or times out is logged and left as None; the other branches are
unaffected and the fan-out itself never fails. Branches whose
preconditions are unmet resolve to None without calling their provider.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from medconsult.models.consultation import ConsultationRequest
from medconsult.models.enrichment import EnrichedContext
from medconsult.utils.parsing import format_patient_summary
from medconsult.utils.protocols import (
    DrugSafetyProtocol,
    ExpertDifferentialProtocol,
    GuidelineProviderProtocol,
    ImagingAnalyzerProtocol,
    LiteratureSearchProtocol,
    RiskScorerProtocol,
)


logger = logging.getLogger(__name__)


BranchCall = Callable[[], Awaitable[Any]]

BRANCHES = [
    "literature",
    "drug_safety",
    "guidelines",
    "risk_assessment",
    "expert_differential",
    "imaging_findings",
]


class EnrichmentFanOut:
    """
    Gathers auxiliary evidence from independent providers.

    Every provider is optional; a missing provider behaves like an unmet
    precondition.
    """

    def __init__(
        self,
        literature: Optional[LiteratureSearchProtocol] = None,
        drug_safety: Optional[DrugSafetyProtocol] = None,
        guidelines: Optional[GuidelineProviderProtocol] = None,
        risk: Optional[RiskScorerProtocol] = None,
        expert: Optional[ExpertDifferentialProtocol] = None,
        imaging: Optional[ImagingAnalyzerProtocol] = None,
        timeout: float = 20.0,
        max_articles: int = 5,
    ):
        """
        Initialize the fan-out.

        Args:
            literature: Literature search provider
            drug_safety: Drug interaction provider
            guidelines: Guideline lookup provider
            risk: Risk scoring provider
            expert: Expert differential-diagnosis model
            imaging: Imaging analysis provider
            timeout: Per-branch timeout in seconds
            max_articles: Literature results to request
        """
        self.literature = literature
        self.drug_safety = drug_safety
        self.guidelines = guidelines
        self.risk = risk
        self.expert = expert
        self.imaging = imaging
        self.timeout = timeout
        self.max_articles = max_articles

    async def enrich(self, request: ConsultationRequest) -> EnrichedContext:
        """
        Run every applicable branch concurrently.

        Args:
            request: Consultation request

        Returns:
            EnrichedContext with one field per branch; never raises for
            provider failures
        """
        calls = self._plan(request)

        names = [name for name in BRANCHES if calls.get(name) is not None]
        results = await asyncio.gather(
            *(self._run_branch(name, calls[name]) for name in names),
            return_exceptions=True,
        )

        values: dict[str, Any] = {}
        failed: list[str] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.warning(f"Enrichment branch '{name}' failed: {type(result).__name__}: {result}")
                failed.append(name)
                continue
            values[name] = result

        skipped = [name for name in BRANCHES if name not in names]
        logger.info(
            f"Enrichment settled: ok={[n for n in names if n in values]}, "
            f"failed={failed}, skipped={skipped}"
        )

        return EnrichedContext(**values, failed_sources=failed)

    async def _run_branch(self, name: str, call: BranchCall) -> Any:
        logger.debug(f"Enrichment branch '{name}' started")
        return await asyncio.wait_for(call(), timeout=self.timeout)

    def _plan(self, request: ConsultationRequest) -> dict[str, Optional[BranchCall]]:
        """Build the call for each branch whose precondition holds."""
        history = request.medical_history
        calls: dict[str, Optional[BranchCall]] = {name: None for name in BRANCHES}

        if self.literature and request.symptoms:
            query = " ".join([request.chief_complaint, *request.symptoms])
            calls["literature"] = lambda: self.literature.search_literature(
                query, max_results=self.max_articles
            )

        if self.drug_safety and history.medications:
            calls["drug_safety"] = lambda: self.drug_safety.check_interactions(
                medications=history.medications,
                conditions=history.conditions,
                allergies=history.allergies,
                age=request.demographics.age,
                weight_kg=request.demographics.weight_kg,
            )

        if self.guidelines and (request.chief_complaint or request.symptoms):
            terms = [t for t in [request.chief_complaint, *request.symptoms] if t]
            calls["guidelines"] = lambda: self.guidelines.get_guidelines(terms)

        if self.risk and (history.conditions or request.vitals):
            calls["risk_assessment"] = lambda: self.risk.assess(request)

        if self.expert and request.symptoms:
            calls["expert_differential"] = lambda: self.expert.generate_differential(request)

        if self.imaging and request.imaging:
            context = f"{request.chief_complaint}\n{format_patient_summary(request)}"
            calls["imaging_findings"] = lambda: self.imaging.analyze(request.imaging, context)

        return calls


def format_enriched_context(context: EnrichedContext) -> str:
    """
    Render enrichment results as markdown sections for the agent prompt.

    Returns an empty string when nothing was gathered.
    """
    sections = []

    if context.literature and context.literature.articles:
        lines = ["### Recent Literature"]
        for article in context.literature.articles:
            author = f"{article.first_author} et al., " if article.first_author else ""
            lines.append(
                f"- {article.title} ({author}{article.year}, {article.evidence_level}, PMID {article.pmid})"
            )
        sections.append("\n".join(lines))

    if context.drug_safety:
        report = context.drug_safety
        lines = [f"### Medication Safety (risk: {report.overall_risk})"]
        for interaction in report.interactions:
            lines.append(
                f"- {interaction.severity.upper()} interaction: {interaction.drug_a} + "
                f"{interaction.drug_b} - {interaction.effect}"
            )
        for contra in report.contraindications:
            kind = "Absolute" if contra.absolute else "Relative"
            lines.append(f"- {kind} contraindication: {contra.drug} with {contra.condition}")
        lines.extend(f"- {alert}" for alert in report.allergy_alerts)
        lines.extend(f"- {warning}" for warning in report.dosage_warnings)
        if len(lines) == 1:
            lines.append("- No interactions or contraindications found")
        sections.append("\n".join(lines))

    if context.guidelines:
        lines = ["### Clinical Guidelines"]
        for guideline in context.guidelines:
            lines.append(f"- {guideline.organization} {guideline.year}: {guideline.title}")
            lines.extend(f"  - {rec}" for rec in guideline.recommendations)
        sections.append("\n".join(lines))

    if context.risk_assessment and context.risk_assessment.scores:
        lines = [f"### Risk Scores (overall: {context.risk_assessment.overall_risk})"]
        for score in context.risk_assessment.scores:
            lines.append(f"- {score.name}: {score.score:g} ({score.risk_level}) - {score.interpretation}")
        sections.append("\n".join(lines))

    if context.expert_differential and context.expert_differential.differentials:
        lines = [f"### Expert Model Differential ({context.expert_differential.model})"]
        for entry in context.expert_differential.differentials:
            lines.append(f"- {entry.condition}: {entry.probability:.0%}")
        sections.append("\n".join(lines))

    if context.imaging_findings:
        imaging = context.imaging_findings
        lines = ["### Imaging AI Findings"]
        if imaging.critical_finding:
            lines.append("- **CRITICAL FINDING**")
        if imaging.impression:
            lines.append(f"- Impression: {imaging.impression}")
        lines.extend(f"- {finding}" for finding in imaging.findings)
        sections.append("\n".join(lines))

    return "\n\n".join(sections)
