"""
Composition root for the consultation engine.

Builds a fully wired ConsultationManager from Settings. Optional
providers (expert model, imaging AI) are only wired when configured.
"""

import logging
from typing import Optional

from medconsult.agents.selection import AgentSelector
from medconsult.complexity.analyzer import ComplexityAnalyzer
from medconsult.compliance.audit import DecisionAuditLog
from medconsult.compliance.validator import ComplianceValidator
from medconsult.config import Settings
from medconsult.delegate.client import DelegateClient
from medconsult.enrichment.drug_safety import DrugSafetyService
from medconsult.enrichment.expert import ExpertDifferentialModel
from medconsult.enrichment.fanout import EnrichmentFanOut
from medconsult.enrichment.guidelines import ClinicalGuidelinesService
from medconsult.enrichment.imaging import ImagingAnalysisClient
from medconsult.enrichment.literature import LiteratureSearchClient
from medconsult.enrichment.risk import RiskStratificationService
from medconsult.llm.client import LLMClient
from medconsult.orchestration.manager import ConsultationManager
from medconsult.orchestration.registry import TaskRegistry
from medconsult.safety.gate import SafetyGate


logger = logging.getLogger(__name__)


def build_fanout(settings: Settings, drug_safety: DrugSafetyService) -> EnrichmentFanOut:
    expert = None
    if settings.openrouter_api_key:
        expert = ExpertDifferentialModel(
            LLMClient(api_key=settings.openrouter_api_key),
            model=settings.expert_model,
        )
    else:
        logger.info("OPENROUTER_API_KEY not set; expert differential disabled")

    imaging = None
    if settings.imaging_endpoint:
        imaging = ImagingAnalysisClient(settings.imaging_endpoint)

    return EnrichmentFanOut(
        literature=LiteratureSearchClient(api_key=settings.ncbi_api_key),
        drug_safety=drug_safety,
        guidelines=ClinicalGuidelinesService(),
        risk=RiskStratificationService(),
        expert=expert,
        imaging=imaging,
        timeout=settings.enrichment_timeout_seconds,
    )


def build_consultation_manager(settings: Optional[Settings] = None) -> ConsultationManager:
    """
    Wire every collaborator of the consultation manager.

    Args:
        settings: Runtime settings; read from the environment when omitted

    Returns:
        A ready ConsultationManager with its own empty task registry
    """
    settings = settings or Settings.from_env()
    drug_safety = DrugSafetyService()

    manager = ConsultationManager(
        analyzer=ComplexityAnalyzer(weights=settings.weights, max_agents=settings.max_agents),
        fanout=build_fanout(settings, drug_safety),
        selector=AgentSelector(max_agents=settings.max_agents),
        delegate=DelegateClient(
            base_url=settings.delegate_endpoint,
            submit_timeout=settings.delegate_submit_timeout,
        ),
        safety_gate=SafetyGate(drug_safety),
        compliance=ComplianceValidator(),
        audit=DecisionAuditLog(),
        registry=TaskRegistry(),
        poll_max_attempts=settings.poll_max_attempts,
        poll_interval=settings.poll_interval_seconds,
    )

    logger.info(
        f"Consultation manager ready (delegate {settings.delegate_endpoint}, "
        f"max {settings.max_agents} agents)"
    )
    return manager
