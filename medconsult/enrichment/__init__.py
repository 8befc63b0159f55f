"""Evidence providers and the concurrent enrichment fan-out."""

from medconsult.enrichment.drug_safety import DrugSafetyService
from medconsult.enrichment.expert import ExpertDifferentialModel
from medconsult.enrichment.fanout import EnrichmentFanOut, format_enriched_context
from medconsult.enrichment.guidelines import ClinicalGuidelinesService
from medconsult.enrichment.imaging import ImagingAnalysisClient
from medconsult.enrichment.literature import LiteratureSearchClient
from medconsult.enrichment.risk import RiskStratificationService

__all__ = [
    "ClinicalGuidelinesService",
    "DrugSafetyService",
    "EnrichmentFanOut",
    "ExpertDifferentialModel",
    "ImagingAnalysisClient",
    "LiteratureSearchClient",
    "RiskStratificationService",
    "format_enriched_context",
]
