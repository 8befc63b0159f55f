"""
Runtime configuration for the consultation engine.

Values are read from environment variables (optionally loaded from a
.env file by the API entry point).
"""

import os
from typing import Optional

from pydantic import BaseModel, Field


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


class ComplexityWeights(BaseModel):
    """
    Weights applied to the complexity sub-scores.

    The diagnostic sub-score is weighted twice, once under ``specialties``
    and once under ``rare_disease``.
    """

    symptoms: float = Field(default=0.15, ge=0.0)
    urgency: float = Field(default=0.25, ge=0.0)
    history: float = Field(default=0.15, ge=0.0)
    data_volume: float = Field(default=0.10, ge=0.0)
    specialties: float = Field(default=0.20, ge=0.0)
    rare_disease: float = Field(default=0.15, ge=0.0)

    @classmethod
    def from_env(cls) -> "ComplexityWeights":
        defaults = cls()
        return cls(
            symptoms=_env_float("COMPLEXITY_WEIGHT_SYMPTOMS", defaults.symptoms),
            urgency=_env_float("COMPLEXITY_WEIGHT_URGENCY", defaults.urgency),
            history=_env_float("COMPLEXITY_WEIGHT_HISTORY", defaults.history),
            data_volume=_env_float("COMPLEXITY_WEIGHT_DATA_VOLUME", defaults.data_volume),
            specialties=_env_float("COMPLEXITY_WEIGHT_SPECIALTIES", defaults.specialties),
            rare_disease=_env_float("COMPLEXITY_WEIGHT_RARE_DISEASE", defaults.rare_disease),
        )


class Settings(BaseModel):
    """All tunables for the engine and its collaborators."""

    # Delegate orchestrator
    delegate_endpoint: str = "http://localhost:9080"
    delegate_submit_timeout: float = Field(default=30.0, gt=0)

    # Complexity analysis
    max_agents: int = Field(default=15, ge=1)
    weights: ComplexityWeights = Field(default_factory=ComplexityWeights)

    # Polling
    poll_max_attempts: int = Field(default=120, ge=1)
    poll_interval_seconds: float = Field(default=5.0, ge=0)

    # Enrichment
    enrichment_timeout_seconds: float = Field(default=20.0, gt=0)
    ncbi_api_key: Optional[str] = None
    imaging_endpoint: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    expert_model: str = "google/gemini-2.0-flash-001"

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            delegate_endpoint=os.getenv("DELEGATE_ENDPOINT", defaults.delegate_endpoint),
            delegate_submit_timeout=_env_float("DELEGATE_SUBMIT_TIMEOUT", defaults.delegate_submit_timeout),
            max_agents=_env_int("MAX_AGENTS", defaults.max_agents),
            weights=ComplexityWeights.from_env(),
            poll_max_attempts=_env_int("POLL_MAX_ATTEMPTS", defaults.poll_max_attempts),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", defaults.poll_interval_seconds),
            enrichment_timeout_seconds=_env_float(
                "ENRICHMENT_TIMEOUT_SECONDS", defaults.enrichment_timeout_seconds
            ),
            ncbi_api_key=os.getenv("NCBI_API_KEY") or None,
            imaging_endpoint=os.getenv("IMAGING_ENDPOINT") or None,
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            expert_model=os.getenv("EXPERT_MODEL", defaults.expert_model),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            log_file=os.getenv("LOG_FILE") or None,
        )
