"""
Pytest configuration and shared fixtures for the test suite.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from medconsult.models import (
    AgentRecommendation,
    AgentResult,
    ConsultationRequest,
    Demographics,
    DiagnosisOpinion,
    LLMResponse,
    MedicalHistory,
)


# ============================================================================
# Mock LLM Client
# ============================================================================

@pytest.fixture
def mock_llm_response():
    """Factory for creating mock LLM responses."""
    def _create(content: str, model: str = "test-model", input_tokens: int = 100, output_tokens: int = 50):
        return LLMResponse(
            content=content,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
    return _create


@pytest.fixture
def mock_llm_client(mock_llm_response):
    """Create a mock LLM client that returns configurable responses."""
    client = MagicMock()
    client.complete = AsyncMock(return_value=mock_llm_response("Default mock response"))
    return client


# ============================================================================
# Consultation Requests
# ============================================================================

@pytest.fixture
def sample_request():
    """An urgent respiratory case with some history."""
    return ConsultationRequest(
        patient_id="patient-001",
        user_id="dr-house",
        urgency="urgent",
        chief_complaint="Productive cough and fever for three days",
        symptoms=["cough", "fever", "shortness of breath"],
        vitals={"heart_rate": 104, "temperature": 38.6, "oxygen_saturation": 93},
        labs={"wbc": 14.2},
        medical_history=MedicalHistory(
            conditions=["hypertension"],
            medications=["lisinopril 10mg"],
            allergies=["penicillin"],
        ),
        demographics=Demographics(age=67, sex="male", weight_kg=82),
    )


@pytest.fixture
def minimal_request():
    """Smallest valid request."""
    return ConsultationRequest(
        patient_id="patient-002",
        chief_complaint="Mild headache",
    )


# ============================================================================
# Agent Results
# ============================================================================

@pytest.fixture
def make_agent_result():
    """Factory for agent results with a primary diagnosis."""
    def _create(
        agent_id: str,
        condition: str,
        confidence: float = 0.8,
        specialty: str = "primary_care",
        differentials: list[str] = (),
        recommendations: list[AgentRecommendation] = (),
    ):
        return AgentResult(
            agent_id=agent_id,
            specialty=specialty,
            primary_diagnosis=DiagnosisOpinion(condition=condition, confidence=confidence),
            differential_diagnoses=[DiagnosisOpinion(condition=d, confidence=0.4) for d in differentials],
            recommendations=list(recommendations),
            confidence=confidence,
        )
    return _create


@pytest.fixture
def pneumonia_results(make_agent_result):
    """Two agents agree on pneumonia, one says bronchitis."""
    return [
        make_agent_result("pulmonology", "Pneumonia", 0.85, "pulmonology", ["Bronchitis"]),
        make_agent_result("infectious_disease", "Pneumonia", 0.8, "infectious_disease"),
        make_agent_result("primary_care", "Bronchitis", 0.6, "primary_care", ["Pneumonia"]),
    ]


@pytest.fixture
def delegate_agents_payload():
    """A completed delegate result body in the orchestrator's wire format."""
    return {
        "agents": [
            {
                "agentId": "pulmonology",
                "specialty": "pulmonology",
                "primaryDiagnosis": {"condition": "Pneumonia", "confidence": 0.85, "icd10Code": "J18.9"},
                "differentialDiagnoses": [{"condition": "Bronchitis", "confidence": 0.3}],
                "recommendations": [
                    {"type": "imaging", "recommendation": "Chest x-ray", "priority": "urgent"},
                ],
                "findings": ["Crackles right lower lobe"],
                "confidence": 0.85,
            },
            {
                "agentId": "infectious_disease",
                "specialty": "infectious_disease",
                "primaryDiagnosis": {"condition": "Pneumonia", "confidence": 0.8},
                "recommendations": [
                    {"type": "medication", "recommendation": "Azithromycin 500 mg daily", "priority": "urgent"},
                ],
            },
        ]
    }
