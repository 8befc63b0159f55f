"""
Expert differential-diagnosis model.

Asks a general medical LLM for an independent differential before the
agent panel runs, so the panel can see a second opinion in its context.
"""

import logging

from medconsult.models.consultation import ConsultationRequest
from medconsult.models.enrichment import ExpertDifferential, ExpertDifferentialEntry
from medconsult.utils.parsing import extract_json_object, format_patient_summary
from medconsult.utils.protocols import LLMClientProtocol


logger = logging.getLogger(__name__)


EXPERT_SYSTEM_PROMPT = """You are an experienced diagnostician producing a differential diagnosis.

Respond with ONLY a JSON object:
{
  "differentials": [
    {"condition": "...", "probability": 0.0-1.0, "icd10_code": "...", "supporting_factors": ["..."]}
  ],
  "reasoning": "one short paragraph"
}

List at most 5 conditions, most likely first. Probabilities need not sum to 1."""


def build_case_prompt(request: ConsultationRequest) -> str:
    """Render the case for the expert model."""
    lines = [
        f"Chief complaint: {request.chief_complaint}",
        f"Urgency: {request.urgency}",
    ]
    if request.symptoms:
        lines.append(f"Symptoms: {', '.join(request.symptoms)}")
    if request.vitals:
        lines.append("Vitals: " + ", ".join(f"{k}={v}" for k, v in request.vitals.items()))
    if request.labs:
        lines.append("Labs: " + ", ".join(f"{k}={v}" for k, v in request.labs.items()))
    lines.append(format_patient_summary(request))
    if request.additional_context:
        lines.append(f"Additional context: {request.additional_context}")
    return "\n".join(lines)


class ExpertDifferentialModel:
    """Generates a differential diagnosis with an LLM."""

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: str = "google/gemini-2.0-flash-001",
        temperature: float = 0.2,
        max_tokens: int = 800,
    ):
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_differential(self, request: ConsultationRequest) -> ExpertDifferential:
        """
        Ask the model for a differential diagnosis.

        Raises:
            ValueError: If the response contains no usable JSON
        """
        response = await self.llm_client.complete(
            model=self.model,
            messages=[
                {"role": "system", "content": EXPERT_SYSTEM_PROMPT},
                {"role": "user", "content": build_case_prompt(request)},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        data = extract_json_object(response.content)

        entries = []
        for item in data.get("differentials", []):
            if not isinstance(item, dict) or not item.get("condition"):
                continue
            probability = item.get("probability", 0.0)
            try:
                probability = min(max(float(probability), 0.0), 1.0)
            except (TypeError, ValueError):
                probability = 0.0
            entries.append(ExpertDifferentialEntry(
                condition=str(item["condition"]),
                probability=probability,
                icd10_code=item.get("icd10_code") or None,
                supporting_factors=[str(f) for f in item.get("supporting_factors", [])],
            ))

        logger.debug(f"Expert model returned {len(entries)} differentials")
        return ExpertDifferential(
            model=self.model,
            differentials=entries,
            reasoning=str(data.get("reasoning", "")),
        )
