"""
Agent Selector - Chooses the specialist panel and builds the delegate task.

The selector decides WHICH agents a case needs and WHAT they should
analyze. Running the agents is left to the delegate orchestrator.
"""

import logging
from typing import Any, Optional

from medconsult.agents.registry import (
    AGENT_REGISTRY,
    agents_by_rule,
    find_agents_by_keywords,
)
from medconsult.complexity.factors import detect_surgical_signals
from medconsult.enrichment.fanout import format_enriched_context
from medconsult.models.agents import AgentSpec, SelectedAgent
from medconsult.models.complexity import ComplexityScore
from medconsult.models.consultation import ConsultationRequest
from medconsult.models.delegate import DelegateTask
from medconsult.models.enrichment import EnrichedContext
from medconsult.models.enums import SpawnRule, UrgencyLevel


logger = logging.getLogger(__name__)


BASE_TIMEOUT_MS = 120_000
PER_AGENT_TIMEOUT_MS = 30_000
MAX_TIMEOUT_MS = 600_000

RARE_DISEASE_THRESHOLD = 0.5
RESEARCH_COMPLEXITY_THRESHOLD = 0.6

TASK_INSTRUCTIONS = [
    "Review the complete clinical presentation",
    "Provide differential diagnoses relevant to their specialty",
    "Identify red flags or critical findings",
    "Recommend appropriate diagnostic workup",
    "Suggest evidence-based management strategies",
    "Highlight any specialty-specific concerns",
]

EXPECTED_DELIVERABLES = [
    "**Primary Diagnosis**: Most likely diagnosis with ICD-10 code, confidence score, and supporting evidence",
    "**Differential Diagnoses**: Alternative diagnoses with reasoning",
    "**Recommendations**: Diagnostic tests, treatments, referrals, and monitoring plans",
    "**Risk Assessment**: Clinical risk level with supporting factors",
    "**Consensus**: Cross-specialty agreement on diagnosis and management",
]


def calculate_timeout(complexity: ComplexityScore) -> int:
    """Delegate timeout in milliseconds, growing with the recommended panel size."""
    timeout = BASE_TIMEOUT_MS + PER_AGENT_TIMEOUT_MS * complexity.agent_count_recommendation
    return min(timeout, MAX_TIMEOUT_MS)


class _Panel:
    """Ordered, de-duplicated list of selected agents."""

    def __init__(self):
        self.agents: list[SelectedAgent] = []
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self.agents)

    def add(self, spec: Optional[AgentSpec], reason: str, priority: str = "medium") -> bool:
        if spec is None or spec.specialty in self._ids:
            return False
        self._ids.add(spec.specialty)
        self.agents.append(
            SelectedAgent(
                specialty=spec.specialty,
                display_name=spec.display_name,
                reason=reason,
                priority=priority,
            )
        )
        return True


class AgentSelector:
    """
    Selects specialist agents for a case and builds the orchestration task.

    Attributes:
        registry: Specialty id -> AgentSpec
        max_agents: Hard ceiling on panel size
    """

    def __init__(
        self,
        registry: Optional[dict[str, AgentSpec]] = None,
        max_agents: int = 15,
    ):
        self.registry = registry if registry is not None else AGENT_REGISTRY
        self.max_agents = max_agents

    def select_agents(
        self,
        request: ConsultationRequest,
        complexity: ComplexityScore,
        rare_disease_suspicion: float = 0.0,
    ) -> list[SelectedAgent]:
        """
        Choose the agent panel for a case.

        Agents are added in a fixed order: always-spawn agents, emergency
        medicine for urgent cases, symptom keyword matches, data-driven
        specialties, rare disease and research specialists, then further
        keyword matches from the wider case text until the recommended
        count is reached. The result never exceeds max_agents.

        Args:
            request: The consultation request
            complexity: Complexity score for the case
            rare_disease_suspicion: 0-1 suspicion of a rare condition

        Returns:
            Selected agents, highest priority first
        """
        panel = _Panel()

        for spec in agents_by_rule(SpawnRule.ALWAYS):
            panel.add(self.registry.get(spec.specialty), "Always included", "high")

        if request.urgency in (UrgencyLevel.URGENT, UrgencyLevel.EMERGENT):
            for spec in agents_by_rule(SpawnRule.HIGH_URGENCY):
                panel.add(self.registry.get(spec.specialty), f"{request.urgency} case", "high")

        if request.symptoms:
            for spec, keyword in find_agents_by_keywords(request.symptoms):
                panel.add(self.registry.get(spec.specialty), f"Symptom match: {keyword}", "high")

        if request.imaging:
            panel.add(self.registry.get("radiology"), "Imaging studies supplied")
        if request.labs:
            panel.add(self.registry.get("pathology"), "Laboratory results supplied")
        if request.medical_history.medications:
            panel.add(self.registry.get("pharmacology"), "Active medication list")
        surgical = detect_surgical_signals(request)
        if surgical:
            panel.add(self.registry.get("surgery"), f"Surgical signal: {surgical[0]}")

        if rare_disease_suspicion > RARE_DISEASE_THRESHOLD:
            panel.add(
                self.registry.get("rare_disease_specialist"),
                f"Rare disease suspicion {rare_disease_suspicion:.2f}",
            )

        if complexity.normalized_score > RESEARCH_COMPLEXITY_THRESHOLD:
            panel.add(
                self.registry.get("clinical_research"),
                f"Complex case ({complexity.normalized_score:.2f})",
            )

        target = min(complexity.agent_count_recommendation, self.max_agents)
        if len(panel) < target:
            wider_text = [
                request.chief_complaint,
                request.additional_context,
                *request.medical_history.conditions,
            ]
            for spec, keyword in find_agents_by_keywords(wider_text):
                if len(panel) >= target:
                    break
                panel.add(self.registry.get(spec.specialty), f"Case history match: {keyword}", "low")

        selected = panel.agents[: self.max_agents]
        logger.info(
            f"Selected {len(selected)} agents (complexity {complexity.normalized_score:.2f}, "
            f"recommended {complexity.agent_count_recommendation}): "
            f"{', '.join(a.display_name for a in selected)}"
        )
        return selected

    def build_task(
        self,
        request: ConsultationRequest,
        agents: list[SelectedAgent],
        complexity: ComplexityScore,
        enriched_context: Optional[EnrichedContext] = None,
    ) -> DelegateTask:
        """Build the delegate payload for a selected panel."""
        enrichment_text = format_enriched_context(enriched_context) if enriched_context else ""

        return DelegateTask(
            task=self.build_prompt(request, agents, complexity, enrichment_text),
            max_agents=max(len(agents), 1),
            timeout_ms=calculate_timeout(complexity),
            context={
                "caseType": "clinical_consultation",
                "urgency": request.urgency,
                "agentInstructions": [
                    self._agent_instruction(agent, request) for agent in agents
                ],
                "clinicalData": self._clinical_data(request, enrichment_text),
            },
            stream_progress=True,
        )

    # =========================================================================
    # PROMPT BUILDING
    # =========================================================================

    def build_prompt(
        self,
        request: ConsultationRequest,
        agents: list[SelectedAgent],
        complexity: ComplexityScore,
        enrichment_text: str = "",
    ) -> str:
        """Render the markdown task description given to the agent panel."""
        symptoms = ", ".join(request.symptoms) or "None reported"
        team = "\n\n".join(
            f"{i}. **{agent.display_name}** ({agent.specialty})\n   - {self._focus(agent)}"
            for i, agent in enumerate(agents, 1)
        )
        instructions = "\n".join(f"{i}. {step}" for i, step in enumerate(TASK_INSTRUCTIONS, 1))
        deliverables = "\n".join(f"- {item}" for item in EXPECTED_DELIVERABLES)

        prompt = f"""# Medical Case Analysis - {str(request.urgency).upper()}

## Case Overview
- **Chief Complaint**: {request.chief_complaint or 'Not specified'}
- **Symptoms**: {symptoms}
- **Urgency Level**: {request.urgency}
- **Case Complexity**: {complexity.normalized_score:.2f} ({complexity.agent_count_recommendation} agents recommended)

## Clinical Data
{self._format_clinical_data(request)}

## Medical Team
You are coordinating a multi-specialty medical team of {len(agents)} AI agents to analyze this case:

{team}

## Task Instructions
Each medical specialist should:
{instructions}

## Expected Deliverables
{deliverables}

Please ensure all recommendations are evidence-based, HIPAA-compliant, and appropriate for the urgency level."""

        if enrichment_text:
            prompt += f"\n\n## Medical Intelligence\n\n{enrichment_text}"
        return prompt

    def _focus(self, agent: SelectedAgent) -> str:
        spec = self.registry.get(agent.specialty)
        focus = spec.focus if spec else ""
        return f"{focus} ({agent.reason})" if focus else agent.reason

    def _format_clinical_data(self, request: ConsultationRequest) -> str:
        sections = []

        if request.vitals:
            lines = "\n".join(f"- {k}: {v}" for k, v in request.vitals.items())
            sections.append(f"**Vital Signs**:\n{lines}")

        if request.labs:
            lines = "\n".join(f"- {k}: {v}" for k, v in request.labs.items())
            sections.append(f"**Laboratory Results**:\n{lines}")

        if request.imaging:
            lines = "\n".join(f"- {k}: {v}" for k, v in request.imaging.items())
            sections.append(f"**Imaging Studies**:\n{lines}")

        history = request.medical_history
        history_lines = []
        if history.conditions:
            history_lines.append(f"- Conditions: {', '.join(history.conditions)}")
        if history.medications:
            history_lines.append(f"- Medications: {', '.join(history.medications)}")
        if history.allergies:
            history_lines.append(f"- Allergies: {', '.join(history.allergies)}")
        if history.surgeries:
            history_lines.append(f"- Surgeries: {', '.join(history.surgeries)}")
        if history_lines:
            sections.append("**Medical History**:\n" + "\n".join(history_lines))

        if request.additional_context:
            sections.append(f"**Additional Context**:\n{request.additional_context}")

        return "\n\n".join(sections) if sections else "No additional clinical data provided."

    # =========================================================================
    # CONTEXT PAYLOAD
    # =========================================================================

    def _agent_instruction(self, agent: SelectedAgent, request: ConsultationRequest) -> dict[str, Any]:
        spec = self.registry.get(agent.specialty)
        focus_areas = []
        if spec and spec.trigger_keywords and request.symptoms:
            relevant = [
                s for s in request.symptoms
                if any(kw in s.lower() for kw in spec.trigger_keywords)
            ]
            if relevant:
                focus_areas.append(f"Symptom evaluation: {', '.join(relevant)}")
        focus_areas.append("Comprehensive differential diagnosis")

        instructions = (
            f"As a {agent.display_name}, your role is to provide expert analysis "
            f"from the perspective of {agent.specialty}."
        )
        if request.urgency == UrgencyLevel.EMERGENT:
            instructions += " EMERGENT CASE: Prioritize life-threatening conditions and immediate interventions."
        elif request.urgency == UrgencyLevel.URGENT:
            instructions += " URGENT CASE: Expedite evaluation and identify time-sensitive conditions."

        return {
            "agentId": agent.specialty,
            "specialty": agent.specialty,
            "displayName": agent.display_name,
            "priority": agent.priority,
            "specificInstructions": instructions,
            "focusAreas": focus_areas,
            "confidenceWeight": spec.confidence_weight if spec else 0.8,
        }

    def _clinical_data(self, request: ConsultationRequest, enrichment_text: str) -> dict[str, Any]:
        data = request.model_dump(
            include={
                "patient_id",
                "chief_complaint",
                "symptoms",
                "vitals",
                "labs",
                "imaging",
                "medical_history",
                "urgency",
            }
        )
        data["additional_context"] = "\n\n".join(
            part for part in (request.additional_context, enrichment_text) if part
        )
        return data
