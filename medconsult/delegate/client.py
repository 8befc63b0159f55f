"""
Delegate Orchestrator Client.

Talks to the external multi-agent orchestrator that actually runs the
specialist agents. Submission is a single attempt with a short timeout;
status reads are idempotent and retried on transient transport errors.
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from medconsult.errors import DelegateStatusError, DelegateSubmissionError
from medconsult.models.agents import AgentRecommendation, AgentResult, DiagnosisOpinion
from medconsult.models.delegate import DelegateStatus, DelegateSubmission, DelegateTask
from medconsult.models.enums import DelegateTaskState


logger = logging.getLogger(__name__)


ORCHESTRATE_PATH = "/mageagent/api/orchestrate"
TASKS_PATH = "/mageagent/api/tasks"


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """First present key, so camelCase and snake_case payloads both parse."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


class DelegateClient:
    """
    Async HTTP client for the delegate orchestrator.

    A fresh httpx.AsyncClient is opened per call.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:9080",
        submit_timeout: float = 30.0,
        status_timeout: float = 15.0,
    ):
        """
        Initialize the delegate client.

        Args:
            base_url: Root URL of the orchestrator
            submit_timeout: Timeout in seconds for task submission
            status_timeout: Timeout in seconds for status, cancel and health calls
        """
        self.base_url = base_url.rstrip("/")
        self.submit_timeout = submit_timeout
        self.status_timeout = status_timeout

    async def submit(self, task: DelegateTask) -> DelegateSubmission:
        """
        Submit an orchestration task.

        Not retried: a resubmission could spawn a duplicate agent panel.

        Raises:
            DelegateSubmissionError: On transport errors, HTTP errors or a
                response without a task id
        """
        payload = {
            "task": task.task,
            "maxAgents": task.max_agents,
            "timeout": task.timeout_ms,
            "context": task.context,
            "streamProgress": task.stream_progress,
        }
        logger.info(
            f"Submitting orchestration task ({len(task.task)} chars, "
            f"{task.max_agents} agents, timeout {task.timeout_ms}ms)"
        )

        try:
            async with httpx.AsyncClient(timeout=self.submit_timeout) as client:
                response = await client.post(f"{self.base_url}{ORCHESTRATE_PATH}", json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to submit orchestration task: {e}")
            raise DelegateSubmissionError(f"Delegate orchestration failed: {e}") from e

        task_id = _pick(data, "taskId", "task_id")
        if not task_id:
            raise DelegateSubmissionError("Delegate orchestration response did not include a task id")

        submission = DelegateSubmission(
            task_id=str(task_id),
            status=str(data.get("status", "pending")),
            poll_url=_pick(data, "pollUrl", "poll_url"),
            estimated_duration=_pick(data, "estimatedDuration", "estimated_duration"),
        )
        logger.info(f"Orchestration task submitted: {submission.task_id} ({submission.status})")
        return submission

    async def get_status(self, task_id: str) -> DelegateStatus:
        """
        Fetch the current status of a task.

        Raises:
            DelegateStatusError: If the orchestrator cannot be reached after
                retries, or answers with an error or malformed body
        """
        try:
            data = await self._fetch_status(task_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get task status for {task_id}: {e}")
            raise DelegateStatusError(f"Failed to get task status: {e}") from e

        try:
            return parse_status(task_id, data)
        except (AttributeError, TypeError, ValueError) as e:
            raise DelegateStatusError(f"Malformed task status for {task_id}: {e}") from e

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _fetch_status(self, task_id: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.status_timeout) as client:
            response = await client.get(f"{self.base_url}{TASKS_PATH}/{task_id}")
            response.raise_for_status()
            return response.json()

    async def cancel(self, task_id: str) -> bool:
        """
        Ask the orchestrator to stop a task.

        Returns:
            True if the orchestrator accepted the request

        Raises:
            httpx.HTTPError: On transport failures
        """
        async with httpx.AsyncClient(timeout=self.status_timeout) as client:
            response = await client.delete(f"{self.base_url}{TASKS_PATH}/{task_id}")

        accepted = response.is_success or response.status_code == 404
        if accepted:
            logger.info(f"Cancel requested for delegate task {task_id}")
        else:
            logger.warning(f"Delegate refused cancel for {task_id}: HTTP {response.status_code}")
        return accepted

    async def health_check(self) -> bool:
        """Check if the orchestrator is reachable."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Delegate health check failed: {e}")
            return False


def _text(value: Any) -> Optional[str]:
    """Render a structured error or step as text; objects use their message when present."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, dict) and value.get("message"):
        return str(value["message"])
    return json.dumps(value, default=str)


def parse_status(task_id: str, data: dict[str, Any]) -> DelegateStatus:
    """Convert an orchestrator status body into a DelegateStatus."""
    raw_status = str(data.get("status", "")).lower()
    try:
        status = DelegateTaskState(raw_status)
    except ValueError:
        # Unknown states are reported as running so the task is left alone.
        logger.warning(f"Unknown delegate status {raw_status!r} for task {task_id}")
        status = DelegateTaskState.RUNNING

    progress = data.get("progress")
    if progress is not None:
        progress = min(max(int(progress), 0), 100)

    return DelegateStatus(
        task_id=str(_pick(data, "taskId", "task_id", default=task_id)),
        status=status,
        progress=progress,
        current_step=_text(_pick(data, "currentStep", "current_step")),
        result=data.get("result"),
        error=_text(data.get("error")),
    )


# =============================================================================
# RESULT PARSING
# =============================================================================


def _parse_diagnosis(raw: Any) -> Optional[DiagnosisOpinion]:
    if not raw:
        return None
    if isinstance(raw, str):
        return DiagnosisOpinion(condition=raw)
    return DiagnosisOpinion(
        condition=str(raw["condition"]),
        confidence=_pick(raw, "confidence", default=0.5),
        icd10_code=_pick(raw, "icd10Code", "icd10_code", "icd10"),
    )


def _parse_recommendation(raw: dict[str, Any]) -> AgentRecommendation:
    return AgentRecommendation(
        type=raw.get("type", "lab"),
        recommendation=str(raw["recommendation"]),
        priority=raw.get("priority", "routine"),
        rationale=str(raw.get("rationale", "")),
    )


def parse_agent_results(result: Any) -> list[AgentResult]:
    """
    Extract per-agent opinions from a completed delegate result.

    Entries that cannot be parsed are skipped with a warning.

    Args:
        result: The ``result`` body of a completed task; anything but an
            object is treated as carrying no agents

    Returns:
        Parsed agent results (possibly empty)
    """
    agents = result.get("agents") if isinstance(result, dict) else None
    if not isinstance(agents, list):
        logger.warning("No agent results found in delegate response")
        return []

    parsed = []
    for index, raw in enumerate(agents):
        try:
            parsed.append(
                AgentResult(
                    agent_id=str(_pick(raw, "agentId", "agent_id", default="unknown")),
                    specialty=str(raw.get("specialty", "general")),
                    primary_diagnosis=_parse_diagnosis(_pick(raw, "primaryDiagnosis", "primary_diagnosis")),
                    differential_diagnoses=[
                        d for d in (
                            _parse_diagnosis(x)
                            for x in _pick(raw, "differentialDiagnoses", "differential_diagnoses", default=[])
                        )
                        if d is not None
                    ],
                    recommendations=[
                        _parse_recommendation(r) for r in raw.get("recommendations", [])
                    ],
                    findings=[str(f) for f in raw.get("findings", [])],
                    concerns=[str(c) for c in raw.get("concerns", [])],
                    confidence=_pick(raw, "confidence", default=0.5),
                    processing_time=_pick(raw, "processingTime", "processing_time", default=0.0),
                    metadata={
                        k: raw[k] for k in ("modelUsed", "tokensUsed", "costUsd") if k in raw
                    },
                )
            )
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Skipping malformed agent result #{index}: {e}")

    return parsed


# =============================================================================
# TEST DOUBLE
# =============================================================================


class MockDelegateClient:
    """
    Scripted delegate for testing.

    Each get_status call pops the next scripted status for the task; the
    last one repeats once the script runs out.
    """

    def __init__(
        self,
        statuses: Optional[list[DelegateStatus]] = None,
        task_id: str = "task-1",
        fail_submit: bool = False,
    ):
        self.statuses = list(statuses or [])
        self.task_id = task_id
        self.fail_submit = fail_submit
        self.submitted: list[DelegateTask] = []
        self.cancelled: list[str] = []
        self.status_calls = 0

    async def submit(self, task: DelegateTask) -> DelegateSubmission:
        if self.fail_submit:
            raise DelegateSubmissionError("Delegate orchestration failed: connection refused")
        self.submitted.append(task)
        return DelegateSubmission(task_id=self.task_id, status="pending")

    async def get_status(self, task_id: str) -> DelegateStatus:
        self.status_calls += 1
        if not self.statuses:
            return DelegateStatus(task_id=task_id, status=DelegateTaskState.RUNNING)
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    async def cancel(self, task_id: str) -> bool:
        self.cancelled.append(task_id)
        return True

    async def health_check(self) -> bool:
        return True
