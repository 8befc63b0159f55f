"""
Consultation Manager - Lifecycle of a multi-agent consultation.

Start: compliance pre-check, complexity analysis, enrichment fan-out,
agent selection, delegate submission. Status: poll the delegate and,
once it completes, turn the agent opinions into a safety-gated
consensus with a compliance report and an audit entry.

Errors travel on two channels. Problems that prevent the manager from
doing its job are raised (see medconsult.errors). Problems with the
clinical outcome (delegate-reported failure, unsafe consensus, missing
enrichment) are returned as data on the result.
"""

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional, Union

from medconsult.complexity.analyzer import ComplexityAnalyzer
from medconsult.complexity.factors import extract_complexity_factors
from medconsult.consensus.builder import build_consensus, empty_consensus
from medconsult.delegate.client import parse_agent_results
from medconsult.enrichment.fanout import EnrichmentFanOut
from medconsult.errors import ComplianceRejectedError, ConsultationNotFoundError, PollingTimeoutError
from medconsult.models.compliance import (
    AuditReference,
    ComplianceOperation,
    ComplianceValidation,
    ComplianceViolation,
)
from medconsult.models.consensus import ConsensusResult
from medconsult.models.consultation import (
    ConsultationRequest,
    ConsultationResponse,
    ConsultationResult,
    OrchestrationTask,
    utc_now,
)
from medconsult.models.delegate import DelegateStatus
from medconsult.models.enums import ComplianceRiskLevel, DelegateTaskState, TaskStatus
from medconsult.models.progress import ProgressUpdate
from medconsult.models.safety import SafetyValidationResult
from medconsult.orchestration.registry import TaskRegistry
from medconsult.safety.gate import SafetyGate, failed_safety_result
from medconsult.utils.protocols import (
    AgentSelectorProtocol,
    AuditLoggerProtocol,
    ComplianceValidatorProtocol,
    DelegateClientProtocol,
)


logger = logging.getLogger(__name__)


# Delegate state -> lifecycle state. Anything else leaves the task unchanged.
DELEGATE_STATUS_MAP = {
    DelegateTaskState.PENDING.value: TaskStatus.SPAWNING_AGENTS,
    DelegateTaskState.RUNNING.value: TaskStatus.ANALYZING,
    DelegateTaskState.COMPLETED.value: TaskStatus.COMPLETED,
    DelegateTaskState.FAILED.value: TaskStatus.FAILED,
}

AUDIT_FAILED = "audit_failed"

StatusOutcome = Union[ConsultationResponse, ConsultationResult]


def poll_url(consultation_id: str) -> str:
    return f"/api/consultations/{consultation_id}"


def _accessed_fields(request: ConsultationRequest) -> list[str]:
    """PHI fields a consultation reads, for the minimum-necessary check."""
    fields = ["demographics", "chief_complaint", "symptoms"]
    if request.vitals:
        fields.append("vitals")
    if request.labs:
        fields.append("labs")
    if request.imaging:
        fields.append("imaging")
    if not request.medical_history.is_empty:
        fields.append("medical_history")
    return fields


class ConsultationManager:
    """
    Orchestrates consultations end to end.

    All collaborators are injected; see
    medconsult.orchestration.factory.build_consultation_manager for the
    production wiring.
    """

    def __init__(
        self,
        analyzer: ComplexityAnalyzer,
        fanout: EnrichmentFanOut,
        selector: AgentSelectorProtocol,
        delegate: DelegateClientProtocol,
        safety_gate: SafetyGate,
        compliance: ComplianceValidatorProtocol,
        audit: AuditLoggerProtocol,
        registry: Optional[TaskRegistry] = None,
        poll_max_attempts: int = 120,
        poll_interval: float = 5.0,
    ):
        self.analyzer = analyzer
        self.fanout = fanout
        self.selector = selector
        self.delegate = delegate
        self.safety_gate = safety_gate
        self.compliance = compliance
        self.audit = audit
        self.registry = registry or TaskRegistry()
        self.poll_max_attempts = poll_max_attempts
        self.poll_interval = poll_interval

    # =========================================================================
    # START
    # =========================================================================

    async def start_consultation(self, request: ConsultationRequest) -> ConsultationResponse:
        """
        Validate, analyze, enrich and submit a case to the delegate.

        Args:
            request: The consultation request

        Returns:
            Pending snapshot with the poll URL

        Raises:
            ComplianceRejectedError: If the pre-check finds a violation
            DelegateSubmissionError: If the delegate rejects or cannot take the task
        """
        consultation_id = f"consult_{uuid.uuid4().hex}"
        logger.info(
            f"Starting consultation {consultation_id} for patient {request.patient_id} "
            f"(urgency {request.urgency})"
        )

        validation = await self.compliance.validate(
            ComplianceOperation(
                type="consultation",
                user_id=request.user_id,
                user_role=request.user_role,
                patient_id=request.patient_id,
                data_accessed=_accessed_fields(request),
                purpose="treatment",
                has_consent=request.has_consent,
                encryption_enabled=True,
            )
        )
        if not validation.compliant:
            logger.warning(f"Consultation {consultation_id} blocked by compliance pre-check")
            raise ComplianceRejectedError(validation)

        factors = extract_complexity_factors(request)
        complexity = self.analyzer.analyze(factors)
        logger.info(
            f"Consultation {consultation_id}: complexity {complexity.normalized_score:.2f}, "
            f"{complexity.agent_count_recommendation} agents recommended"
        )

        enriched = await self.fanout.enrich(request)

        agents = self.selector.select_agents(
            request, complexity, rare_disease_suspicion=factors.rare_disease_suspicion
        )
        task_payload = self.selector.build_task(request, agents, complexity, enriched)

        submission = await self.delegate.submit(task_payload)

        task = OrchestrationTask(
            consultation_id=consultation_id,
            task_id=submission.task_id,
            agent_count=len(agents),
            complexity_score=complexity,
            request=request,
            agents=agents,
            enrichment_sources=enriched.available_sources,
        )
        await self.registry.add(task)

        logger.info(
            f"Consultation {consultation_id} submitted as delegate task {submission.task_id} "
            f"with {len(agents)} agents"
        )

        return ConsultationResponse(
            consultation_id=consultation_id,
            task_id=task.task_id,
            status=TaskStatus.PENDING,
            progress=task.progress,
            current_step=task.current_step,
            poll_url=poll_url(consultation_id),
            estimated_duration=complexity.estimated_processing_time,
            agents_selected=len(agents),
            complexity_score=complexity.normalized_score,
        )

    # =========================================================================
    # STATUS
    # =========================================================================

    async def get_consultation_status(self, consultation_id: str) -> StatusOutcome:
        """
        Check on a consultation.

        Returns:
            A ConsultationResponse while the delegate is still working, or
            the terminal ConsultationResult once it completed or failed

        Raises:
            ConsultationNotFoundError: If the id is unknown or already finished
            DelegateStatusError: If the delegate cannot be queried; the task
                is left unchanged
        """
        async with self.registry.claim(consultation_id) as task:
            status = await self.delegate.get_status(task.task_id)
            self._apply_progress(task, status)

            if status.status == DelegateTaskState.COMPLETED:
                result = await self._complete(task, status)
                await self.registry.remove(consultation_id)
                return result

            if status.status == DelegateTaskState.FAILED:
                result = self._fail(task, status.error or "Delegate orchestration failed")
                await self.registry.remove(consultation_id)
                return result

            target = DELEGATE_STATUS_MAP.get(status.status)
            if target is not None:
                task.advance(target)
            return self._snapshot(task)

    def _apply_progress(self, task: OrchestrationTask, status: DelegateStatus) -> None:
        if status.progress is not None:
            task.progress = max(task.progress, status.progress)
        if status.current_step:
            task.current_step = status.current_step
        task.updated_at = utc_now()

    def _snapshot(self, task: OrchestrationTask) -> ConsultationResponse:
        return ConsultationResponse(
            consultation_id=task.consultation_id,
            task_id=task.task_id,
            status=task.status,
            progress=task.progress,
            current_step=task.current_step,
            poll_url=poll_url(task.consultation_id),
            estimated_duration=task.complexity_score.estimated_processing_time,
            agents_selected=task.agent_count,
            complexity_score=task.complexity_score.normalized_score,
        )

    def _fail(self, task: OrchestrationTask, error: str) -> ConsultationResult:
        task.advance(TaskStatus.FAILED)
        task.error = error
        logger.error(f"Consultation {task.consultation_id} failed: {error}")
        return ConsultationResult(
            consultation_id=task.consultation_id,
            status=TaskStatus.FAILED,
            agents_spawned=task.agent_count,
            consensus=empty_consensus(),
            processing_time=self._elapsed(task),
            enrichment_sources=task.enrichment_sources,
            error=error,
        )

    async def _complete(self, task: OrchestrationTask, status: DelegateStatus) -> ConsultationResult:
        agent_results = parse_agent_results(status.result)
        consensus = build_consensus(agent_results)
        logger.info(
            f"Consultation {task.consultation_id}: consensus '{consensus.primary_diagnosis.condition}' "
            f"from {len(agent_results)} agents ({consensus.consensus_quality})"
        )

        safety = await self._run_safety_gate(task, consensus)
        compliance = await self._compliance_report(task)
        audit = await self._record_decision(task, consensus, safety)

        task.advance(TaskStatus.COMPLETED)
        task.progress = 100
        return ConsultationResult(
            consultation_id=task.consultation_id,
            status=TaskStatus.COMPLETED,
            agents_spawned=task.agent_count,
            consensus=consensus,
            individual_analyses=agent_results,
            processing_time=self._elapsed(task),
            safety=safety,
            compliance=compliance,
            audit=audit,
            enrichment_sources=task.enrichment_sources,
        )

    @staticmethod
    def _elapsed(task: OrchestrationTask) -> float:
        return round((utc_now() - task.created_at).total_seconds(), 3)

    # -------------------------------------------------------------------------
    # Post-processing (each step has a fallback so a result is always returned)
    # -------------------------------------------------------------------------

    async def _run_safety_gate(
        self, task: OrchestrationTask, consensus: ConsensusResult
    ) -> SafetyValidationResult:
        try:
            safety = await self.safety_gate.validate(consensus, task.request)
        except Exception as e:
            logger.error(f"Safety gate crashed for {task.consultation_id}: {e}")
            return failed_safety_result(str(e))

        if not safety.safe:
            logger.warning(
                f"Consultation {task.consultation_id} flagged unsafe: "
                f"{len(safety.critical_alerts)} critical alerts, score {safety.safety_score}"
            )
        return safety

    async def _compliance_report(self, task: OrchestrationTask) -> ComplianceValidation:
        request = task.request
        try:
            return await self.compliance.validate(
                ComplianceOperation(
                    type="consultation_result",
                    user_id=request.user_id,
                    user_role=request.user_role,
                    patient_id=request.patient_id,
                    data_accessed=[*_accessed_fields(request), "diagnosis", "recommendations"],
                    purpose="treatment",
                    has_consent=request.has_consent,
                    encryption_enabled=True,
                )
            )
        except Exception as e:
            logger.error(f"Compliance report failed for {task.consultation_id}: {e}")
            return ComplianceValidation(
                compliant=False,
                violations=[
                    ComplianceViolation(
                        rule="compliance_report",
                        severity="major",
                        description=f"Compliance report could not be generated: {e}",
                        remediation="Review the consultation manually before release",
                    )
                ],
                risk_level=ComplianceRiskLevel.HIGH,
            )

    async def _record_decision(
        self,
        task: OrchestrationTask,
        consensus: ConsensusResult,
        safety: SafetyValidationResult,
    ) -> AuditReference:
        request = task.request
        try:
            return await self.audit.log_decision(
                consultation_id=task.consultation_id,
                patient_id=request.patient_id,
                user_id=request.user_id,
                decision=consensus.primary_diagnosis.condition,
                confidence=consensus.overall_confidence,
                details={
                    "agent_count": task.agent_count,
                    "consensus_quality": consensus.consensus_quality,
                    "safety_score": safety.safety_score,
                    "safe": safety.safe,
                },
            )
        except Exception as e:
            logger.error(f"Audit logging failed for {task.consultation_id}: {e}")
            return AuditReference(decision_id=AUDIT_FAILED, audit_id=AUDIT_FAILED)

    # =========================================================================
    # POLLING
    # =========================================================================

    async def poll_consultation_until_complete(
        self,
        consultation_id: str,
        max_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
        on_progress: Optional[Callable[[ProgressUpdate], None]] = None,
        deadline: Optional[float] = None,
    ) -> ConsultationResult:
        """
        Poll until the consultation reaches a terminal state.

        Args:
            consultation_id: Consultation to wait for
            max_attempts: Status checks before giving up (default from settings)
            poll_interval: Seconds between checks (default from settings)
            on_progress: Called with a ProgressUpdate after every check
            deadline: Optional time.monotonic() instant after which polling stops

        Returns:
            The terminal ConsultationResult (completed or failed)

        Raises:
            PollingTimeoutError: If attempts run out or the deadline passes;
                the delegate task is cancelled and the consultation dropped
            ConsultationNotFoundError: If the id is not active
            DelegateStatusError: If a status check fails
        """
        max_attempts = max_attempts if max_attempts is not None else self.poll_max_attempts
        poll_interval = poll_interval if poll_interval is not None else self.poll_interval

        attempts = 0
        reason = None
        while attempts < max_attempts:
            if deadline is not None and time.monotonic() >= deadline:
                reason = "deadline reached"
                break

            attempts += 1
            outcome = await self.get_consultation_status(consultation_id)

            if on_progress:
                on_progress(self._progress_update(outcome, attempts))

            if isinstance(outcome, ConsultationResult):
                return outcome

            if attempts < max_attempts:
                delay = poll_interval
                if deadline is not None:
                    delay = max(0.0, min(delay, deadline - time.monotonic()))
                await asyncio.sleep(delay)

        await self._abandon(consultation_id, attempts, reason)
        raise PollingTimeoutError(consultation_id, attempts, reason)

    def _progress_update(self, outcome: StatusOutcome, attempt: int) -> ProgressUpdate:
        if isinstance(outcome, ConsultationResult):
            return ProgressUpdate(
                consultation_id=outcome.consultation_id,
                status=outcome.status,
                message=outcome.error or f"Consultation {outcome.status}",
                percent=100,
                attempt=attempt,
            )
        return ProgressUpdate(
            consultation_id=outcome.consultation_id,
            status=outcome.status,
            message=outcome.current_step,
            percent=outcome.progress,
            attempt=attempt,
            detail={"task_id": outcome.task_id},
        )

    async def _abandon(self, consultation_id: str, attempts: int, reason: Optional[str]) -> None:
        """
        Cancel the delegate task and drop the consultation after polling gives up.

        Runs under the entry claim; a consultation another flow finished in
        the meantime is left alone.
        """
        message = f"Polling gave up after {attempts} attempts"
        if reason:
            message = f"{message} ({reason})"

        try:
            async with self.registry.claim(consultation_id) as task:
                try:
                    await self.delegate.cancel(task.task_id)
                except Exception as e:
                    logger.warning(f"Cancel of delegate task {task.task_id} failed: {e}")

                task.advance(TaskStatus.FAILED)
                task.error = message
                await self.registry.remove(consultation_id)
        except ConsultationNotFoundError:
            logger.info(f"Consultation {consultation_id} finished before polling gave up")
            return

        logger.error(f"Consultation {consultation_id}: {message}")
