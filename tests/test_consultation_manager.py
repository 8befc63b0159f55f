"""
Tests for the consultation lifecycle.

The delegate is scripted with MockDelegateClient; every other
collaborator is the real implementation unless a test swaps it out.
"""

import asyncio
import time

import pytest
from unittest.mock import AsyncMock, MagicMock

from medconsult.agents import AgentSelector
from medconsult.complexity import ComplexityAnalyzer
from medconsult.compliance import ComplianceValidator, DecisionAuditLog
from medconsult.delegate import DelegateClient, MockDelegateClient
from medconsult.enrichment import ClinicalGuidelinesService, DrugSafetyService, EnrichmentFanOut
from medconsult.errors import (
    ComplianceRejectedError,
    ConsultationNotFoundError,
    DelegateStatusError,
    DelegateSubmissionError,
    PollingTimeoutError,
)
from medconsult.models import ComplianceValidation, ConsultationResult, DelegateStatus, DelegateSubmission
from medconsult.orchestration import ConsultationManager
from medconsult.orchestration.manager import AUDIT_FAILED
from medconsult.safety import SafetyGate


def running(progress=None, step=None) -> DelegateStatus:
    return DelegateStatus(task_id="task-1", status="running", progress=progress, current_step=step)


def pending(progress=None) -> DelegateStatus:
    return DelegateStatus(task_id="task-1", status="pending", progress=progress)


def completed(result) -> DelegateStatus:
    return DelegateStatus(task_id="task-1", status="completed", progress=100, result=result)


def failed(error="Agent pool exhausted") -> DelegateStatus:
    return DelegateStatus(task_id="task-1", status="failed", error=error)


@pytest.fixture
def build_manager():
    """Factory for a manager wired with real collaborators and a scripted delegate."""
    def _build(statuses=None, **overrides) -> ConsultationManager:
        drug_safety = DrugSafetyService()
        kwargs = dict(
            analyzer=ComplexityAnalyzer(),
            fanout=EnrichmentFanOut(drug_safety=drug_safety, guidelines=ClinicalGuidelinesService()),
            selector=AgentSelector(),
            delegate=MockDelegateClient(statuses=statuses),
            safety_gate=SafetyGate(drug_safety),
            compliance=ComplianceValidator(),
            audit=DecisionAuditLog(),
            poll_interval=0.0,
        )
        kwargs.update(overrides)
        return ConsultationManager(**kwargs)
    return _build


class TestStartConsultation:
    """Tests for submission."""

    @pytest.mark.asyncio
    async def test_start_returns_pending_snapshot(self, build_manager, sample_request):
        manager = build_manager()

        response = await manager.start_consultation(sample_request)

        assert response.consultation_id.startswith("consult_")
        assert response.task_id == "task-1"
        assert response.status == "pending"
        assert response.progress == 0
        assert response.poll_url == f"/api/consultations/{response.consultation_id}"
        assert response.agents_selected == manager.delegate.submitted[0].max_agents
        assert 0.0 <= response.complexity_score <= 1.0

        task = await manager.registry.get(response.consultation_id)
        assert task.enrichment_sources == ["drug_safety", "guidelines"]
        assert "## Medical Intelligence" in manager.delegate.submitted[0].task

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, build_manager, minimal_request):
        manager = build_manager()

        first = await manager.start_consultation(minimal_request)
        second = await manager.start_consultation(minimal_request)

        assert first.consultation_id != second.consultation_id
        assert await manager.registry.active_count() == 2

    @pytest.mark.asyncio
    async def test_compliance_rejection(self, build_manager, sample_request):
        manager = build_manager()
        request = sample_request.model_copy(update={"user_role": ""})

        with pytest.raises(ComplianceRejectedError) as exc_info:
            await manager.start_consultation(request)

        assert exc_info.value.validation.compliant is False
        assert manager.delegate.submitted == []
        assert await manager.registry.active_count() == 0

    @pytest.mark.asyncio
    async def test_submission_failure_registers_nothing(self, build_manager, sample_request):
        manager = build_manager(delegate=MockDelegateClient(fail_submit=True))

        with pytest.raises(DelegateSubmissionError):
            await manager.start_consultation(sample_request)

        assert await manager.registry.active_count() == 0


class TestConsultationStatus:
    """Tests for single status checks."""

    @pytest.mark.asyncio
    async def test_unknown_consultation(self, build_manager):
        with pytest.raises(ConsultationNotFoundError):
            await build_manager().get_consultation_status("consult_missing")

    @pytest.mark.asyncio
    async def test_running_then_stale_pending(self, build_manager, sample_request):
        manager = build_manager(statuses=[running(40, "Agents analyzing"), pending(10)])
        started = await manager.start_consultation(sample_request)

        first = await manager.get_consultation_status(started.consultation_id)
        second = await manager.get_consultation_status(started.consultation_id)

        assert first.status == "analyzing"
        assert first.progress == 40
        assert first.current_step == "Agents analyzing"
        assert second.status == "analyzing"
        assert second.progress == 40

    @pytest.mark.asyncio
    async def test_pending_means_spawning(self, build_manager, minimal_request):
        manager = build_manager(statuses=[pending(5)])
        started = await manager.start_consultation(minimal_request)

        snapshot = await manager.get_consultation_status(started.consultation_id)

        assert snapshot.status == "spawning_agents"

    @pytest.mark.asyncio
    async def test_completed(self, build_manager, sample_request, delegate_agents_payload):
        manager = build_manager(statuses=[completed(delegate_agents_payload)])
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert isinstance(result, ConsultationResult)
        assert result.status == "completed"
        assert result.consensus.primary_diagnosis.condition == "Pneumonia"
        assert result.consensus.agent_count == 2
        assert len(result.individual_analyses) == 2
        assert result.safety is not None
        assert result.safety.safe is True
        assert result.compliance.compliant is True
        assert result.audit.decision_id.startswith("dec_")
        assert result.enrichment_sources == ["drug_safety", "guidelines"]
        assert manager.audit.decisions[0].decision == "Pneumonia"

        assert await manager.registry.active_count() == 0
        with pytest.raises(ConsultationNotFoundError):
            await manager.get_consultation_status(started.consultation_id)

    @pytest.mark.asyncio
    async def test_completed_without_agents(self, build_manager, minimal_request):
        manager = build_manager(statuses=[completed({"agents": []})])
        started = await manager.start_consultation(minimal_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "completed"
        assert result.consensus.primary_diagnosis.condition == "Unable to determine"
        assert result.requires_attention is True

    @pytest.mark.asyncio
    async def test_failed(self, build_manager, sample_request):
        manager = build_manager(statuses=[failed("Agent pool exhausted")])
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "failed"
        assert result.error == "Agent pool exhausted"
        assert result.consensus.primary_diagnosis.condition == "Unable to determine"
        assert result.safety is None
        assert await manager.registry.active_count() == 0

    @pytest.mark.asyncio
    async def test_status_error_leaves_task_unchanged(self, build_manager, sample_request):
        manager = build_manager()
        started = await manager.start_consultation(sample_request)
        manager.delegate.get_status = AsyncMock(side_effect=DelegateStatusError("unreachable"))

        with pytest.raises(DelegateStatusError):
            await manager.get_consultation_status(started.consultation_id)

        task = await manager.registry.get(started.consultation_id)
        assert task.status == "pending"
        assert task.progress == 0


class TestPostProcessingFallbacks:
    """A failing post-processing step never loses the consensus."""

    @pytest.mark.asyncio
    async def test_safety_gate_crash(self, build_manager, sample_request, delegate_agents_payload):
        gate = MagicMock()
        gate.validate = AsyncMock(side_effect=RuntimeError("rules table missing"))
        manager = build_manager(statuses=[completed(delegate_agents_payload)], safety_gate=gate)
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "completed"
        assert result.consensus.primary_diagnosis.condition == "Pneumonia"
        assert result.safety.safe is False
        assert result.safety.requires_human_review is True
        assert result.safety.error == "rules table missing"

    @pytest.mark.asyncio
    async def test_compliance_report_failure(self, build_manager, sample_request, delegate_agents_payload):
        compliance = MagicMock()
        compliance.validate = AsyncMock(side_effect=[
            ComplianceValidation(compliant=True),
            RuntimeError("policy service down"),
        ])
        manager = build_manager(statuses=[completed(delegate_agents_payload)], compliance=compliance)
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "completed"
        assert result.compliance.compliant is False
        assert result.compliance.risk_level == "high"
        assert result.compliance.violations[0].rule == "compliance_report"

    @pytest.mark.asyncio
    async def test_audit_failure(self, build_manager, sample_request, delegate_agents_payload):
        audit = MagicMock()
        audit.log_decision = AsyncMock(side_effect=RuntimeError("disk full"))
        manager = build_manager(statuses=[completed(delegate_agents_payload)], audit=audit)
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "completed"
        assert result.audit.decision_id == AUDIT_FAILED
        assert result.audit.audit_id == AUDIT_FAILED


class TestPolling:
    """Tests for poll-until-complete."""

    @pytest.mark.asyncio
    async def test_poll_reports_progress(self, build_manager, sample_request, delegate_agents_payload):
        manager = build_manager(statuses=[
            running(30, "Spawning specialists"),
            running(70, "Building consensus"),
            completed(delegate_agents_payload),
        ])
        started = await manager.start_consultation(sample_request)
        updates = []

        result = await manager.poll_consultation_until_complete(
            started.consultation_id, on_progress=updates.append,
        )

        assert result.status == "completed"
        assert [u.percent for u in updates] == [30, 70, 100]
        assert [u.attempt for u in updates] == [1, 2, 3]
        assert updates[0].message == "Spawning specialists"
        assert updates[-1].status == "completed"

    @pytest.mark.asyncio
    async def test_poll_returns_failed_result(self, build_manager, sample_request):
        manager = build_manager(statuses=[running(10), failed()])
        started = await manager.start_consultation(sample_request)

        result = await manager.poll_consultation_until_complete(started.consultation_id)

        assert result.status == "failed"
        assert manager.delegate.cancelled == []

    @pytest.mark.asyncio
    async def test_attempts_exhausted(self, build_manager, sample_request):
        manager = build_manager(statuses=[running(10)])
        started = await manager.start_consultation(sample_request)

        with pytest.raises(PollingTimeoutError) as exc_info:
            await manager.poll_consultation_until_complete(started.consultation_id, max_attempts=3)

        assert exc_info.value.attempts == 3
        assert manager.delegate.status_calls == 3
        assert manager.delegate.cancelled == ["task-1"]
        assert await manager.registry.active_count() == 0

    @pytest.mark.asyncio
    async def test_deadline_already_passed(self, build_manager, sample_request):
        manager = build_manager()
        started = await manager.start_consultation(sample_request)

        with pytest.raises(PollingTimeoutError) as exc_info:
            await manager.poll_consultation_until_complete(
                started.consultation_id, deadline=time.monotonic() - 1,
            )

        assert exc_info.value.attempts == 0
        assert "deadline reached" in str(exc_info.value)
        assert manager.delegate.status_calls == 0
        assert manager.delegate.cancelled == ["task-1"]

    @pytest.mark.asyncio
    async def test_cancel_failure_still_drops_task(self, build_manager, sample_request):
        manager = build_manager()
        started = await manager.start_consultation(sample_request)
        manager.delegate.cancel = AsyncMock(side_effect=RuntimeError("delegate down"))

        with pytest.raises(PollingTimeoutError):
            await manager.poll_consultation_until_complete(started.consultation_id, max_attempts=1)

        assert await manager.registry.active_count() == 0

    @pytest.mark.asyncio
    async def test_status_error_propagates(self, build_manager, sample_request):
        manager = build_manager()
        started = await manager.start_consultation(sample_request)
        manager.delegate.get_status = AsyncMock(side_effect=DelegateStatusError("unreachable"))

        with pytest.raises(DelegateStatusError):
            await manager.poll_consultation_until_complete(started.consultation_id)

        assert await manager.registry.active_count() == 1


class TestDelegatePayloads:
    """Status bodies from the real client parser reach a terminal state."""

    @pytest.fixture
    def http_delegate(self):
        delegate = DelegateClient(base_url="http://delegate.test")
        delegate.submit = AsyncMock(return_value=DelegateSubmission(task_id="t1"))
        return delegate

    @pytest.mark.asyncio
    async def test_structured_failure_error(self, build_manager, sample_request, http_delegate):
        http_delegate._fetch_status = AsyncMock(return_value={
            "status": "failed",
            "error": {"code": "OOM", "message": "agent pool exhausted"},
        })
        manager = build_manager(delegate=http_delegate)
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "failed"
        assert result.error == "agent pool exhausted"
        assert await manager.registry.active_count() == 0

    @pytest.mark.asyncio
    async def test_completed_with_non_object_result(self, build_manager, sample_request, http_delegate):
        http_delegate._fetch_status = AsyncMock(return_value={"status": "completed", "result": "done"})
        manager = build_manager(delegate=http_delegate)
        started = await manager.start_consultation(sample_request)

        result = await manager.get_consultation_status(started.consultation_id)

        assert result.status == "completed"
        assert result.consensus.primary_diagnosis.condition == "Unable to determine"
        assert result.individual_analyses == []
        assert await manager.registry.active_count() == 0


class TestConcurrentFlows:
    """Polling give-up and status checks on the same consultation."""

    @pytest.mark.asyncio
    async def test_give_up_waits_for_running_status_check(
        self, build_manager, sample_request, delegate_agents_payload,
    ):
        manager = build_manager()
        started = await manager.start_consultation(sample_request)
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_status(task_id):
            entered.set()
            await release.wait()
            return completed(delegate_agents_payload)

        manager.delegate.get_status = slow_status

        checker = asyncio.create_task(manager.get_consultation_status(started.consultation_id))
        await entered.wait()
        poller = asyncio.create_task(manager.poll_consultation_until_complete(
            started.consultation_id, deadline=time.monotonic() - 1,
        ))
        for _ in range(5):
            await asyncio.sleep(0)

        assert manager.delegate.cancelled == []
        assert not poller.done()

        release.set()
        result = await checker
        with pytest.raises(PollingTimeoutError):
            await poller

        assert result.status == "completed"
        assert manager.delegate.cancelled == []
        assert await manager.registry.active_count() == 0
