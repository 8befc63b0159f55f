"""
Tests for the active consultation registry.
"""

import asyncio

import pytest

from medconsult.errors import ConsultationNotFoundError
from medconsult.models import ComplexityBreakdown, ComplexityScore, OrchestrationTask
from medconsult.orchestration import TaskRegistry


@pytest.fixture
def make_task(minimal_request):
    def _create(consultation_id: str = "consult_1", task_id: str = "task-1") -> OrchestrationTask:
        return OrchestrationTask(
            consultation_id=consultation_id,
            task_id=task_id,
            complexity_score=ComplexityScore(
                overall_score=0.2,
                normalized_score=0.2,
                breakdown=ComplexityBreakdown(
                    symptom_complexity=0.0,
                    clinical_data_complexity=0.0,
                    patient_complexity=0.0,
                    diagnostic_complexity=0.0,
                    urgency_complexity=0.3,
                ),
                agent_count_recommendation=3,
                estimated_processing_time=41,
            ),
            request=minimal_request,
        )
    return _create


class TestTaskRegistry:
    """Tests for add/get/remove."""

    @pytest.mark.asyncio
    async def test_add_get_remove(self, make_task):
        registry = TaskRegistry()
        task = make_task()

        await registry.add(task)
        assert await registry.get("consult_1") is task
        assert await registry.active_count() == 1

        assert await registry.remove("consult_1") is task
        assert await registry.get("consult_1") is None
        assert await registry.active_count() == 0

    @pytest.mark.asyncio
    async def test_duplicate_add_rejected(self, make_task):
        registry = TaskRegistry()
        await registry.add(make_task())

        with pytest.raises(ValueError):
            await registry.add(make_task())

    @pytest.mark.asyncio
    async def test_remove_unknown(self):
        assert await TaskRegistry().remove("nope") is None


class TestClaim:
    """Tests for exclusive per-consultation access."""

    @pytest.mark.asyncio
    async def test_claim_unknown_raises(self):
        with pytest.raises(ConsultationNotFoundError):
            async with TaskRegistry().claim("nope"):
                pass

    @pytest.mark.asyncio
    async def test_claim_yields_task(self, make_task):
        registry = TaskRegistry()
        task = make_task()
        await registry.add(task)

        async with registry.claim("consult_1") as claimed:
            assert claimed is task

    @pytest.mark.asyncio
    async def test_waiter_sees_removal_by_holder(self, make_task):
        registry = TaskRegistry()
        await registry.add(make_task())
        holder_inside = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with registry.claim("consult_1"):
                holder_inside.set()
                await release.wait()
                await registry.remove("consult_1")

        async def waiter():
            await holder_inside.wait()
            async with registry.claim("consult_1"):
                pass

        holder_task = asyncio.create_task(holder())
        waiter_task = asyncio.create_task(waiter())
        await holder_inside.wait()
        await asyncio.sleep(0)
        release.set()

        await holder_task
        with pytest.raises(ConsultationNotFoundError):
            await waiter_task

    @pytest.mark.asyncio
    async def test_different_consultations_do_not_block(self, make_task):
        registry = TaskRegistry()
        await registry.add(make_task("consult_1", "task-1"))
        await registry.add(make_task("consult_2", "task-2"))

        async with registry.claim("consult_1"):
            async with registry.claim("consult_2") as other:
                assert other.task_id == "task-2"
