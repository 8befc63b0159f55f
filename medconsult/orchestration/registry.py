"""
Task Registry - Active consultations keyed by consultation id.

The map itself is guarded by one asyncio.Lock; each entry also carries
its own lock so that a single consultation is advanced by one flow at
a time while different consultations proceed independently.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from medconsult.errors import ConsultationNotFoundError
from medconsult.models.consultation import OrchestrationTask


logger = logging.getLogger(__name__)


class TaskRegistry:
    """Concurrency-safe set of in-flight consultations."""

    def __init__(self):
        self._tasks: dict[str, OrchestrationTask] = {}
        self._entry_locks: dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    async def add(self, task: OrchestrationTask) -> None:
        async with self._lock:
            if task.consultation_id in self._tasks:
                raise ValueError(f"Consultation {task.consultation_id} is already registered")
            self._tasks[task.consultation_id] = task
            self._entry_locks[task.consultation_id] = asyncio.Lock()
        logger.debug(f"Registered consultation {task.consultation_id} (delegate task {task.task_id})")

    async def get(self, consultation_id: str) -> Optional[OrchestrationTask]:
        async with self._lock:
            return self._tasks.get(consultation_id)

    async def remove(self, consultation_id: str) -> Optional[OrchestrationTask]:
        """Drop a consultation from the active set. Returns the removed task, if any."""
        async with self._lock:
            self._entry_locks.pop(consultation_id, None)
            task = self._tasks.pop(consultation_id, None)
        if task is not None:
            logger.debug(f"Removed consultation {consultation_id} ({task.status})")
        return task

    async def active_count(self) -> int:
        async with self._lock:
            return len(self._tasks)

    @asynccontextmanager
    async def claim(self, consultation_id: str) -> AsyncIterator[OrchestrationTask]:
        """
        Hold exclusive access to one consultation.

        Waiters that acquire the entry after the holder removed it get
        ConsultationNotFoundError rather than a stale task.

        Raises:
            ConsultationNotFoundError: If the id is not (or no longer) active
        """
        async with self._lock:
            entry_lock = self._entry_locks.get(consultation_id)
        if entry_lock is None:
            raise ConsultationNotFoundError(consultation_id)

        async with entry_lock:
            async with self._lock:
                task = self._tasks.get(consultation_id)
            if task is None:
                raise ConsultationNotFoundError(consultation_id)
            yield task
