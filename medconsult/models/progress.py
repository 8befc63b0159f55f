"""
Progress tracking models for consultation polling.

Callers polling a consultation receive a ProgressUpdate after every
status check.
"""

from dataclasses import dataclass, field
from typing import Protocol

from medconsult.models.enums import TaskStatus


@dataclass
class ProgressUpdate:
    """
    Progress update event for polling callbacks.

    Attributes:
        consultation_id: Consultation being polled
        status: Current lifecycle status
        message: Human-readable status message
        percent: Overall progress percentage (0-100)
        attempt: Poll attempt number (1-based)
        detail: Optional extra information
    """
    consultation_id: str
    status: TaskStatus
    message: str
    percent: int
    attempt: int
    detail: dict = field(default_factory=dict)


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""

    def __call__(self, update: ProgressUpdate) -> None:
        """Called after each status check while polling."""
        ...
