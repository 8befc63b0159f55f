"""
Medical Consultation Engine - Delegate Orchestrator Schemas

Wire-level contract with the external multi-agent orchestrator.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from medconsult.models.enums import DelegateTaskState


class DelegateTask(BaseModel):
    """Payload submitted to the delegate orchestrator."""

    task: str = Field(description="Markdown task prompt for the agent panel")
    max_agents: int = Field(ge=1)
    timeout_ms: int = Field(ge=1)
    context: dict[str, Any] = Field(default_factory=dict)
    stream_progress: bool = True


class DelegateSubmission(BaseModel):
    """Acknowledgement returned when a task is accepted."""

    task_id: str
    status: str = "pending"
    poll_url: Optional[str] = None
    estimated_duration: Optional[int] = None


class DelegateStatus(BaseModel):
    """Status of a delegate task."""

    model_config = ConfigDict(use_enum_values=True)

    task_id: str
    status: DelegateTaskState
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    current_step: Optional[str] = None
    result: Any = Field(default=None, description="Raw result body; only an object with agents is parsed")
    error: Optional[str] = None
