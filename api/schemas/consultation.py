"""Consultation API schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from medconsult.models.enums import UrgencyLevel


class QuickCheckRequest(BaseModel):
    """Inputs for a coarse complexity triage."""
    symptom_count: int = Field(ge=0)
    urgency: UrgencyLevel = UrgencyLevel.ROUTINE
    comorbidity_count: int = Field(default=0, ge=0)


class PollRequest(BaseModel):
    """Options for a blocking poll."""
    max_attempts: Optional[int] = Field(default=None, ge=1)
    poll_interval: Optional[float] = Field(default=None, ge=0, description="Seconds between status checks")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Wall-clock limit for the whole poll")
