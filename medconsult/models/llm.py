"""
Medical Consultation Engine - LLM Schemas
"""

from pydantic import BaseModel


class LLMResponse(BaseModel):
    """Response from an LLM call."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    finish_reason: str = "stop"

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens
