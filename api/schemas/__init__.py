"""API request/response schemas."""

from api.schemas.consultation import PollRequest, QuickCheckRequest

__all__ = ["PollRequest", "QuickCheckRequest"]
