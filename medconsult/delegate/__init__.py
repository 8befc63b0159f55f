"""Client for the external multi-agent orchestrator."""

from medconsult.delegate.client import (
    DelegateClient,
    MockDelegateClient,
    parse_agent_results,
    parse_status,
)

__all__ = ["DelegateClient", "MockDelegateClient", "parse_agent_results", "parse_status"]
