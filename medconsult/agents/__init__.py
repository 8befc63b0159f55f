"""Specialist agent registry and panel selection."""

from medconsult.agents.registry import (
    AGENT_REGISTRY,
    agents_by_rule,
    find_agents_by_keywords,
    get_agent,
)
from medconsult.agents.selection import AgentSelector, calculate_timeout

__all__ = [
    "AGENT_REGISTRY",
    "AgentSelector",
    "agents_by_rule",
    "calculate_timeout",
    "find_agents_by_keywords",
    "get_agent",
]
