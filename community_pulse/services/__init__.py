"""Clients for the external agent, task extraction and insight services."""

from .agent import (
    AgentReply,
    AgentRequest,
    AgentResponder,
    AgentServiceError,
    CompletionAgent,
    DEGRADED_REPLY,
    RuleBasedAgent,
)
from .completion import CompletionClient, CompletionError
from .insights import GraphAnalyst, summarize_graph
from .tasks import CompletionTaskExtractor, TaskExtractionError, TaskExtractor

__all__ = [
    "AgentReply",
    "AgentRequest",
    "AgentResponder",
    "AgentServiceError",
    "CompletionAgent",
    "CompletionClient",
    "CompletionError",
    "CompletionTaskExtractor",
    "DEGRADED_REPLY",
    "GraphAnalyst",
    "RuleBasedAgent",
    "TaskExtractionError",
    "TaskExtractor",
    "summarize_graph",
]
