"""Public package exports for Community Pulse."""
from __future__ import annotations

from community_pulse.core.models import AI_AGENT, USERS, Message, User
from community_pulse.kg.graph import GraphSnapshot, TopicGraph, TopicLink, TopicNode
from community_pulse.kg.keywords import VOCABULARY, extract_keywords
from community_pulse.kg.links import LinkSynthesizer
from community_pulse.runtime.orchestrator import DiscussionOrchestrator, build_orchestrator
from community_pulse.runtime.tasks import Task, TaskBoard, detect_action_item

__all__ = [
    "AI_AGENT",
    "DiscussionOrchestrator",
    "GraphSnapshot",
    "LinkSynthesizer",
    "Message",
    "Task",
    "TaskBoard",
    "TopicGraph",
    "TopicLink",
    "TopicNode",
    "USERS",
    "User",
    "VOCABULARY",
    "build_orchestrator",
    "detect_action_item",
    "extract_keywords",
]
