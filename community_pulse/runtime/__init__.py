"""Runtime package exports for Community Pulse."""

from .journal import ActivityJournal, JournalEntry
from .orchestrator import DiscussionOrchestrator, build_orchestrator
from .session import DiscussionSession, SessionEvent
from .simulation import DelayedCall, EnrichmentLoop, PeriodicTask, SimulationLoop, enrich_graph
from .tasks import Task, TaskBoard, detect_action_item

__all__ = [
    "ActivityJournal",
    "DelayedCall",
    "DiscussionOrchestrator",
    "DiscussionSession",
    "EnrichmentLoop",
    "JournalEntry",
    "PeriodicTask",
    "SessionEvent",
    "SimulationLoop",
    "Task",
    "TaskBoard",
    "build_orchestrator",
    "detect_action_item",
    "enrich_graph",
]
