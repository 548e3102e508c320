"""Runtime orchestration: chat events, graph updates, agent replies and tasks."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from community_pulse.config import Settings, settings as default_settings
from community_pulse.core.models import AI_AGENT, Message, User
from community_pulse.core.randomness import RandomSource, default_random
from community_pulse.kg.graph import GraphSnapshot, TopicGraph, TopicLink, TopicNode, grow_or_create
from community_pulse.kg.keywords import extract_keywords, normalise_keyword
from community_pulse.kg.links import LinkSynthesizer
from community_pulse.runtime.journal import ActivityJournal
from community_pulse.runtime.session import DiscussionSession
from community_pulse.runtime.simulation import DelayedCall, EnrichmentLoop, SimulationLoop, enrich_graph
from community_pulse.runtime.tasks import Task, TaskBoard, detect_action_item
from community_pulse.services.agent import (
    AgentReply,
    AgentRequest,
    AgentResponder,
    CompletionAgent,
    RuleBasedAgent,
)
from community_pulse.services.completion import CompletionClient
from community_pulse.services.insights import GraphAnalyst
from community_pulse.services.tasks import CompletionTaskExtractor, TaskExtractor

logger = logging.getLogger(__name__)


class DiscussionOrchestrator:
    """Coordinates one live discussion.

    Every message updates the topic graph synchronously, then starts two
    independent background branches: the agent reply (whose keywords feed the
    graph later) and task extraction. Neither branch waits for the other and a
    failure in one never affects the other. Layout ticks and enrichment passes
    run on their own timers between :meth:`start` and :meth:`dispose`.
    """

    def __init__(
        self,
        *,
        graph: Optional[TopicGraph] = None,
        session: Optional[DiscussionSession] = None,
        agent: Optional[AgentResponder] = None,
        task_extractor: Optional[TaskExtractor] = None,
        analyst: Optional[GraphAnalyst] = None,
        journal: Optional[ActivityJournal] = None,
        rng: Optional[RandomSource] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.config = config or default_settings
        self._rng = rng or default_random()
        self.graph = graph or TopicGraph(rng=self._rng)
        self.session = session or DiscussionSession(history_limit=self.config.history_limit)
        self.tasks = TaskBoard()
        self.journal = journal or ActivityJournal(limit=self.config.journal_limit)
        self.synthesizer = LinkSynthesizer(self._rng, enrichment_probability=self.config.enrichment_probability)
        self._agent: AgentResponder = agent or RuleBasedAgent(self._rng)
        self._task_extractor = task_extractor
        self._analyst = analyst or GraphAnalyst()

        self._simulation: Optional[SimulationLoop] = None
        self._enrichment: Optional[EnrichmentLoop] = None
        self._background: Set[asyncio.Task] = set()
        self._delayed: Set[DelayedCall] = set()
        self._started = False
        self._disposed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._started and not self._disposed

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self) -> None:
        if self._started or self._disposed:
            return
        self._simulation = SimulationLoop(self.graph, self._rng, interval=self.config.tick_interval)
        self._enrichment = EnrichmentLoop(
            self.graph,
            self.synthesizer,
            interval=self.config.enrichment_interval,
            on_links=self._on_enriched,
        )
        self._simulation.start()
        self._enrichment.start()
        self._started = True
        self._log_event("session_started", {"nodes": len(self.graph.nodes())})

    async def dispose(self) -> None:
        """Stop timers, drop pending replies and refuse every later mutation."""

        if self._disposed:
            return
        self._disposed = True
        if self._simulation is not None:
            await self._simulation.stop()
        if self._enrichment is not None:
            await self._enrichment.stop()
        for call in list(self._delayed):
            call.cancel()
        pending = list(self._background)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._delayed.clear()
        self._background.clear()
        self.graph.close()
        self._log_event("session_disposed", {"nodes": len(self.graph.nodes()), "links": len(self.graph.links())})

    async def __aenter__(self) -> "DiscussionOrchestrator":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.dispose()

    async def wait_idle(self) -> None:
        """Wait until no agent reply or task extraction is outstanding."""

        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Message flow
    # ------------------------------------------------------------------
    async def send_message(self, user: User, text: str) -> Optional[Message]:
        if self._disposed or not text or not text.strip():
            return None

        context = self.session.recent(self.config.context_window)
        keywords = extract_keywords(text)
        message = self.session.add_message(user, text, keywords)
        self.session.publish("message", message.to_dict())
        self._log_event("message_sent", {"message_id": message.id, "user": user.id, "keywords": keywords})

        if keywords:
            self._apply_message_keywords(keywords)

        self._spawn(self._agent_branch(message, context), name=f"agent-reply-{message.id}")
        self._spawn(self._task_branch(message), name=f"task-extraction-{message.id}")
        return message

    def _apply_message_keywords(self, keywords: Sequence[str]) -> None:
        grown: List[str] = []
        created: List[str] = []
        added: List[TopicLink] = []

        def update(snapshot: GraphSnapshot) -> GraphSnapshot:
            nodes: Mapping[str, TopicNode] = snapshot.nodes
            resolved: List[str] = []
            for keyword in keywords:
                existed = snapshot.get(keyword) is not None
                nodes, node = grow_or_create(nodes, keyword, self._rng)
                resolved.append(node.id)
                (grown if existed else created).append(node.id)
            links = self.synthesizer.co_mention(resolved, snapshot.links)
            added.extend(links)
            return snapshot.with_nodes(nodes).with_links(links)

        self.graph.apply(update, reason="message")
        self._log_event(
            "graph_updated",
            {"grown": grown, "created": created, "links": [link.to_dict() for link in added]},
        )
        self._publish_topics()

    def ingest_external_keyword(self, keyword: Optional[str]) -> Optional[TopicNode]:
        """Merge one agent-suggested keyword and give it a few random links."""

        cleaned = normalise_keyword(keyword)
        if cleaned is None or self._disposed:
            return None
        resolved: Dict[str, TopicNode] = {}
        added: List[TopicLink] = []

        def update(snapshot: GraphSnapshot) -> GraphSnapshot:
            nodes, node = grow_or_create(snapshot.nodes, cleaned, self._rng)
            links = self.synthesizer.external_keyword(node.id, tuple(nodes.values()), snapshot.links)
            resolved["node"] = node
            added.extend(links)
            return snapshot.with_nodes(nodes).with_links(links)

        self.graph.apply(update, reason=f"external:{cleaned}")
        node = resolved.get("node")
        if node is None:
            return None
        self._log_event(
            "external_keyword",
            {"keyword": cleaned, "node": node.id, "size": node.size, "links": [link.to_dict() for link in added]},
        )
        self._publish_topics()
        return node

    def enrich(self, probability: Optional[float] = None) -> Tuple[TopicLink, ...]:
        links = enrich_graph(self.graph, self.synthesizer, probability)
        if links:
            self._on_enriched(links)
        return links

    def _on_enriched(self, links: Tuple[TopicLink, ...]) -> None:
        self._log_event("links_enriched", {"links": [link.to_dict() for link in links]})
        self._publish_topics()

    # ------------------------------------------------------------------
    # Background branches
    # ------------------------------------------------------------------
    async def _agent_branch(self, message: Message, context: Sequence[Message]) -> None:
        request = AgentRequest(context=tuple(context), message_text=message.text, sender=message.user)
        try:
            reply = await self._agent.respond(request)
        except Exception as exc:  # noqa: BLE001
            logger.warning("agent reply failed for message %s: %s", message.id, exc)
            self._log_event("agent_degraded", {"message_id": message.id, "error": str(exc)})
            reply = AgentReply.degraded()

        if self._disposed or not reply.should_respond:
            return
        call = DelayedCall(
            self.config.typing_delay,
            lambda: self._deliver_reply(reply, message),
            name=f"agent-typing-{message.id}",
        )
        self._delayed.add(call)
        try:
            await call.start().wait()
        finally:
            self._delayed.discard(call)

    def _deliver_reply(self, reply: AgentReply, prompt: Message) -> None:
        if self._disposed:
            return
        agent_message = self.session.add_message(AI_AGENT, reply.text, reply.keywords)
        self.session.publish("message", agent_message.to_dict())
        self._log_event(
            "agent_replied",
            {"message_id": agent_message.id, "in_reply_to": prompt.id, "keywords": reply.keywords},
        )
        for keyword in reply.keywords:
            self.ingest_external_keyword(keyword)

    async def _task_branch(self, message: Message) -> None:
        texts: List[str] = []
        source = "agent"
        if self._task_extractor is not None:
            try:
                texts = list(await self._task_extractor.extract(message.text, message.user.name))
            except Exception as exc:  # noqa: BLE001
                logger.warning("task extraction failed for message %s: %s", message.id, exc)
        if not texts:
            source = "pattern"
            local = detect_action_item(message.text)
            texts = [local] if local else []

        if self._disposed:
            return
        if not texts:
            logger.debug("no action item in message %s", message.id)
            self._log_event("task_skipped", {"message_id": message.id})
            return
        for task in self.tasks.extend(texts, message.user.name):
            self.session.publish("task", task.to_dict())
            self._log_event("task_created", {"task_id": task.id, "source": source, "text": task.text})

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def toggle_task(self, task_id: int) -> Optional[Task]:
        task = self.tasks.toggle(task_id)
        if task is not None:
            self.session.publish("task", task.to_dict())
        return task

    def delete_task(self, task_id: int) -> bool:
        removed = self.tasks.delete(task_id)
        if removed:
            self.session.publish("task_deleted", {"id": task_id})
        return removed

    def clear_tasks(self) -> None:
        self.tasks.clear()
        self.session.publish("tasks_cleared", {})

    async def analyze_graph(self) -> str:
        return await self._analyst.analyze(self.graph.snapshot)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "graph": self.graph.snapshot.to_dict(),
            "messages": [message.to_dict() for message in self.session.messages],
            "tasks": self.tasks.to_list(),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background task %s failed", task.get_name(), exc_info=exc)

    def _publish_topics(self) -> None:
        self.session.publish("graph", self.graph.snapshot.to_dict())

    def _log_event(self, event: str, payload: Mapping[str, object]) -> None:
        self.journal.append(event, payload)


def build_orchestrator(
    config: Optional[Settings] = None,
    *,
    rng: Optional[RandomSource] = None,
    remote: Optional[bool] = None,
) -> DiscussionOrchestrator:
    """Wire an orchestrator for the configured agent mode."""

    config = config or default_settings
    use_remote = config.use_remote_agent if remote is None else remote
    if not use_remote:
        return DiscussionOrchestrator(rng=rng, config=config)
    client = CompletionClient(
        config.agent_base_url,
        model=config.agent_model,
        api_key=config.agent_api_key,
        timeout=config.agent_timeout,
    )
    return DiscussionOrchestrator(
        agent=CompletionAgent(client),
        task_extractor=CompletionTaskExtractor(client),
        analyst=GraphAnalyst(client),
        rng=rng,
        config=config,
    )


__all__ = ["DiscussionOrchestrator", "build_orchestrator"]
