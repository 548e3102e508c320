"""Timer-driven producers: layout ticks, enrichment passes and delayed calls."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from community_pulse.core.randomness import RandomSource, default_random
from community_pulse.kg.graph import GraphSnapshot, TopicGraph, TopicLink
from community_pulse.kg.links import LinkSynthesizer
from community_pulse.kg.physics import step_all

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.05
DEFAULT_ENRICHMENT_INTERVAL = 5.0


class PeriodicTask:
    """Runs ``callback`` every ``interval`` seconds on the running event loop."""

    def __init__(self, interval: float, callback: Callable[[], object], *, name: str = "periodic") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self.name = name
        self.ticks = 0
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._stopped = True

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.interval)
            if self._stopped:
                break
            try:
                self._callback()
            except Exception:  # noqa: BLE001
                logger.exception("%s callback failed", self.name)
            self.ticks += 1


class DelayedCall:
    """One-shot callback after ``delay`` seconds that can be cancelled before it fires."""

    def __init__(self, delay: float, callback: Callable[[], object], *, name: str = "delayed-call") -> None:
        self.delay = max(float(delay), 0.0)
        self.name = name
        self.fired = False
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "DelayedCall":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        if self._task is None:
            return
        await asyncio.wait({self._task})

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        self.fired = True
        try:
            self._callback()
        except Exception:  # noqa: BLE001
            logger.exception("%s callback failed", self.name)


class SimulationLoop:
    """Replaces the whole node set with one physics step per tick."""

    def __init__(
        self,
        graph: TopicGraph,
        rng: Optional[RandomSource] = None,
        *,
        interval: float = DEFAULT_TICK_INTERVAL,
    ) -> None:
        self.graph = graph
        self._rng = rng or default_random()
        self._timer = PeriodicTask(interval, self.tick, name="graph-simulation")

    @property
    def running(self) -> bool:
        return self._timer.running

    @property
    def ticks(self) -> int:
        return self._timer.ticks

    def tick(self) -> GraphSnapshot:
        return self.graph.replace_nodes(lambda nodes: step_all(nodes, self._rng), reason="tick")

    def start(self) -> None:
        self._timer.start()

    async def stop(self) -> None:
        await self._timer.stop()


def enrich_graph(
    graph: TopicGraph,
    synthesizer: LinkSynthesizer,
    probability: Optional[float] = None,
) -> Tuple[TopicLink, ...]:
    """Commit one enrichment pass computed from the latest snapshot."""

    added: List[TopicLink] = []

    def update(snapshot: GraphSnapshot) -> GraphSnapshot:
        links = synthesizer.enrichment(snapshot.node_list(), snapshot.links, probability)
        if not links:
            return snapshot
        added.extend(links)
        return snapshot.with_links(links)

    graph.apply(update, reason="enrichment")
    return tuple(added)


class EnrichmentLoop:
    """Periodically samples new links between existing topics."""

    def __init__(
        self,
        graph: TopicGraph,
        synthesizer: LinkSynthesizer,
        *,
        interval: float = DEFAULT_ENRICHMENT_INTERVAL,
        probability: Optional[float] = None,
        on_links: Optional[Callable[[Tuple[TopicLink, ...]], None]] = None,
    ) -> None:
        self.graph = graph
        self.synthesizer = synthesizer
        self.probability = probability
        self._on_links = on_links
        self._timer = PeriodicTask(interval, self.run_once, name="graph-enrichment")

    @property
    def running(self) -> bool:
        return self._timer.running

    def run_once(self) -> Tuple[TopicLink, ...]:
        links = enrich_graph(self.graph, self.synthesizer, self.probability)
        if links and self._on_links is not None:
            self._on_links(links)
        return links

    def start(self) -> None:
        self._timer.start()

    async def stop(self) -> None:
        await self._timer.stop()


__all__ = [
    "DEFAULT_ENRICHMENT_INTERVAL",
    "DEFAULT_TICK_INTERVAL",
    "DelayedCall",
    "EnrichmentLoop",
    "PeriodicTask",
    "SimulationLoop",
    "enrich_graph",
]
