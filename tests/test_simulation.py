from pathlib import Path
import asyncio
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from community_pulse.kg.graph import TopicGraph, TopicNode  # noqa: E402
from community_pulse.kg.links import LinkSynthesizer  # noqa: E402
from community_pulse.runtime.simulation import (  # noqa: E402
    DelayedCall,
    EnrichmentLoop,
    PeriodicTask,
    SimulationLoop,
)
from support import ScriptedRandom  # noqa: E402


def _graph(*names: str) -> TopicGraph:
    rng = ScriptedRandom((0.5,))
    return TopicGraph(seed=[TopicNode(name, x=100.0, y=100.0 + 100 * index) for index, name in enumerate(names)], rng=rng)


def test_periodic_task_runs_until_stopped() -> None:
    calls = []

    async def scenario():
        task = PeriodicTask(0.01, lambda: calls.append(1), name="counter")
        task.start()
        await asyncio.sleep(0.06)
        await task.stop()
        stopped_at = len(calls)
        await asyncio.sleep(0.03)
        return task, stopped_at

    task, stopped_at = asyncio.run(scenario())

    assert stopped_at > 0
    assert len(calls) == stopped_at
    assert task.ticks == stopped_at
    assert not task.running


def test_periodic_task_survives_callback_errors(caplog) -> None:
    async def scenario():
        def broken():
            raise RuntimeError("tick failed")

        task = PeriodicTask(0.01, broken, name="broken-timer")
        task.start()
        await asyncio.sleep(0.035)
        await task.stop()
        return task

    task = asyncio.run(scenario())

    assert task.ticks >= 2
    assert any("broken-timer callback failed" in record.getMessage() for record in caplog.records)


def test_periodic_task_requires_positive_interval() -> None:
    with pytest.raises(ValueError):
        PeriodicTask(0, lambda: None)


def test_simulation_tick_moves_every_node() -> None:
    graph = _graph("API", "GPU")
    loop = SimulationLoop(graph, ScriptedRandom((0.5,)))
    before = graph.snapshot

    after = loop.tick()

    assert after.revision == before.revision + 1
    for node in before.node_list():
        assert after.get(node.id) != node
        assert after.get(node.id).size == node.size


def test_simulation_loop_stops_mutating_after_stop() -> None:
    async def scenario():
        graph = _graph("API", "GPU")
        loop = SimulationLoop(graph, ScriptedRandom((0.5,)), interval=0.01)
        loop.start()
        await asyncio.sleep(0.05)
        await loop.stop()
        frozen = graph.snapshot
        await asyncio.sleep(0.03)
        return graph, loop, frozen

    graph, loop, frozen = asyncio.run(scenario())

    assert loop.ticks > 0
    assert frozen.revision == loop.ticks
    assert graph.snapshot is frozen


def test_enrichment_loop_run_once_reports_links() -> None:
    graph = _graph("A", "B", "C")
    reported = []
    loop = EnrichmentLoop(
        graph,
        LinkSynthesizer(ScriptedRandom((0.0,))),
        probability=1.0,
        on_links=reported.append,
    )

    links = loop.run_once()

    assert len(links) == 3
    assert reported == [links]
    assert graph.links() == links
    assert loop.run_once() == ()
    assert len(reported) == 1


def test_delayed_call_fires_once() -> None:
    fired = []

    async def scenario():
        call = DelayedCall(0.01, lambda: fired.append("done")).start()
        assert call.pending
        await call.wait()
        return call

    call = asyncio.run(scenario())

    assert fired == ["done"]
    assert call.fired and not call.pending


def test_cancelled_delayed_call_never_fires() -> None:
    fired = []

    async def scenario():
        call = DelayedCall(1.0, lambda: fired.append("late")).start()
        await asyncio.sleep(0)
        call.cancel()
        await call.wait()
        return call

    call = asyncio.run(scenario())

    assert fired == []
    assert not call.fired
