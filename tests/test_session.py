from pathlib import Path
import asyncio
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from community_pulse.core.models import AI_AGENT, USERS  # noqa: E402
from community_pulse.runtime.session import (  # noqa: E402
    LISTENER_QUEUE_LIMIT,
    OPENING_MESSAGES,
    DiscussionSession,
)


def test_opening_messages_seed_the_transcript() -> None:
    session = DiscussionSession()

    assert [message.id for message in session.messages] == [1, 2]
    assert [message.user for message in session.messages] == [USERS[0], AI_AGENT]
    assert session.messages[0].text == OPENING_MESSAGES[0][1]
    assert session.summary is None


def test_summary_ranks_recently_mentioned_topics() -> None:
    session = DiscussionSession(seed_opening=False)
    session.add_message(USERS[0], "api latency", ("API", "Latency"))
    session.add_message(USERS[1], "api again", ("API",))
    session.add_message(USERS[2], "no topics here")
    session.add_message(USERS[2], "gpu budget", ("Budget", "GPU"))

    assert session.topic_counts()["API"] == 2
    assert session.summary == "Trending: API (2), Latency (1), Budget (1)"
    assert session.to_dict()["summary"] == session.summary


def test_summary_only_counts_the_recent_window() -> None:
    session = DiscussionSession(seed_opening=False)
    session.add_message(USERS[0], "budget", ("Budget",))
    for _ in range(20):
        session.add_message(USERS[1], "gpu", ("GPU",))

    assert "Budget" not in session.topic_counts()
    assert session.summary == "Trending: GPU (20)"


def test_events_are_sequenced_and_fanned_out() -> None:
    async def scenario():
        session = DiscussionSession(seed_opening=False)
        first = session.add_listener()
        second = session.add_listener()
        session.publish("message", {"id": 1})
        session.publish("task", {"id": 1})
        session.remove_listener(second)
        session.publish("graph", {"revision": 1})
        return _drain(first), _drain(second)

    first, second = asyncio.run(scenario())

    assert [(event.seq, event.type) for event in first] == [(1, "message"), (2, "task"), (3, "graph")]
    assert [event.type for event in second] == ["message", "task"]


def test_listener_replays_only_events_after_last_seen() -> None:
    async def scenario():
        session = DiscussionSession(seed_opening=False)
        for index in range(5):
            session.publish("message", {"id": index})
        return _drain(session.add_listener()), _drain(session.add_listener(since=3))

    everything, missed = asyncio.run(scenario())

    assert [event.seq for event in everything] == [1, 2, 3, 4, 5]
    assert [event.seq for event in missed] == [4, 5]


def test_slow_listener_drops_oldest_events() -> None:
    async def scenario():
        session = DiscussionSession(seed_opening=False)
        queue = session.add_listener()
        for index in range(LISTENER_QUEUE_LIMIT + 3):
            session.publish("message", {"id": index})
        return _drain(queue)

    events = asyncio.run(scenario())

    assert len(events) == LISTENER_QUEUE_LIMIT
    assert events[0].seq == 4
    assert events[-1].seq == LISTENER_QUEUE_LIMIT + 3


def _drain(queue):
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events
