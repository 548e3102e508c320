from __future__ import annotations

import asyncio
from collections import Counter, deque
from dataclasses import dataclass
import itertools
import logging
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

from community_pulse.core.models import AI_AGENT, USERS, Message, User

logger = logging.getLogger(__name__)

OPENING_MESSAGES: Tuple[Tuple[User, str], ...] = (
    (USERS[0], "Hey team, how is the Optimization looking for the new model?"),
    (AI_AGENT, "Optimization detected. Tracking topic frequency."),
)

SUMMARY_WINDOW = 20
SUMMARY_TOPICS = 3
BACKLOG_LIMIT = 200
LISTENER_QUEUE_LIMIT = 500


@dataclass(frozen=True)
class SessionEvent:
    seq: int
    type: str
    payload: Dict[str, Any]


class DiscussionSession:
    """Transcript plus a sequenced event feed for stream consumers.

    Events carry a monotonically increasing ``seq`` so a reconnecting client
    can ask only for what it missed. Each listener queue is bounded; when a
    slow consumer falls behind, its oldest pending event is dropped.
    """

    def __init__(self, history_limit: int = 200, *, seed_opening: bool = True) -> None:
        self.messages: Deque[Message] = deque(maxlen=history_limit)
        self.summary: Optional[str] = None
        self.listeners: List[asyncio.Queue] = []
        self.backlog: Deque[SessionEvent] = deque(maxlen=BACKLOG_LIMIT)
        self._ids = itertools.count(1)
        self._seq = itertools.count(1)
        if seed_opening:
            for user, text in OPENING_MESSAGES:
                self.add_message(user, text)

    def add_message(self, user: User, text: str, keywords: Sequence[str] = ()) -> Message:
        message = Message(id=next(self._ids), user=user, text=text, keywords=tuple(keywords))
        self.messages.append(message)
        self._update_summary()
        return message

    def recent(self, limit: int) -> Tuple[Message, ...]:
        if limit <= 0:
            return ()
        return tuple(self.messages)[-limit:]

    def topic_counts(self, window: int = SUMMARY_WINDOW) -> Counter:
        """How often each topic was mentioned across the last ``window`` messages."""

        return Counter(keyword for message in self.recent(window) for keyword in message.keywords)

    def _update_summary(self) -> None:
        leaders = self.topic_counts().most_common(SUMMARY_TOPICS)
        if not leaders:
            self.summary = None
            return
        self.summary = "Trending: " + ", ".join(f"{topic} ({count})" for topic, count in leaders)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "messages": [m.to_dict() for m in self.messages],
        }

    def add_listener(self, since: Optional[int] = None) -> asyncio.Queue:
        """Register a listener, replaying buffered events newer than ``since``."""

        queue: asyncio.Queue = asyncio.Queue(maxsize=LISTENER_QUEUE_LIMIT)
        self.listeners.append(queue)
        for event in self.backlog:
            if since is None or event.seq > since:
                self._offer(queue, event)
        return queue

    def remove_listener(self, queue: asyncio.Queue) -> None:
        if queue in self.listeners:
            self.listeners.remove(queue)

    def publish(self, event_type: str, payload: Dict[str, Any]) -> SessionEvent:
        event = SessionEvent(seq=next(self._seq), type=event_type, payload=payload)
        self.backlog.append(event)
        for queue in list(self.listeners):
            self._offer(queue, event)
        return event

    @staticmethod
    def _offer(queue: asyncio.Queue, event: SessionEvent) -> None:
        if queue.full():
            dropped = queue.get_nowait()
            logger.debug("listener behind, dropped event %d", dropped.seq)
        queue.put_nowait(event)


__all__ = ["DiscussionSession", "OPENING_MESSAGES", "SessionEvent"]
