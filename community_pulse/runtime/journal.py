"""In-memory activity journal for discussion events."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from typing import Deque, Mapping, Sequence


def _canonical_payload(payload: Mapping[str, object]) -> Mapping[str, object]:
    """Recursively convert payloads into JSON-friendly primitives."""

    def normalise(value: object) -> object:
        if isinstance(value, Mapping):
            return {str(key): normalise(val) for key, val in sorted(value.items())}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [normalise(item) for item in value]
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    return normalise(payload)  # type: ignore[return-value]


@dataclass(frozen=True)
class JournalEntry:
    index: int
    event: str
    payload: Mapping[str, object]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Mapping[str, object]:
        return {
            "index": self.index,
            "event": self.event,
            "payload": _canonical_payload(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }


class ActivityJournal:
    """Bounded log of what the orchestrator did and why."""

    def __init__(self, limit: int = 500) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        self._entries: Deque[JournalEntry] = deque(maxlen=limit)
        self._counter = 0

    def append(self, event: str, payload: Mapping[str, object]) -> JournalEntry:
        entry = JournalEntry(index=self._counter, event=event, payload=dict(payload))
        self._counter += 1
        self._entries.append(entry)
        return entry

    def entries(self) -> Sequence[JournalEntry]:
        return tuple(self._entries)

    def events(self, name: str) -> Sequence[JournalEntry]:
        return tuple(entry for entry in self._entries if entry.event == name)

    def tail(self, limit: int = 5) -> Sequence[JournalEntry]:
        if limit <= 0:
            return tuple()
        return tuple(self._entries)[-limit:]

    def to_json(self) -> str:
        return json.dumps([entry.to_dict() for entry in self._entries], ensure_ascii=False, indent=2)


__all__ = ["ActivityJournal", "JournalEntry"]
