"""Participants and messages shared by the runtime and the agent services."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class User:
    id: str
    name: str
    color: str = "bg-slate-700"

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "color": self.color}


USERS: Tuple[User, ...] = (
    User(id="u1", name="Dev Lead", color="bg-blue-600"),
    User(id="u2", name="Stakeholder", color="bg-emerald-600"),
    User(id="u3", name="Data Scientist", color="bg-purple-600"),
)

AI_AGENT = User(id="ai", name="Omni", color="bg-slate-700")


def find_user(user_id: str) -> Optional[User]:
    for user in USERS + (AI_AGENT,):
        if user.id == user_id:
            return user
    return None


@dataclass(frozen=True)
class Message:
    id: int
    user: User
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    keywords: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user.to_dict(),
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "keywords": list(self.keywords),
        }


__all__ = ["AI_AGENT", "Message", "USERS", "User", "find_user"]
