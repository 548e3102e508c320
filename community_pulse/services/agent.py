"""Agent responders: the offline rule set and the completion-backed agent."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from community_pulse.core.models import AI_AGENT, Message, User
from community_pulse.core.randomness import RandomSource, default_random
from community_pulse.services.completion import (
    CompletionClient,
    CompletionError,
    chat_messages,
    parse_json_payload,
    strip_code_fence,
)

DEGRADED_REPLY = "I'm having trouble reaching my reasoning service right now, but I've logged your message."
HEALTH_CHECK_REPLY = (
    "Quick health check: We haven't heard from the UX team on this thread recently. "
    "Is the design spec finalized?"
)
DEPLOYMENT_REPLY = "I detected a discussion about Deployment. Checking pipeline status... All systems green."
HEALTH_CHECK_CHANCE = 0.1

AGENT_SYSTEM_PROMPT = (
    "You are Omni, an assistant embedded in a team discussion. "
    "Reply briefly and helpfully to the latest message. "
    'Answer with a JSON object {"response": "<reply>", "keywords": ["<topic>", ...]} '
    "where keywords are up to three short topic names the discussion is about."
)


class AgentServiceError(RuntimeError):
    """Raised when an agent reply cannot be produced."""


def _clean_keywords(raw: Optional[Iterable[object]]) -> Tuple[str, ...]:
    if not raw:
        return ()
    cleaned: List[str] = []
    for item in raw:
        if isinstance(item, str) and item.strip():
            cleaned.append(item.strip())
    return tuple(cleaned)


@dataclass(frozen=True)
class AgentRequest:
    context: Sequence[Message]
    message_text: str
    sender: User


@dataclass(frozen=True)
class AgentReply:
    text: str
    keywords: Tuple[str, ...] = field(default_factory=tuple)
    should_respond: bool = True

    @classmethod
    def silent(cls) -> "AgentReply":
        return cls(text="", keywords=(), should_respond=False)

    @classmethod
    def degraded(cls) -> "AgentReply":
        return cls(text=DEGRADED_REPLY, keywords=())


class AgentResponder(Protocol):
    async def respond(self, request: AgentRequest) -> AgentReply:
        ...


class RuleBasedAgent:
    """Offline agent: mentions, deployment talk and the occasional health check.

    Replies carry no keywords; the message itself already fed the graph.
    """

    def __init__(self, rng: Optional[RandomSource] = None, *, health_check_chance: float = HEALTH_CHECK_CHANCE) -> None:
        self._rng = rng or default_random()
        self.health_check_chance = health_check_chance

    async def respond(self, request: AgentRequest) -> AgentReply:
        lowered = request.message_text.lower()
        if "@omni" in lowered:
            text = f"I'm here, {request.sender.name}. I've logged that interaction in the graph."
        elif "deployment" in lowered or "error" in lowered:
            text = DEPLOYMENT_REPLY
        elif self._rng.random() < self.health_check_chance:
            text = HEALTH_CHECK_REPLY
        else:
            return AgentReply.silent()
        return AgentReply(text=text)


class CompletionAgent:
    """Agent backed by a chat completion endpoint."""

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def _history(self, context: Sequence[Message]) -> List[dict]:
        history = []
        for message in context:
            role = "assistant" if message.user.id == AI_AGENT.id else "user"
            content = message.text if role == "assistant" else f"{message.user.name}: {message.text}"
            history.append({"role": role, "content": content})
        return history

    async def respond(self, request: AgentRequest) -> AgentReply:
        messages = chat_messages(
            AGENT_SYSTEM_PROMPT,
            f"{request.sender.name}: {request.message_text}",
            self._history(request.context),
        )
        try:
            content = await self._client.complete(messages)
        except CompletionError as exc:
            raise AgentServiceError(str(exc)) from exc
        return self.parse_reply(content)

    @staticmethod
    def parse_reply(content: str) -> AgentReply:
        """Decode the structured reply; plain text is accepted without keywords."""

        try:
            payload = parse_json_payload(content)
        except CompletionError:
            text = strip_code_fence(content)
            if not text:
                raise AgentServiceError("agent returned an empty reply")
            return AgentReply(text=text)
        if not isinstance(payload, dict):
            raise AgentServiceError("agent reply must be a JSON object")
        text = payload.get("response") or payload.get("text")
        if not isinstance(text, str) or not text.strip():
            raise AgentServiceError("agent reply has no response text")
        return AgentReply(text=text.strip(), keywords=_clean_keywords(payload.get("keywords")))


__all__ = [
    "AgentReply",
    "AgentRequest",
    "AgentResponder",
    "AgentServiceError",
    "CompletionAgent",
    "DEGRADED_REPLY",
    "RuleBasedAgent",
]
