"""Completion-backed task extraction."""
from __future__ import annotations

from typing import List, Protocol

from community_pulse.services.completion import CompletionClient, CompletionError, chat_messages, parse_json_payload

TASK_SYSTEM_PROMPT = (
    "You extract action items from a single chat message. "
    "Answer with a JSON array of short task descriptions, or [] if the message contains none."
)


class TaskExtractionError(RuntimeError):
    """Raised when the extraction service fails or answers in an unexpected shape."""


class TaskExtractor(Protocol):
    async def extract(self, message_text: str, sender: str) -> List[str]:
        ...


class CompletionTaskExtractor:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    async def extract(self, message_text: str, sender: str) -> List[str]:
        messages = chat_messages(TASK_SYSTEM_PROMPT, f"{sender}: {message_text}")
        try:
            content = await self._client.complete(messages)
            payload = parse_json_payload(content)
        except CompletionError as exc:
            raise TaskExtractionError(str(exc)) from exc
        if isinstance(payload, dict):
            payload = payload.get("tasks", [])
        if not isinstance(payload, list):
            raise TaskExtractionError("task extraction must return a JSON array")
        return [item.strip() for item in payload if isinstance(item, str) and item.strip()]


__all__ = ["CompletionTaskExtractor", "TaskExtractionError", "TaskExtractor"]
