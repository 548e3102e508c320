"""Async client for an OpenAI-compatible chat completion endpoint."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class CompletionError(RuntimeError):
    """Raised for transport, HTTP status or response shape failures."""


def strip_code_fence(text: str) -> str:
    return _FENCE.sub("", text.strip()).strip()


def parse_json_payload(text: str) -> Any:
    """Decode JSON from a completion, tolerating a surrounding code fence."""

    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise CompletionError(f"completion is not valid JSON: {exc}") from exc


class CompletionClient:
    def __init__(
        self,
        base_url: str,
        *,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def complete(self, messages: Sequence[Mapping[str, str]]) -> str:
        payload = {"model": self.model, "messages": [dict(message) for message in messages]}
        try:
            async with self._client() as client:
                response = await client.post("/v1/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise CompletionError(f"completion request failed: {exc}") from exc
        except ValueError as exc:
            raise CompletionError("completion response is not JSON") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError("completion response has no message content") from exc
        if not isinstance(content, str):
            raise CompletionError("completion content is not text")
        return content

    async def health(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get("/v1/models")
        except httpx.HTTPError as exc:
            logger.warning("completion health check failed: %s", exc)
            return False
        return response.is_success


def chat_messages(system: str, user: str, history: Sequence[Mapping[str, str]] = ()) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system}]
    messages.extend(dict(item) for item in history)
    messages.append({"role": "user", "content": user})
    return messages


__all__ = [
    "CompletionClient",
    "CompletionError",
    "chat_messages",
    "parse_json_payload",
    "strip_code_fence",
]
