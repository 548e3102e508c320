"""Short natural-language insights about the current topic graph."""
from __future__ import annotations

import logging
from typing import Optional

from community_pulse.kg.graph import GraphSnapshot
from community_pulse.services.completion import CompletionClient, CompletionError, chat_messages

logger = logging.getLogger(__name__)

INSIGHT_SYSTEM_PROMPT = (
    "You analyse the topic graph of a team discussion. "
    "In two sentences, name the dominant topics and one connection worth attention."
)


def summarize_graph(snapshot: GraphSnapshot, top: int = 3) -> str:
    nodes = sorted(snapshot.node_list(), key=lambda node: (-node.size, node.id))
    if not nodes:
        return "No topics have been discussed yet."
    leaders = ", ".join(node.id for node in nodes[:top])
    links = len(snapshot.rendered_links())
    noun = "connection" if links == 1 else "connections"
    return f"Most discussed: {leaders}. {len(nodes)} topics with {links} {noun}."


def describe_graph(snapshot: GraphSnapshot) -> str:
    lines = [f"- {node.id} (weight {node.size:g})" for node in snapshot.node_list()]
    lines.extend(f"- {link.source} <-> {link.target}" for link in snapshot.rendered_links())
    return "\n".join(lines)


class GraphAnalyst:
    def __init__(self, client: Optional[CompletionClient] = None) -> None:
        self._client = client

    async def analyze(self, snapshot: GraphSnapshot) -> str:
        """Ask the completion endpoint for an insight, falling back to a local summary."""

        if self._client is None or not snapshot.nodes:
            return summarize_graph(snapshot)
        try:
            insight = await self._client.complete(chat_messages(INSIGHT_SYSTEM_PROMPT, describe_graph(snapshot)))
        except CompletionError as exc:
            logger.warning("graph insight unavailable: %s", exc)
            return summarize_graph(snapshot)
        return insight.strip() or summarize_graph(snapshot)


__all__ = ["GraphAnalyst", "describe_graph", "summarize_graph"]
