"""Console chat interface built on top of :mod:`community_pulse.runtime`."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from community_pulse.config import settings
from community_pulse.core.models import USERS, User, find_user
from community_pulse.core.randomness import default_random
from community_pulse.kg.graph import GraphSnapshot
from community_pulse.runtime.journal import JournalEntry
from community_pulse.runtime.orchestrator import DiscussionOrchestrator, build_orchestrator
from community_pulse.runtime.tasks import Task

PROMPT = "> "


def format_graph(snapshot: GraphSnapshot) -> List[str]:
    if not snapshot.nodes:
        return ["Graph is empty."]
    lines = [f"Topics ({len(snapshot.nodes)}):"]
    for node in sorted(snapshot.node_list(), key=lambda item: -item.size):
        lines.append(f"- {node.id}: size {node.size:g} at ({node.x:.0f}, {node.y:.0f})")
    links = snapshot.rendered_links()
    if links:
        lines.append(f"Links ({len(links)}):")
        lines.extend(f"- {link.source} <-> {link.target}" for link in links)
    return lines


def format_tasks(tasks: Sequence[Task]) -> List[str]:
    if not tasks:
        return ["No action items yet."]
    return [f"[{'x' if task.completed else ' '}] #{task.id} {task.text} ({task.assigned_to})" for task in tasks]


def format_journal(entries: Sequence[JournalEntry]) -> List[str]:
    if not entries:
        return ["Journal is empty."]
    return [f"- #{entry.index} {entry.event}" for entry in entries]


@dataclass
class ConsoleChat:
    orchestrator: DiscussionOrchestrator
    user: User = USERS[0]
    journal_tail: int = 5

    async def handle_line(self, line: str) -> str:
        text = line.strip()
        if not text:
            return ""
        if text.startswith(":"):
            return await self._handle_command(text[1:])

        message = await self.orchestrator.send_message(self.user, text)
        if message is None:
            return "Discussion is closed."
        await self.orchestrator.wait_idle()
        parts: List[str] = []
        replies = [m for m in self.orchestrator.session.messages if m.id > message.id]
        parts.extend(f"{reply.user.name}: {reply.text}" for reply in replies)
        if message.keywords:
            parts.append("Topics: " + ", ".join(message.keywords))
        return "\n".join(parts)

    async def _handle_command(self, command: str) -> str:
        raw = command.strip()
        key = raw.lower()
        if key in {"quit", "exit"}:
            raise SystemExit(0)
        if key == "graph":
            return "\n".join(format_graph(self.orchestrator.graph.snapshot))
        if key == "tasks":
            return "\n".join(format_tasks(self.orchestrator.tasks.tasks()))
        if key == "journal":
            return "\n".join(format_journal(self.orchestrator.journal.tail(self.journal_tail)))
        if key == "insight":
            return await self.orchestrator.analyze_graph()
        if key == "export":
            return json.dumps(self.orchestrator.snapshot(), ensure_ascii=False, indent=2)
        if key.startswith("user"):
            parts = raw.split(maxsplit=1)
            if len(parts) < 2:
                return "Usage: :user <id>  (" + ", ".join(f"{u.id}={u.name}" for u in USERS) + ")"
            user = find_user(parts[1].strip())
            if user is None or user not in USERS:
                return f"Unknown user: {parts[1].strip()}"
            self.user = user
            return f"Now speaking as {user.name}."
        return f"Unknown command: :{command}"


async def run_console(chat: ConsoleChat) -> None:
    loop = asyncio.get_running_loop()
    async with chat.orchestrator:
        print("Community Pulse chat. Commands: :graph, :tasks, :journal, :insight, :export, :user <id>, :quit")
        while True:
            try:
                line = await loop.run_in_executor(None, input, PROMPT)
            except EOFError:
                print()
                break
            try:
                output = await chat.handle_line(line)
            except SystemExit:
                print("Leaving the discussion.")
                break
            if output:
                print(output)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Chat with the Community Pulse discussion graph")
    parser.add_argument("--user", default=USERS[0].id, help="id of the speaking user (u1, u2, u3)")
    parser.add_argument("--remote", action="store_true", help="use the configured completion endpoint")
    parser.add_argument("--seed", type=int, default=None, help="seed for the random source")
    parser.add_argument("--log-level", default="WARNING", help="logging level for the console")
    parser.add_argument("--journal-tail", type=int, default=5, help="journal entries shown by :journal")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    user = find_user(args.user)
    if user is None or user not in USERS:
        parser.error(f"unknown user: {args.user}")

    orchestrator = build_orchestrator(settings, rng=default_random(args.seed), remote=args.remote or None)
    chat = ConsoleChat(orchestrator=orchestrator, user=user, journal_tail=max(1, args.journal_tail))
    try:
        asyncio.run(run_console(chat))
    except KeyboardInterrupt:
        print("\nInterrupted.")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
