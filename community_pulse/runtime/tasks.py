"""Action items: local phrase detection and the task board."""
from __future__ import annotations

from dataclasses import dataclass, replace
import itertools
import re
from typing import Dict, Iterable, Optional, Pattern, Sequence, Tuple

ACTION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"I will (.*)", re.IGNORECASE),
    re.compile(r"We need to (.*)", re.IGNORECASE),
    re.compile(r"Don't forget to (.*)", re.IGNORECASE),
    re.compile(r"Please (.*)", re.IGNORECASE),
    re.compile(r"Action item: (.*)", re.IGNORECASE),
)


def detect_action_item(text: Optional[str]) -> Optional[str]:
    """Return the task described by the first matching lead-in phrase."""

    if not text:
        return None
    for pattern in ACTION_PATTERNS:
        match = pattern.search(text)
        if match:
            captured = match.group(1).strip()
            return captured or None
    return None


@dataclass(frozen=True)
class Task:
    id: int
    text: str
    assigned_to: str
    completed: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "text": self.text,
            "assigned_to": self.assigned_to,
            "completed": self.completed,
        }


class TaskBoard:
    """Holds the task list; every change swaps in a new tuple."""

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: Tuple[Task, ...] = tuple(tasks)
        start = max((task.id for task in self._tasks), default=0) + 1
        self._ids = itertools.count(start)

    def tasks(self) -> Tuple[Task, ...]:
        return self._tasks

    def get(self, task_id: int) -> Optional[Task]:
        return next((task for task in self._tasks if task.id == task_id), None)

    def add(self, text: str, assigned_to: str) -> Task:
        cleaned = text.strip()
        if not cleaned:
            raise ValueError("task text must not be empty")
        task = Task(id=next(self._ids), text=cleaned, assigned_to=assigned_to)
        self._tasks = self._tasks + (task,)
        return task

    def extend(self, texts: Sequence[str], assigned_to: str) -> Tuple[Task, ...]:
        return tuple(self.add(text, assigned_to) for text in texts if text and text.strip())

    def toggle(self, task_id: int) -> Optional[Task]:
        toggled: Optional[Task] = None
        updated = []
        for task in self._tasks:
            if task.id == task_id:
                toggled = replace(task, completed=not task.completed)
                updated.append(toggled)
            else:
                updated.append(task)
        self._tasks = tuple(updated)
        return toggled

    def delete(self, task_id: int) -> bool:
        remaining = tuple(task for task in self._tasks if task.id != task_id)
        removed = len(remaining) != len(self._tasks)
        self._tasks = remaining
        return removed

    def clear(self) -> None:
        self._tasks = ()

    def to_list(self) -> list:
        return [task.to_dict() for task in self._tasks]


__all__ = ["ACTION_PATTERNS", "Task", "TaskBoard", "detect_action_item"]
