"""Checkbox task list (todos.md).

On disk every task is one line: ``- [ ] text`` or ``- [x] text [priority]``.
The priority suffix is omitted for ``normal``. Identifiers and creation
timestamps are not persisted; they live for one session only.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from codebrain.errors import ValidationError
from codebrain.storage import atomic_write_text, read_text

logger = logging.getLogger(__name__)

PRIORITIES = ("high", "normal", "low")
DEFAULT_PRIORITY = "normal"

_TASK_RE = re.compile(r"^- \[(?P<mark>[ xX])\] (?P<text>.+?)\s*$")
_PRIORITY_TAG_RE = re.compile(r"^(?P<text>.*?)\s*\[(?P<priority>high|normal|low)\]$", re.IGNORECASE)

DEFAULT_TITLE = "Project TODOs"
DEFAULT_SECTION = "Current Sprint"


def validate_priority(priority: str) -> str:
    value = (priority or DEFAULT_PRIORITY).strip().lower()
    if value not in PRIORITIES:
        raise ValidationError(
            f"Invalid priority '{priority}'", {"allowed": list(PRIORITIES)}
        )
    return value


@dataclass
class Task:
    """A single checklist item."""

    task: str
    completed: bool = False
    priority: str = DEFAULT_PRIORITY
    created: str | None = None
    id: int = 0

    @classmethod
    def create(cls, task: str, priority: str = DEFAULT_PRIORITY, **kwargs) -> Task:
        """Build a task from user input, rejecting what the file cannot hold."""
        text = (task or "").strip()
        if not text:
            raise ValidationError("Task text must not be empty")
        if len(text.splitlines()) > 1:
            raise ValidationError("Task text must be a single line", {"task": text[:80]})
        return cls(task=text, priority=validate_priority(priority), **kwargs)

    def key(self) -> tuple[str, bool, str]:
        """The part of a task that survives a render/parse round trip."""
        return (self.task, self.completed, self.priority)


def _render_line(task: Task) -> str:
    checkbox = "[x]" if task.completed else "[ ]"
    suffix = ""
    if task.priority != DEFAULT_PRIORITY or _PRIORITY_TAG_RE.match(task.task):
        # an explicit tag keeps a trailing "[low]" in the text from being read as priority
        suffix = f" [{task.priority}]"
    return f"- {checkbox} {task.task}{suffix}"


def render_checklist(
    tasks: Iterable[Task],
    *,
    title: str = DEFAULT_TITLE,
    section: str = DEFAULT_SECTION,
) -> str:
    """Render the full document; always a complete rewrite."""
    lines = [f"# {title}", "", f"## {section}"]
    lines.extend(_render_line(task) for task in tasks)
    return "\n".join(lines) + "\n"


def parse_checklist(text: str) -> list[Task]:
    """Extract tasks from checkbox lines; headings and prose are ignored."""
    tasks: list[Task] = []
    for line in text.splitlines():
        m = _TASK_RE.match(line)
        if not m:
            continue
        body = m.group("text")
        priority = DEFAULT_PRIORITY
        tag = _PRIORITY_TAG_RE.match(body)
        if tag and tag.group("text"):
            body = tag.group("text")
            priority = tag.group("priority").lower()
        tasks.append(
            Task(
                task=body.strip(),
                completed=m.group("mark").lower() == "x",
                priority=priority,
                id=len(tasks) + 1,
            )
        )
    return tasks


class TodoList:
    """Repository for todos.md."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[Task]:
        try:
            content = read_text(self.path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s, treating as empty: %s", self.path, e)
            return []
        if content is None:
            return []
        tasks = parse_checklist(content)
        logger.debug("Loaded %d tasks from %s", len(tasks), self.path.name)
        return tasks

    def save(self, tasks: Iterable[Task]) -> None:
        atomic_write_text(self.path, render_checklist(tasks))
