"""The brain: one object per invocation owning a repository per resource.

Every mutation is persisted before the method returns; there is no
buffered state to flush on exit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from codebrain.config import (
    CHANGELOG_FILE,
    CONTEXT_FILE,
    DECISIONS_FILE,
    MEMORY_DIR,
    PATTERNS_DIR,
    PATTERNS_FILE,
    SOLUTIONS_FILE,
    TODOS_FILE,
)
from codebrain.errors import BrainNotInitializedError, ValidationError
from codebrain.memory.checklist import DEFAULT_PRIORITY, Task, TodoList
from codebrain.memory.context import ContextDocument, ContextStore, apply_patch
from codebrain.memory.logbook import LogBook, LogEntry
from codebrain.memory.patterns import PatternStore
from codebrain.memory.solutions import (
    DEFAULT_THRESHOLD,
    SolutionMatch,
    SolutionRecord,
    SolutionStore,
)
from codebrain.timestamps import Clock, format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass
class BrainStatus:
    last_active: str | None
    current_work: str | None
    todos_pending: int
    activity_today: int
    patterns_learned: int


class Brain:
    """Memory & recall engine for one project directory."""

    def __init__(
        self,
        root: Path,
        *,
        clock: Clock = utc_now,
        similarity_threshold: float = DEFAULT_THRESHOLD,
        repair_context: bool = False,
    ) -> None:
        self.root = root
        self._clock = clock
        self._repair_context = repair_context
        memory_dir = root / MEMORY_DIR

        self.context_store = ContextStore(memory_dir / CONTEXT_FILE)
        self.changelog_log = LogBook(
            memory_dir / CHANGELOG_FILE, title="Project Changelog", bullet="- ", clock=clock
        )
        self.decisions_log = LogBook(
            memory_dir / DECISIONS_FILE, title="Architectural Decisions", clock=clock
        )
        self.todo_list = TodoList(memory_dir / TODOS_FILE)
        self.solutions = SolutionStore(
            memory_dir / SOLUTIONS_FILE, threshold=similarity_threshold, clock=clock
        )
        self.patterns = PatternStore(root / PATTERNS_DIR / PATTERNS_FILE, clock=clock)

        self._context: ContextDocument | None = None
        self.previous_active: str | None = None
        self.changelog: list[LogEntry] = []
        self.todos: list[Task] = []
        self.decisions: list[LogEntry] = []

    # ── Lifecycle ─────────────────────────────────────────────

    def initialize(self) -> ContextDocument:
        """Load context and logs. ContextMissingError means `init` never ran."""
        context = self.context_store.load(repair=self._repair_context)
        self.previous_active = context.brain_meta.last_active
        context.brain_meta.last_active = self._now()
        self._context = context

        self.changelog = self.changelog_log.load()
        self.todos = self.todo_list.load()
        self.decisions = self.decisions_log.load()
        logger.info(
            "Brain loaded: %d changelog entries, %d todos, %d decisions",
            len(self.changelog),
            len(self.todos),
            len(self.decisions),
        )
        return context

    @property
    def context(self) -> ContextDocument:
        if self._context is None:
            raise BrainNotInitializedError("Brain used before initialize()")
        return self._context

    def _require_initialized(self) -> None:
        if self._context is None:
            raise BrainNotInitializedError("Brain used before initialize()")

    def _now(self) -> str:
        return format_timestamp(self._clock())

    def checkpoint(self, message: str = "") -> LogEntry:
        """Stamp the context, save it, and log a checkpoint entry."""
        self.context.brain_meta.last_checkpoint = self._now()
        self.context_store.save(self.context)
        entry = self.add_changelog_entry("checkpoint", message or "Auto checkpoint")
        logger.info("Checkpoint saved")
        return entry

    # ── Context ───────────────────────────────────────────────

    def update_context(self, patch: Mapping[str, Any]) -> ContextDocument:
        self._context = apply_patch(self.context, patch)
        self.context_store.save(self._context)
        return self._context

    # ── Changelog & decisions ─────────────────────────────────

    def add_changelog_entry(self, type: str, message: str) -> LogEntry:
        self._require_initialized()
        entry = self.changelog_log.append({"Type": type, "Message": message})
        self.changelog.append(entry)
        return entry

    def add_decision(
        self, title: str, reasoning: str, alternatives: Iterable[str] = ()
    ) -> LogEntry:
        if not (title or "").strip():
            raise ValidationError("Decision title must not be empty")
        self._require_initialized()
        entry = self.decisions_log.append(
            {"Decision": title, "Reasoning": reasoning, "Alternatives": list(alternatives)}
        )
        self.decisions.append(entry)
        return entry

    # ── Todos ─────────────────────────────────────────────────

    def update_todos(self, todos: Iterable[Task]) -> None:
        self._require_initialized()
        todos = list(todos)
        self.todo_list.save(todos)
        self.todos = todos

    def add_todo(self, task: str, priority: str = DEFAULT_PRIORITY) -> Task:
        self._require_initialized()
        next_id = max((t.id for t in self.todos), default=0) + 1
        todo = Task.create(task, priority, created=self._now(), id=next_id)
        self.update_todos([*self.todos, todo])
        return todo

    def complete_todo(self, todo_id: int) -> Task:
        self._require_initialized()
        for todo in self.todos:
            if todo.id == todo_id:
                todo.completed = True
                self.update_todos(self.todos)
                return todo
        raise KeyError(todo_id)

    def pending_todos(self) -> list[Task]:
        return [t for t in self.todos if not t.completed]

    # ── Patterns & solutions ──────────────────────────────────

    def learn_pattern(self, category: str, pattern: str, example: str = "") -> int:
        self._require_initialized()
        count = self.patterns.learn(category, pattern, example)
        self.update_context({"patterns_learned": {category.strip(): count}})
        return count

    def remember_solution(self, problem: str, solution: str) -> SolutionRecord:
        self._require_initialized()
        return self.solutions.remember(problem, solution)

    def find_similar_solutions(self, problem: str) -> list[SolutionMatch]:
        self._require_initialized()
        return self.solutions.recall(problem)

    # ── Status ────────────────────────────────────────────────

    def entries_on(self, day: datetime) -> list[LogEntry]:
        """Changelog entries whose timestamp falls on day (UTC)."""
        target = parse_timestamp(day).date()
        result = []
        for entry in self.changelog:
            moment = entry.moment
            if moment and moment.date() == target:
                result.append(entry)
        return result

    def activity_today(self) -> list[LogEntry]:
        return self.entries_on(self._clock())

    def status(self) -> BrainStatus:
        context = self.context
        return BrainStatus(
            last_active=context.brain_meta.last_active,
            current_work=context.working_on,
            todos_pending=len(self.pending_todos()),
            activity_today=len(self.activity_today()),
            patterns_learned=len(self.patterns.categories()),
        )

    def time_since_active(self) -> float | None:
        """Seconds since the previous session, if one was recorded."""
        previous = parse_timestamp(self.previous_active)
        if previous is None:
            return None
        return (parse_timestamp(self._clock()) - previous).total_seconds()
