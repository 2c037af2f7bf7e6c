"""Session prompt assembly from the loaded context and todos."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from codebrain.config import (
    CHANGELOG_FILE,
    CONTEXT_FILE,
    MEMORY_DIR,
    PATTERNS_DIR,
    VENDOR_SPECS_DIR,
)
from codebrain.memory.checklist import Task
from codebrain.memory.context import ContextDocument

SESSION_PROMPT_TEMPLATE = """\
I'm using codebrain to maintain context across our sessions.

Current Context:
- Project: {project}
- Phase: {phase}
- Working on: {working_on}
- Brain Version: {version}

Tech Stack:
{stack}

Top TODOs:
{todos}

Please:
1. Read the full context from {context_path}
2. Check {changelog_path} for recent changes
3. Review {patterns_path}/ for learned patterns
4. Load relevant vendor specs from {specs_path}/

Let's continue where we left off. What would you like to work on?"""


def _todo_line(task: Task) -> str:
    return f"- {task.task}{' [HIGH PRIORITY]' if task.priority == 'high' else ''}"


def build_session_prompt(
    context: ContextDocument,
    todos: Iterable[Task] = (),
    *,
    root: Path = Path(".claude"),
    limit: int = 3,
) -> str:
    """Concise prompt for the user to paste at the start of a session."""
    pending = [t for t in todos if not t.completed][:limit]
    stack = "\n".join(f"- {k}: {v}" for k, v in context.decided_stack.items())
    return SESSION_PROMPT_TEMPLATE.format(
        project=context.project.name,
        phase=context.project.phase,
        working_on=context.working_on or "Starting fresh",
        version=context.brain_version,
        stack=stack or "- Not yet defined",
        todos="\n".join(_todo_line(t) for t in pending) or "- No specific todos",
        context_path=(root / MEMORY_DIR / CONTEXT_FILE).as_posix(),
        changelog_path=(root / MEMORY_DIR / CHANGELOG_FILE).as_posix(),
        patterns_path=(root / PATTERNS_DIR).as_posix(),
        specs_path=(root / VENDOR_SPECS_DIR).as_posix(),
    )
