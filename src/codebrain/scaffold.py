"""First-run scaffolding: create the brain layout and seed default files."""

from __future__ import annotations

import logging
from pathlib import Path

from codebrain.config import (
    CHANGELOG_FILE,
    CONTEXT_FILE,
    DECISIONS_FILE,
    MEMORY_DIR,
    PATTERNS_DIR,
    PATTERNS_FILE,
    TODOS_FILE,
    VENDOR_SPECS_DIR,
)
from codebrain.errors import AlreadyInitializedError
from codebrain.memory.checklist import Task, render_checklist
from codebrain.memory.context import ContextStore, default_context
from codebrain.memory.patterns import empty_patterns
from codebrain.storage import atomic_write_text, dump_yaml
from codebrain.timestamps import Clock, utc_now

logger = logging.getLogger(__name__)

INITIAL_TODOS = ("Complete project setup", "Define core features")


def initialize_project(
    root: Path,
    project_name: str | None = None,
    *,
    force: bool = False,
    clock: Clock = utc_now,
) -> list[Path]:
    """Create the directory tree and seed files. Returns the created dirs.

    An existing root raises AlreadyInitializedError unless force is set, in
    which case the memory files are reseeded (vendor specs are kept).
    """
    if root.exists() and not force:
        raise AlreadyInitializedError(f"{root} already exists", {"path": str(root)})

    project_name = project_name or root.resolve().parent.name
    dirs = [root / MEMORY_DIR, root / VENDOR_SPECS_DIR, root / PATTERNS_DIR]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)

    memory_dir = root / MEMORY_DIR
    started = clock().date().isoformat()
    ContextStore(memory_dir / CONTEXT_FILE).save(default_context(project_name, started))

    atomic_write_text(
        memory_dir / CHANGELOG_FILE,
        "# Project Changelog\n\n## Initialization\n- Project initialized with codebrain\n",
    )
    atomic_write_text(
        memory_dir / TODOS_FILE,
        render_checklist(Task.create(text) for text in INITIAL_TODOS),
    )
    atomic_write_text(memory_dir / DECISIONS_FILE, "# Architectural Decisions\n\n")
    dump_yaml(root / PATTERNS_DIR / PATTERNS_FILE, empty_patterns())

    logger.info("Brain initialized at %s for project %r", root, project_name)
    return dirs
