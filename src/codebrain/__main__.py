"""Entry point: python -m codebrain <command>

Thin dispatch over the brain engine and the vendor tracker; every command
loads state, does one thing, and exits.
"""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from pathlib import Path

from codebrain.config import BrainConfig, load_config
from codebrain.errors import AlreadyInitializedError, BrainError
from codebrain.memory.engine import Brain
from codebrain.prompts import build_session_prompt
from codebrain.scaffold import initialize_project
from codebrain.vendor.tracker import VendorSpecTracker

USAGE = """\
Usage: python -m codebrain <command> [args]
  init [--force]                  - Initialize the brain in the current project
  start                           - Start a session (summary + prompt)
  sync                            - Sync vendor specifications
  status                          - Show brain status
  checkpoint [message]            - Save a checkpoint
  todo <text> [--priority P]      - Add a todo (high, normal, low)
  decide <title> <reasoning> [alternatives...]
  remember <problem> <solution>
  recall <problem>"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _pop_option(args: list[str], name: str) -> str | None:
    """Remove `name value` from args and return value."""
    if name in args:
        i = args.index(name)
        if i + 1 >= len(args):
            raise BrainError(f"{name} needs a value")
        value = args[i + 1]
        del args[i : i + 2]
        return value
    return None


def _brain(config: BrainConfig) -> Brain:
    brain = Brain(
        config.root_dir,
        similarity_threshold=config.memory.similarity_threshold,
        repair_context=config.memory.repair_context,
    )
    brain.initialize()
    return brain


def _tracker(config: BrainConfig) -> VendorSpecTracker:
    tracker = VendorSpecTracker(
        config.specs_dir, staleness=timedelta(hours=config.vendor.staleness_hours)
    )
    tracker.load()
    return tracker


def _time_since(seconds: float | None) -> str:
    if seconds is None:
        return "Never"
    hours = int(seconds // 3600)
    if hours < 1:
        return "Less than an hour ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return "Yesterday" if days == 1 else f"{days} days ago"


def _run_init(config: BrainConfig, args: list[str]) -> int:
    force = "--force" in args
    try:
        initialize_project(config.root_dir, Path.cwd().name, force=force)
    except AlreadyInitializedError:
        print(f"{config.root_dir} already exists. Re-run with --force to reinitialize.")
        return 1
    print(f"Brain initialized in {config.root_dir}")
    print("Next: run `python -m codebrain start` to begin your session")
    return 0


def _run_start(config: BrainConfig) -> int:
    brain = _brain(config)
    context = brain.context
    print(f"Project:      {context.project.name}")
    print(f"Phase:        {context.project.phase}")
    print(f"Working on:   {context.working_on or 'Nothing specific'}")
    print(f"Last active:  {_time_since(brain.time_since_active())}")

    print("\nCurrent TODOs:")
    pending = brain.pending_todos()
    if not pending:
        print("  No pending todos")
    for i, todo in enumerate(pending[:5], 1):
        tag = f" [{todo.priority.upper()}]" if todo.priority != "normal" else ""
        print(f"  {i}. {todo.task}{tag}")
    if len(pending) > 5:
        print(f"  ... and {len(pending) - 5} more")

    print("\nVendor Specifications:")
    tracker = _tracker(config)
    stale = tracker.staleness()
    if stale:
        print(f"  {len(stale)} specs need updating; run `python -m codebrain sync`")
    else:
        print("  All specs up to date")
    detected = tracker.detected_sources()
    if detected:
        print(f"  Detected stack: {', '.join(detected)}")

    print("\nRecent Activity:")
    today = brain.activity_today()
    if not today:
        print("  No activity today")
    else:
        print(f"  {len(today)} changes today")
        for entry in today[-3:]:
            message = entry.get("Message") or "No message"
            print(f"  {entry.timestamp} - {entry.get('Type')}: {message}")

    print("\nCopy this prompt to your assistant:\n")
    print(build_session_prompt(context, brain.todos, root=config.root_dir))
    brain.checkpoint("Session started")
    return 0


def _run_sync(config: BrainConfig) -> int:
    tracker = _tracker(config)
    tracker.detect_project(config.vendor.package_json)
    report = tracker.sync_all()
    print(f"Success: {len(report.succeeded)}")
    print(f"Failed:  {len(report.failed)}")
    for failure in report.failed:
        print(f"  {failure.key}: {failure.error}", file=sys.stderr)
    return 0 if report.ok else 1


def _run_status(config: BrainConfig) -> int:
    status = _brain(config).status()
    print(f"Last active:      {status.last_active}")
    print(f"Current work:     {status.current_work or '-'}")
    print(f"Pending todos:    {status.todos_pending}")
    print(f"Activity today:   {status.activity_today}")
    print(f"Patterns learned: {status.patterns_learned}")
    return 0


def _dispatch(cmd: str, args: list[str], config: BrainConfig) -> int:
    if cmd == "init":
        return _run_init(config, args)
    if cmd == "start":
        return _run_start(config)
    if cmd == "sync":
        return _run_sync(config)
    if cmd == "status":
        return _run_status(config)
    if cmd == "checkpoint":
        _brain(config).checkpoint(" ".join(args))
        print("Checkpoint saved")
        return 0
    if cmd == "todo" and args:
        priority = _pop_option(args, "--priority") or "normal"
        todo = _brain(config).add_todo(" ".join(args), priority)
        print(f"Added todo #{todo.id}: {todo.task} [{todo.priority}]")
        return 0
    if cmd == "decide" and len(args) >= 2:
        _brain(config).add_decision(args[0], args[1], args[2:])
        print(f"Recorded decision: {args[0]}")
        return 0
    if cmd == "remember" and len(args) == 2:
        _brain(config).remember_solution(args[0], args[1])
        print("Solution remembered")
        return 0
    if cmd == "recall" and args:
        matches = _brain(config).find_similar_solutions(" ".join(args))
        if not matches:
            print("No similar solutions found")
        for match in matches:
            print(f"[{match.similarity:.2f}] {match.problem}\n    {match.solution}")
        return 0
    print(USAGE)
    return 1


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        print(USAGE)
        sys.exit(1)

    try:
        config = load_config()
        _setup_logging(config.log_level)
        code = _dispatch(argv[0], argv[1:], config)
    except BrainError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
