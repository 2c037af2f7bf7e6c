"""Project memory: context, logs, todos, patterns and solved problems.

Layout:
    .claude/
    ├── memory/
    │   ├── context.yaml               # Project metadata, phase, stack, preferences
    │   ├── changelog.md               # Append-only, one "## <timestamp>" block per entry
    │   ├── todos.md                   # Checkbox list, rewritten in full on change
    │   ├── decisions.log              # Append-only architectural decisions
    │   └── solutions.yaml             # problem_key → problem/solution record
    └── patterns/
        └── code-style.yaml            # category → learned patterns

The text files are the source of truth; Brain re-derives its in-memory
collections from them on every initialize().
"""
