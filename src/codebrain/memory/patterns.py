"""Learned code-style patterns (patterns/code-style.yaml)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from codebrain.errors import ResourceCorruptError, ValidationError
from codebrain.storage import dump_yaml, load_yaml_mapping
from codebrain.timestamps import Clock, format_timestamp, utc_now

logger = logging.getLogger(__name__)


def empty_patterns() -> dict[str, Any]:
    return {"patterns": {}, "detected": False}


class PatternStore:
    """Category → ordered list of {pattern, example, learned}."""

    def __init__(self, path: Path, *, clock: Clock = utc_now) -> None:
        self.path = path
        self._clock = clock

    def load(self) -> dict[str, Any]:
        data = load_yaml_mapping(self.path)
        if data is None:
            return empty_patterns()
        patterns = data.get("patterns")
        if patterns is None:
            patterns = {}
        if not isinstance(patterns, dict) or not all(isinstance(v, list) for v in patterns.values()):
            raise ResourceCorruptError(
                "'patterns' must map categories to lists", self.path
            )
        return {"patterns": patterns, "detected": bool(data.get("detected", False))}

    def learn(self, category: str, pattern: str, example: str = "") -> int:
        """Record a pattern; returns how many patterns the category now holds."""
        category = (category or "").strip()
        pattern = (pattern or "").strip()
        if not category or not pattern:
            raise ValidationError("Pattern category and text are required")

        data = self.load()
        entries = data["patterns"].setdefault(category, [])
        entries.append(
            {
                "pattern": pattern,
                "example": example,
                "learned": format_timestamp(self._clock()),
            }
        )
        data["detected"] = True
        dump_yaml(self.path, data)
        logger.info("Learned new %s pattern", category)
        return len(entries)

    def categories(self) -> dict[str, int]:
        return {name: len(items) for name, items in self.load()["patterns"].items()}
