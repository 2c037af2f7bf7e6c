"""Solution memory: problem → solution pairs with keyword recall.

Records live in solutions.yaml keyed by problem_key(problem). Two problems
that normalise to the same key overwrite each other; that is accepted.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from codebrain.errors import ResourceCorruptError, ValidationError
from codebrain.storage import dump_yaml, load_yaml_mapping
from codebrain.timestamps import Clock, as_text, format_timestamp, utc_now

logger = logging.getLogger(__name__)

KEY_LENGTH = 50
MIN_KEYWORD_LENGTH = 4
STOP_WORDS = frozenset({"the", "and", "for", "with", "from"})
DEFAULT_THRESHOLD = 0.5

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_WORD_SPLIT_RE = re.compile(r"\W+")


def problem_key(problem: str) -> str:
    """Deterministic, lossy digest of a problem description."""
    key = _NON_ALNUM_RE.sub("_", (problem or "").lower())[:KEY_LENGTH]
    if not key.strip("_"):
        raise ValidationError("Problem description has no usable characters", {"problem": problem})
    return key


def extract_keywords(text: str) -> set[str]:
    words = _WORD_SPLIT_RE.split((text or "").lower())
    return {w for w in words if len(w) >= MIN_KEYWORD_LENGTH and w not in STOP_WORDS}


def similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two keyword sets; 0.0 when both are empty."""
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


@dataclass
class SolutionRecord:
    problem: str
    solution: str
    timestamp: str
    times_used: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> SolutionRecord:
        if not isinstance(data, dict) or "problem" not in data or "solution" not in data:
            raise ValueError("record needs 'problem' and 'solution'")
        return cls(
            problem=str(data["problem"]),
            solution=str(data["solution"]),
            timestamp=str(as_text(data.get("timestamp") or "")),
            times_used=int(data.get("times_used") or 0),
        )

    @property
    def keywords(self) -> set[str]:
        return extract_keywords(self.problem) | extract_keywords(self.solution)


@dataclass
class SolutionMatch:
    key: str
    record: SolutionRecord
    similarity: float

    @property
    def problem(self) -> str:
        return self.record.problem

    @property
    def solution(self) -> str:
        return self.record.solution


class SolutionStore:
    """Repository for solutions.yaml."""

    def __init__(
        self,
        path: Path,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        clock: Clock = utc_now,
    ) -> None:
        self.path = path
        self.threshold = threshold
        self._clock = clock

    def load(self) -> dict[str, SolutionRecord]:
        """All records in file order. Missing store → {}."""
        data = load_yaml_mapping(self.path)
        if not data:
            return {}
        records: dict[str, SolutionRecord] = {}
        for key, raw in data.items():
            try:
                records[str(key)] = SolutionRecord.from_dict(raw)
            except (TypeError, ValueError) as e:
                raise ResourceCorruptError(
                    f"Malformed solution record '{key}'", self.path, str(e)
                ) from e
        return records

    def _save(self, records: dict[str, SolutionRecord]) -> None:
        dump_yaml(self.path, {key: asdict(record) for key, record in records.items()})

    def remember(self, problem: str, solution: str) -> SolutionRecord:
        key = problem_key(problem)
        if not (solution or "").strip():
            raise ValidationError("Solution text must not be empty")
        records = self.load()
        previous = records.get(key)
        if previous and previous.problem != problem:
            logger.warning("Solution key %r collides; replacing %r", key, previous.problem)
        record = SolutionRecord(
            problem=problem,
            solution=solution,
            timestamp=format_timestamp(self._clock()),
        )
        records[key] = record
        self._save(records)
        logger.info("Remembered solution %r", key)
        return record

    def recall(self, problem: str) -> list[SolutionMatch]:
        """Past solutions scoring above the threshold, best first."""
        records = self.load()
        if not records:
            return []
        query = extract_keywords(problem)
        matches = []
        for key, record in records.items():
            score = similarity(query, record.keywords)
            if score > self.threshold:
                matches.append(SolutionMatch(key=key, record=record, similarity=score))
        # sorted() is stable, so equal scores keep store order
        return sorted(matches, key=lambda m: m.similarity, reverse=True)

    def record_use(self, problem: str) -> SolutionRecord:
        """Bump times_used for a stored problem. Unknown problem → KeyError."""
        key = problem_key(problem)
        records = self.load()
        if key not in records:
            raise KeyError(key)
        records[key].times_used += 1
        self._save(records)
        return records[key]
