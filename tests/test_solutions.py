"""Tests for solution memory and keyword recall."""

from __future__ import annotations

import logging

import pytest
import yaml
from pathlib import Path

from codebrain.errors import ResourceCorruptError, ValidationError
from codebrain.memory.solutions import (
    KEY_LENGTH,
    SolutionStore,
    extract_keywords,
    problem_key,
    similarity,
)


@pytest.fixture
def store(tmp_path: Path, clock) -> SolutionStore:
    return SolutionStore(tmp_path / "solutions.yaml", clock=clock)


class TestProblemKey:
    def test_normalises(self):
        assert problem_key("How do I center a div?") == "how_do_i_center_a_div_"

    def test_truncated(self):
        assert len(problem_key("word " * 40)) == KEY_LENGTH

    def test_blank_rejected(self):
        with pytest.raises(ValidationError):
            problem_key("?!")


class TestKeywords:
    def test_short_and_stop_words_dropped(self):
        assert extract_keywords("Fix the build with Docker from scratch") == {
            "build",
            "docker",
            "scratch",
        }

    def test_similarity_bounds(self):
        assert similarity(set(), set()) == 0.0
        assert similarity({"a"}, {"a"}) == 1.0
        assert similarity({"a"}, {"b"}) == 0.0

    def test_similarity_symmetric(self):
        a, b = {"docker", "build"}, {"docker", "cache", "layer"}
        assert similarity(a, b) == similarity(b, a) == 0.25


class TestRecall:
    def test_center_div(self, store: SolutionStore):
        store.remember("How do I center a div", "use flexbox")
        matches = store.recall("center a div with flexbox")
        assert matches
        assert matches[0].similarity > 0.5
        assert matches[0].solution == "use flexbox"

    def test_missing_store(self, store: SolutionStore):
        assert store.recall("anything at all") == []

    def test_threshold_is_strict(self, store: SolutionStore):
        store.remember("alpha bravo", "bravo")
        assert store.recall("alpha") == []  # exactly 0.5
        assert store.recall("alpha bravo")[0].similarity == 1.0

    def test_best_first(self, store: SolutionStore):
        store.remember("docker build cache issue", "prune")
        store.remember("docker build cache", "clear")
        matches = store.recall("docker build cache")
        assert [m.solution for m in matches] == ["clear", "prune"]
        assert matches[0].similarity == 0.75
        assert matches[1].similarity == 0.6

    def test_ties_keep_store_order(self, store: SolutionStore):
        store.remember("docker build cache", "purge")
        store.remember("Docker build cache!", "wipe")
        matches = store.recall("docker build cache")
        assert [m.solution for m in matches] == ["purge", "wipe"]


class TestRemember:
    def test_persisted_record(self, store: SolutionStore):
        store.remember("How do I center a div", "use flexbox")
        raw = yaml.safe_load(store.path.read_text())
        assert raw["how_do_i_center_a_div"] == {
            "problem": "How do I center a div",
            "solution": "use flexbox",
            "timestamp": "2026-03-01T09:00:00.000+00:00",
            "times_used": 0,
        }

    def test_empty_solution_rejected(self, store: SolutionStore):
        with pytest.raises(ValidationError):
            store.remember("some problem", "  ")

    def test_colliding_key_overwrites(self, store: SolutionStore, caplog):
        store.remember("Center a div", "first")
        with caplog.at_level(logging.WARNING):
            store.remember("center a div", "second")
        records = store.load()
        assert len(records) == 1
        assert records["center_a_div"].solution == "second"
        assert "collides" in caplog.text

    def test_record_use(self, store: SolutionStore):
        store.remember("center a div", "flexbox")
        store.record_use("center a div")
        assert store.record_use("Center a div").times_used == 2

    def test_record_use_unknown(self, store: SolutionStore):
        with pytest.raises(KeyError):
            store.record_use("never seen")

    def test_corrupt_store_is_not_overwritten(self, store: SolutionStore):
        store.path.write_text("broken: [\n")
        with pytest.raises(ResourceCorruptError):
            store.remember("center a div", "flexbox")
        assert store.path.read_text() == "broken: [\n"

    def test_malformed_record(self, store: SolutionStore):
        store.path.write_text("key:\n  problem: only a problem\n")
        with pytest.raises(ResourceCorruptError):
            store.load()
