"""Tests for the context document and its store."""

from __future__ import annotations

import pytest
import yaml
from pathlib import Path

from codebrain.errors import (
    ContextCorruptError,
    ContextMissingError,
    ResourceMissingError,
    ValidationError,
)
from codebrain.memory.context import (
    ContextDocument,
    ContextStore,
    apply_patch,
    deep_merge,
    default_context,
)


@pytest.fixture
def store(tmp_path: Path) -> ContextStore:
    return ContextStore(tmp_path / "context.yaml")


class TestDeepMerge:
    def test_empty_patch_is_identity(self):
        target = {"a": {"b": 1}, "c": [1, 2]}
        assert deep_merge(target, {}) == target

    def test_idempotent(self):
        target = {"a": {"b": 1, "c": 2}}
        patch = {"a": {"c": 3, "d": {"e": 4}}}
        once = deep_merge(target, patch)
        assert deep_merge(once, patch) == once

    def test_nested_mappings_merge(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})
        assert merged == {"a": {"b": 1, "c": 3}}

    def test_lists_replaced(self):
        merged = deep_merge({"tags": [1, 2, 3]}, {"tags": [4]})
        assert merged == {"tags": [4]}

    def test_scalar_replaces_mapping(self):
        assert deep_merge({"a": {"b": 1}}, {"a": None}) == {"a": None}

    def test_inputs_untouched(self):
        target = {"a": {"b": 1}}
        patch = {"a": {"c": [1]}}
        merged = deep_merge(target, patch)
        merged["a"]["c"].append(2)
        assert target == {"a": {"b": 1}}
        assert patch == {"a": {"c": [1]}}


class TestContextDocument:
    def test_default_context_has_required_sections(self):
        data = default_context("demo", "2026-03-01").to_dict()
        assert data["project"]["name"] == "demo"
        assert data["brain_meta"] == {"last_active": None, "last_checkpoint": None}
        assert data["current_state"] == {"working_on": None}
        assert data["tech_stack"] == {"decided": {}}

    def test_missing_section_raises(self):
        data = default_context("demo", "2026-03-01").to_dict()
        del data["current_state"]
        with pytest.raises(ValueError, match="current_state"):
            ContextDocument.from_dict(data)

    def test_repair_fills_section(self):
        data = default_context("demo", "2026-03-01").to_dict()
        del data["brain_meta"]
        doc = ContextDocument.from_dict(data, repair=True)
        assert doc.brain_meta.last_active is None

    def test_unknown_keys_kept(self):
        data = default_context("demo", "2026-03-01").to_dict()
        data["team"] = {"lead": "sam"}
        assert ContextDocument.from_dict(data).to_dict()["team"] == {"lead": "sam"}

    def test_apply_patch(self):
        doc = default_context("demo", "2026-03-01")
        patched = apply_patch(doc, {"current_state": {"working_on": "auth"}})
        assert patched.working_on == "auth"
        assert doc.working_on is None

    def test_apply_patch_rejects_bad_shape(self):
        doc = default_context("demo", "2026-03-01")
        with pytest.raises(ValidationError):
            apply_patch(doc, {"current_state": "busy"})


class TestContextStore:
    def test_missing(self, store: ContextStore):
        with pytest.raises(ContextMissingError) as exc_info:
            store.load()
        assert isinstance(exc_info.value, ResourceMissingError)
        assert exc_info.value.path == store.path

    def test_round_trip(self, store: ContextStore):
        doc = default_context("demo", "2026-03-01")
        doc.tech_stack["decided"] = {"database": "postgres"}
        store.save(doc)
        loaded = store.load()
        assert loaded.to_dict() == doc.to_dict()
        assert loaded.decided_stack == {"database": "postgres"}

    def test_invalid_yaml(self, store: ContextStore):
        store.path.write_text("project: [unclosed\n")
        with pytest.raises(ContextCorruptError):
            store.load()

    def test_not_a_mapping(self, store: ContextStore):
        store.path.write_text("- just\n- a list\n")
        with pytest.raises(ContextCorruptError):
            store.load()

    def test_missing_current_state(self, store: ContextStore):
        store.path.write_text("project:\n  name: demo\nbrain_meta: {}\n")
        with pytest.raises(ContextCorruptError) as exc_info:
            store.load()
        assert "current_state" in exc_info.value.reason

    def test_missing_current_state_repaired(self, store: ContextStore):
        store.path.write_text("project:\n  name: demo\nbrain_meta: {}\n")
        doc = store.load(repair=True)
        assert doc.current_state == {}

    def test_unquoted_dates_come_back_as_text(self, store: ContextStore):
        store.path.write_text(
            "project:\n  name: demo\n  started: 2026-03-01\n"
            "brain_meta:\n  last_active: 2026-03-01 09:00:00\n"
            "current_state: {}\n"
        )
        doc = store.load()
        assert doc.project.started == "2026-03-01"
        assert isinstance(doc.brain_meta.last_active, str)
        # saving must not turn them back into YAML timestamps
        store.save(doc)
        raw = yaml.safe_load(store.path.read_text())
        assert raw["project"]["started"] == "2026-03-01"

    def test_nested_unknown_keys_survive_patch(self, store: ContextStore):
        doc = apply_patch(
            default_context("demo", "2026-03-01"),
            {"project": {"repo": "gh/x"}, "brain_meta": {"owner": "sam"}},
        )
        store.save(doc)
        raw = yaml.safe_load(store.path.read_text())
        assert raw["project"]["repo"] == "gh/x"
        assert raw["brain_meta"]["owner"] == "sam"
        loaded = store.load()
        assert loaded.project.extra == {"repo": "gh/x"}
        assert loaded.brain_meta.extra == {"owner": "sam"}

    def test_hand_edited_nested_key_kept_on_save(self, store: ContextStore):
        store.path.write_text(
            "project:\n  name: demo\n  description: shop front\n"
            "brain_meta: {}\ncurrent_state: {}\n"
        )
        doc = store.load()
        doc.brain_meta.last_checkpoint = "2026-03-01T09:00:00.000+00:00"
        store.save(doc)
        raw = yaml.safe_load(store.path.read_text())
        assert raw["project"]["description"] == "shop front"

    def test_save_leaves_no_temp_files(self, store: ContextStore):
        store.save(default_context("demo", "2026-03-01"))
        store.save(default_context("demo", "2026-03-02"))
        assert [p.name for p in store.path.parent.iterdir()] == ["context.yaml"]
