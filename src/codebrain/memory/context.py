"""Project context document (context.yaml).

Fixed fields (project, brain_meta) are typed; free-form sections stay plain
mappings. Unknown top-level keys are carried through untouched.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codebrain.errors import (
    ContextCorruptError,
    ContextMissingError,
    ResourceCorruptError,
    ValidationError,
)
from codebrain.storage import dump_yaml, load_yaml
from codebrain.timestamps import as_text

logger = logging.getLogger(__name__)

BRAIN_VERSION = "0.1.0"

_FREEFORM_SECTIONS = (
    "current_state",
    "tech_stack",
    "configuration",
    "patterns_learned",
    "user_preferences",
)
_REQUIRED_SECTIONS = ("brain_meta", "current_state")

DEFAULT_CONFIGURATION = {
    "explanation_level": "medium",
    "auto_checkpoint": True,
    "vendor_sync_interval": "daily",
}


def deep_merge(target: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return target with patch merged in. Neither input is modified.

    Mappings on both sides merge recursively; every other patch value,
    lists included, replaces the target value wholesale.
    """
    merged = copy.deepcopy(dict(target))
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _normalise(value: Any) -> Any:
    """Turn PyYAML date/datetime scalars back into ISO strings, recursively."""
    if isinstance(value, Mapping):
        return {k: _normalise(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalise(v) for v in value]
    return as_text(value)


def _unknown(data: Mapping[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    """Keys a typed section does not model, kept so saving never drops them."""
    return {k: copy.deepcopy(v) for k, v in data.items() if k not in known}


@dataclass
class ProjectInfo:
    name: str = ""
    type: str = "application"
    phase: str = "initial-development"
    started: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("name", "type", "phase", "started")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProjectInfo:
        return cls(
            name=str(data.get("name") or ""),
            type=str(data.get("type") or "application"),
            phase=str(data.get("phase") or "initial-development"),
            started=data.get("started"),
            extra=_unknown(data, cls._KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {"name": self.name, "type": self.type, "phase": self.phase, "started": self.started}
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass
class BrainMeta:
    last_active: str | None = None
    last_checkpoint: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("last_active", "last_checkpoint")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BrainMeta:
        return cls(
            last_active=data.get("last_active"),
            last_checkpoint=data.get("last_checkpoint"),
            extra=_unknown(data, cls._KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {"last_active": self.last_active, "last_checkpoint": self.last_checkpoint}
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass
class ContextDocument:
    """The single structured record of project metadata, phase and preferences."""

    project: ProjectInfo = field(default_factory=ProjectInfo)
    brain_version: str = BRAIN_VERSION
    brain_meta: BrainMeta = field(default_factory=BrainMeta)
    current_state: dict[str, Any] = field(default_factory=dict)
    tech_stack: dict[str, Any] = field(default_factory=dict)
    configuration: dict[str, Any] = field(default_factory=dict)
    patterns_learned: dict[str, Any] = field(default_factory=dict)
    user_preferences: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def working_on(self) -> str | None:
        return self.current_state.get("working_on")

    @property
    def decided_stack(self) -> dict[str, Any]:
        decided = self.tech_stack.get("decided")
        return decided if isinstance(decided, dict) else {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, repair: bool = False) -> ContextDocument:
        """Build a document, enforcing the shape of every known section.

        Raises ValueError naming the first malformed or missing section; the
        caller decides which error that becomes.
        """
        data = _normalise(data)
        for section in _REQUIRED_SECTIONS:
            if data.get(section) is None:
                if not repair:
                    raise ValueError(f"missing required section '{section}'")
                logger.warning("Context lacks '%s', filling an empty default", section)
                data[section] = {}

        for section in ("project", "brain_meta", *_FREEFORM_SECTIONS):
            value = data.get(section)
            if value is not None and not isinstance(value, Mapping):
                raise ValueError(f"section '{section}' must be a mapping, got {type(value).__name__}")

        known = {"project", "brain_version", "brain_meta", *_FREEFORM_SECTIONS}
        return cls(
            project=ProjectInfo.from_dict(data.get("project") or {}),
            brain_version=str(data.get("brain_version") or BRAIN_VERSION),
            brain_meta=BrainMeta.from_dict(data["brain_meta"]),
            current_state=dict(data["current_state"]),
            tech_stack=dict(data.get("tech_stack") or {}),
            configuration=dict(data.get("configuration") or {}),
            patterns_learned=dict(data.get("patterns_learned") or {}),
            user_preferences=dict(data.get("user_preferences") or {}),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "project": self.project.to_dict(),
            "brain_version": self.brain_version,
            "brain_meta": self.brain_meta.to_dict(),
            "current_state": copy.deepcopy(self.current_state),
            "tech_stack": copy.deepcopy(self.tech_stack),
            "configuration": copy.deepcopy(self.configuration),
            "patterns_learned": copy.deepcopy(self.patterns_learned),
            "user_preferences": copy.deepcopy(self.user_preferences),
        }
        data.update(copy.deepcopy(self.extra))
        return data


def default_context(project_name: str, started: str) -> ContextDocument:
    """Initial skeleton written by scaffolding."""
    return ContextDocument(
        project=ProjectInfo(name=project_name, started=started),
        brain_meta=BrainMeta(),
        current_state={"working_on": None},
        tech_stack={"decided": {}},
        configuration=dict(DEFAULT_CONFIGURATION),
    )


def apply_patch(doc: ContextDocument, patch: Mapping[str, Any]) -> ContextDocument:
    """Deep-merge patch into doc and re-validate the result."""
    merged = deep_merge(doc.to_dict(), patch)
    try:
        return ContextDocument.from_dict(merged)
    except ValueError as e:
        raise ValidationError(f"Context update rejected: {e}", {"patch_keys": list(patch)}) from e


class ContextStore:
    """Repository for context.yaml."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self, *, repair: bool = False) -> ContextDocument:
        try:
            data = load_yaml(self.path)
        except ResourceCorruptError as e:
            raise ContextCorruptError(e.message, self.path, e.reason) from e
        if data is None and not self.path.exists():
            raise ContextMissingError(
                "Brain context not found. Run `codebrain init` first.", self.path
            )
        if not isinstance(data, Mapping):
            raise ContextCorruptError(
                "context.yaml must contain a mapping", self.path, f"got {type(data).__name__}"
            )
        try:
            doc = ContextDocument.from_dict(data, repair=repair)
        except ValueError as e:
            raise ContextCorruptError("context.yaml is malformed", self.path, str(e)) from e
        logger.debug("Loaded context for project %r", doc.project.name)
        return doc

    def save(self, doc: ContextDocument) -> None:
        dump_yaml(self.path, doc.to_dict())
