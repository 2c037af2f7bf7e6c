"""File helpers shared by every repository.

Writes are synchronous and complete before returning: full rewrites go
through a temp file + rename, appends are flushed and fsynced.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from codebrain.errors import ResourceCorruptError, StorageError

logger = logging.getLogger(__name__)


def read_text(path: Path) -> str | None:
    """Return file content, or None when the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def atomic_write_text(path: Path, content: str) -> None:
    """Replace path with content; readers never see a partial file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise StorageError(f"Failed to write {path.name}: {e}", path) from e


def append_text(path: Path, content: str) -> None:
    """Append content to path and fsync before returning."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise StorageError(f"Failed to append to {path.name}: {e}", path) from e


def load_yaml(path: Path) -> Any | None:
    """Parse a YAML file. Missing → None; unparseable → ResourceCorruptError."""
    try:
        content = read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceCorruptError(f"Cannot read {path.name}", path, str(e)) from e
    if content is None:
        return None
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ResourceCorruptError(f"Invalid YAML in {path.name}", path, str(e)) from e


def load_yaml_mapping(path: Path) -> dict | None:
    """Like load_yaml, but the document must be a mapping (empty file → {})."""
    data = load_yaml(path)
    if data is None:
        return None if not path.exists() else {}
    if not isinstance(data, dict):
        raise ResourceCorruptError(
            f"Expected a mapping in {path.name}", path, f"got {type(data).__name__}"
        )
    return data


def dump_yaml(path: Path, data: Any) -> None:
    """Serialize data as YAML (key order preserved) and write atomically."""
    text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    atomic_write_text(path, text)
    logger.debug("Wrote %s (%d bytes)", path, len(text))
