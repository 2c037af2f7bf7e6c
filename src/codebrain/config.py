"""Configuration loading from environment variables and brain.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from codebrain.errors import ConfigError

_CONFIG_FILENAME = "brain.toml"
_DEFAULT_ROOT = Path(".claude")

# Layout under the brain root
MEMORY_DIR = "memory"
PATTERNS_DIR = "patterns"
VENDOR_SPECS_DIR = "vendor-specs"

CONTEXT_FILE = "context.yaml"
CHANGELOG_FILE = "changelog.md"
TODOS_FILE = "todos.md"
DECISIONS_FILE = "decisions.log"
SOLUTIONS_FILE = "solutions.yaml"
PATTERNS_FILE = "code-style.yaml"
MANIFEST_FILE = "manifest.yaml"


@dataclass
class MemoryConfig:
    """Recall and context loading options."""

    similarity_threshold: float = 0.5
    repair_context: bool = False


@dataclass
class VendorConfig:
    """Vendor spec staleness options."""

    staleness_hours: float = 24.0
    package_json: Path = Path("package.json")


@dataclass
class BrainConfig:
    """Top-level configuration."""

    root_dir: Path = _DEFAULT_ROOT
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    vendor: VendorConfig = field(default_factory=VendorConfig)
    log_level: str = "INFO"

    @property
    def memory_dir(self) -> Path:
        return self.root_dir / MEMORY_DIR

    @property
    def patterns_dir(self) -> Path:
        return self.root_dir / PATTERNS_DIR

    @property
    def specs_dir(self) -> Path:
        return self.root_dir / VENDOR_SPECS_DIR


def _number(name: str, raw: object) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number", {"value": raw}) from None


def parse_flag(raw: object) -> bool:
    """Truthiness that reads "false"/"no"/"0" strings as False."""
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)


def load_config(config_path: Path | None = None) -> BrainConfig:
    """Load configuration from environment variables and optional brain.toml.

    Priority: environment variables > brain.toml > defaults.
    """
    file_data: dict = {}
    candidates = (
        [config_path]
        if config_path
        else [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".codebrain" / _CONFIG_FILENAME]
    )
    for candidate in candidates:
        if candidate.exists():
            try:
                file_data = tomllib.loads(candidate.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid {candidate.name}", {"reason": str(e)}) from e
            break

    memory_data = file_data.get("memory", {})
    vendor_data = file_data.get("vendor", {})

    threshold = _number(
        "similarity_threshold",
        os.getenv("BRAIN_SIMILARITY_THRESHOLD", memory_data.get("similarity_threshold", 0.5)),
    )
    if not 0.0 <= threshold < 1.0:
        raise ConfigError("similarity_threshold must be in [0, 1)", {"value": threshold})
    staleness = _number(
        "staleness_hours",
        os.getenv("BRAIN_STALENESS_HOURS", vendor_data.get("staleness_hours", 24)),
    )
    if staleness <= 0:
        raise ConfigError("staleness_hours must be positive", {"value": staleness})

    config = BrainConfig(
        root_dir=Path(os.getenv("BRAIN_ROOT", file_data.get("root_dir", str(_DEFAULT_ROOT)))),
        memory=MemoryConfig(
            similarity_threshold=threshold,
            repair_context=parse_flag(memory_data.get("repair_context", False)),
        ),
        vendor=VendorConfig(
            staleness_hours=staleness,
            package_json=Path(vendor_data.get("package_json", "package.json")),
        ),
        log_level=os.getenv("BRAIN_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
