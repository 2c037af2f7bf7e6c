"""Exception hierarchy for the brain.

All codebrain-specific exceptions inherit from BrainError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class BrainError(Exception):
    """Base exception for all codebrain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(BrainError):
    """Raised when brain.toml or an environment override is invalid."""


# Resource errors


class ResourceMissingError(BrainError):
    """Raised when a backing file does not exist."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message, {"path": str(path)} if path else None)
        self.path = path


class ResourceCorruptError(BrainError):
    """Raised when a file exists but cannot be parsed into the expected shape.

    Never swallowed: saving over a corrupt file would destroy user data.
    """

    def __init__(self, message: str, path: Path | None = None, reason: str | None = None) -> None:
        details: dict[str, Any] = {}
        if path:
            details["path"] = str(path)
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.path = path
        self.reason = reason


class ContextMissingError(ResourceMissingError):
    """Raised when context.yaml is absent (project not initialized)."""


class ContextCorruptError(ResourceCorruptError):
    """Raised when context.yaml is unreadable or lacks required sections."""


class StorageError(BrainError):
    """Raised when writing a resource fails."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message, {"path": str(path)} if path else None)
        self.path = path


class ValidationError(BrainError):
    """Raised when a value is rejected before it reaches disk."""


# Lifecycle errors


class BrainNotInitializedError(BrainError):
    """Raised when an engine operation runs before initialize()."""


class AlreadyInitializedError(BrainError):
    """Raised by scaffolding when the brain directory already exists."""
