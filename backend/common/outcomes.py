from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CANCELLED = "CANCELLED"


class StorageFailure(Exception):
    """Unexpected storage-engine failure. The only hard failure the stores raise."""


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a store / coordinator call.

    Exactly one of `value` (success) or `error` is meaningful. `version` is the
    token of the entity after a write; on VERSION_CONFLICT it is the current
    stored version the caller should retry against.
    """
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    version: Optional[str] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None, version: Optional[str] = None) -> "Outcome":
        return cls(value=value, version=version)

    @classmethod
    def failure(cls, error: ErrorKind, message: str = "", version: Optional[str] = None) -> "Outcome":
        return cls(error=error, message=message, version=version)

    def with_warning(self, warning: str) -> "Outcome":
        return replace(self, warnings=self.warnings + (warning,))


def not_found(entity: str) -> Outcome:
    return Outcome.failure(ErrorKind.NOT_FOUND, f"{entity} not found")


def version_conflict(entity: str, current_version: Optional[str]) -> Outcome:
    return Outcome.failure(
        ErrorKind.VERSION_CONFLICT,
        f"{entity} has been modified by another user",
        version=current_version,
    )
