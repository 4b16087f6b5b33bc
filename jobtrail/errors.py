"""Error taxonomy.

Validation errors are raised to the caller before anything is mutated.
Side-channel failures (notifications, calendar mirroring, reminder
cascades) never propagate: they come back as a failed ``Result`` that the
caller logs and discards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class JobTrailError(Exception):
    """Base class for errors raised by jobtrail."""


class InvalidOperation(JobTrailError, ValueError):
    """The requested operation is not valid for the entity's current state."""


class EntityNotFound(JobTrailError, KeyError):
    """A mutating operation referenced an entity that does not exist."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(kind, entity_id)
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        return f"{self.kind} not found: {self.entity_id}"


class SideEffectError(JobTrailError):
    """A best-effort side channel failed."""

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: SideEffectError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: SideEffectError) -> Result[T]:
        return cls(error=error)
