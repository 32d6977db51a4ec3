"""Typed service results.

Services return a :class:`Result` instead of raising for expected business
failures (missing records, forbidden access, illegal transitions). The HTTP
layer converts failed results into exceptions via
:func:`clinic_queue.core.exceptions.unwrap`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kinds of expected service failures."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    MISSING_CLINIC_CONTEXT = "missing_clinic_context"
    CLINIC_ACCESS_DENIED = "clinic_access_denied"
    INSUFFICIENT_ROLE = "insufficient_role"
    INVALID_TRANSITION = "invalid_transition"
    CONFLICT = "conflict"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"

    @property
    def is_forbidden(self) -> bool:
        """Whether this kind belongs to the forbidden family."""
        return self in (
            ErrorKind.MISSING_CLINIC_CONTEXT,
            ErrorKind.CLINIC_ACCESS_DENIED,
            ErrorKind.INSUFFICIENT_ROLE,
        )


@dataclass(frozen=True)
class ServiceError:
    """A failed operation's kind and human readable message."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation: either a value or an error."""

    value: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        """True when the operation succeeded."""
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        """Build a successful result."""
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        """Build a failed result."""
        return cls(error=ServiceError(kind=kind, message=message))

    @classmethod
    def from_error(cls, error: ServiceError) -> "Result[T]":
        """Re-wrap an error from another result."""
        return cls(error=error)
