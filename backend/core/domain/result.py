"""
core.domain.result — Tagged result values for expected outcomes.

Service entry points return ``Ok(value)`` on success and ``Err(...)`` for
every *expected* failure (validation, authorization, state conflicts,
missing resources).  Unexpected failures, persistence errors included,
are never wrapped: they propagate so the surrounding atomic block rolls
back.

Usage::

    from core.domain.result import returns_result

    class CaseWorkflowService:
        @returns_result
        def resolve_case(self, case_id, caller):
            ...
            return case            # wrapped as Ok(case)

    result = engine.resolve_case(case_id, caller)
    if result.is_ok:
        case = result.value
    else:
        log(result.kind, result.message)

    # At an HTTP boundary, re-raise for the DRF exception handler:
    case = engine.resolve_case(case_id, caller).unwrap()
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar, Union

from core.domain.exceptions import (
    Conflict,
    DomainError,
    ErrorKind,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful outcome carrying ``value``."""

    value: T

    is_ok = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """An expected failure: a kind, a human message and structured details."""

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    exception: DomainError | None = field(default=None, compare=False, repr=False)

    is_ok = False

    @classmethod
    def from_exception(cls, exc: DomainError) -> Err:
        return cls(kind=exc.kind, message=exc.message, details=exc.details, exception=exc)

    def unwrap(self) -> Any:
        """Re-raise the failure as its domain exception."""
        raise self.to_exception()

    def to_exception(self) -> DomainError:
        if self.exception is not None:
            return self.exception
        if self.kind is ErrorKind.VALIDATION:
            return ValidationFailed(self.details.get("errors", {}), self.message)
        if self.kind is ErrorKind.FORBIDDEN:
            return PermissionDenied(self.message)
        if self.kind is ErrorKind.NOT_FOUND:
            return NotFound(self.message)
        if self.kind is ErrorKind.CONFLICT:
            return Conflict(self.message)
        return DomainError(self.message)


Result = Union[Ok[T], Err]


def returns_result(fn: Callable[..., T]) -> Callable[..., Result[T]]:
    """
    Wrap ``fn`` so its return value becomes ``Ok`` and any ``DomainError``
    becomes ``Err``.  Other exceptions pass through untouched.
    """

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Result[T]:
        try:
            return Ok(fn(*args, **kwargs))
        except DomainError as exc:
            return Err.from_exception(exc)

    return wrapper
