"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  Service entry points convert them into ``Err`` values
(see ``core.domain.result``); the global DRF exception handler maps them to
HTTP responses when a view unwraps a failed result.

Mapping cheatsheet
------------------
┌─────────────────────┬────────────────┬──────┐
│ Domain Exception    │ ErrorKind      │ Code │
├─────────────────────┼────────────────┼──────┤
│ DomainError         │ VALIDATION     │ 400  │
│ ValidationFailed    │ VALIDATION     │ 400  │
│ PermissionDenied    │ FORBIDDEN      │ 403  │
│ NotFound            │ NOT_FOUND      │ 404  │
│ Conflict            │ CONFLICT       │ 409  │
│ InvalidTransition   │ CONFLICT       │ 409  │
└─────────────────────┴────────────────┴──────┘

Persistence failures (``django.db.DatabaseError``) are *not* part of this
hierarchy.  They are the ``INTERNAL`` kind and always propagate.

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if case.status not in sources:
        raise InvalidTransition(current=case.status, target=target)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed taxonomy of failure outcomes."""

    VALIDATION = "VALIDATION"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)

    @property
    def details(self) -> dict[str, Any]:
        """Structured context for the caller.  Empty by default."""
        return {}


class ValidationFailed(DomainError):
    """
    Malformed or missing input.

    ``errors`` maps every failing field to the list of its messages so the
    caller can correct all of them in one round-trip.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        errors: dict[str, list[str]],
        message: str = "Validation failed.",
    ) -> None:
        super().__init__(message)
        self.errors = {field: list(msgs) for field, msgs in errors.items()}

    @property
    def details(self) -> dict[str, Any]:
        return {"errors": self.errors}

    @classmethod
    def from_serializer_errors(cls, errors: dict[str, Any]) -> ValidationFailed:
        """Flatten DRF ``serializer.errors`` into ``{field: [str, ...]}``."""

        def _messages(value: Any, prefix: str = "") -> list[str]:
            if isinstance(value, dict):
                out: list[str] = []
                for key, inner in value.items():
                    out.extend(_messages(inner, f"{prefix}Entry {key}: "))
                return out
            if isinstance(value, (list, tuple)):
                out = []
                for inner in value:
                    out.extend(_messages(inner, prefix))
                return out
            return [f"{prefix}{value}"]

        return cls({field: _messages(value) for field, value in errors.items()})


class PermissionDenied(DomainError):
    """
    The caller does not hold the relationship or role required for this
    operation.

    Maps to HTTP 403.
    """

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user).

    Maps to HTTP 404.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate creation attempt, lost race on a row lock.
    Maps to HTTP 409.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="PENDING",
            target="WITNESSES_NOMINATED",
            reason="Witnesses can only be nominated on an accepted case.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason

    @property
    def details(self) -> dict[str, Any]:
        return {"current_status": self.current, "attempted_status": self.target}
