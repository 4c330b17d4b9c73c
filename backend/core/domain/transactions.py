"""
core.domain.transactions — Helpers for safe state transitions.

Provides utilities that wrap ``transaction.atomic`` and
``select_for_update`` into reusable patterns so that every service
follows the same concurrency-safe approach.

Design goals
------------
* State-transition reads always lock the row first
  (``select_for_update``) so two concurrent transitions on the same row
  are serialized: the second one re-reads the committed status and fails
  its precondition instead of overwriting the first.
* Keep the helpers **generic** — they accept any Django model.

Usage::

    from core.domain.transactions import lock_for_update, require_status

    with transaction.atomic():
        case = lock_for_update(Case, case_id)
        require_status(
            case.status,
            allowed_sources={"AWAITING_RESPONSE"},
            target="ACCEPTED",
        )
        ...
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from django.db import models

from core.domain.exceptions import InvalidTransition, NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(
    model_class: type[M],
    pk: Any,
    *,
    queryset: models.QuerySet | None = None,
    message: str | None = None,
) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.
        queryset:    Optional base queryset (e.g. with ``select_related``).
        message:     Optional ``NotFound`` message.

    Raises:
        NotFound: If no row with that PK exists.
    """
    qs = queryset if queryset is not None else model_class.objects.all()
    try:
        return qs.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(message or f"{model_class.__name__} with pk={pk} does not exist.")


def require_status(
    current: str,
    *,
    allowed_sources: Iterable[str],
    target: str,
    reason: str | None = None,
) -> None:
    """
    Raise ``InvalidTransition`` unless ``current`` is an allowed source.

    The message names both the current and the attempted status.
    """
    allowed = {str(s) for s in allowed_sources}
    if str(current) in allowed:
        return
    raise InvalidTransition(
        current=str(current),
        target=str(target),
        reason=reason
        or f"allowed source states: {', '.join(sorted(allowed)) or 'none'}",
    )

