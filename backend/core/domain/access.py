"""
core.domain.access — Relationship-based authorization and queryset scoping.

This module provides the shared guards each app's service layer calls
before touching a resource.

╔══════════════════════════════════════════════════════════════════╗
║  IMPORTANT — Per-resource relationship resolution does NOT     ║
║  live here.  Each app decides how a caller relates to its      ║
║  aggregate (see ``cases.access``).  This module provides:      ║
║    1) ``Relationship`` — the closed set of caller relations.   ║
║    2) ``require_relationship`` — the visibility/role guard.    ║
║    3) ``apply_scope`` — ordered queryset scope dispatch.       ║
║    4) ``require_permission`` — guard that checks has_perm.     ║
╚══════════════════════════════════════════════════════════════════╝

Guard semantics
---------------
* An **admin** caller passes every relationship check (global capability).
* A caller holding **no** relationship to the resource gets ``NotFound``:
  the resource's existence is not revealed.
* A caller holding *some* relationship, but none of the required ones,
  gets ``PermissionDenied``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable

from django.db.models import QuerySet

from core.domain.exceptions import NotFound, PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User
    from core.domain.identity import CallerIdentity


class Relationship(str, Enum):
    COMPLAINANT = "complainant"
    RESPONDENT = "respondent"
    WITNESS = "witness"
    PANEL_MEMBER = "panel_member"
    ADMIN = "admin"


#: Every relationship that grants read visibility into a case.
ANY_PARTY: frozenset[Relationship] = frozenset(Relationship)

# (caller, queryset) -> filtered queryset
ScopeFilter = Callable[["CallerIdentity", QuerySet], QuerySet]

# A scope rule applies ``filter_fn`` when ``predicate(caller)`` is true.
ScopeRule = tuple[Callable[["CallerIdentity"], bool], ScopeFilter]


def require_relationship(
    caller: CallerIdentity,
    held: Iterable[Relationship],
    required: Iterable[Relationship],
    *,
    resource: str = "resource",
    message: str = "",
) -> None:
    """
    Raise unless the caller holds at least one ``required`` relationship.

    Args:
        caller:   The identity performing the operation.
        held:     Relationships the caller holds against the resource.
        required: Relationships that allow the operation (OR-logic).
        resource: Noun used in the ``NotFound`` message.
        message:  Optional custom ``PermissionDenied`` message.

    Raises:
        NotFound:         The caller has no relationship at all.
        PermissionDenied: The caller is related but not in a required way.
    """
    if caller.is_admin:
        return

    held = frozenset(held)
    if not held:
        raise NotFound(f"{resource.capitalize()} not found or you do not have access to it.")

    required = frozenset(required)
    if held & required:
        return

    raise PermissionDenied(
        message
        or "This action requires one of: "
        + ", ".join(sorted(r.value for r in required))
        + "."
    )


def apply_scope(
    queryset: QuerySet,
    caller: CallerIdentity,
    *,
    scope_rules: list[ScopeRule],
    default: str = "none",
) -> QuerySet:
    """
    Apply the first matching scope rule.

    Rules are checked **in order** — first predicate match wins.  Order
    rules from broadest (unrestricted) to narrowest.

    Args:
        queryset:     Base (unfiltered) queryset.
        caller:       The calling identity.
        scope_rules:  Ordered list of ``(predicate, filter_fn)`` tuples.
        default:      ``"none"`` → empty queryset, ``"all"`` → unfiltered,
                      when no rule matches.
    """
    for predicate, filter_fn in scope_rules:
        if predicate(caller):
            return filter_fn(caller, queryset)

    if default == "none":
        return queryset.none()
    return queryset


def require_permission(user: User, *perms: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user lacks **all** of
    the given permissions (OR-logic: having any one is sufficient).

    Example::

        require_permission(user, "accounts.can_manage_users")
    """
    for perm in perms:
        if user.has_perm(perm):
            return
    raise PermissionDenied(
        message or f"Missing required permission: {', '.join(perms)}."
    )
