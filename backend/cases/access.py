"""
cases.access — How a caller relates to a case.

``case_relationships`` answers "which of complainant / respondent /
witness / panel member is this caller on this case"; the generic guard
in ``core.domain.access`` turns that answer into NOT_FOUND / FORBIDDEN.

``CASE_SCOPE_RULES`` restricts listing querysets the same way: admins see
everything, everybody else sees the cases they are related to.
"""

from __future__ import annotations

from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q, QuerySet

from core.domain.access import Relationship, ScopeRule
from core.domain.identity import CallerIdentity

from .models import Case, MediationPanel


def case_relationships(case: Case, caller: CallerIdentity) -> frozenset[Relationship]:
    """Return every relationship ``caller`` holds on ``case``."""
    held: set[Relationship] = set()
    if caller.is_admin:
        held.add(Relationship.ADMIN)
    if case.complainant_id == caller.id:
        held.add(Relationship.COMPLAINANT)
    if case.respondent_id is not None and case.respondent_id == caller.id:
        held.add(Relationship.RESPONDENT)
    if case.witnesses.filter(user_id=caller.id).exists():
        held.add(Relationship.WITNESS)
    panel = case_panel(case)
    if panel is not None and caller.id in panel.member_ids:
        held.add(Relationship.PANEL_MEMBER)
    return frozenset(held)


def case_panel(case: Case) -> MediationPanel | None:
    try:
        return case.panel
    except ObjectDoesNotExist:
        return None


def involvement_q(user_id: int) -> Q:
    """``Q`` matching every case the user is involved in."""
    return (
        Q(complainant_id=user_id)
        | Q(respondent_id=user_id)
        | Q(witnesses__user_id=user_id)
        | Q(panel__arbiter_id=user_id)
        | Q(panel__religious_advisor_id=user_id)
        | Q(panel__community_advisor_id=user_id)
    )


def _all_cases(caller: CallerIdentity, qs: QuerySet) -> QuerySet:
    return qs


def _involved_cases(caller: CallerIdentity, qs: QuerySet) -> QuerySet:
    return qs.filter(involvement_q(caller.id)).distinct()


CASE_SCOPE_RULES: list[ScopeRule] = [
    (lambda caller: caller.is_admin, _all_cases),
    (lambda caller: True, _involved_cases),
]
