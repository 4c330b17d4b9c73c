"""
cases.repository — Persistence handle for the case aggregate.

``CaseWorkflowService`` receives a ``CaseRepository`` at construction
time and performs every read and write through it.  All methods assume
the caller already opened ``transaction.atomic()`` where atomicity
matters.
"""

from __future__ import annotations

from typing import Any, Iterable

from django.db.models import QuerySet

from core.domain.exceptions import NotFound
from core.domain.transactions import lock_for_update

from .access import case_panel
from .models import Case, CaseHistory, CaseStatus, MediationPanel, Witness

CASE_NOT_FOUND = "Case not found or you do not have access to it."


class CaseRepository:
    """ORM-backed storage for cases, their history, witnesses and panels."""

    # ── Cases ───────────────────────────────────────────────────────

    def queryset(self) -> QuerySet:
        return Case.objects.select_related("complainant", "respondent")

    def get(self, case_id: int) -> Case:
        try:
            return self.queryset().get(pk=case_id)
        except (Case.DoesNotExist, ValueError, TypeError):
            raise NotFound(CASE_NOT_FOUND)

    def lock(self, case_id: int) -> Case:
        """Row-lock the case for the rest of the current transaction."""
        try:
            return lock_for_update(Case, case_id, message=CASE_NOT_FOUND)
        except (ValueError, TypeError):
            raise NotFound(CASE_NOT_FOUND)

    def case_number_exists(self, case_number: str) -> bool:
        return Case.objects.filter(case_number=case_number).exists()

    def create_case(self, **fields: Any) -> Case:
        return Case.objects.create(**fields)

    def save(self, case: Case, fields: Iterable[str]) -> Case:
        case.save(update_fields=[*fields, "updated_at"])
        return case

    def pending_for_email(self, email: str) -> QuerySet:
        """Unlinked ``PENDING`` cases naming ``email`` as the opposite party."""
        return Case.objects.filter(
            status=CaseStatus.PENDING,
            respondent__isnull=True,
            opposite_party_email__iexact=email,
        ).order_by("created_at", "id")

    # ── History ─────────────────────────────────────────────────────

    def append_history(
        self,
        case: Case,
        *,
        action: str,
        description: str,
        performed_by_id: int | None,
        previous_status: str | None,
        new_status: str,
        metadata: dict[str, Any] | None = None,
    ) -> CaseHistory:
        meta = {
            "previous_status": previous_status,
            "new_status": str(new_status),
        }
        meta.update(metadata or {})
        return CaseHistory.objects.create(
            case=case,
            action=action,
            description=description,
            performed_by_id=performed_by_id,
            previous_status=previous_status or "",
            new_status=new_status,
            metadata=meta,
        )

    def history(self, case: Case) -> list[CaseHistory]:
        return list(
            CaseHistory.objects.filter(case=case)
            .select_related("performed_by")
            .order_by("created_at", "id")
        )

    # ── Witnesses ───────────────────────────────────────────────────

    def witness_user_ids(self, case: Case) -> set[int]:
        return set(Witness.objects.filter(case=case).values_list("user_id", flat=True))

    def add_witnesses(self, case: Case, users: Iterable[Any], nominated_by_id: int) -> list[Witness]:
        return [
            Witness.objects.create(
                case=case,
                user=user,
                nominated_by_id=nominated_by_id,
                name=user.get_full_name() or user.username,
                email=user.email,
                phone=getattr(user, "phone_number", "") or "",
            )
            for user in users
        ]

    def witness_for(self, case: Case, user_id: int) -> Witness | None:
        return Witness.objects.filter(case=case, user_id=user_id).first()

    def witnesses(self, case: Case) -> list[Witness]:
        return list(Witness.objects.filter(case=case).select_related("user"))

    # ── Panel ───────────────────────────────────────────────────────

    def panel(self, case: Case) -> MediationPanel | None:
        return case_panel(case)

    def create_panel(
        self,
        case: Case,
        *,
        arbiter_id: int,
        religious_advisor_id: int | None,
        community_advisor_id: int | None,
        created_by_id: int,
    ) -> MediationPanel:
        return MediationPanel.objects.create(
            case=case,
            arbiter_id=arbiter_id,
            religious_advisor_id=religious_advisor_id,
            community_advisor_id=community_advisor_id,
            created_by_id=created_by_id,
        )
