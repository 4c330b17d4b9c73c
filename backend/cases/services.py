"""
Cases app Service Layer.

This module is the **single source of truth** for all business logic
in the ``cases`` app.  Views must remain thin: validate input via
serializers, call a service method, and unwrap the returned ``Result``.

Architecture
------------
- ``CaseWorkflowService``  — State-machine transitions plus the
  bookkeeping actions (evidence, witness statements).  Collaborators
  (repository, user directory, blob store, notifier) are injected.
- ``CaseQueryService``     — Scoped, filtered listing and the admin
  dashboard statistics.

Every public method returns ``Ok(value)`` or ``Err(kind, message,
details)``; persistence failures propagate instead.

Workflow State-Machine Overview
--------------------------------
  PENDING
    → AWAITING_RESPONSE       (respondent linked: admin or on sign-up)
  AWAITING_RESPONSE
    → ACCEPTED                (respondent accepts)
    → UNRESOLVED              (respondent declines)
  ACCEPTED
    → WITNESSES_NOMINATED     (complainant / respondent nominate)
  ACCEPTED | WITNESSES_NOMINATED
    → PANEL_CREATED           (admin assembles mediation panel)
  PANEL_CREATED
    → MEDIATION_IN_PROGRESS   (admin)
  MEDIATION_IN_PROGRESS
    → RESOLVED                (admin)
  any non-terminal
    → UNRESOLVED              (admin)
    → CANCELLED               (admin; complainant before ACCEPTED)
  any
    → any                     (admin override)

Each transition runs as one unit of work:

1. ``select_for_update`` on the case row.
2. Relationship guard, then status precondition.
3. Status write + exactly one ``CaseHistory`` entry.
4. One ``Notification`` per recipient (``cases.workflow``).
5. Best-effort push, queued with ``transaction.on_commit``.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Callable, Iterable

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, QuerySet
from django.utils import timezone

from core.domain.access import ANY_PARTY, Relationship, apply_scope, require_relationship
from core.domain.exceptions import Conflict, PermissionDenied, ValidationFailed
from core.domain.identity import CallerIdentity
from core.domain.notifications import NotificationService
from core.domain.push import Notifier, get_notifier, publish_on_commit
from core.domain.result import returns_result
from core.domain.transactions import require_status

from .access import CASE_SCOPE_RULES, case_relationships
from .directory import UserDirectory
from .models import (
    AuditAction,
    Case,
    CaseCategory,
    CaseHistory,
    CasePriority,
    CaseStatus,
    Evidence,
    MediationPanel,
    Witness,
)
from .repository import CaseRepository
from .storage import BlobStore
from .validation import (
    REASON_LENGTH,
    RESPONSE_LENGTH,
    STATEMENT_LENGTH,
    validate_case_draft,
    validate_optional_text,
    validate_witness_emails,
)
from .workflow import (
    COMPLAINANT_CANCELLABLE,
    TERMINAL,
    TRANSITIONS,
    Parties,
    WorkflowEvent,
    initial_status,
    notification_recipients,
)

logger = logging.getLogger(__name__)

_CASE_NUMBER_ATTEMPTS = 10


def _status_label(status: str) -> str:
    return CaseStatus(status).label


def _constant(event_type: str) -> Callable[[int], str]:
    return lambda _uid: event_type


# ═══════════════════════════════════════════════════════════════════
#  Case Workflow Service
# ═══════════════════════════════════════════════════════════════════


class CaseWorkflowService:
    """
    Executes every case operation against an injected persistence handle.

    Parameters
    ----------
    repository : CaseRepository
        Reads and writes cases, history, witnesses and panels.
    notifier : Notifier
        Real-time push capability.  Publishing never fails an operation.
    directory : UserDirectory
        Resolves e-mails and ids to registered users.
    blob_store : BlobStore
        Validates and stores evidence files.
    """

    def __init__(
        self,
        repository: CaseRepository | None = None,
        notifier: Notifier | None = None,
        directory: UserDirectory | None = None,
        blob_store: BlobStore | None = None,
    ) -> None:
        self.repository = repository or CaseRepository()
        self.notifier = notifier or get_notifier()
        self.directory = directory or UserDirectory()
        self.blob_store = blob_store or BlobStore()

    @classmethod
    def default(cls) -> CaseWorkflowService:
        """Build the service with the collaborators configured in settings."""
        return cls()

    # ────────────────────────────────────────────────────────────────
    #  Internal helpers
    # ────────────────────────────────────────────────────────────────

    def _authorize(
        self,
        case: Case,
        caller: CallerIdentity,
        required: Iterable[Relationship],
        message: str = "",
    ) -> frozenset[Relationship]:
        held = case_relationships(case, caller)
        require_relationship(caller, held, required, resource="case", message=message)
        return held

    def _fan_out(
        self,
        case: Case,
        actor_id: int | None,
        recipients: list[int],
        template_for: Callable[[int], str],
        context: dict[str, Any] | None = None,
    ) -> int:
        """
        Create one notification per recipient and queue their pushes.

        ``template_for`` picks the event template per recipient so that,
        for example, the complainant and respondent read different text
        for the same transition.
        """
        by_template: dict[str, list[int]] = {}
        for uid in recipients:
            by_template.setdefault(template_for(uid), []).append(uid)

        created = []
        for event_type, ids in by_template.items():
            created.extend(
                NotificationService.create(
                    actor=actor_id,
                    recipients=ids,
                    event_type=event_type,
                    case=case,
                    context=context,
                )
            )
        publish_on_commit(self.notifier, NotificationService.push_events(created))
        return len(created)

    def _apply(
        self,
        case: Case,
        caller_id: int | None,
        *,
        event: WorkflowEvent,
        target: str,
        action: str,
        description: str,
        extra_fields: Iterable[str] = (),
        metadata: dict[str, Any] | None = None,
        template_for: Callable[[int], str] | str = "case_status_changed",
        new_witness_ids: Iterable[int] = (),
        panel_member_ids: Iterable[int] = (),
        context: dict[str, Any] | None = None,
    ) -> CaseHistory:
        """
        Persist ``target``, append the audit entry and fan out.

        Must run inside the caller's ``transaction.atomic()`` block, after
        every precondition has passed.
        """
        previous = case.status
        case.status = target
        self.repository.save(case, ["status", *extra_fields])

        entry = self.repository.append_history(
            case,
            action=action,
            description=description,
            performed_by_id=caller_id,
            previous_status=previous,
            new_status=target,
            metadata=metadata,
        )

        recipients = notification_recipients(
            event,
            Parties(case.complainant_id, case.respondent_id),
            new_witness_ids=list(new_witness_ids),
            panel_member_ids=list(panel_member_ids),
        )
        if isinstance(template_for, str):
            template_for = _constant(template_for)

        ctx = {"status": target, "status_label": _status_label(target)}
        ctx.update(context or {})
        self._fan_out(case, caller_id, recipients, template_for, ctx)

        logger.info(
            "Case %s: %s %s → %s by user=%s",
            case.case_number, event.value, previous, target, caller_id,
        )
        return entry

    def _record(
        self,
        case: Case,
        caller_id: int,
        *,
        event: WorkflowEvent,
        action: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> CaseHistory:
        """Append a bookkeeping entry that leaves the status unchanged.  Notifies nobody."""
        entry = self.repository.append_history(
            case,
            action=action,
            description=description,
            performed_by_id=caller_id,
            previous_status=case.status,
            new_status=case.status,
            metadata=metadata,
        )
        logger.info("Case %s: %s by user=%s", case.case_number, event.value, caller_id)
        return entry

    def _new_case_number(self) -> str:
        prefix = getattr(settings, "RESOLVEIT_CASE_NUMBER_PREFIX", "RES")
        year = timezone.now().year
        for _ in range(_CASE_NUMBER_ATTEMPTS):
            candidate = f"{prefix}-{year}-{secrets.randbelow(10**6):06d}"
            if not self.repository.case_number_exists(candidate):
                return candidate
        raise Conflict("Could not allocate a unique case number, please retry.")

    def _link(self, case: Case, respondent_id: int, performed_by_id: int | None, description: str) -> Case:
        transition = TRANSITIONS[WorkflowEvent.LINK_RESPONDENT]
        require_status(case.status, allowed_sources=transition.sources, target=transition.target)
        if case.respondent_id is not None:
            raise Conflict("This case already has a respondent.")
        if respondent_id == case.complainant_id:
            raise ValidationFailed({"respondent_id": ["The complainant cannot be the respondent."]})

        case.respondent_id = respondent_id
        complainant_id = case.complainant_id
        self._apply(
            case,
            performed_by_id,
            event=WorkflowEvent.LINK_RESPONDENT,
            target=transition.target,
            action=AuditAction.RESPONDENT_LINKED,
            description=description,
            extra_fields=["respondent"],
            metadata={"respondent_id": respondent_id},
            template_for=lambda uid: "respondent_linked" if uid == complainant_id else "case_filed_against_you",
        )
        return case

    # ────────────────────────────────────────────────────────────────
    #  Creation & linking
    # ────────────────────────────────────────────────────────────────

    @returns_result
    def create_case(self, caller: CallerIdentity, data: dict[str, Any]) -> Case:
        """
        File a new case with ``caller`` as complainant.

        The opposite party is linked immediately when their e-mail belongs
        to a registered user, which starts the case in
        ``AWAITING_RESPONSE``; otherwise it starts ``PENDING``.

        Raises (as ``Err``)
        -------------------
        VALIDATION
            Every failing field at once, including the court / police
            companion fields.
        """
        cleaned, errors = validate_case_draft(data)
        if errors:
            raise ValidationFailed(errors)

        respondent = self.directory.resolve_by_email(cleaned["opposite_party_email"])
        if respondent is not None and respondent.pk == caller.id:
            raise ValidationFailed(
                {"opposite_party_email": ["You cannot file a case against yourself."]}
            )

        status = initial_status(respondent is not None)
        with transaction.atomic():
            case = self.repository.create_case(
                case_number=self._new_case_number(),
                complainant_id=caller.id,
                respondent=respondent,
                status=status,
                **cleaned,
            )
            self.repository.append_history(
                case,
                action=AuditAction.CASE_CREATED,
                description=f"Case registered by complainant ({case.get_category_display()}).",
                performed_by_id=caller.id,
                previous_status=None,
                new_status=status,
                metadata={"respondent_linked": respondent is not None},
            )
            recipients = notification_recipients(
                WorkflowEvent.CREATE_CASE, Parties(case.complainant_id, case.respondent_id),
            )
            self._fan_out(
                case,
                caller.id,
                recipients,
                lambda uid: "case_registered" if uid == caller.id else "case_filed_against_you",
                {"status": status, "status_label": _status_label(status)},
            )

        logger.info("Case %s created by user=%s with status %s", case.case_number, caller.id, status)
        return case

    @returns_result
    def link_respondent(self, case_id: int, caller: CallerIdentity, respondent_id: int) -> Case:
        """Admin links a registered user as respondent of a ``PENDING`` case."""
        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.ADMIN},
                            message="Only administrators can link a respondent.")
            respondent = self.directory.get(respondent_id)
            if respondent is None:
                raise ValidationFailed({"respondent_id": ["No registered user with this id."]})
            return self._link(case, respondent.pk, caller.id, "Respondent linked by administrator.")

    @returns_result
    def link_pending_cases(self, user: Any) -> list[Case]:
        """
        System action run when ``user`` registers: link every ``PENDING``
        case that names their e-mail as opposite party.

        Cases that stop qualifying between the lookup and the lock are
        skipped.
        """
        linked: list[Case] = []
        email = (getattr(user, "email", "") or "").strip()
        if not email:
            return linked

        candidate_ids = list(self.repository.pending_for_email(email).values_list("pk", flat=True))
        for case_id in candidate_ids:
            with transaction.atomic():
                case = self.repository.lock(case_id)
                if (
                    case.status != CaseStatus.PENDING
                    or case.respondent_id is not None
                    or case.complainant_id == user.pk
                ):
                    continue
                linked.append(
                    self._link(case, user.pk, None, "Respondent linked on registration.")
                )
        if linked:
            logger.info("Linked %d pending case(s) to new user=%s", len(linked), user.pk)
        return linked

    # ────────────────────────────────────────────────────────────────
    #  Party actions
    # ────────────────────────────────────────────────────────────────

    @returns_result
    def respond_to_case(
        self,
        case_id: int,
        caller: CallerIdentity,
        accepted: bool,
        response_text: str | None = None,
    ) -> Case:
        """
        The linked respondent accepts (→ ``ACCEPTED``) or declines
        (→ ``UNRESOLVED``) mediation.  A second response finds the case
        no longer ``AWAITING_RESPONSE`` and fails with CONFLICT.
        """
        text, errors = validate_optional_text("response", response_text, RESPONSE_LENGTH)
        if errors:
            raise ValidationFailed(errors)

        event = WorkflowEvent.ACCEPT if accepted else WorkflowEvent.DECLINE
        transition = TRANSITIONS[event]
        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.RESPONDENT},
                            message="Only the respondent can respond to this case.")
            require_status(case.status, allowed_sources=transition.sources, target=transition.target)
            if case.respondent_id is None:
                raise Conflict("This case has no linked respondent.")

            case.respondent_accepted = bool(accepted)
            case.respondent_response = text
            case.respondent_responded_at = timezone.now()
            decision = "accepted" if accepted else "declined"
            self._apply(
                case,
                caller.id,
                event=event,
                target=transition.target,
                action=AuditAction.CASE_ACCEPTED if accepted else AuditAction.CASE_REJECTED,
                description=f"Case {decision} by respondent.",
                extra_fields=["respondent_accepted", "respondent_response", "respondent_responded_at"],
                metadata={"accepted": bool(accepted), "response": text},
                template_for="case_response_received",
                context={"decision": decision},
            )
        return case

    @returns_result
    def nominate_witnesses(self, case_id: int, caller: CallerIdentity, identities: Any) -> list[Witness]:
        """
        Nominate registered users as witnesses on an ``ACCEPTED`` case.

        Check order: payload format, party relationship, status, user
        resolution, then duplicates against existing nominations.
        """
        emails, errors = validate_witness_emails(identities)
        if errors:
            raise ValidationFailed(errors)

        transition = TRANSITIONS[WorkflowEvent.NOMINATE_WITNESSES]
        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.COMPLAINANT, Relationship.RESPONDENT},
                            message="Only the parties of a case can nominate witnesses.")
            require_status(case.status, allowed_sources=transition.sources, target=transition.target)

            resolved = self.directory.resolve_many_by_email(emails)
            unknown = [e for e in emails if e not in resolved]
            if unknown:
                raise ValidationFailed(
                    {"witness_emails": [f"Not a registered user: {e}" for e in unknown]},
                    "All witnesses must be registered users.",
                )
            users = [resolved[e] for e in emails]
            parties = [u.email for u in users if u.pk in (case.complainant_id, case.respondent_id)]
            if parties:
                raise ValidationFailed(
                    {"witness_emails": [f"A party cannot be a witness: {e}" for e in parties]}
                )

            existing = self.repository.witness_user_ids(case)
            duplicates = [u.email for u in users if u.pk in existing]
            if duplicates:
                raise Conflict("Already nominated as witness: " + ", ".join(duplicates) + ".")

            witnesses = self.repository.add_witnesses(case, users, nominated_by_id=caller.id)
            self._apply(
                case,
                caller.id,
                event=WorkflowEvent.NOMINATE_WITNESSES,
                target=transition.target,
                action=AuditAction.WITNESSES_NOMINATED,
                description=f"{len(witnesses)} witness(es) nominated.",
                metadata={
                    "witness_ids": [w.user_id for w in witnesses],
                    "witness_emails": [w.email for w in witnesses],
                },
                template_for="witness_nominated",
                new_witness_ids=[w.user_id for w in witnesses],
            )
        return witnesses

    @returns_result
    def submit_witness_statement(self, case_id: int, caller: CallerIdentity, statement: str) -> Witness:
        """A nominated witness records their statement, once."""
        text, errors = validate_optional_text("statement", statement, STATEMENT_LENGTH)
        if not text:
            errors.setdefault("statement", []).append("This field is required.")
        if errors:
            raise ValidationFailed(errors)

        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.WITNESS},
                            message="Only nominated witnesses can submit a statement.")
            require_status(
                case.status,
                allowed_sources=TRANSITIONS[WorkflowEvent.SUBMIT_WITNESS_STATEMENT].sources,
                target=case.status,
                reason="statements cannot be added to a closed case",
            )
            witness = self.repository.witness_for(case, caller.id)
            if witness is None:
                raise PermissionDenied("Only nominated witnesses can submit a statement.")
            if witness.statement_submitted_at is not None:
                raise Conflict("A statement has already been submitted.")

            witness.statement = text
            witness.statement_submitted_at = timezone.now()
            witness.save(update_fields=["statement", "statement_submitted_at", "updated_at"])
            self._record(
                case,
                caller.id,
                event=WorkflowEvent.SUBMIT_WITNESS_STATEMENT,
                action=AuditAction.WITNESS_STATEMENT_ADDED,
                description=f"Witness statement submitted by {witness.name}.",
                metadata={"witness_id": witness.pk},
            )
        return witness

    @returns_result
    def attach_evidence(self, case_id: int, caller: CallerIdentity, file: Any) -> Evidence:
        """A party attaches an evidence file to a non-terminal case."""
        if file is None:
            raise ValidationFailed({"file": ["No file was submitted."]})

        evidence = None
        try:
            with transaction.atomic():
                case = self.repository.lock(case_id)
                self._authorize(case, caller, {Relationship.COMPLAINANT, Relationship.RESPONDENT},
                                message="Only the parties of a case can attach evidence.")
                require_status(
                    case.status,
                    allowed_sources=TRANSITIONS[WorkflowEvent.ATTACH_EVIDENCE].sources,
                    target=case.status,
                    reason="evidence cannot be added to a closed case",
                )
                evidence = self.blob_store.attach(case, file, uploaded_by_id=caller.id)
                self._record(
                    case,
                    caller.id,
                    event=WorkflowEvent.ATTACH_EVIDENCE,
                    action=AuditAction.EVIDENCE_ADDED,
                    description=f"Evidence '{evidence.original_name}' attached.",
                    metadata={"evidence_id": evidence.pk, "file_type": evidence.file_type},
                )
        except Exception:
            # The row is gone with the rollback; the stored blob is not.
            if evidence is not None:
                self.blob_store.discard(evidence)
            raise
        return evidence

    # ────────────────────────────────────────────────────────────────
    #  Administrator actions
    # ────────────────────────────────────────────────────────────────

    @returns_result
    def create_panel(
        self,
        case_id: int,
        caller: CallerIdentity,
        arbiter_id: int,
        religious_advisor_id: int | None = None,
        community_advisor_id: int | None = None,
    ) -> MediationPanel:
        """
        Assemble the case's single mediation panel.

        Members must be distinct registered users and may not be a party
        of the case.  A second panel is a CONFLICT regardless of status.
        """
        transition = TRANSITIONS[WorkflowEvent.CREATE_PANEL]
        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.ADMIN},
                            message="Only administrators can create a mediation panel.")
            if self.repository.panel(case) is not None:
                raise Conflict("Mediation panel already exists.")
            require_status(case.status, allowed_sources=transition.sources, target=transition.target)

            members = {
                "arbiter_id": arbiter_id,
                "religious_advisor_id": religious_advisor_id,
                "community_advisor_id": community_advisor_id,
            }
            errors: dict[str, list[str]] = {}
            if arbiter_id is None:
                errors.setdefault("arbiter_id", []).append("An arbiter is required.")
            found = self.directory.get_many(uid for uid in members.values() if uid is not None)
            seen: set[int] = set()
            for field, uid in members.items():
                if uid is None:
                    continue
                if uid not in found:
                    errors.setdefault(field, []).append("No registered user with this id.")
                elif uid in seen:
                    errors.setdefault(field, []).append("Panel members must be distinct.")
                elif uid in (case.complainant_id, case.respondent_id):
                    errors.setdefault(field, []).append("A party cannot sit on the panel.")
                seen.add(uid)
            if errors:
                raise ValidationFailed(errors)

            panel = self.repository.create_panel(case, created_by_id=caller.id, **members)
            member_ids = panel.member_ids
            self._apply(
                case,
                caller.id,
                event=WorkflowEvent.CREATE_PANEL,
                target=transition.target,
                action=AuditAction.PANEL_CREATED,
                description="Mediation panel created.",
                metadata={"panel_id": panel.pk, "member_ids": member_ids},
                template_for=lambda uid: "panel_assigned" if uid in member_ids else "panel_created",
                panel_member_ids=member_ids,
            )
        return panel

    def _admin_transition(
        self,
        case_id: int,
        caller: CallerIdentity,
        event: WorkflowEvent,
        action: str,
        description: str,
        reason: str | None,
        precheck: Callable[[Case], None] | None = None,
    ) -> Case:
        text, errors = validate_optional_text("reason", reason, REASON_LENGTH)
        if errors:
            raise ValidationFailed(errors)
        transition = TRANSITIONS[event]
        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.ADMIN},
                            message="Only administrators can change the case status.")
            require_status(case.status, allowed_sources=transition.sources, target=transition.target)
            if precheck is not None:
                precheck(case)
            self._apply(
                case,
                caller.id,
                event=event,
                target=transition.target,
                action=action,
                description=description + (f" Reason: {text}" if text else ""),
                metadata={"reason": text} if text else None,
            )
        return case

    def _require_panel(self, case: Case) -> None:
        if self.repository.panel(case) is None:
            raise Conflict("Mediation cannot begin without a panel.")

    @returns_result
    def begin_mediation(self, case_id: int, caller: CallerIdentity, reason: str | None = None) -> Case:
        return self._admin_transition(
            case_id, caller, WorkflowEvent.BEGIN_MEDIATION,
            AuditAction.MEDIATION_STARTED, "Mediation started.", reason,
            precheck=self._require_panel,
        )

    @returns_result
    def resolve_case(self, case_id: int, caller: CallerIdentity, reason: str | None = None) -> Case:
        return self._admin_transition(
            case_id, caller, WorkflowEvent.RESOLVE,
            AuditAction.CASE_RESOLVED, "Case resolved through mediation.", reason,
        )

    @returns_result
    def mark_unresolved(self, case_id: int, caller: CallerIdentity, reason: str | None = None) -> Case:
        return self._admin_transition(
            case_id, caller, WorkflowEvent.MARK_UNRESOLVED,
            AuditAction.CASE_MARKED_UNRESOLVED, "Case marked unresolved.", reason,
        )

    @returns_result
    def set_status(
        self,
        case_id: int,
        caller: CallerIdentity,
        target_status: str,
        reason: str | None = None,
    ) -> Case:
        """
        Administrator override: move the case to any status, from any
        status, including out of a terminal one.  Only the target's
        membership in ``CaseStatus`` is checked.
        """
        errors: dict[str, list[str]] = {}
        target = str(target_status or "").upper()
        if target not in CaseStatus.values:
            errors["status"] = [f"Must be one of: {', '.join(CaseStatus.values)}."]
        text, reason_errors = validate_optional_text("reason", reason, REASON_LENGTH)
        errors.update(reason_errors)
        if errors:
            raise ValidationFailed(errors)

        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.ADMIN},
                            message="Only administrators can override the case status.")
            previous = case.status
            self._apply(
                case,
                caller.id,
                event=WorkflowEvent.ADMIN_SET_STATUS,
                target=target,
                action=AuditAction.ADMIN_OVERRIDE,
                description=f"Status changed from {previous} to {target}" + (f": {text}" if text else "."),
                metadata={
                    "admin_id": caller.id,
                    "previous_status": previous,
                    "new_status": target,
                    "reason": text,
                },
            )
        return case

    @returns_result
    def cancel_case(self, case_id: int, caller: CallerIdentity, reason: str | None = None) -> Case:
        """
        Cancel a non-terminal case.  Administrators may cancel at any
        point; the complainant only before the respondent accepts.
        """
        text, errors = validate_optional_text("reason", reason, REASON_LENGTH)
        if errors:
            raise ValidationFailed(errors)

        transition = TRANSITIONS[WorkflowEvent.CANCEL]
        with transaction.atomic():
            case = self.repository.lock(case_id)
            self._authorize(case, caller, {Relationship.COMPLAINANT},
                            message="Only the complainant or an administrator can cancel a case.")
            require_status(case.status, allowed_sources=transition.sources, target=transition.target)
            if not caller.is_admin and case.status not in COMPLAINANT_CANCELLABLE:
                raise PermissionDenied(
                    "The complainant can only cancel a case before it is accepted."
                )
            by = "administrator" if caller.is_admin else "complainant"
            self._apply(
                case,
                caller.id,
                event=WorkflowEvent.CANCEL,
                target=transition.target,
                action=AuditAction.CASE_CANCELLED,
                description=f"Case cancelled by {by}." + (f" Reason: {text}" if text else ""),
                metadata={"reason": text} if text else None,
                template_for="case_cancelled",
            )
        return case

    # ────────────────────────────────────────────────────────────────
    #  Reads
    # ────────────────────────────────────────────────────────────────

    @returns_result
    def get_case(self, case_id: int, caller: CallerIdentity) -> Case:
        case = self.repository.get(case_id)
        self._authorize(case, caller, ANY_PARTY)
        return case

    @returns_result
    def get_case_history(self, case_id: int, caller: CallerIdentity) -> list[CaseHistory]:
        """Audit entries, oldest first."""
        case = self.repository.get(case_id)
        self._authorize(case, caller, ANY_PARTY)
        return self.repository.history(case)

    @returns_result
    def list_cases(self, caller: CallerIdentity, filters: dict[str, Any] | None = None) -> QuerySet:
        return CaseQueryService.get_filtered_queryset(
            self.repository.queryset(), caller, filters or {},
        )

    @returns_result
    def statistics(self, caller: CallerIdentity) -> dict[str, Any]:
        if not caller.is_admin:
            raise PermissionDenied("Only administrators can view case statistics.")
        return CaseQueryService.statistics(self.repository.queryset())


# ═══════════════════════════════════════════════════════════════════
#  Case Query Service
# ═══════════════════════════════════════════════════════════════════


class CaseQueryService:
    """
    Constructs filtered querysets for listing cases and aggregates for
    the admin dashboard.
    """

    @staticmethod
    def get_filtered_queryset(
        base: QuerySet,
        caller: CallerIdentity,
        filters: dict[str, Any],
    ) -> QuerySet:
        """
        Build a caller-scoped, filtered queryset of ``Case`` objects.

        Parameters
        ----------
        base : QuerySet
            Unscoped queryset from the repository.
        caller : CallerIdentity
            Admins see every case; anyone else only the cases they are
            a party, witness or panel member on.
        filters : dict
            Cleaned query-parameter dict from ``CaseFilterSerializer``.
            Supported keys:
            - ``status``   : str  (``CaseStatus`` value)
            - ``category`` : str  (``CaseCategory`` value)
            - ``priority`` : str  (``CasePriority`` value)
            - ``search``   : str  (case number / description / opposite party)

        Returns
        -------
        QuerySet[Case]
            Most recent first.
        """
        qs = apply_scope(base, caller, scope_rules=CASE_SCOPE_RULES)

        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("category"):
            qs = qs.filter(category=filters["category"])
        if filters.get("priority"):
            qs = qs.filter(priority=filters["priority"])
        search = (filters.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(case_number__icontains=search)
                | Q(issue_description__icontains=search)
                | Q(opposite_party_name__icontains=search)
            )
        return qs.order_by("-created_at", "-id")

    @staticmethod
    def statistics(base: QuerySet) -> dict[str, Any]:
        """
        Case counts for the admin dashboard.

        ``resolution_rate`` is the percentage of all cases that reached
        ``RESOLVED``, rounded to two decimals.
        """
        by_status = {s: 0 for s in CaseStatus.values}
        for row in base.order_by().values("status").annotate(count=Count("id")):
            by_status[row["status"]] = row["count"]
        by_category = {c: 0 for c in CaseCategory.values}
        for row in base.order_by().values("category").annotate(count=Count("id")):
            by_category[row["category"]] = row["count"]
        by_priority = {p: 0 for p in CasePriority.values}
        for row in base.order_by().values("priority").annotate(count=Count("id")):
            by_priority[row["priority"]] = row["count"]

        total = sum(by_status.values())
        resolved = by_status[CaseStatus.RESOLVED]
        active = sum(
            count for status, count in by_status.items()
            if status not in TERMINAL and status != CaseStatus.PENDING
        )
        return {
            "total_cases": total,
            "pending_cases": by_status[CaseStatus.PENDING],
            "active_cases": active,
            "resolved_cases": resolved,
            "unresolved_cases": by_status[CaseStatus.UNRESOLVED],
            "cancelled_cases": by_status[CaseStatus.CANCELLED],
            "resolution_rate": round(resolved / total * 100, 2) if total else 0.0,
            "by_status": by_status,
            "by_category": by_category,
            "by_priority": by_priority,
        }
