"""
Cases app models.

Covers the complete dispute lifecycle — from the complainant filing a
case, through the opposite party's response, witness nomination and
mediation-panel assembly, to the final resolved / unresolved / cancelled
outcome.
"""

from django.conf import settings
from django.db import models

from core.domain.exceptions import Conflict
from core.models import TimeStampedModel
from core.permissions_constants import CasesPerms


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CaseStatus(models.TextChoices):
    """
    Closed set of workflow states.  ``RESOLVED``, ``UNRESOLVED`` and
    ``CANCELLED`` are terminal.
    """

    PENDING = "PENDING", "Pending"
    AWAITING_RESPONSE = "AWAITING_RESPONSE", "Awaiting Response"
    ACCEPTED = "ACCEPTED", "Accepted"
    WITNESSES_NOMINATED = "WITNESSES_NOMINATED", "Witnesses Nominated"
    PANEL_CREATED = "PANEL_CREATED", "Panel Created"
    MEDIATION_IN_PROGRESS = "MEDIATION_IN_PROGRESS", "Mediation In Progress"
    RESOLVED = "RESOLVED", "Resolved"
    UNRESOLVED = "UNRESOLVED", "Unresolved"
    CANCELLED = "CANCELLED", "Cancelled"


class CaseCategory(models.TextChoices):
    FAMILY = "FAMILY", "Family"
    BUSINESS = "BUSINESS", "Business"
    CRIMINAL = "CRIMINAL", "Criminal"
    PROPERTY = "PROPERTY", "Property"
    CONTRACT = "CONTRACT", "Contract"
    OTHER = "OTHER", "Other"


class CasePriority(models.TextChoices):
    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    HIGH = "HIGH", "High"
    URGENT = "URGENT", "Urgent"


class AuditAction(models.TextChoices):
    """One action per workflow event recorded in ``CaseHistory``."""

    CASE_CREATED = "CASE_CREATED", "Case Created"
    RESPONDENT_LINKED = "RESPONDENT_LINKED", "Respondent Linked"
    CASE_ACCEPTED = "CASE_ACCEPTED", "Case Accepted"
    CASE_REJECTED = "CASE_REJECTED", "Case Rejected"
    WITNESSES_NOMINATED = "WITNESSES_NOMINATED", "Witnesses Nominated"
    PANEL_CREATED = "PANEL_CREATED", "Panel Created"
    MEDIATION_STARTED = "MEDIATION_STARTED", "Mediation Started"
    CASE_RESOLVED = "CASE_RESOLVED", "Case Resolved"
    CASE_MARKED_UNRESOLVED = "CASE_MARKED_UNRESOLVED", "Case Marked Unresolved"
    ADMIN_OVERRIDE = "ADMIN_OVERRIDE", "Admin Override"
    CASE_CANCELLED = "CASE_CANCELLED", "Case Cancelled"
    EVIDENCE_ADDED = "EVIDENCE_ADDED", "Evidence Added"
    WITNESS_STATEMENT_ADDED = "WITNESS_STATEMENT_ADDED", "Witness Statement Added"


class FileType(models.TextChoices):
    """Allowed media types for ``Evidence``."""

    IMAGE = "IMAGE", "Image"
    VIDEO = "VIDEO", "Video"
    AUDIO = "AUDIO", "Audio"
    DOCUMENT = "DOCUMENT", "Document"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Case(TimeStampedModel):
    """
    Central entity of the system — a dispute filed by a complainant
    against an opposite party.

    * ``case_number`` is assigned once at creation and never changes.
    * ``respondent`` stays empty until the opposite party is a registered
      user (linked at creation by email, by an admin, or on sign-up).
    * Cases are never deleted; cancellation is a status.
    """

    case_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        verbose_name="Case Number",
    )
    category = models.CharField(
        max_length=20,
        choices=CaseCategory.choices,
        verbose_name="Category",
        db_index=True,
    )
    issue_description = models.TextField(
        verbose_name="Issue Description",
    )
    status = models.CharField(
        max_length=30,
        choices=CaseStatus.choices,
        default=CaseStatus.PENDING,
        verbose_name="Current Status",
        db_index=True,
    )
    priority = models.CharField(
        max_length=10,
        choices=CasePriority.choices,
        default=CasePriority.MEDIUM,
        verbose_name="Priority",
    )

    # ── Parallel proceedings ────────────────────────────────────────
    is_in_court = models.BooleanField(default=False, verbose_name="Pending in Court")
    court_case_number = models.CharField(max_length=50, blank=True, default="")
    court_name = models.CharField(max_length=100, blank=True, default="")
    is_in_police_station = models.BooleanField(default=False, verbose_name="Reported to Police")
    fir_number = models.CharField(max_length=50, blank=True, default="", verbose_name="FIR Number")
    police_station_name = models.CharField(max_length=100, blank=True, default="")

    # ── Opposite party contact ──────────────────────────────────────
    opposite_party_name = models.CharField(max_length=100, verbose_name="Opposite Party Name")
    opposite_party_email = models.EmailField(
        blank=True,
        default="",
        db_index=True,
        verbose_name="Opposite Party Email",
        help_text="Used to link the respondent once they have an account.",
    )
    opposite_party_phone = models.CharField(max_length=20, blank=True, default="", verbose_name="Opposite Party Phone")
    opposite_party_address = models.CharField(
        max_length=200, blank=True, default="", verbose_name="Opposite Party Address",
    )

    # ── Parties ─────────────────────────────────────────────────────
    complainant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="filed_cases",
        verbose_name="Complainant",
    )
    respondent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="responded_cases",
        verbose_name="Respondent",
    )

    # ── Respondent reply ────────────────────────────────────────────
    respondent_accepted = models.BooleanField(null=True, blank=True, verbose_name="Respondent Accepted")
    respondent_response = models.TextField(blank=True, default="", verbose_name="Respondent Response")
    respondent_responded_at = models.DateTimeField(null=True, blank=True, verbose_name="Responded At")

    class Meta:
        verbose_name = "Case"
        verbose_name_plural = "Cases"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "category"], name="case_status_category_idx"),
        ]
        permissions = [
            (CasesPerms.CAN_ADMINISTER_CASES, "Can administer every case (panels, status changes, overrides)"),
        ]

    def __str__(self):
        return f"Case {self.case_number}"

    @property
    def is_terminal(self) -> bool:
        return self.status in (CaseStatus.RESOLVED, CaseStatus.UNRESOLVED, CaseStatus.CANCELLED)


class Witness(TimeStampedModel):
    """
    A registered user nominated as witness by one of the parties.

    The same user can be nominated at most once per case.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="witnesses",
        verbose_name="Case",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="witness_nominations",
        verbose_name="Witness",
    )
    nominated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="nominated_witnesses",
        verbose_name="Nominated By",
    )
    name = models.CharField(max_length=150, verbose_name="Full Name")
    email = models.EmailField(verbose_name="Email")
    phone = models.CharField(max_length=20, blank=True, default="", verbose_name="Phone")
    relationship = models.CharField(
        max_length=100,
        default="Nominated Witness",
        verbose_name="Relationship to Case",
    )
    statement = models.TextField(blank=True, default="", verbose_name="Statement")
    statement_submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "Witness"
        verbose_name_plural = "Witnesses"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["case", "user"], name="unique_witness_per_case"),
        ]

    def __str__(self):
        return f"Witness {self.name} on {self.case_id}"


class MediationPanel(TimeStampedModel):
    """
    The panel that mediates a case: a required arbiter plus optional
    religious and community advisors.  Created once, never reassigned.
    """

    case = models.OneToOneField(
        Case,
        on_delete=models.CASCADE,
        related_name="panel",
        verbose_name="Case",
    )
    arbiter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="arbitrated_panels",
        verbose_name="Arbiter",
    )
    religious_advisor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="religious_advisor_panels",
        verbose_name="Religious Advisor",
    )
    community_advisor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="community_advisor_panels",
        verbose_name="Community Advisor",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="created_panels",
        verbose_name="Created By",
    )

    class Meta:
        verbose_name = "Mediation Panel"
        verbose_name_plural = "Mediation Panels"

    def __str__(self):
        return f"Panel for case {self.case_id}"

    @property
    def member_ids(self) -> list[int]:
        return [
            uid
            for uid in (self.arbiter_id, self.religious_advisor_id, self.community_advisor_id)
            if uid is not None
        ]


class CaseHistoryQuerySet(models.QuerySet):
    """Refuses bulk edits and deletes of audit entries."""

    def update(self, **kwargs):
        raise Conflict("Case history entries cannot be modified.")

    def delete(self):
        raise Conflict("Case history entries cannot be deleted.")


class CaseHistory(models.Model):
    """
    Append-only audit trail: exactly one entry per successful
    state-changing operation (and per bookkeeping action).

    ``previous_status`` is empty only for the creation entry.  Ordering by
    ``(created_at, id)`` replays the case from its first status.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="history",
        verbose_name="Case",
    )
    action = models.CharField(
        max_length=40,
        choices=AuditAction.choices,
        verbose_name="Action",
    )
    description = models.TextField(verbose_name="Description")
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="case_actions",
        verbose_name="Performed By",
        help_text="Empty for system-initiated entries.",
    )
    previous_status = models.CharField(
        max_length=30,
        choices=CaseStatus.choices,
        blank=True,
        default="",
        verbose_name="Previous Status",
    )
    new_status = models.CharField(
        max_length=30,
        choices=CaseStatus.choices,
        verbose_name="New Status",
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    objects = CaseHistoryQuerySet.as_manager()

    class Meta:
        verbose_name = "Case History Entry"
        verbose_name_plural = "Case History"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.case_id}: {self.action} ({self.previous_status or '-'} → {self.new_status})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise Conflict("Case history entries cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise Conflict("Case history entries cannot be deleted.")


class Evidence(TimeStampedModel):
    """
    A file attached to a case by one of its parties.  The blob itself
    lives in Django's configured storage; this row is the reference.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="evidence",
        verbose_name="Case",
    )
    file = models.FileField(
        upload_to="case_evidence/%Y/%m/",
        verbose_name="File",
    )
    original_name = models.CharField(max_length=255, verbose_name="Original File Name")
    file_type = models.CharField(
        max_length=10,
        choices=FileType.choices,
        verbose_name="File Type",
    )
    file_size = models.PositiveIntegerField(verbose_name="Size (bytes)")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="uploaded_evidence",
        verbose_name="Uploaded By",
    )

    class Meta:
        verbose_name = "Evidence"
        verbose_name_plural = "Evidence"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.get_file_type_display()} '{self.original_name}' on {self.case_id}"
