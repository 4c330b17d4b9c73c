"""
Cases app serializers.

Contains all Request and Response serializers for the Cases API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No workflow transitions live here** — those belong in
``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Case read serializers (list, detail)
3. Case write serializers (create)
4. Workflow action serializers (respond, nominate, panel, status, ...)
5. Sub-resource serializers (witness, panel, history, evidence, statistics)
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .models import (
    Case,
    CaseCategory,
    CaseHistory,
    CasePriority,
    CaseStatus,
    Evidence,
    MediationPanel,
    Witness,
)
from .validation import (
    CASE_FIELD_LENGTHS,
    REASON_LENGTH,
    RESPONSE_LENGTH,
    STATEMENT_LENGTH,
    validate_case_draft,
)


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFilterSerializer(serializers.Serializer):
    """
    Validates and cleans query-parameter filters for ``GET /api/cases/``.

    All fields are optional.  The view passes the validated dict directly
    to ``CaseWorkflowService.list_cases``.
    """

    status = serializers.ChoiceField(
        choices=CaseStatus.choices,
        required=False,
        help_text="Filter by case status. Options: " + ", ".join(CaseStatus.values) + ".",
    )
    category = serializers.ChoiceField(choices=CaseCategory.choices, required=False)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    search = serializers.CharField(
        required=False,
        max_length=255,
        allow_blank=False,
        help_text="Free-text search against case number, description and opposite party.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Case Read Serializers
# ═══════════════════════════════════════════════════════════════════


class UserSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    full_name = serializers.CharField(source="get_full_name")
    email = serializers.EmailField()


class CaseListSerializer(serializers.ModelSerializer):
    """
    Compact representation for the list endpoint.

    Excludes nested witnesses, panel and evidence to keep list-page
    payloads small.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    category_display = serializers.CharField(source="get_category_display", read_only=True)
    complainant = UserSummarySerializer(read_only=True)
    respondent = UserSummarySerializer(read_only=True, allow_null=True)

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "category",
            "category_display",
            "status",
            "status_display",
            "priority",
            "complainant",
            "respondent",
            "opposite_party_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class WitnessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Witness
        fields = [
            "id",
            "user",
            "name",
            "email",
            "phone",
            "relationship",
            "statement",
            "statement_submitted_at",
            "nominated_by",
            "created_at",
        ]
        read_only_fields = fields


class MediationPanelSerializer(serializers.ModelSerializer):
    arbiter = UserSummarySerializer(read_only=True)
    religious_advisor = UserSummarySerializer(read_only=True, allow_null=True)
    community_advisor = UserSummarySerializer(read_only=True, allow_null=True)

    class Meta:
        model = MediationPanel
        fields = ["id", "case", "arbiter", "religious_advisor", "community_advisor", "created_by", "created_at"]
        read_only_fields = fields


class EvidenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Evidence
        fields = ["id", "file", "original_name", "file_type", "file_size", "uploaded_by", "created_at"]
        read_only_fields = fields


class CaseHistorySerializer(serializers.ModelSerializer):
    """One audit entry.  ``performed_by`` is ``null`` for system actions."""

    action_display = serializers.CharField(source="get_action_display", read_only=True)

    class Meta:
        model = CaseHistory
        fields = [
            "id",
            "action",
            "action_display",
            "description",
            "performed_by",
            "previous_status",
            "new_status",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class CaseDetailSerializer(serializers.ModelSerializer):
    """
    Full case representation with witnesses, panel and evidence.

    The panel is ``null`` until an administrator creates one.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    category_display = serializers.CharField(source="get_category_display", read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)
    complainant = UserSummarySerializer(read_only=True)
    respondent = UserSummarySerializer(read_only=True, allow_null=True)
    witnesses = WitnessSerializer(many=True, read_only=True)
    panel = serializers.SerializerMethodField()
    evidence = EvidenceSerializer(many=True, read_only=True)

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "category",
            "category_display",
            "issue_description",
            "status",
            "status_display",
            "is_terminal",
            "priority",
            "is_in_court",
            "court_case_number",
            "court_name",
            "is_in_police_station",
            "fir_number",
            "police_station_name",
            "opposite_party_name",
            "opposite_party_email",
            "opposite_party_phone",
            "opposite_party_address",
            "complainant",
            "respondent",
            "respondent_accepted",
            "respondent_response",
            "respondent_responded_at",
            "witnesses",
            "panel",
            "evidence",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_panel(self, obj: Case) -> dict[str, Any] | None:
        from .access import case_panel

        panel = case_panel(obj)
        if panel is None:
            return None
        return MediationPanelSerializer(panel).data


# ═══════════════════════════════════════════════════════════════════
#  3. Case Write Serializers
# ═══════════════════════════════════════════════════════════════════


def _text_field(help_text: str = "") -> serializers.CharField:
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, help_text=help_text)


def _length_hint(field: str) -> str:
    low, high = CASE_FIELD_LENGTHS[field]
    return f"{low}-{high} characters."


class CaseCreateSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/cases/``.

    Fields carry no constraints of their own; ``validate`` runs
    ``cases.validation.validate_case_draft`` so every failing field,
    including the court and police companion fields, is reported in one
    response.
    """

    category = _text_field("One of: " + ", ".join(CaseCategory.values) + ".")
    issue_description = _text_field(_length_hint("issue_description"))
    priority = _text_field("One of: " + ", ".join(CasePriority.values) + ". Defaults to MEDIUM.")
    is_in_court = serializers.BooleanField(required=False, default=False)
    court_case_number = _text_field("Required when is_in_court is true.")
    court_name = _text_field("Required when is_in_court is true.")
    is_in_police_station = serializers.BooleanField(required=False, default=False)
    fir_number = _text_field("Required when is_in_police_station is true.")
    police_station_name = _text_field("Required when is_in_police_station is true.")
    opposite_party_name = _text_field(_length_hint("opposite_party_name"))
    opposite_party_email = _text_field("Links the respondent when it belongs to a registered user.")
    opposite_party_phone = _text_field("Optional. " + _length_hint("opposite_party_phone"))
    opposite_party_address = _text_field("Optional. " + _length_hint("opposite_party_address"))

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        cleaned, errors = validate_case_draft(attrs)
        if errors:
            raise serializers.ValidationError(errors)
        return cleaned


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class RespondSerializer(serializers.Serializer):
    accepted = serializers.BooleanField(help_text="True to accept mediation, False to decline.")
    response = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=RESPONSE_LENGTH[1],
        help_text="Optional written response to the complainant.",
    )


class NominateWitnessesSerializer(serializers.Serializer):
    witness_emails = serializers.ListField(
        child=serializers.EmailField(),
        min_length=1,
        help_text="E-mails of registered users to nominate as witnesses.",
    )


class WitnessStatementSerializer(serializers.Serializer):
    statement = serializers.CharField(min_length=STATEMENT_LENGTH[0], max_length=STATEMENT_LENGTH[1])


class CreatePanelSerializer(serializers.Serializer):
    arbiter_id = serializers.IntegerField(min_value=1)
    religious_advisor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    community_advisor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=REASON_LENGTH[1],
        help_text="Optional explanation recorded in the case history.",
    )


class SetStatusSerializer(ReasonSerializer):
    status = serializers.ChoiceField(choices=CaseStatus.choices)


class LinkRespondentSerializer(serializers.Serializer):
    respondent_id = serializers.IntegerField(min_value=1)


class EvidenceUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


# ═══════════════════════════════════════════════════════════════════
#  5. Statistics
# ═══════════════════════════════════════════════════════════════════


class CaseStatisticsSerializer(serializers.Serializer):
    total_cases = serializers.IntegerField()
    pending_cases = serializers.IntegerField()
    active_cases = serializers.IntegerField()
    resolved_cases = serializers.IntegerField()
    unresolved_cases = serializers.IntegerField()
    cancelled_cases = serializers.IntegerField()
    resolution_rate = serializers.FloatField(help_text="Percentage of all cases resolved.")
    by_status = serializers.DictField(child=serializers.IntegerField())
    by_category = serializers.DictField(child=serializers.IntegerField())
    by_priority = serializers.DictField(child=serializers.IntegerField())
