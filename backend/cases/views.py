"""
Cases app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to ``CaseWorkflowService``.
    3. Unwrap the ``Result``, serialize it and return a DRF ``Response``.

No database queries or workflow logic live here.  A failed result
re-raises its domain exception, which ``core.domain.exception_handler``
turns into the matching HTTP status.

ViewSets
--------
- ``CaseViewSet`` — The single ViewSet for all case-related endpoints.
  Custom @action methods handle all workflow and sub-resource
  operations so the URL structure stays clean and discoverable.
"""

from __future__ import annotations

import logging
from typing import Any

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.exceptions import ValidationFailed
from core.domain.identity import CallerIdentity

from .serializers import (
    CaseCreateSerializer,
    CaseDetailSerializer,
    CaseFilterSerializer,
    CaseHistorySerializer,
    CaseListSerializer,
    CaseStatisticsSerializer,
    CreatePanelSerializer,
    EvidenceSerializer,
    EvidenceUploadSerializer,
    LinkRespondentSerializer,
    MediationPanelSerializer,
    NominateWitnessesSerializer,
    ReasonSerializer,
    RespondSerializer,
    SetStatusSerializer,
    WitnessSerializer,
    WitnessStatementSerializer,
)
from .services import CaseWorkflowService

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: OpenApiResponse(description="Validation error (``errors`` lists every failing field)."),
    403: OpenApiResponse(description="Related to the case, but not in the required role."),
    404: OpenApiResponse(description="Case not found or not visible to the caller."),
    409: OpenApiResponse(description="Not allowed from the case's current status."),
}


def _validated(serializer_class: type[serializers.Serializer], data: Any) -> dict[str, Any]:
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationFailed.from_serializer_errors(serializer.errors)
    return serializer.validated_data


class CaseViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the cases app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined, preventing accidental exposure of unintended
    CRUD operations (cases are never updated or deleted directly).

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Relationship checks
    (complainant, respondent, witness, panel member, admin) are enforced
    exclusively inside the service layer — never in the view.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, FormParser, MultiPartParser]

    # ── Helpers ──────────────────────────────────────────────────────

    @property
    def engine(self) -> CaseWorkflowService:
        return CaseWorkflowService.default()

    def _caller(self, request: Request) -> CallerIdentity:
        return CallerIdentity.from_user(request.user)

    def _case_response(self, request: Request, case, code: int = status.HTTP_200_OK) -> Response:
        out = CaseDetailSerializer(case, context={"request": request})
        return Response(out.data, status=code)

    # ── Standard endpoints ───────────────────────────────────────────

    @extend_schema(
        summary="List cases",
        description=(
            "List cases visible to the authenticated user with optional filtering. "
            "Administrators see every case; other users see the cases they are "
            "a party, witness or panel member on."
        ),
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by case status."),
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY, description="Filter by category."),
            OpenApiParameter(name="priority", type=str, location=OpenApiParameter.QUERY, description="Filter by priority."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Free-text search."),
        ],
        responses={
            200: OpenApiResponse(response=CaseListSerializer(many=True), description="Filtered list of cases."),
        },
        tags=["Cases"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/cases/"""
        filters = _validated(CaseFilterSerializer, request.query_params)
        qs = self.engine.list_cases(self._caller(request), filters).unwrap()
        return Response(CaseListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="File a new case",
        description=(
            "File a case with the authenticated user as complainant. When the "
            "opposite party's e-mail belongs to a registered user the case starts "
            "in AWAITING_RESPONSE, otherwise in PENDING."
        ),
        request=CaseCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseDetailSerializer, description="Case created successfully."),
            400: _ERROR_RESPONSES[400],
        },
        tags=["Cases"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/cases/"""
        data = _validated(CaseCreateSerializer, request.data)
        case = self.engine.create_case(self._caller(request), data).unwrap()
        return self._case_response(request, case, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve case details",
        description="Return the full case with witnesses, panel and evidence.",
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Full case detail."),
            404: _ERROR_RESPONSES[404],
        },
        tags=["Cases"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/cases/{id}/"""
        case = self.engine.get_case(pk, self._caller(request)).unwrap()
        return self._case_response(request, case)

    # ── Party actions ────────────────────────────────────────────────

    @extend_schema(
        summary="Respond to a case",
        description="The linked respondent accepts (→ ACCEPTED) or declines (→ UNRESOLVED).",
        request=RespondSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Updated case."), **_ERROR_RESPONSES},
        tags=["Cases – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="respond")
    def respond(self, request: Request, pk: str = None) -> Response:
        data = _validated(RespondSerializer, request.data)
        case = self.engine.respond_to_case(
            pk, self._caller(request), data["accepted"], data.get("response"),
        ).unwrap()
        return self._case_response(request, case)

    @extend_schema(
        methods=["get"],
        summary="List witnesses",
        responses={200: OpenApiResponse(response=WitnessSerializer(many=True), description="Witnesses.")},
        tags=["Cases – Witnesses"],
    )
    @extend_schema(
        methods=["post"],
        summary="Nominate witnesses",
        description="A party nominates registered users (by e-mail) on an ACCEPTED case.",
        request=NominateWitnessesSerializer,
        responses={201: OpenApiResponse(response=WitnessSerializer(many=True), description="Created witnesses."), **_ERROR_RESPONSES},
        tags=["Cases – Witnesses"],
    )
    @action(detail=True, methods=["get", "post"], url_path="witnesses")
    def witnesses(self, request: Request, pk: str = None) -> Response:
        caller = self._caller(request)
        if request.method == "GET":
            case = self.engine.get_case(pk, caller).unwrap()
            return Response(WitnessSerializer(case.witnesses.all(), many=True).data)
        data = _validated(NominateWitnessesSerializer, request.data)
        created = self.engine.nominate_witnesses(pk, caller, data["witness_emails"]).unwrap()
        return Response(WitnessSerializer(created, many=True).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Submit witness statement",
        request=WitnessStatementSerializer,
        responses={200: OpenApiResponse(response=WitnessSerializer, description="Updated witness."), **_ERROR_RESPONSES},
        tags=["Cases – Witnesses"],
    )
    @action(detail=True, methods=["post"], url_path="witness-statement")
    def witness_statement(self, request: Request, pk: str = None) -> Response:
        data = _validated(WitnessStatementSerializer, request.data)
        witness = self.engine.submit_witness_statement(pk, self._caller(request), data["statement"]).unwrap()
        return Response(WitnessSerializer(witness).data, status=status.HTTP_200_OK)

    @extend_schema(
        methods=["get"],
        summary="List evidence",
        responses={200: OpenApiResponse(response=EvidenceSerializer(many=True), description="Evidence files.")},
        tags=["Cases – Evidence"],
    )
    @extend_schema(
        methods=["post"],
        summary="Attach evidence",
        request={"multipart/form-data": EvidenceUploadSerializer},
        responses={201: OpenApiResponse(response=EvidenceSerializer, description="Stored evidence."), **_ERROR_RESPONSES},
        tags=["Cases – Evidence"],
    )
    @action(detail=True, methods=["get", "post"], url_path="evidence")
    def evidence(self, request: Request, pk: str = None) -> Response:
        caller = self._caller(request)
        if request.method == "GET":
            case = self.engine.get_case(pk, caller).unwrap()
            return Response(EvidenceSerializer(case.evidence.all(), many=True, context={"request": request}).data)
        data = _validated(EvidenceUploadSerializer, request.data)
        item = self.engine.attach_evidence(pk, caller, data["file"]).unwrap()
        return Response(EvidenceSerializer(item, context={"request": request}).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Case history",
        description="Audit entries for the case, oldest first.",
        responses={200: OpenApiResponse(response=CaseHistorySerializer(many=True), description="History."), 404: _ERROR_RESPONSES[404]},
        tags=["Cases"],
    )
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request: Request, pk: str = None) -> Response:
        entries = self.engine.get_case_history(pk, self._caller(request)).unwrap()
        return Response(CaseHistorySerializer(entries, many=True).data)

    @extend_schema(
        summary="Cancel case",
        description="Administrators may cancel any non-terminal case; the complainant only before acceptance.",
        request=ReasonSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Cancelled case."), **_ERROR_RESPONSES},
        tags=["Cases – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk: str = None) -> Response:
        data = _validated(ReasonSerializer, request.data)
        case = self.engine.cancel_case(pk, self._caller(request), data.get("reason")).unwrap()
        return self._case_response(request, case)

    # ── Administrator actions ────────────────────────────────────────

    @extend_schema(
        summary="Create mediation panel",
        request=CreatePanelSerializer,
        responses={201: OpenApiResponse(response=MediationPanelSerializer, description="Created panel."), **_ERROR_RESPONSES},
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="panel")
    def panel(self, request: Request, pk: str = None) -> Response:
        data = _validated(CreatePanelSerializer, request.data)
        panel = self.engine.create_panel(
            pk,
            self._caller(request),
            data["arbiter_id"],
            data.get("religious_advisor_id"),
            data.get("community_advisor_id"),
        ).unwrap()
        return Response(MediationPanelSerializer(panel).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Begin mediation",
        request=ReasonSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Updated case."), **_ERROR_RESPONSES},
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="begin-mediation")
    def begin_mediation(self, request: Request, pk: str = None) -> Response:
        data = _validated(ReasonSerializer, request.data)
        case = self.engine.begin_mediation(pk, self._caller(request), data.get("reason")).unwrap()
        return self._case_response(request, case)

    @extend_schema(
        summary="Resolve case",
        request=ReasonSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Resolved case."), **_ERROR_RESPONSES},
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="resolve")
    def resolve(self, request: Request, pk: str = None) -> Response:
        data = _validated(ReasonSerializer, request.data)
        case = self.engine.resolve_case(pk, self._caller(request), data.get("reason")).unwrap()
        return self._case_response(request, case)

    @extend_schema(
        summary="Mark case unresolved",
        request=ReasonSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Updated case."), **_ERROR_RESPONSES},
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="mark-unresolved")
    def mark_unresolved(self, request: Request, pk: str = None) -> Response:
        data = _validated(ReasonSerializer, request.data)
        case = self.engine.mark_unresolved(pk, self._caller(request), data.get("reason")).unwrap()
        return self._case_response(request, case)

    @extend_schema(
        summary="Override case status",
        description="Administrator override: any status, from any status.",
        request=SetStatusSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Updated case."), **_ERROR_RESPONSES},
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request: Request, pk: str = None) -> Response:
        data = _validated(SetStatusSerializer, request.data)
        case = self.engine.set_status(pk, self._caller(request), data["status"], data.get("reason")).unwrap()
        return self._case_response(request, case)

    @extend_schema(
        summary="Link respondent",
        description="Link a registered user as respondent of a PENDING case (→ AWAITING_RESPONSE).",
        request=LinkRespondentSerializer,
        responses={200: OpenApiResponse(response=CaseDetailSerializer, description="Updated case."), **_ERROR_RESPONSES},
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="link-respondent")
    def link_respondent(self, request: Request, pk: str = None) -> Response:
        data = _validated(LinkRespondentSerializer, request.data)
        case = self.engine.link_respondent(pk, self._caller(request), data["respondent_id"]).unwrap()
        return self._case_response(request, case)

    @extend_schema(
        summary="Case statistics",
        description="Dashboard counts by status, category and priority.  Administrators only.",
        responses={200: OpenApiResponse(response=CaseStatisticsSerializer, description="Statistics."), 403: _ERROR_RESPONSES[403]},
        tags=["Cases – Admin"],
    )
    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request: Request) -> Response:
        stats = self.engine.statistics(self._caller(request)).unwrap()
        return Response(CaseStatisticsSerializer(stats).data)
