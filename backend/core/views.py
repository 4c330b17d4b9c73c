"""
Core app views — **Thin Views**.

Each view delegates all business logic to ``core.services``.  Views are
responsible only for:

1. Extracting query parameters from the request.
2. Calling the service with the caller identity and parameters.
3. Serialising the result and returning an HTTP ``Response``.

Failed service results are unwrapped, which re-raises the domain
exception for ``core.domain.exception_handler``.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.identity import CallerIdentity

from .serializers import (
    MarkAllReadResponseSerializer,
    NotificationListResponseSerializer,
    NotificationSerializer,
)
from .services import NotificationInboxService

_TRUTHY = {"1", "true", "yes", "on"}


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — the authenticated user's inbox.

    Endpoints
    ---------
    GET    /api/core/notifications/               → list notifications
    POST   /api/core/notifications/{id}/read/     → mark one as read
    POST   /api/core/notifications/read-all/      → mark all as read
    DELETE /api/core/notifications/{id}/          → delete one

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]

    def _service(self, request: Request) -> NotificationInboxService:
        return NotificationInboxService(CallerIdentity.from_user(request.user))

    @extend_schema(
        summary="List notifications",
        description=(
            "Return the authenticated user's notifications, most recent "
            "first, together with the unread count."
        ),
        parameters=[
            OpenApiParameter(
                name="unread_only",
                type=bool,
                required=False,
                description="Only return unread notifications.",
            ),
        ],
        responses={200: OpenApiResponse(response=NotificationListResponseSerializer, description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        service = self._service(request)
        unread_only = request.query_params.get("unread_only", "").lower() in _TRUTHY
        notifications = service.list_notifications(unread_only=unread_only).unwrap()
        return Response(
            {
                "notifications": NotificationSerializer(notifications, many=True).data,
                "unread_count": service.unread_count(),
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Mark notification as read",
        description="Mark a single notification as read by ID.",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="Not found or not yours."),
        },
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: str = None) -> Response:
        """
        **POST /api/core/notifications/{id}/read/**

        Idempotent: reading an already-read notification succeeds.
        """
        notification = self._service(request).mark_as_read(pk).unwrap()
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark all notifications as read",
        request=None,
        responses={200: OpenApiResponse(response=MarkAllReadResponseSerializer, description="Count updated.")},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["post"], url_path="read-all")
    def mark_all_as_read(self, request: Request) -> Response:
        updated = self._service(request).mark_all_as_read().unwrap()
        return Response({"updated": updated}, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete notification",
        responses={
            204: OpenApiResponse(description="Deleted."),
            404: OpenApiResponse(description="Not found or not yours."),
        },
        tags=["Notifications"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        self._service(request).delete(pk).unwrap()
        return Response(status=status.HTTP_204_NO_CONTENT)
