"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``RegisterView``       — POST /auth/register/
- ``LoginView``          — POST /auth/login/
- ``MeView``             — GET / PATCH /me/
- ``UserViewSet``        — /users/  (list, retrieve, assign-role,
                           activate, deactivate)
- ``RoleListView``       — GET /roles/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    AssignRoleSerializer,
    CustomTokenObtainPairSerializer,
    MeUpdateSerializer,
    RegisterRequestSerializer,
    RoleListSerializer,
    TokenResponseSerializer,
    UserDetailSerializer,
    UserFilterSerializer,
    UserListSerializer,
)
from .services import (
    CurrentUserService,
    UserManagementService,
    UserRegistrationService,
    list_roles,
)


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new user with the default "Member" role
    and links every pending case naming the new e-mail as opposite
    party.

    Request body  → ``RegisterRequestSerializer``
    Response body → ``UserDetailSerializer`` (201 Created)
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterRequestSerializer

    @extend_schema(
        summary="Register",
        responses={201: UserDetailSerializer},
        tags=["Accounts"],
    )
    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(dict(serializer.validated_data))
        response_serializer = UserDetailSerializer(user)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via any of the three unique
    identifiers (username, email, phone_number) plus password.

    Request body  → ``identifier`` + ``password``
    Response body → ``TokenResponseSerializer`` (200 OK)
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Log in",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: TokenResponseSerializer,
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Accounts"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = serializer.user
        return Response(TokenResponseSerializer(payload).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET  /api/accounts/me/  → Retrieve current user profile.
    PATCH /api/accounts/me/ → Update own profile fields.

    Returns the user's full profile including role details and a flat
    permissions list for the frontend to render conditional UI modules.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Current user profile", responses={200: UserDetailSerializer}, tags=["Accounts"])
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update own profile",
        request=MeUpdateSerializer,
        responses={200: UserDetailSerializer},
        tags=["Accounts"],
    )
    def patch(self, request: Request) -> Response:
        serializer = MeUpdateSerializer(instance=request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = CurrentUserService.update_profile(request.user, serializer.validated_data)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Administrative user management.  Access requires
    ``accounts.can_manage_users``; the check lives in
    ``UserManagementService``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="is_active", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="role_id", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: UserListSerializer(many=True)},
        tags=["Accounts"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/accounts/users/"""
        filters = UserFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = UserManagementService.list_users(request.user, **filters.validated_data)
        return Response(UserListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Retrieve a user", responses={200: UserDetailSerializer}, tags=["Accounts"])
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/accounts/users/{id}/"""
        user = UserManagementService.get_user(request.user, int(pk))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Assign a role",
        request=AssignRoleSerializer,
        responses={200: UserDetailSerializer},
        tags=["Accounts"],
    )
    @action(detail=True, methods=["patch"], url_path="assign-role")
    def assign_role(self, request: Request, pk: str = None) -> Response:
        """PATCH /api/accounts/users/{id}/assign-role/"""
        serializer = AssignRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.assign_role(
            user_id=int(pk),
            role_id=serializer.validated_data["role_id"],
            performed_by=request.user,
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Activate a user", request=None, responses={200: UserDetailSerializer}, tags=["Accounts"])
    @action(detail=True, methods=["patch"], url_path="activate")
    def activate(self, request: Request, pk: str = None) -> Response:
        """PATCH /api/accounts/users/{id}/activate/"""
        user = UserManagementService.set_active(int(pk), request.user, active=True)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Deactivate a user", request=None, responses={200: UserDetailSerializer}, tags=["Accounts"])
    @action(detail=True, methods=["patch"], url_path="deactivate")
    def deactivate(self, request: Request, pk: str = None) -> Response:
        """PATCH /api/accounts/users/{id}/deactivate/"""
        user = UserManagementService.set_active(int(pk), request.user, active=False)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Roles
# ═══════════════════════════════════════════════════════════════════


class RoleListView(generics.ListAPIView):
    """GET /api/accounts/roles/ — the seeded roles, for the assign-role UI."""

    permission_classes = [IsAuthenticated]
    serializer_class = RoleListSerializer
    pagination_class = None

    def get_queryset(self):
        return list_roles()
