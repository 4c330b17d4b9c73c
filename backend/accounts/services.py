"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service function / method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — new-user creation and case linking.
- ``UserManagementService``    — user listing, role assignment, activation.
- ``CurrentUserService``       — "Me" endpoint helpers.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q, QuerySet

from core.domain.access import require_permission
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.permissions_constants import AccountsPerms

from .management.commands.setup_rbac import MEMBER_ROLE, ROLE_PERMISSIONS_MAP, seed_roles
from .models import Role

User = get_user_model()

logger = logging.getLogger(__name__)

MANAGE_USERS_PERM = f"accounts.{AccountsPerms.CAN_MANAGE_USERS}"


def _default_role() -> Role:
    """Return the "Member" role, seeding the RBAC roles if missing."""
    role = Role.objects.filter(name=MEMBER_ROLE).first()
    if role is None:
        role = seed_roles()[MEMBER_ROLE]
    return role


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """Encapsulates the user registration flow."""

    @staticmethod
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new user with the default "Member" role and link every
        pending case that names the new e-mail as opposite party.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``RegisterRequestSerializer`` containing
            ``username``, ``password``, ``email``, ``phone_number``,
            ``first_name``, ``last_name``.

        Returns
        -------
        User
            The newly created (and saved) ``User`` instance.

        Raises
        ------
        core.domain.exceptions.Conflict
            If a unique field (username, email, phone_number) is
            already taken.
        """
        validated_data.pop("password_confirm", None)
        password = validated_data.pop("password")

        conflicts = []
        if User.objects.filter(username=validated_data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=validated_data.get("email")).exists():
            conflicts.append("email")
        if User.objects.filter(phone_number=validated_data.get("phone_number")).exists():
            conflicts.append("phone_number")

        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        member_role = _default_role()

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    password=password,
                    **validated_data,
                )
                user.role = member_role
                user.save(update_fields=["role"])
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        logger.info("Registered user=%s", user.pk)

        from cases.services import CaseWorkflowService

        try:
            with transaction.atomic():
                result = CaseWorkflowService.default().link_pending_cases(user)
        except DatabaseError:
            logger.exception("Linking pending cases failed for user=%s", user.pk)
            return user
        if not result.is_ok:
            logger.warning("Could not link pending cases to user=%s: %s", user.pk, result.message)
        return user


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on users: listing, role assignment,
    activation, and deactivation.

    Every method requires ``accounts.can_manage_users``.  Administrators
    use the listing to pick panel members for a case.
    """

    @staticmethod
    def list_users(
        requesting_user: User,
        *,
        role_id: int | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        """
        Return a filtered queryset of users.

        Parameters
        ----------
        requesting_user : User
            Must hold ``accounts.can_manage_users``.
        role_id : int, optional
            Filter by ``role__id``.
        is_active : bool, optional
            Filter by ``is_active`` status.
        search : str, optional
            Case-insensitive search across ``username``, ``email``,
            ``phone_number``, ``first_name``, ``last_name``.
        """
        require_permission(requesting_user, MANAGE_USERS_PERM)

        qs = User.objects.select_related("role").order_by("username")

        if role_id is not None:
            qs = qs.filter(role_id=role_id)
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(phone_number__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )

        return qs

    @staticmethod
    def get_user(requesting_user: User, user_id: int) -> User:
        require_permission(requesting_user, MANAGE_USERS_PERM)
        try:
            return User.objects.select_related("role").get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    def assign_role(*, user_id: int, role_id: int, performed_by: User) -> User:
        """
        Assign (or change) a user's role.

        Raises
        ------
        PermissionDenied
            If the requester lacks ``accounts.can_manage_users``.
        NotFound
            If the user or the role does not exist.
        """
        target_user = UserManagementService.get_user(performed_by, user_id)

        try:
            new_role = Role.objects.get(pk=role_id)
        except Role.DoesNotExist:
            raise NotFound(f"Role with id {role_id} not found.")

        target_user.role = new_role
        target_user.save(update_fields=["role"])

        if hasattr(target_user, "_perm_cache"):
            del target_user._perm_cache

        logger.info(
            "Role of user=%s set to %r by user=%s", target_user.pk, new_role.name, performed_by.pk
        )
        return target_user

    @staticmethod
    def set_active(user_id: int, performed_by: User, *, active: bool) -> User:
        """
        Activate or deactivate the target user.

        Administrators may not deactivate themselves.
        """
        target_user = UserManagementService.get_user(performed_by, user_id)

        if not active and target_user.pk == performed_by.pk:
            raise DomainError("You cannot deactivate your own account.")

        target_user.is_active = active
        target_user.save(update_fields=["is_active"])
        return target_user


# ═══════════════════════════════════════════════════════════════════
#  Role Listing
# ═══════════════════════════════════════════════════════════════════


def list_roles() -> QuerySet[Role]:
    """Return the seeded roles, highest authority first."""
    names = [name for name, _description, _level in ROLE_PERMISSIONS_MAP]
    return Role.objects.filter(name__in=names).order_by("-hierarchy_level")


# ═══════════════════════════════════════════════════════════════════
#  Current User Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """
    Helpers for the "Me" endpoint.

    The frontend uses the profile to discover who the logged-in user
    is, which ``Role`` they hold, and a flat list of permission strings
    (e.g. whether to show the administration screens).
    """

    @staticmethod
    def get_profile(user: User) -> User:
        """
        Return the user instance with role and permissions pre-fetched
        so that ``UserDetailSerializer`` renders without N+1 queries.
        """
        return (
            User.objects.select_related("role")
            .prefetch_related("role__permissions__content_type")
            .get(pk=user.pk)
        )

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Update the authenticated user's own profile fields.

        The user may NOT change their own ``role``, ``is_active`` or
        ``username`` via this endpoint.
        """
        for field, value in validated_data.items():
            setattr(user, field, value)
        user.save(update_fields=list(validated_data.keys()))

        return CurrentUserService.get_profile(user)
