"""
Accounts app models.

Defines the dynamic Role system and a custom User model that extends
Django's ``AbstractUser``.  E-mail and phone number are unique: the
e-mail is how an opposite party named in a case is matched to an
account.
"""

from django.contrib.auth.models import AbstractUser, Permission
from django.db import models

from core.permissions_constants import AccountsPerms


class Role(models.Model):
    """
    Dynamic, admin-manageable role.

    Default roles seeded by ``setup_rbac``: Administrator, Member.

    Note on Custom Permissions:
    Custom permissions are defined as constants in
    ``core.permissions_constants`` and registered in each model's
    ``Meta.permissions`` tuple using those constants.  The ``setup_rbac``
    management command links these permissions to ``Role`` objects — it
    never creates permissions itself.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Hierarchy Level",
        help_text="Higher value = more authority (e.g. Administrator=100, Member=0).",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
        help_text="Specific permissions for this role.",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Custom user model for ResolveIt.

    Registration requires username, password, email, phone_number,
    first_name and last_name.  Login is supported via *any one* of
    username / email / phone_number together with the password.

    Each user holds exactly **one** role at a time (FK to ``Role``).
    New users register as "Member".
    """

    phone_number = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="Phone Number",
        db_index=True,
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    # ── Single-role assignment (dynamic RBAC) ────────────────────────
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email", "phone_number", "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (AccountsPerms.CAN_MANAGE_USERS, "Admin-level user management"),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} ({self.get_full_name()}) - {role_name}"

    # ── RBAC Permission Overrides ────────────────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """
        Return the set of ``'app_label.codename'`` strings granted by the
        user's role (every permission for superusers).
        """
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type").all()
                self._superuser_perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}
            return self._superuser_perm_cache

        if not self.role_id:
            return set()

        if not hasattr(self, "_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}

        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        """Superusers hold every permission; others hold their role's."""
        if self.is_active and self.is_superuser:
            return True
        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return any(perm.startswith(f"{app_label}.") for perm in self.get_all_permissions())

    @property
    def permissions_list(self) -> list[str]:
        """Flat, sorted permission strings for the "me" payload."""
        return sorted(self.get_all_permissions())
