"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with the base **Roles** and links each role to its
set of Django permissions.

Key design principle — **this command does NOT create Permission objects**.
Permissions must already exist in the database:
    • Standard CRUD permissions are auto-created by Django after
      ``migrate`` (one per model × {add, change, delete, view}).
    • Custom permissions (``cases.can_administer_cases``,
      ``accounts.can_manage_users``) are declared in each model's
      ``Meta.permissions`` tuple and inserted by ``migrate``.

The command is **idempotent** — safe to run multiple times.  Existing
roles are updated; permissions are replaced (set) to match the
mapping below.

Usage::

    python manage.py setup_rbac
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand

from accounts.models import Role
from core.permissions_constants import AccountsPerms, CasesPerms, CorePerms

ADMINISTRATOR_ROLE = "Administrator"
MEMBER_ROLE = "Member"

# ────────────────────────────────────────────────────────────────────
# Role → Permission mapping  (uses constants — zero hard-coded strings)
# ────────────────────────────────────────────────────────────────────
# Key:   (role_name, description, hierarchy_level)
# Value: list of (app_label, codename) pairs

ROLE_PERMISSIONS_MAP: dict[tuple[str, str, int], list[tuple[str, str]]] = {

    # ── Administrator ───────────────────────────────────────────────
    (
        ADMINISTRATOR_ROLE,
        "Global case administration: panels, status overrides, user management.",
        100,
    ): [
        ("accounts", AccountsPerms.VIEW_ROLE),
        ("accounts", AccountsPerms.VIEW_USER),
        ("accounts", AccountsPerms.CAN_MANAGE_USERS),
        ("cases", CasesPerms.VIEW_CASE),
        ("cases", CasesPerms.ADD_CASE),
        ("cases", CasesPerms.VIEW_CASEHISTORY),
        ("cases", CasesPerms.VIEW_WITNESS),
        ("cases", CasesPerms.VIEW_MEDIATIONPANEL),
        ("cases", CasesPerms.VIEW_EVIDENCE),
        ("cases", CasesPerms.CAN_ADMINISTER_CASES),
        ("core", CorePerms.VIEW_NOTIFICATION),
        ("core", CorePerms.CHANGE_NOTIFICATION),
        ("core", CorePerms.DELETE_NOTIFICATION),
    ],

    # ── Member ──────────────────────────────────────────────────────
    (
        MEMBER_ROLE,
        "Default role for registered users: file cases, respond, testify.",
        0,
    ): [
        ("cases", CasesPerms.VIEW_CASE),
        ("cases", CasesPerms.ADD_CASE),
        ("cases", CasesPerms.ADD_WITNESS),
        ("cases", CasesPerms.ADD_EVIDENCE),
        ("core", CorePerms.VIEW_NOTIFICATION),
        ("core", CorePerms.CHANGE_NOTIFICATION),
        ("core", CorePerms.DELETE_NOTIFICATION),
    ],
}


def seed_roles(stdout=None, style=None) -> dict[str, Role]:
    """Create / update every role in ``ROLE_PERMISSIONS_MAP``; return them by name."""
    all_permissions: dict[tuple[str, str], Permission] = {
        (p.content_type.app_label, p.codename): p
        for p in Permission.objects.select_related("content_type").all()
    }

    roles: dict[str, Role] = {}
    for (role_name, description, hierarchy_level), keys in ROLE_PERMISSIONS_MAP.items():
        role, created = Role.objects.update_or_create(
            name=role_name,
            defaults={"description": description, "hierarchy_level": hierarchy_level},
        )

        resolved = []
        for key in keys:
            perm = all_permissions.get(key)
            if perm is None:
                if stdout is not None:
                    stdout.write(style.WARNING(
                        f"  ⚠  Permission '{key[0]}.{key[1]}' not found — "
                        f"skipped for role '{role_name}'.  (Run migrate first?)"
                    ))
                continue
            resolved.append(perm)
        role.permissions.set(resolved)
        roles[role_name] = role

        if stdout is not None:
            stdout.write(style.SUCCESS(
                f"  ✔  {'Created' if created else 'Updated'} role: {role_name:<15s} "
                f"(hierarchy={hierarchy_level}, permissions={len(resolved)})"
            ))
    return roles


class Command(BaseCommand):
    help = (
        "Seeds the database with the Administrator and Member roles and "
        "maps each to its Django permissions.  Safe to run multiple times.  "
        "Does NOT create permissions — run `migrate` first."
    )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  RBAC Setup — Seeding Roles & Permissions"
            "\n══════════════════════════════════════════\n"
        ))
        roles = seed_roles(self.stdout, self.style)
        self.stdout.write(self.style.SUCCESS(f"\n  Done!  {len(roles)} role(s) in place.\n"))
