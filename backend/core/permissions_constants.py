"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (services, ``setup_rbac``,
``CallerIdentity``) MUST use one of the constants defined here.

Organisation
------------
- **Standard CRUD** permissions follow Django's auto-generated naming:
  ``<action>_<model_lowercase>``. They are listed here for reference so
  that the ``setup_rbac`` command can map them to roles without typos.

- **Custom workflow** permissions are constants that map to codenames
  registered via each model's ``Meta.permissions`` tuple. Adding a new
  custom permission requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Add a migration so it lands in ``auth_permission``.
    4. Add the constant to the appropriate role lists in ``setup_rbac``.

All constants store the **codename only** (no ``app_label.`` prefix).
"""


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard + custom permissions for accounts models."""

    VIEW_ROLE = "view_role"
    VIEW_USER = "view_user"

    # ── Custom ──────────────────────────────────────────────────────
    CAN_MANAGE_USERS = "can_manage_users"
    """Admin-level user management (list users, assign roles)."""


# ════════════════════════════════════════════════════════════════════
#  CASES APP
# ════════════════════════════════════════════════════════════════════

class CasesPerms:
    """Standard + custom permissions for the cases app."""

    VIEW_CASE = "view_case"
    ADD_CASE = "add_case"
    VIEW_CASEHISTORY = "view_casehistory"
    VIEW_WITNESS = "view_witness"
    ADD_WITNESS = "add_witness"
    VIEW_MEDIATIONPANEL = "view_mediationpanel"
    VIEW_EVIDENCE = "view_evidence"
    ADD_EVIDENCE = "add_evidence"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_ADMINISTER_CASES = "can_administer_cases"
    """Global case administration: panels, status changes, overrides."""


# ════════════════════════════════════════════════════════════════════
#  CORE APP
# ════════════════════════════════════════════════════════════════════

class CorePerms:
    """Standard permissions for core models."""

    VIEW_NOTIFICATION = "view_notification"
    CHANGE_NOTIFICATION = "change_notification"
    DELETE_NOTIFICATION = "delete_notification"
