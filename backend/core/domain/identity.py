"""
core.domain.identity — The caller as the workflow engine sees it.

The engine never inspects requests, tokens or sessions.  Views build a
``CallerIdentity`` from the already-authenticated ``request.user`` and pass
it explicitly into every service call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from core.permissions_constants import CasesPerms

if TYPE_CHECKING:
    from accounts.models import User


class CallerRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


@dataclass(frozen=True)
class CallerIdentity:
    """Strongly-typed identity of the user invoking an operation."""

    id: int
    role: CallerRole = CallerRole.MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role is CallerRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> CallerIdentity:
        """
        Derive the identity from an authenticated user.

        The admin capability is the ``cases.can_administer_cases``
        permission (superusers hold every permission).
        """
        is_admin = user.has_perm(f"cases.{CasesPerms.CAN_ADMINISTER_CASES}")
        return cls(id=user.pk, role=CallerRole.ADMIN if is_admin else CallerRole.MEMBER)

    @classmethod
    def admin(cls, user_id: int) -> CallerIdentity:
        return cls(id=user_id, role=CallerRole.ADMIN)

    @classmethod
    def member(cls, user_id: int) -> CallerIdentity:
        return cls(id=user_id, role=CallerRole.MEMBER)
