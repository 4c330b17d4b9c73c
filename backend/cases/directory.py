"""
cases.directory — Read-only lookups into the user registry.

The workflow engine resolves e-mail addresses and user ids through a
``UserDirectory`` instead of querying the user model itself, so tests
can hand it a fake.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from django.contrib.auth import get_user_model
from django.db.models import Q

if TYPE_CHECKING:
    from accounts.models import User


class UserDirectory:
    """Looks users up in the configured ``AUTH_USER_MODEL``."""

    @property
    def _model(self):
        return get_user_model()

    def resolve_by_email(self, email: str) -> User | None:
        """Return the active user registered under ``email`` (case-insensitive)."""
        if not email:
            return None
        return (
            self._model.objects
            .filter(email__iexact=email.strip(), is_active=True)
            .first()
        )

    def resolve_many_by_email(self, emails: Iterable[str]) -> dict[str, User]:
        """Map each lower-cased e-mail that resolves to its user."""
        wanted = {e.strip().lower() for e in emails if e}
        if not wanted:
            return {}
        query = Q()
        for email in wanted:
            query |= Q(email__iexact=email)
        return {
            user.email.lower(): user
            for user in self._model.objects.filter(query, is_active=True)
        }

    def get(self, user_id: int) -> User | None:
        return self._model.objects.filter(pk=user_id, is_active=True).first()

    def get_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        return {u.pk: u for u in self._model.objects.filter(pk__in=list(user_ids), is_active=True)}
