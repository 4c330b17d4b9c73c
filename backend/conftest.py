"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``roles`` / ``admin_user`` fixtures backed by ``setup_rbac``.
  - ``recording_notifier`` / ``engine`` fixtures for the workflow engine.
  - ``case_payload`` / ``file_case`` helpers for building cases.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def roles(db):
    """Seed the Administrator and Member roles; return them by name."""
    from accounts.management.commands.setup_rbac import seed_roles

    return seed_roles()


@pytest.fixture()
def create_user(db, roles):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            # or with all fields:
            user = create_user(
                username="bob",
                password="Str0ng!Pass",
                email="bob@example.com",
                phone_number="+15550000001",
            )

    Users get the "Member" role unless ``role`` is given.
    """
    from accounts.models import User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        phone_number: str | None = None,
        role=None,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"
        if phone_number is None:
            phone_number = f"+1555{_counter:07d}"
        kwargs.setdefault("first_name", username.capitalize())
        kwargs.setdefault("last_name", "Tester")

        user = User.objects.create_user(
            username=username,
            password=password,
            email=email,
            phone_number=phone_number,
            is_active=is_active,
            **kwargs,
        )
        user.role = role if role is not None else roles["Member"]
        user.save(update_fields=["role"])
        return user

    return _factory


@pytest.fixture()
def admin_user(create_user, roles):
    """A user holding the Administrator role (``cases.can_administer_cases``)."""
    return create_user(username="admin", role=roles["Administrator"])


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper that builds an ``Authorization`` header dict with a
    valid JWT access token for a user (created on the fly when omitted).

    Usage::

        def test_protected(auth_header, api_client, admin_user):
            header = auth_header(admin_user)
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/cases/statistics/")
            assert resp.status_code == 200
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(user=None, **user_kwargs) -> dict[str, str]:
        if user is None:
            user = create_user(**user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def client_for(auth_header):
    """Return an ``APIClient`` authenticated as the given user."""

    def _make(user) -> APIClient:
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=auth_header(user)["Authorization"])
        return client

    return _make


class RecordingNotifier:
    """Notifier test double that keeps every published event."""

    def __init__(self) -> None:
        self.published: list[tuple[int, dict]] = []

    def publish(self, user_id: int, event: dict) -> None:
        self.published.append((user_id, event))

    def recipients(self) -> list[int]:
        return [user_id for user_id, _event in self.published]


@pytest.fixture()
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def engine(db, recording_notifier):
    """``CaseWorkflowService`` wired to the recording notifier."""
    from cases.services import CaseWorkflowService

    return CaseWorkflowService(notifier=recording_notifier)


@pytest.fixture()
def case_payload():
    """Factory for a valid case creation payload."""

    def _make(**overrides) -> dict:
        payload = {
            "category": "BUSINESS",
            "issue_description": (
                "The supplier delivered damaged goods and refuses to refund "
                "the advance payment agreed in our contract."
            ),
            "priority": "HIGH",
            "opposite_party_name": "Opposite Party",
            "opposite_party_email": "",
            "opposite_party_phone": "+1 555 010 2030",
            "opposite_party_address": "42 Market Street, Springfield",
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture()
def file_case(engine, case_payload):
    """File a case through the engine and return it (``Ok`` expected)."""
    from core.domain.identity import CallerIdentity

    def _make(complainant, **overrides):
        result = engine.create_case(CallerIdentity.from_user(complainant), case_payload(**overrides))
        assert result.is_ok, result
        return result.value

    return _make
