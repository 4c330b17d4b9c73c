"""
Tests for login, the "me" profile and administrator user management.

Endpoints under test:
    POST  /api/accounts/auth/login/
    POST  /api/accounts/auth/token/refresh/
    GET   /api/accounts/me/            PATCH /api/accounts/me/
    GET   /api/accounts/users/         GET   /api/accounts/users/{id}/
    PATCH /api/accounts/users/{id}/assign-role/ | activate/ | deactivate/
    GET   /api/accounts/roles/
"""

from __future__ import annotations

import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

pytestmark = pytest.mark.django_db

PASSWORD = "TestPass123!"


@pytest.fixture()
def member(create_user):
    return create_user(username="member", email="member@example.com", phone_number="+15550004242")


# ═══════════════════════════════════════════════════════════════════
#  Login
# ═══════════════════════════════════════════════════════════════════


class TestLogin:

    url = reverse("accounts:login")

    @pytest.mark.parametrize("identifier", ["member", "MEMBER@example.com", "+15550004242"])
    def test_login_with_any_identifier(self, api_client, member, identifier):
        resp = api_client.post(self.url, {"identifier": identifier, "password": PASSWORD}, format="json")

        assert resp.status_code == status.HTTP_200_OK, resp.data
        assert resp.data["user"]["id"] == member.pk
        assert resp.data["refresh"]

    def test_token_carries_role_claims(self, api_client, admin_user):
        resp = api_client.post(self.url, {"identifier": "admin", "password": PASSWORD}, format="json")

        token = AccessToken(resp.data["access"])
        assert token["role"] == "Administrator"
        assert token["is_case_admin"] is True

    def test_wrong_password(self, api_client, member):
        resp = api_client.post(self.url, {"identifier": "member", "password": "nope"}, format="json")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_inactive_user_cannot_login(self, api_client, create_user):
        create_user(username="sleepy", is_active=False)
        resp = api_client.post(self.url, {"identifier": "sleepy", "password": PASSWORD}, format="json")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_refresh(self, api_client, member):
        login = api_client.post(self.url, {"identifier": "member", "password": PASSWORD}, format="json")
        resp = api_client.post(
            reverse("accounts:token-refresh"), {"refresh": login.data["refresh"]}, format="json",
        )
        assert resp.status_code == status.HTTP_200_OK
        assert "access" in resp.data


# ═══════════════════════════════════════════════════════════════════
#  Me
# ═══════════════════════════════════════════════════════════════════


class TestMe:

    url = reverse("accounts:me")

    def test_profile(self, client_for, member):
        resp = client_for(member).get(self.url)

        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["username"] == "member"
        assert resp.data["role_detail"]["name"] == "Member"
        assert "cases.can_administer_cases" not in resp.data["permissions"]

    def test_update_own_profile(self, client_for, member):
        resp = client_for(member).patch(self.url, {"first_name": "Renamed"}, format="json")

        assert resp.status_code == status.HTTP_200_OK
        member.refresh_from_db()
        assert member.first_name == "Renamed"

    def test_cannot_change_role_or_username(self, client_for, member, roles):
        resp = client_for(member).patch(
            self.url,
            {"username": "hijack", "role": roles["Administrator"].pk},
            format="json",
        )

        assert resp.status_code == status.HTTP_200_OK
        member.refresh_from_db()
        assert member.username == "member"
        assert member.role == roles["Member"]

    def test_requires_authentication(self, api_client):
        assert api_client.get(self.url).status_code == status.HTTP_401_UNAUTHORIZED


# ═══════════════════════════════════════════════════════════════════
#  User management
# ═══════════════════════════════════════════════════════════════════


class TestUserManagement:

    list_url = reverse("accounts:user-list")

    def test_admin_lists_and_searches(self, client_for, admin_user, member):
        client = client_for(admin_user)

        resp = client.get(self.list_url)
        assert resp.status_code == status.HTTP_200_OK
        assert {u["username"] for u in resp.data} == {"admin", "member"}

        resp = client.get(self.list_url, {"search": "mem"})
        assert [u["username"] for u in resp.data] == ["member"]
        assert resp.data[0]["role_name"] == "Member"

    def test_member_is_forbidden(self, client_for, member):
        resp = client_for(member).get(self.list_url)
        assert resp.status_code == status.HTTP_403_FORBIDDEN

    def test_assign_role_grants_admin_capability(self, client_for, admin_user, member, roles):
        url = reverse("accounts:user-assign-role", kwargs={"pk": member.pk})

        resp = client_for(admin_user).patch(url, {"role_id": roles["Administrator"].pk}, format="json")

        assert resp.status_code == status.HTTP_200_OK, resp.data
        assert "cases.can_administer_cases" in resp.data["permissions"]

    def test_assign_unknown_role(self, client_for, admin_user, member):
        url = reverse("accounts:user-assign-role", kwargs={"pk": member.pk})
        resp = client_for(admin_user).patch(url, {"role_id": 9999}, format="json")
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_deactivate_and_activate(self, client_for, admin_user, member):
        client = client_for(admin_user)

        resp = client.patch(reverse("accounts:user-deactivate", kwargs={"pk": member.pk}))
        assert resp.data["is_active"] is False

        resp = client.patch(reverse("accounts:user-activate", kwargs={"pk": member.pk}))
        assert resp.data["is_active"] is True

    def test_cannot_deactivate_self(self, client_for, admin_user):
        resp = client_for(admin_user).patch(
            reverse("accounts:user-deactivate", kwargs={"pk": admin_user.pk}),
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        admin_user.refresh_from_db()
        assert admin_user.is_active

    def test_roles_listed_highest_first(self, client_for, member):
        resp = client_for(member).get(reverse("accounts:role-list"))
        assert [r["name"] for r in resp.data] == ["Administrator", "Member"]
