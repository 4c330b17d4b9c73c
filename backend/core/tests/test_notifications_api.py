"""
Tests for the notification inbox (``/api/core/notifications/``) and the
``NotificationService`` template rendering.
"""

from __future__ import annotations

import pytest
from django.urls import reverse
from rest_framework import status

from core.domain.notifications import NotificationService
from core.models import Notification

pytestmark = pytest.mark.django_db

LIST_URL = reverse("core:notification-list")


def _read_url(pk: int) -> str:
    return reverse("core:notification-mark-as-read", kwargs={"pk": pk})


def _detail_url(pk: int) -> str:
    return reverse("core:notification-detail", kwargs={"pk": pk})


@pytest.fixture()
def parties(create_user):
    return create_user(username="alice"), create_user(username="bob")


@pytest.fixture()
def filed(file_case, parties):
    complainant, respondent = parties
    return file_case(complainant, opposite_party_email=respondent.email)


class TestRender:

    def test_known_template_is_interpolated(self):
        category, title, message = NotificationService.render(
            "case_response_received", {"case_number": "RES-2026-000001", "decision": "declined"},
        )
        assert category == "CASE_RESPONSE"
        assert title == "Case Response Received"
        assert message == "The opposite party has declined your case #RES-2026-000001."

    def test_unknown_template_falls_back(self):
        category, title, _message = NotificationService.render("something_else")
        assert category == "SYSTEM"
        assert title == "Something Else"

    def test_duplicate_recipients_collapse(self, parties):
        alice, _bob = parties
        created = NotificationService.create(
            actor=None, recipients=[alice, alice.pk], event_type="case_cancelled",
            context={"case_number": "X"},
        )
        assert len(created) == 1


class TestInbox:

    def test_list_only_own_notifications(self, client_for, parties, filed):
        alice, bob = parties

        resp = client_for(bob).get(LIST_URL)

        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["unread_count"] == 1
        [item] = resp.data["notifications"]
        assert item["title"] == "New Case Filed Against You"
        assert item["case_number"] == filed.case_number

    def test_mark_as_read_is_idempotent(self, client_for, parties, filed):
        alice, _bob = parties
        notification = Notification.objects.get(recipient=alice)
        client = client_for(alice)

        first = client.post(_read_url(notification.pk))
        second = client.post(_read_url(notification.pk))

        assert first.status_code == second.status_code == status.HTTP_200_OK
        assert second.data["is_read"] is True
        assert client.get(LIST_URL, {"unread_only": "true"}).data["notifications"] == []

    def test_other_users_notification_is_not_found(self, client_for, parties, filed):
        alice, bob = parties
        notification = Notification.objects.get(recipient=alice)

        client = client_for(bob)
        assert client.post(_read_url(notification.pk)).status_code == status.HTTP_404_NOT_FOUND
        assert client.delete(_detail_url(notification.pk)).status_code == status.HTTP_404_NOT_FOUND
        assert Notification.objects.filter(pk=notification.pk, is_read=False).exists()

    def test_non_numeric_id_is_not_found(self, client_for, parties, filed):
        alice, _bob = parties
        client = client_for(alice)

        assert client.post(_read_url("abc")).status_code == status.HTTP_404_NOT_FOUND
        assert client.delete(_detail_url("abc")).status_code == status.HTTP_404_NOT_FOUND

    def test_mark_all_and_delete(self, client_for, parties, filed, engine):
        from core.domain.identity import CallerIdentity

        alice, _bob = parties
        engine.cancel_case(filed.pk, CallerIdentity.from_user(alice)).unwrap()
        client = client_for(alice)

        resp = client.post(reverse("core:notification-mark-all-as-read"))
        assert resp.data == {"updated": 2}

        notification = Notification.objects.filter(recipient=alice).first()
        assert client.delete(_detail_url(notification.pk)).status_code == status.HTTP_204_NO_CONTENT
        assert Notification.objects.filter(recipient=alice).count() == 1

    def test_requires_authentication(self, api_client):
        assert api_client.get(LIST_URL).status_code == status.HTTP_401_UNAUTHORIZED
