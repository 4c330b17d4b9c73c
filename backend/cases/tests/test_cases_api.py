"""
Integration tests for the case endpoints, driven through real HTTP
requests with JWT login.

Covers the full mediation flow (file → accept → nominate → panel →
mediate → resolve), the error-to-status mapping (400 / 403 / 404 / 409)
and the admin-only endpoints.
"""

from __future__ import annotations

import shutil
import tempfile

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.management.commands.setup_rbac import ADMINISTRATOR_ROLE, MEMBER_ROLE, seed_roles
from cases.models import Case, CaseHistory, CaseStatus
from core.models import Notification

User = get_user_model()

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class TestCaseEndpoints(TestCase):

    @classmethod
    def setUpTestData(cls):
        roles = seed_roles()
        cls.password = "Mediate!Pass42"

        def make(username, phone, role=MEMBER_ROLE):
            return User.objects.create_user(
                username=username,
                password=cls.password,
                email=f"{username}@example.com",
                phone_number=phone,
                first_name=username.capitalize(),
                last_name="Test",
                role=roles[role],
            )

        cls.complainant = make("complainant", "+15550001001")
        cls.respondent = make("respondent", "+15550001002")
        cls.witness = make("witness", "+15550001003")
        cls.arbiter = make("arbiter", "+15550001004")
        cls.outsider = make("outsider", "+15550001005")
        cls.admin = make("caseadmin", "+15550001006", role=ADMINISTRATOR_ROLE)

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.client = APIClient()
        self.login_url = reverse("accounts:login")
        self.list_url = reverse("case-list")

    def login_as(self, user) -> None:
        resp = self.client.post(
            self.login_url,
            {"identifier": user.username, "password": self.password},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Login failed: {resp.data}")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    def action_url(self, case_id: int, name: str) -> str:
        return reverse(f"case-{name}", kwargs={"pk": case_id})

    def file_case(self, **overrides) -> dict:
        self.login_as(self.complainant)
        payload = {
            "category": "FAMILY",
            "issue_description": (
                "My neighbour built a wall across the shared driveway and will "
                "not discuss moving it."
            ),
            "priority": "MEDIUM",
            "opposite_party_name": "Respondent Test",
            "opposite_party_email": self.respondent.email,
            "opposite_party_phone": "+1 555 000 1002",
            "opposite_party_address": "17 Elm Road, Springfield",
        }
        payload.update(overrides)
        resp = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        return resp.data

    # ── Creation ─────────────────────────────────────────────────────

    def test_create_links_registered_respondent(self):
        data = self.file_case()

        self.assertEqual(data["status"], CaseStatus.AWAITING_RESPONSE)
        self.assertEqual(data["complainant"]["id"], self.complainant.pk)
        self.assertEqual(data["respondent"]["id"], self.respondent.pk)
        self.assertIsNone(data["panel"])
        self.assertEqual(Notification.objects.filter(case_id=data["id"]).count(), 2)

    def test_create_reports_every_invalid_field(self):
        self.login_as(self.complainant)
        resp = self.client.post(
            self.list_url,
            {"category": "WEATHER", "issue_description": "short", "is_in_court": True},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "VALIDATION")
        for field in ("category", "issue_description", "opposite_party_name", "court_case_number", "court_name"):
            self.assertIn(field, resp.data["errors"])
        self.assertFalse(Case.objects.exists())

    def test_create_reports_length_and_companion_errors_together(self):
        self.login_as(self.complainant)
        resp = self.client.post(
            self.list_url,
            {
                "category": "FAMILY",
                "issue_description": "too short",
                "opposite_party_name": "Respondent Test",
                "opposite_party_phone": "12",
                "is_in_court": True,
            },
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            set(resp.data["errors"]),
            {"issue_description", "opposite_party_phone", "court_case_number", "court_name"},
        )

    def test_create_with_email_only_contact(self):
        data = self.file_case(opposite_party_phone="", opposite_party_address=None)

        self.assertEqual(data["status"], CaseStatus.AWAITING_RESPONSE)
        case = Case.objects.get(pk=data["id"])
        self.assertEqual(case.opposite_party_phone, "")
        self.assertEqual(case.opposite_party_address, "")

    def test_create_requires_authentication(self):
        resp = self.client.post(self.list_url, {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    # ── Full flow ────────────────────────────────────────────────────

    def test_full_mediation_flow(self):
        case_id = self.file_case()["id"]

        self.login_as(self.respondent)
        resp = self.client.post(
            self.action_url(case_id, "respond"),
            {"accepted": True, "response": "Willing to talk it through."},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.ACCEPTED)

        resp = self.client.post(
            self.action_url(case_id, "witnesses"),
            {"witness_emails": [self.witness.email]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)

        self.login_as(self.witness)
        resp = self.client.post(
            self.action_url(case_id, "witness-statement"),
            {"statement": "The wall went up over one weekend in March."},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertIsNotNone(resp.data["statement_submitted_at"])

        self.login_as(self.admin)
        resp = self.client.post(
            self.action_url(case_id, "panel"), {"arbiter_id": self.arbiter.pk}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)

        resp = self.client.post(self.action_url(case_id, "begin-mediation"), {}, format="json")
        self.assertEqual(resp.data["status"], CaseStatus.MEDIATION_IN_PROGRESS)

        resp = self.client.post(
            self.action_url(case_id, "resolve"),
            {"reason": "Wall will be moved by the end of the month."},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.RESOLVED)
        self.assertEqual(resp.data["panel"]["arbiter"]["id"], self.arbiter.pk)

        resp = self.client.get(self.action_url(case_id, "history"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [entry["action"] for entry in resp.data],
            [
                "CASE_CREATED",
                "CASE_ACCEPTED",
                "WITNESSES_NOMINATED",
                "WITNESS_STATEMENT_ADDED",
                "PANEL_CREATED",
                "MEDIATION_STARTED",
                "CASE_RESOLVED",
            ],
        )

        # The arbiter now sees the case through the panel.
        self.login_as(self.arbiter)
        resp = self.client.get(self.list_url)
        self.assertEqual([c["id"] for c in resp.data], [case_id])

    # ── Error mapping ────────────────────────────────────────────────

    def test_outsider_gets_404(self):
        case_id = self.file_case()["id"]
        self.login_as(self.outsider)

        self.assertEqual(
            self.client.get(reverse("case-detail", kwargs={"pk": case_id})).status_code,
            status.HTTP_404_NOT_FOUND,
        )
        resp = self.client.post(self.action_url(case_id, "respond"), {"accepted": True}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_complainant_responding_gets_403(self):
        case_id = self.file_case()["id"]
        resp = self.client.post(self.action_url(case_id, "respond"), {"accepted": True}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "FORBIDDEN")

    def test_second_response_gets_409(self):
        case_id = self.file_case()["id"]
        self.login_as(self.respondent)
        self.client.post(self.action_url(case_id, "respond"), {"accepted": False}, format="json")

        resp = self.client.post(self.action_url(case_id, "respond"), {"accepted": True}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["current_status"], CaseStatus.UNRESOLVED)
        self.assertEqual(resp.data["attempted_status"], CaseStatus.ACCEPTED)

    def test_member_cannot_use_admin_endpoints(self):
        case_id = self.file_case()["id"]

        resp = self.client.post(
            self.action_url(case_id, "set-status"), {"status": CaseStatus.RESOLVED}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            self.client.get(reverse("case-statistics")).status_code, status.HTTP_403_FORBIDDEN,
        )

    # ── Cancel / override / evidence / listing ───────────────────────

    def test_complainant_cancels_then_admin_reopens(self):
        case_id = self.file_case()["id"]
        resp = self.client.post(
            self.action_url(case_id, "cancel"), {"reason": "Sorted it out over coffee."}, format="json",
        )
        self.assertEqual(resp.data["status"], CaseStatus.CANCELLED)
        self.assertTrue(resp.data["is_terminal"])

        self.login_as(self.admin)
        resp = self.client.post(
            self.action_url(case_id, "set-status"),
            {"status": CaseStatus.AWAITING_RESPONSE, "reason": "Complainant asked to reopen."},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.AWAITING_RESPONSE)
        self.assertEqual(
            CaseHistory.objects.filter(case_id=case_id).last().action, "ADMIN_OVERRIDE",
        )

    def test_pending_case_linked_by_admin(self):
        case_id = self.file_case(opposite_party_email="")["id"]
        self.login_as(self.admin)

        resp = self.client.post(
            self.action_url(case_id, "link-respondent"),
            {"respondent_id": self.respondent.pk},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.AWAITING_RESPONSE)

    def test_evidence_upload_and_listing(self):
        case_id = self.file_case()["id"]
        upload = SimpleUploadedFile("photo.png", b"\x89PNG\r\n\x1a\n", content_type="image/png")

        resp = self.client.post(self.action_url(case_id, "evidence"), {"file": upload}, format="multipart")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp.data["file_type"], "IMAGE")

        resp = self.client.get(self.action_url(case_id, "evidence"))
        self.assertEqual(len(resp.data), 1)

    def test_list_filters_and_scoping(self):
        family_id = self.file_case()["id"]
        business_id = self.file_case(category="BUSINESS")["id"]

        resp = self.client.get(self.list_url, {"category": "BUSINESS"})
        self.assertEqual([c["id"] for c in resp.data], [business_id])

        self.login_as(self.outsider)
        self.assertEqual(self.client.get(self.list_url).data, [])

        self.login_as(self.admin)
        ids = {c["id"] for c in self.client.get(self.list_url).data}
        self.assertEqual(ids, {family_id, business_id})

    def test_statistics_for_admin(self):
        self.file_case()
        self.login_as(self.admin)

        resp = self.client.get(reverse("case-statistics"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["total_cases"], 1)
        self.assertEqual(resp.data["by_status"][CaseStatus.AWAITING_RESPONSE], 1)
        self.assertEqual(resp.data["resolution_rate"], 0.0)
