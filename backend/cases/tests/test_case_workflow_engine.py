"""
Service-level tests for ``CaseWorkflowService``.

Each test drives the engine directly with ``CallerIdentity`` values and
checks the persisted status, the audit trail and the notification
fan-out.  HTTP concerns are covered in ``test_cases_api.py``.
"""

from __future__ import annotations

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError

from cases.models import AuditAction, Case, CaseHistory, CaseStatus, Evidence, FileType, Witness
from cases.workflow import replay_history
from core.domain.exceptions import ErrorKind
from core.domain.identity import CallerIdentity
from core.models import Notification

pytestmark = pytest.mark.django_db


def me(user) -> CallerIdentity:
    return CallerIdentity.from_user(user)


@pytest.fixture()
def complainant(create_user):
    return create_user(username="alice")


@pytest.fixture()
def respondent(create_user):
    return create_user(username="bob")


@pytest.fixture()
def linked_case(file_case, complainant, respondent):
    return file_case(complainant, opposite_party_email=respondent.email)


@pytest.fixture()
def accepted_case(engine, linked_case, respondent):
    return engine.respond_to_case(linked_case.pk, me(respondent), True).unwrap()


def _refresh(case) -> Case:
    return Case.objects.get(pk=case.pk)


# ═══════════════════════════════════════════════════════════════════
#  Creation
# ═══════════════════════════════════════════════════════════════════


class TestCreateCase:

    def test_registered_opposite_party_is_linked(self, linked_case, complainant, respondent):
        assert linked_case.status == CaseStatus.AWAITING_RESPONSE
        assert linked_case.complainant_id == complainant.pk
        assert linked_case.respondent_id == respondent.pk
        assert linked_case.case_number.startswith("RES-")

    def test_unknown_opposite_party_stays_pending(self, file_case, complainant):
        case = file_case(complainant, opposite_party_email="nobody@example.com")
        assert case.status == CaseStatus.PENDING
        assert case.respondent_id is None
        assert Notification.objects.filter(case=case).count() == 1

    def test_creation_writes_one_history_entry(self, linked_case, complainant):
        history = list(CaseHistory.objects.filter(case=linked_case))
        assert len(history) == 1
        entry = history[0]
        assert entry.action == AuditAction.CASE_CREATED
        assert entry.previous_status == ""
        assert entry.new_status == CaseStatus.AWAITING_RESPONSE
        assert entry.performed_by_id == complainant.pk

    def test_creation_notifies_both_parties(self, linked_case, complainant, respondent):
        notifications = Notification.objects.filter(case=linked_case)
        assert notifications.count() == 2
        assert notifications.get(recipient=complainant).title == "Case Registered Successfully"
        assert notifications.get(recipient=respondent).title == "New Case Filed Against You"

    def test_all_invalid_fields_reported_at_once(self, engine, complainant, case_payload):
        payload = case_payload(
            issue_description="too short",
            opposite_party_phone="abc",
            is_in_court=True,
        )
        result = engine.create_case(me(complainant), payload)

        assert not result.is_ok
        assert result.kind is ErrorKind.VALIDATION
        errors = result.details["errors"]
        assert {"issue_description", "opposite_party_phone", "court_case_number", "court_name"} <= set(errors)
        assert not Case.objects.exists()

    def test_cannot_file_against_yourself(self, engine, complainant, case_payload):
        result = engine.create_case(me(complainant), case_payload(opposite_party_email=complainant.email))
        assert result.kind is ErrorKind.VALIDATION
        assert "opposite_party_email" in result.details["errors"]

    def test_push_is_sent_after_commit(
        self, engine, complainant, respondent, case_payload, recording_notifier,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            engine.create_case(me(complainant), case_payload(opposite_party_email=respondent.email)).unwrap()

        assert recording_notifier.recipients() == [complainant.pk, respondent.pk]
        _user_id, event = recording_notifier.published[0]
        assert event["type"] == "CASE_STATUS_UPDATE"
        assert event["notification_id"] is not None

    def test_failing_push_does_not_fail_operation(
        self, file_case, complainant, respondent, recording_notifier,
        django_capture_on_commit_callbacks,
    ):
        def broken(user_id, event):
            raise RuntimeError("socket closed")

        recording_notifier.publish = broken
        with django_capture_on_commit_callbacks(execute=True):
            case = file_case(complainant, opposite_party_email=respondent.email)

        assert _refresh(case).status == CaseStatus.AWAITING_RESPONSE
        assert Notification.objects.filter(case=case).count() == 2


# ═══════════════════════════════════════════════════════════════════
#  Linking
# ═══════════════════════════════════════════════════════════════════


class TestLinkRespondent:

    def test_admin_links_pending_case(self, engine, file_case, complainant, respondent, admin_user):
        case = file_case(complainant, opposite_party_email="later@example.com")

        linked = engine.link_respondent(case.pk, me(admin_user), respondent.pk).unwrap()

        assert linked.status == CaseStatus.AWAITING_RESPONSE
        assert linked.respondent_id == respondent.pk
        entry = CaseHistory.objects.filter(case=case).last()
        assert entry.action == AuditAction.RESPONDENT_LINKED
        assert entry.performed_by_id == admin_user.pk

    def test_complainant_cannot_link(self, engine, file_case, complainant, respondent):
        case = file_case(complainant)
        result = engine.link_respondent(case.pk, me(complainant), respondent.pk)
        assert result.kind is ErrorKind.FORBIDDEN

    def test_registration_links_pending_cases(self, engine, file_case, complainant, create_user):
        case = file_case(complainant, opposite_party_email="Carol@Example.com")
        carol = create_user(username="carol", email="carol@example.com")

        linked = engine.link_pending_cases(carol).unwrap()

        assert [c.pk for c in linked] == [case.pk]
        case = _refresh(case)
        assert case.respondent_id == carol.pk
        assert case.status == CaseStatus.AWAITING_RESPONSE
        entry = CaseHistory.objects.filter(case=case).last()
        assert entry.performed_by_id is None
        assert Notification.objects.filter(case=case, recipient=carol).exists()


# ═══════════════════════════════════════════════════════════════════
#  Respondent reply
# ═══════════════════════════════════════════════════════════════════


class TestRespond:

    def test_accept(self, engine, linked_case, complainant, respondent):
        case = engine.respond_to_case(
            linked_case.pk, me(respondent), True, "Happy to try mediation first.",
        ).unwrap()

        assert case.status == CaseStatus.ACCEPTED
        assert case.respondent_accepted is True
        assert case.respondent_responded_at is not None
        notification = Notification.objects.filter(case=case).latest("id")
        assert notification.recipient_id == complainant.pk
        assert "accepted" in notification.message

    def test_decline_leaves_case_unresolved(self, engine, linked_case, respondent):
        case = engine.respond_to_case(linked_case.pk, me(respondent), False).unwrap()
        assert case.status == CaseStatus.UNRESOLVED
        assert case.respondent_accepted is False

    def test_second_response_is_conflict(self, engine, accepted_case, respondent):
        result = engine.respond_to_case(accepted_case.pk, me(respondent), False)

        assert result.kind is ErrorKind.CONFLICT
        assert result.details == {
            "current_status": CaseStatus.ACCEPTED,
            "attempted_status": CaseStatus.UNRESOLVED,
        }
        assert _refresh(accepted_case).status == CaseStatus.ACCEPTED

    def test_complainant_cannot_respond(self, engine, linked_case, complainant):
        result = engine.respond_to_case(linked_case.pk, me(complainant), True)
        assert result.kind is ErrorKind.FORBIDDEN

    def test_stranger_gets_not_found(self, engine, linked_case, create_user):
        stranger = create_user(username="mallory")
        result = engine.respond_to_case(linked_case.pk, me(stranger), True)
        assert result.kind is ErrorKind.NOT_FOUND

    def test_missing_case_is_not_found(self, engine, respondent):
        result = engine.respond_to_case(999_999, me(respondent), True)
        assert result.kind is ErrorKind.NOT_FOUND

    def test_persistence_failure_rolls_back(self, engine, linked_case, respondent, monkeypatch):
        def fail(*args, **kwargs):
            raise DatabaseError("disk full")

        monkeypatch.setattr(engine.repository, "append_history", fail)

        with pytest.raises(DatabaseError):
            engine.respond_to_case(linked_case.pk, me(respondent), True)

        assert _refresh(linked_case).status == CaseStatus.AWAITING_RESPONSE
        assert Notification.objects.filter(case=linked_case).count() == 2


# ═══════════════════════════════════════════════════════════════════
#  Witnesses
# ═══════════════════════════════════════════════════════════════════


class TestWitnesses:

    def test_nominate(self, engine, accepted_case, complainant, create_user):
        w1 = create_user(username="wendy")
        w2 = create_user(username="walter")

        witnesses = engine.nominate_witnesses(
            accepted_case.pk, me(complainant), [w1.email, w2.email.upper()],
        ).unwrap()

        assert {w.user_id for w in witnesses} == {w1.pk, w2.pk}
        assert _refresh(accepted_case).status == CaseStatus.WITNESSES_NOMINATED
        assert set(
            Notification.objects.filter(case=accepted_case, title="Added as Witness")
            .values_list("recipient_id", flat=True)
        ) == {w1.pk, w2.pk}

    def test_unregistered_witness_is_validation_error(self, engine, accepted_case, complainant):
        result = engine.nominate_witnesses(accepted_case.pk, me(complainant), ["ghost@example.com"])
        assert result.kind is ErrorKind.VALIDATION
        assert not Witness.objects.exists()

    def test_duplicate_in_request_is_validation_error(self, engine, accepted_case, complainant, create_user):
        w1 = create_user(username="wendy")
        result = engine.nominate_witnesses(accepted_case.pk, me(complainant), [w1.email, w1.email])
        assert result.kind is ErrorKind.VALIDATION

    def test_party_cannot_be_witness(self, engine, accepted_case, complainant, respondent):
        result = engine.nominate_witnesses(accepted_case.pk, me(complainant), [respondent.email])
        assert result.kind is ErrorKind.VALIDATION

    def test_nomination_on_pending_case_leaves_no_rows(self, engine, file_case, complainant, create_user):
        case = file_case(complainant)
        w1 = create_user(username="wendy")

        result = engine.nominate_witnesses(case.pk, me(complainant), [w1.email])

        assert result.kind is ErrorKind.CONFLICT
        assert result.details["current_status"] == CaseStatus.PENDING
        assert not Witness.objects.exists()
        assert Notification.objects.filter(case=case).count() == 1

    def test_nomination_requires_accepted_status(self, engine, linked_case, complainant, create_user):
        w1 = create_user(username="wendy")
        result = engine.nominate_witnesses(linked_case.pk, me(complainant), [w1.email])
        assert result.kind is ErrorKind.CONFLICT

    def test_statement(self, engine, accepted_case, complainant, create_user):
        witness = create_user(username="wendy")
        engine.nominate_witnesses(accepted_case.pk, me(complainant), [witness.email]).unwrap()
        before = Notification.objects.count()

        saved = engine.submit_witness_statement(
            accepted_case.pk, me(witness), "I saw the damaged goods being delivered.",
        ).unwrap()

        assert saved.statement_submitted_at is not None
        entry = CaseHistory.objects.filter(case=accepted_case).last()
        assert entry.action == AuditAction.WITNESS_STATEMENT_ADDED
        assert entry.previous_status == entry.new_status == CaseStatus.WITNESSES_NOMINATED
        assert Notification.objects.count() == before

        again = engine.submit_witness_statement(accepted_case.pk, me(witness), "A second account of events.")
        assert again.kind is ErrorKind.CONFLICT

    def test_witness_cannot_respond(self, engine, linked_case, create_user, complainant, respondent):
        witness = create_user(username="wendy")
        engine.respond_to_case(linked_case.pk, me(respondent), True).unwrap()
        engine.nominate_witnesses(linked_case.pk, me(complainant), [witness.email]).unwrap()

        result = engine.respond_to_case(linked_case.pk, me(witness), True)
        assert result.kind is ErrorKind.FORBIDDEN


# ═══════════════════════════════════════════════════════════════════
#  Panel, mediation and outcomes
# ═══════════════════════════════════════════════════════════════════


class TestMediation:

    def test_full_happy_path(self, engine, accepted_case, complainant, respondent, admin_user, create_user):
        arbiter = create_user(username="arbiter")
        advisor = create_user(username="advisor")
        admin = me(admin_user)

        panel = engine.create_panel(
            accepted_case.pk, admin, arbiter.pk, community_advisor_id=advisor.pk,
        ).unwrap()
        assert panel.member_ids == [arbiter.pk, advisor.pk]
        assert _refresh(accepted_case).status == CaseStatus.PANEL_CREATED
        panel_notes = Notification.objects.filter(case=accepted_case, category="PANEL_ASSIGNMENT")
        assert set(panel_notes.values_list("recipient_id", flat=True)) == {
            complainant.pk, respondent.pk, arbiter.pk, advisor.pk,
        }

        engine.begin_mediation(accepted_case.pk, admin).unwrap()
        case = engine.resolve_case(accepted_case.pk, admin, "Both parties signed the settlement.").unwrap()
        assert case.status == CaseStatus.RESOLVED

        history = list(CaseHistory.objects.filter(case=case))
        assert [h.action for h in history] == [
            AuditAction.CASE_CREATED,
            AuditAction.CASE_ACCEPTED,
            AuditAction.PANEL_CREATED,
            AuditAction.MEDIATION_STARTED,
            AuditAction.CASE_RESOLVED,
        ]
        assert replay_history(history) == CaseStatus.RESOLVED

    def test_second_panel_is_conflict(self, engine, accepted_case, admin_user, create_user):
        arbiter = create_user(username="arbiter")
        engine.create_panel(accepted_case.pk, me(admin_user), arbiter.pk).unwrap()

        result = engine.create_panel(accepted_case.pk, me(admin_user), arbiter.pk)
        assert result.kind is ErrorKind.CONFLICT
        assert result.message == "Mediation panel already exists."

    def test_panel_members_must_be_distinct_non_parties(self, engine, accepted_case, admin_user, complainant, create_user):
        arbiter = create_user(username="arbiter")
        result = engine.create_panel(
            accepted_case.pk, me(admin_user), arbiter.pk,
            religious_advisor_id=arbiter.pk, community_advisor_id=complainant.pk,
        )
        assert result.kind is ErrorKind.VALIDATION
        assert set(result.details["errors"]) == {"religious_advisor_id", "community_advisor_id"}

    def test_panel_requires_admin(self, engine, accepted_case, complainant, create_user):
        arbiter = create_user(username="arbiter")
        result = engine.create_panel(accepted_case.pk, me(complainant), arbiter.pk)
        assert result.kind is ErrorKind.FORBIDDEN

    def test_resolve_requires_mediation(self, engine, accepted_case, admin_user):
        result = engine.resolve_case(accepted_case.pk, me(admin_user))
        assert result.kind is ErrorKind.CONFLICT

    def test_mark_unresolved(self, engine, accepted_case, admin_user):
        case = engine.mark_unresolved(accepted_case.pk, me(admin_user), "Parties stopped attending sessions.").unwrap()
        assert case.status == CaseStatus.UNRESOLVED
        again = engine.mark_unresolved(accepted_case.pk, me(admin_user))
        assert again.kind is ErrorKind.CONFLICT


# ═══════════════════════════════════════════════════════════════════
#  Cancellation and admin override
# ═══════════════════════════════════════════════════════════════════


class TestCancelAndOverride:

    def test_complainant_cancels_before_acceptance(self, engine, linked_case, complainant, respondent):
        case = engine.cancel_case(linked_case.pk, me(complainant), "We settled this privately.").unwrap()
        assert case.status == CaseStatus.CANCELLED
        cancelled = Notification.objects.filter(case=case, title="Case Cancelled")
        assert set(cancelled.values_list("recipient_id", flat=True)) == {complainant.pk, respondent.pk}

    def test_complainant_cannot_cancel_after_acceptance(self, engine, accepted_case, complainant):
        result = engine.cancel_case(accepted_case.pk, me(complainant))
        assert result.kind is ErrorKind.FORBIDDEN

    def test_admin_cancels_any_non_terminal(self, engine, accepted_case, admin_user):
        assert engine.cancel_case(accepted_case.pk, me(admin_user)).unwrap().status == CaseStatus.CANCELLED

    def test_cancel_terminal_case_is_conflict(self, engine, linked_case, complainant):
        engine.cancel_case(linked_case.pk, me(complainant)).unwrap()
        result = engine.cancel_case(linked_case.pk, me(complainant))
        assert result.kind is ErrorKind.CONFLICT

    def test_respondent_cannot_cancel(self, engine, linked_case, respondent):
        result = engine.cancel_case(linked_case.pk, me(respondent))
        assert result.kind is ErrorKind.FORBIDDEN

    def test_admin_override_reopens_terminal_case(self, engine, linked_case, complainant, admin_user):
        engine.cancel_case(linked_case.pk, me(complainant)).unwrap()

        case = engine.set_status(
            linked_case.pk, me(admin_user), "awaiting_response", "Cancelled by mistake, reopening.",
        ).unwrap()

        assert case.status == CaseStatus.AWAITING_RESPONSE
        entry = CaseHistory.objects.filter(case=case).last()
        assert entry.action == AuditAction.ADMIN_OVERRIDE
        assert entry.previous_status == CaseStatus.CANCELLED
        assert entry.metadata["admin_id"] == admin_user.pk
        assert entry.metadata["reason"] == "Cancelled by mistake, reopening."
        assert replay_history(CaseHistory.objects.filter(case=case)) == CaseStatus.AWAITING_RESPONSE

    def test_override_rejects_unknown_status(self, engine, linked_case, admin_user):
        result = engine.set_status(linked_case.pk, me(admin_user), "ARCHIVED")
        assert result.kind is ErrorKind.VALIDATION

    def test_override_requires_admin(self, engine, linked_case, complainant):
        result = engine.set_status(linked_case.pk, me(complainant), CaseStatus.RESOLVED)
        assert result.kind is ErrorKind.FORBIDDEN


# ═══════════════════════════════════════════════════════════════════
#  Evidence
# ═══════════════════════════════════════════════════════════════════


class TestEvidence:

    @pytest.fixture(autouse=True)
    def _media(self, settings, tmp_path):
        settings.MEDIA_ROOT = str(tmp_path)

    def test_party_attaches_document(self, engine, linked_case, respondent):
        upload = SimpleUploadedFile("contract.pdf", b"%PDF-1.4 test", content_type="application/pdf")

        evidence = engine.attach_evidence(linked_case.pk, me(respondent), upload).unwrap()

        assert evidence.file_type == FileType.DOCUMENT
        assert evidence.original_name == "contract.pdf"
        assert evidence.uploaded_by_id == respondent.pk
        entry = CaseHistory.objects.filter(case=linked_case).last()
        assert entry.action == AuditAction.EVIDENCE_ADDED
        assert entry.previous_status == entry.new_status

    def test_unsupported_extension(self, engine, linked_case, complainant):
        upload = SimpleUploadedFile("payload.exe", b"MZ", content_type="application/octet-stream")
        result = engine.attach_evidence(linked_case.pk, me(complainant), upload)
        assert result.kind is ErrorKind.VALIDATION
        assert not Evidence.objects.exists()

    def test_closed_case_rejects_evidence(self, engine, linked_case, complainant):
        engine.cancel_case(linked_case.pk, me(complainant)).unwrap()
        upload = SimpleUploadedFile("photo.jpg", b"\xff\xd8\xff", content_type="image/jpeg")
        result = engine.attach_evidence(linked_case.pk, me(complainant), upload)
        assert result.kind is ErrorKind.CONFLICT

    def test_rolled_back_upload_leaves_no_file(self, engine, linked_case, complainant, monkeypatch, tmp_path):
        def fail(*args, **kwargs):
            raise DatabaseError("disk full")

        monkeypatch.setattr(engine.repository, "append_history", fail)
        upload = SimpleUploadedFile("photo.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        with pytest.raises(DatabaseError):
            engine.attach_evidence(linked_case.pk, me(complainant), upload)

        assert not Evidence.objects.exists()
        assert [p for p in tmp_path.rglob("*") if p.is_file()] == []


# ═══════════════════════════════════════════════════════════════════
#  Reads
# ═══════════════════════════════════════════════════════════════════


class TestReads:

    def test_list_is_scoped_to_involvement(self, engine, file_case, complainant, respondent, create_user, admin_user):
        own = file_case(complainant, opposite_party_email=respondent.email)
        other = file_case(create_user(username="zed"))

        assert [c.pk for c in engine.list_cases(me(complainant)).unwrap()] == [own.pk]
        assert [c.pk for c in engine.list_cases(me(respondent)).unwrap()] == [own.pk]
        assert {c.pk for c in engine.list_cases(me(admin_user)).unwrap()} == {own.pk, other.pk}

    def test_list_filters(self, engine, file_case, complainant):
        family = file_case(complainant, category="FAMILY")
        file_case(complainant, category="PROPERTY")

        result = engine.list_cases(me(complainant), {"category": "FAMILY"}).unwrap()
        assert [c.pk for c in result] == [family.pk]

    def test_history_visible_to_parties_only(self, engine, linked_case, respondent, create_user):
        assert len(engine.get_case_history(linked_case.pk, me(respondent)).unwrap()) == 1
        result = engine.get_case_history(linked_case.pk, me(create_user(username="eve")))
        assert result.kind is ErrorKind.NOT_FOUND

    def test_statistics(self, engine, file_case, complainant, admin_user):
        file_case(complainant)
        resolved = file_case(complainant)
        engine.set_status(resolved.pk, me(admin_user), CaseStatus.RESOLVED).unwrap()

        stats = engine.statistics(me(admin_user)).unwrap()

        assert stats["total_cases"] == 2
        assert stats["pending_cases"] == 1
        assert stats["resolved_cases"] == 1
        assert stats["resolution_rate"] == 50.0
        assert stats["by_category"]["BUSINESS"] == 2

    def test_statistics_admin_only(self, engine, complainant):
        assert engine.statistics(me(complainant)).kind is ErrorKind.FORBIDDEN
