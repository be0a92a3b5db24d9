"""End-to-end checks of the HTTP surface with DRF's APIClient."""
from unittest import mock

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework.test import APIClient

from assessments.models import ExamSession
from certificates.models import Certificate
from cores.models import AuditLog, PlatformSetting

from factories import make_course, make_questions, make_user

pytestmark = pytest.mark.django_db


def open_session(client, course):
    response = client.post(reverse("exam-sessions"), {"course_id": course.id}, format="json")
    assert response.status_code in (200, 201)
    session_id = response.data["id"]
    started = client.post(reverse("exam-session-start", args=[session_id]), {"browser_fingerprint": "fp-1"}, format="json")
    assert started.status_code == 200
    return started.data


class TestAuth:

    def test_register_and_login(self, api_client):
        payload = {"email": "ada@example.com", "password": "analytical-engine", "first_name": "Ada", "last_name": "Lovelace"}
        assert api_client.post(reverse("register"), payload, format="json").status_code == 201

        response = api_client.post(
            reverse("login"), {"email": "ada@example.com", "password": "analytical-engine"}, format="json"
        )
        assert response.status_code == 200
        assert "access" in response.data
        assert response.data["user"]["role"] == "candidate"

    def test_exam_endpoints_require_login(self, api_client, course):
        response = api_client.post(reverse("exam-sessions"), {"course_id": course.id}, format="json")
        assert response.status_code in (401, 403)


class TestCourses:

    def test_public_catalogue_hides_unpublished(self, api_client, course):
        make_course(is_published=False)
        response = api_client.get(reverse("courses-list"))
        assert response.status_code == 200
        assert [c["id"] for c in response.data] == [course.id]
        assert "correct_choice" not in str(response.data)

    def test_question_bank_is_admin_only(self, candidate_client, admin_client, course, questions):
        assert candidate_client.get(reverse("questions-list")).status_code == 403
        response = admin_client.get(reverse("questions-list"), {"course_id": course.id})
        assert len(response.data) == 10
        assert "correct_choice" in response.data[0]

    def test_deleting_question_retires_it(self, admin_client, questions):
        response = admin_client.delete(reverse("questions-detail", args=[questions[0].id]))
        assert response.status_code == 204
        questions[0].refresh_from_db()
        assert questions[0].is_active is False


    def test_bulk_upload_questions(self, admin_client, course):
        csv_text = (
            "prompt,choices,correct_answer,explanation,order\n"
            "What is 2+2?,3|4|5,4,Arithmetic,1\n"
            "Capital of France?,Paris|Rome,paris,,2\n"
        )
        upload = SimpleUploadedFile("bank.csv", csv_text.encode("utf-8"), content_type="text/csv")
        response = admin_client.post(
            reverse("questions-bulk-upload"), {"course_id": course.id, "file": upload}, format="multipart"
        )
        assert response.status_code == 201
        stored = list(course.questions.all())
        assert [q.correct_choice for q in stored] == [1, 0]
        assert stored[0].choices == ["3", "4", "5"]

    def test_bulk_upload_rejects_bad_rows(self, admin_client, course):
        csv_text = "prompt,choices,correct_answer\nGood?,yes|no,yes\nBroken?,only,missing\n"
        upload = SimpleUploadedFile("bank.csv", csv_text.encode("utf-8"), content_type="text/csv")
        response = admin_client.post(
            reverse("questions-bulk-upload"), {"course_id": course.id, "file": upload}, format="multipart"
        )
        assert response.status_code == 400
        assert list(response.data["rows"]) == [3]
        assert not course.questions.exists()


class TestExamFlow:

    def test_create_session_is_idempotent(self, candidate_client, course):
        first = candidate_client.post(reverse("exam-sessions"), {"course_id": course.id}, format="json")
        second = candidate_client.post(reverse("exam-sessions"), {"course_id": course.id}, format="json")
        assert first.status_code == 201
        assert second.status_code == 200
        assert first.data["id"] == second.data["id"]

    def test_payment_required_error_shape(self, candidate_client, paid_course):
        response = candidate_client.post(reverse("exam-sessions"), {"course_id": paid_course.id}, format="json")
        assert response.status_code == 403
        assert response.data["error"]["code"] == "NOT_ELIGIBLE"
        assert response.data["error"]["reason"] == "PAYMENT_REQUIRED"
        assert not ExamSession.objects.exists()

    def test_eligibility_check(self, candidate_client, paid_course):
        response = candidate_client.get(reverse("exam-eligibility", args=[paid_course.id]))
        assert response.data == {"eligible": False, "reason": "PAYMENT_REQUIRED"}

    def test_unknown_course(self, candidate_client):
        response = candidate_client.get(reverse("exam-eligibility", args=[31337]))
        assert response.status_code == 404
        assert response.data["error"]["code"] == "COURSE_NOT_FOUND"

    def test_full_passing_flow(self, candidate_client, candidate, course, questions):
        session = open_session(candidate_client, course)
        assert session["status"] == "IN_PROGRESS"
        assert session["expires_at"] is not None

        bank = candidate_client.get(reverse("exam-session-questions", args=[session["id"]])).data
        assert len(bank) == 10
        assert "correct_choice" not in bank[0]

        for i, question in enumerate(questions):
            choice = question.correct_choice if i < 7 else 3
            response = candidate_client.post(
                reverse("exam-attempt-answers", args=[session["attempt_id"]]),
                {"question_id": question.id, "selected_choice": choice, "time_spent": 20},
                format="json",
            )
            assert response.status_code == 200

        response = candidate_client.post(reverse("exam-session-complete", args=[session["id"]]))
        assert response.status_code == 200
        assert response.data["results"]["score"] == 70
        assert response.data["results"]["grade"] == "C"
        assert response.data["results"]["passed"] is True
        certificate = response.data["certificate"]
        assert certificate["certificate_number"].startswith("CERT-PY101-")

        results = candidate_client.get(reverse("exam-session-results", args=[session["id"]])).data
        assert results["outcome"]["correct_count"] == 7
        assert results["answers"][0]["correct_choice"] == questions[0].correct_choice
        assert results["certificate"]["id"] == certificate["id"]

        status = candidate_client.get(reverse("certificate-status", args=[course.id])).data
        assert status["has_certificate"] is True

    def test_results_hide_key_while_in_progress(self, candidate_client, course, questions):
        session = open_session(candidate_client, course)
        candidate_client.post(
            reverse("exam-attempt-answers", args=[session["attempt_id"]]),
            {"question_id": questions[0].id, "selected_choice": 1},
            format="json",
        )
        results = candidate_client.get(reverse("exam-session-results", args=[session["id"]])).data
        assert results["outcome"] is None
        assert "correct_choice" not in results["answers"][0]
        assert "is_correct" not in results["answers"][0]

    def test_violation_limit_over_http(self, candidate_client, course, questions):
        session = open_session(candidate_client, course)
        url = reverse("exam-session-violations", args=[session["id"]])

        responses = [candidate_client.post(url, {"kind": "TAB_SWITCH"}, format="json") for _ in range(3)]

        assert [r.data["violation_count"] for r in responses] == [1, 2, 3]
        assert responses[-1].data["terminated"] is True
        assert responses[-1].data["end_reason"] == "VIOLATION_LIMIT"

        answer = candidate_client.post(
            reverse("exam-attempt-answers", args=[session["attempt_id"]]),
            {"question_id": questions[0].id, "selected_choice": 0},
            format="json",
        )
        assert answer.status_code == 409
        assert answer.data["error"]["code"] == "ATTEMPT_NOT_ACTIVE"

    def test_unknown_violation_kind(self, candidate_client, course):
        session = open_session(candidate_client, course)
        response = candidate_client.post(
            reverse("exam-session-violations", args=[session["id"]]), {"kind": "SNEEZE"}, format="json"
        )
        assert response.status_code == 400

    def test_heartbeat_reports_fingerprint_drift(self, candidate_client, course):
        session = open_session(candidate_client, course)
        url = reverse("exam-session-validate", args=[session["id"]])

        assert candidate_client.post(url, {"browser_fingerprint": "fp-1"}, format="json").data["fingerprint_match"] is True
        drift = candidate_client.post(url, {"browser_fingerprint": "fp-2"}, format="json")
        assert drift.status_code == 200
        assert drift.data["fingerprint_match"] is False

    def test_seb_validate_reads_request_headers(self, candidate_client, course):
        session = open_session(candidate_client, course)
        url = reverse("exam-session-seb-validate", args=[session["id"]])

        plain = candidate_client.post(url, {}, format="json", HTTP_USER_AGENT="Mozilla/5.0 Chrome/120.0")
        assert plain.status_code == 200
        assert plain.data["is_valid"] is False

        seb_client = candidate_client.post(url, {}, format="json", HTTP_X_SAFEEXAMBROWSER_REQUESTHASH="f" * 64)
        assert seb_client.data == {
            "is_valid": True, "validation_method": "HTTP_HEADERS", "security_level": "medium", "issues": [],
        }

    def test_seb_config_download(self, candidate_client, course):
        session = open_session(candidate_client, course)

        response = candidate_client.get(reverse("exam-session-seb-config", args=[session["id"]]))

        assert response.status_code == 200
        assert response["Content-Type"] == "application/seb"
        assert f'secure_exam_{course.id}_{session["id"]}.seb' in response["Content-Disposition"]
        assert response.content[:2] == b"\x1f\x8b"

    def test_other_candidate_cannot_touch_session(self, candidate_client, course):
        session = open_session(candidate_client, course)
        intruder = make_user()
        candidate_client.force_authenticate(user=intruder)

        response = candidate_client.post(reverse("exam-session-complete", args=[session["id"]]))
        assert response.status_code == 403
        assert response.data["error"]["code"] == "INVALID_SESSION"


class TestCertificatesApi:

    @pytest.fixture
    def certificate(self, candidate_client, course):
        questions = make_questions(course, count=5)
        session = open_session(candidate_client, course)
        for question in questions:
            candidate_client.post(
                reverse("exam-attempt-answers", args=[session["attempt_id"]]),
                {"question_id": question.id, "selected_choice": question.correct_choice},
                format="json",
            )
        candidate_client.post(reverse("exam-session-complete", args=[session["id"]]))
        return Certificate.objects.get(course=course)

    def test_download(self, candidate_client, certificate):
        response = candidate_client.get(reverse("certificate-download", args=[certificate.id]))
        assert response.status_code == 200
        assert response["Content-Type"] == "application/pdf"
        assert b"".join(response.streaming_content).startswith(b"%PDF")

    def test_download_when_renderer_down(self, candidate_client, certificate):
        broken = mock.Mock()
        broken.render.side_effect = RuntimeError("boom")
        with mock.patch("certificates.services.get_renderer", return_value=broken):
            response = candidate_client.get(reverse("certificate-download", args=[certificate.id]))
        assert response.status_code == 503
        assert response.data["error"]["code"] == "DEPENDENCY_UNAVAILABLE"

    def test_public_verification(self, api_client, certificate):
        response = api_client.get(
            reverse("certificate-verify", args=[certificate.certificate_number]),
            {"code": certificate.verification_code},
        )
        assert response.status_code == 200
        assert response.data["valid"] is True
        assert "verification_code" not in response.data

    def test_admin_revoke(self, admin_client, api_client, certificate):
        response = admin_client.post(
            reverse("admin-certificate-revoke", args=[certificate.id]), {"reason": "Identity fraud"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["is_revoked"] is True

        verify = api_client.get(reverse("certificate-verify", args=[certificate.certificate_number]))
        assert verify.status_code == 404

    def test_candidate_cannot_revoke(self, candidate_client, certificate):
        response = candidate_client.post(
            reverse("admin-certificate-revoke", args=[certificate.id]), {"reason": "x"}, format="json"
        )
        assert response.status_code == 403


class TestAdminApi:

    def test_terminate_session(self, admin_client, candidate_client, course):
        session = open_session(candidate_client, course)
        response = admin_client.post(reverse("admin-session-terminate", args=[session["id"]]))
        assert response.status_code == 200
        assert response.data["session"]["status"] == "TERMINATED"
        assert response.data["session"]["end_reason"] == "ADMIN_TERMINATED"
        assert AuditLog.objects.filter(action="SESSION_TERMINATED").exists()

    def test_session_listing_filters_by_status(self, admin_client, candidate_client, course):
        open_session(candidate_client, course)
        response = admin_client.get(reverse("admin-sessions"), {"status": "IN_PROGRESS"})
        assert len(response.data) == 1
        assert response.data[0]["violations"] == []

    def test_update_settings(self, admin_client):
        response = admin_client.put(reverse("platform-settings"), {"violation_limit": 5}, format="json")
        assert response.status_code == 200
        assert PlatformSetting.load().violation_limit == 5
        assert AuditLog.objects.filter(action="SETTINGS").count() == 1

    def test_settings_reject_zero_violation_limit(self, admin_client):
        response = admin_client.put(reverse("platform-settings"), {"violation_limit": 0}, format="json")
        assert response.status_code == 400

    def test_stats(self, admin_client, candidate_client, candidate, course, questions):
        session = open_session(candidate_client, course)
        for question in questions:
            candidate_client.post(
                reverse("exam-attempt-answers", args=[session["attempt_id"]]),
                {"question_id": question.id, "selected_choice": question.correct_choice},
                format="json",
            )
        candidate_client.post(reverse("exam-session-complete", args=[session["id"]]))

        stats = admin_client.get(reverse("admin-stats")).data
        assert stats["sessions_by_status"]["COMPLETED"] == 1
        assert stats["scored_attempts"] == 1
        assert stats["pass_rate"] == 100
        assert stats["issued_certificates"] == 1

    def test_audit_log_filter(self, admin_client, candidate_client, course):
        session = open_session(candidate_client, course)
        admin_client.post(reverse("admin-session-terminate", args=[session["id"]]))
        response = admin_client.get(reverse("audit-logs"), {"action": "SESSION_TERMINATED"})
        assert len(response.data) == 1
        assert response.data[0]["target_model"] == "ExamSession"


class TestProctorRole:

    def test_proctor_can_list_and_terminate(self, candidate_client, course):
        session = open_session(candidate_client, course)
        proctor = make_user(role="proctor")
        client = APIClient()
        client.force_authenticate(user=proctor)

        assert client.get(reverse("admin-sessions")).status_code == 200
        response = client.post(reverse("admin-session-terminate", args=[session["id"]]))
        assert response.status_code == 200
        assert AuditLog.objects.get(action="SESSION_TERMINATED").actor == proctor

    def test_proctor_cannot_change_settings(self, course):
        client = APIClient()
        client.force_authenticate(user=make_user(role="proctor"))
        assert client.get(reverse("platform-settings")).status_code == 403

    def test_candidate_cannot_list_sessions(self, candidate_client):
        assert candidate_client.get(reverse("admin-sessions")).status_code == 403
