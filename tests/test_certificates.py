"""Certificate issuer: minting, PDF rendering, verification and revocation."""
import re
from datetime import timedelta
from pathlib import Path
from unittest import mock

import pytest

from assessments.models import ExamSession
from assessments.services.sessions import complete_session
from certificates import services
from certificates.models import Certificate
from cores.exceptions import CertificateNotFound, DependencyUnavailable
from cores.models import AuditLog

from factories import answer_questions, make_course, make_questions, make_user, start_exam

pytestmark = pytest.mark.django_db

NUMBER_PATTERN = re.compile(r"^CERT-[A-Z0-9]{1,8}-\d{8}-[0-9A-F]{8}$")


def finish(user, course, correct, total=10):
    questions = make_questions(course, count=total)
    session, attempt = start_exam(user, course)
    answer_questions(user, attempt, questions, correct=correct)
    return complete_session(session_id=session.id, reason=ExamSession.EndReason.USER_SUBMIT)


class TestIssueIfPassed:

    def test_passing_attempt_gets_certificate(self, candidate, course):
        outcome = finish(candidate, course, correct=10)
        certificate = outcome.certificate

        assert NUMBER_PATTERN.match(certificate.certificate_number)
        assert certificate.certificate_number.startswith("CERT-PY101-")
        assert len(certificate.verification_code) == 12
        assert certificate.score == 100
        assert certificate.grade == "A"
        assert certificate.attempt_id == outcome.attempt.id
        assert certificate.valid_until - certificate.issued_at == timedelta(days=365)
        assert AuditLog.objects.filter(
            action=AuditLog.Action.CERTIFICATE, target_object_id=str(certificate.id)
        ).exists()

    def test_issue_is_idempotent(self, candidate, course):
        outcome = finish(candidate, course, correct=8)
        again = services.issue_if_passed(outcome.attempt)

        assert again.id == outcome.certificate.id
        assert Certificate.objects.filter(user=candidate, course=course).count() == 1

    def test_failing_attempt(self, candidate, course):
        outcome = finish(candidate, course, correct=3)
        assert services.issue_if_passed(outcome.attempt) is None
        assert not Certificate.objects.exists()

    def test_number_prefix_strips_symbols(self, candidate):
        course = make_course(code="data-sci.2024-adv")
        certificate = finish(candidate, course, correct=10).certificate
        assert certificate.certificate_number.startswith("CERT-DATASCI2-")

    def test_identifier_collision_is_retried(self, candidate, course):
        taken = finish(make_user(), make_course(), correct=10).certificate
        Certificate.objects.filter(id=taken.id).update(verification_code="AAAAAAAAAAAA")

        with mock.patch.object(services, "generate_verification_code", side_effect=["AAAAAAAAAAAA", "BBBBBBBBBBBB"]):
            certificate = finish(candidate, course, correct=10).certificate

        assert certificate.verification_code == "BBBBBBBBBBBB"
        assert Certificate.objects.count() == 2

    def test_gives_up_after_repeated_collisions(self, candidate, course):
        taken = finish(make_user(), make_course(), correct=10).certificate
        Certificate.objects.filter(id=taken.id).update(verification_code="AAAAAAAAAAAA")
        questions = make_questions(course)
        session, attempt = start_exam(candidate, course)
        answer_questions(candidate, attempt, questions)

        with mock.patch.object(services, "generate_verification_code", return_value="AAAAAAAAAAAA"):
            with pytest.raises(DependencyUnavailable):
                complete_session(session_id=session.id, reason=ExamSession.EndReason.USER_SUBMIT)

        session.refresh_from_db()
        assert session.status == ExamSession.Status.IN_PROGRESS
        assert Certificate.objects.count() == 1


class TestPdfRendering:

    def test_pdf_rendered_after_commit(self, candidate, course, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            certificate = finish(candidate, course, correct=10).certificate

        assert len(callbacks) == 1
        certificate.refresh_from_db()
        assert certificate.pdf_path == f"certificates/certificate-{certificate.certificate_number}.pdf"
        path = services.pdf_file(certificate)
        assert path.read_bytes().startswith(b"%PDF")

    def test_render_failure_after_commit_leaves_path_empty(self, candidate, course, django_capture_on_commit_callbacks):
        broken = mock.Mock()
        broken.render.side_effect = OSError("disk full")
        with mock.patch("certificates.services.get_renderer", return_value=broken):
            with django_capture_on_commit_callbacks(execute=True):
                certificate = finish(candidate, course, correct=10).certificate

        certificate.refresh_from_db()
        assert certificate.pdf_path == ""

    def test_download_renders_lazily(self, candidate, course, settings):
        certificate = finish(candidate, course, correct=10).certificate
        assert certificate.pdf_path == ""

        path = services.pdf_file(certificate)

        assert path == Path(settings.MEDIA_ROOT) / "certificates" / f"certificate-{certificate.certificate_number}.pdf"
        assert path.exists()
        certificate.refresh_from_db()
        assert certificate.pdf_path

    def test_render_failure_is_dependency_error(self, candidate, course):
        certificate = finish(candidate, course, correct=10).certificate
        broken = mock.Mock()
        broken.render.side_effect = RuntimeError("renderer down")

        with mock.patch("certificates.services.get_renderer", return_value=broken):
            with pytest.raises(DependencyUnavailable):
                services.pdf_file(certificate)


class TestVerifyAndRevoke:

    def test_verify_by_number(self, candidate, course):
        certificate = finish(candidate, course, correct=10).certificate
        found = services.verify_certificate(certificate.certificate_number)
        assert found.id == certificate.id

    def test_verify_code_is_case_insensitive(self, candidate, course):
        certificate = finish(candidate, course, correct=10).certificate
        found = services.verify_certificate(certificate.certificate_number, certificate.verification_code.lower())
        assert found.id == certificate.id

    def test_wrong_code(self, candidate, course):
        certificate = finish(candidate, course, correct=10).certificate
        with pytest.raises(CertificateNotFound):
            services.verify_certificate(certificate.certificate_number, "000000000000")

    def test_unknown_number(self, db):
        with pytest.raises(CertificateNotFound):
            services.verify_certificate("CERT-NOPE-20260101-00000000")

    def test_revoke(self, candidate, course, admin_user):
        certificate = finish(candidate, course, correct=10).certificate

        revoked = services.revoke_certificate(certificate_id=certificate.id, reason="Exam leak", actor=admin_user)
        again = services.revoke_certificate(certificate_id=certificate.id, reason="Twice", actor=admin_user)

        assert revoked.is_revoked is True
        assert again.revoked_reason == "Exam leak"
        assert AuditLog.objects.filter(action=AuditLog.Action.REVOKE).count() == 1
        assert services.certificate_status(user_id=candidate.id, course_id=course.id) is None
        with pytest.raises(CertificateNotFound):
            services.verify_certificate(certificate.certificate_number)

    def test_status_and_ownership(self, candidate, course):
        certificate = finish(candidate, course, correct=10).certificate
        assert services.certificate_status(user_id=candidate.id, course_id=course.id).id == certificate.id

        with pytest.raises(CertificateNotFound):
            services.get_user_certificate(certificate_id=certificate.id, user_id=make_user().id)
