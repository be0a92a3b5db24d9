"""
Races between real database connections.

Each worker runs in its own thread with its own connection, so these tests
need committed data and run outside the per-test transaction.
"""
import threading

import pytest
from django.db import connections, transaction

from assessments.models import ExamAttempt, ExamSession, Violation
from assessments.services.integrity import record_violation
from assessments.services.scoring import score_attempt
from assessments.services.sessions import complete_session
from certificates.models import Certificate
from certificates.services import issue_if_passed
from cores.exceptions import InvalidSession
from cores.models import AuditLog

from factories import answer_questions, make_course, make_questions, make_user, start_exam

pytestmark = pytest.mark.django_db(transaction=True)

Kind = Violation.Kind


def run_together(calls):
    """Start every call at the same moment; collect results and raised errors."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = [None] * len(calls)

    def worker(index, call):
        try:
            barrier.wait()
            results[index] = call()
        except Exception as exc:
            errors[index] = exc
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


class TestConcurrentViolations:

    def test_single_termination_at_the_limit(self):
        candidate = make_user()
        session, _ = start_exam(candidate, make_course())
        for _ in range(2):
            record_violation(session_id=session.id, user_id=candidate.id, kind=Kind.TAB_SWITCH)

        results, errors = run_together([
            lambda: record_violation(session_id=session.id, user_id=candidate.id, kind=Kind.WINDOW_BLUR)
            for _ in range(6)
        ])

        assert all(e is None or isinstance(e, InvalidSession) for e in errors)
        assert [r.terminated for r in results if r is not None] == [True]

        session.refresh_from_db()
        assert session.status == ExamSession.Status.TERMINATED
        assert session.end_reason == ExamSession.EndReason.VIOLATION_LIMIT
        sequences = list(Violation.objects.filter(session=session).values_list('sequence', flat=True))
        assert session.violation_count == len(sequences) == 3
        assert sorted(sequences) == [1, 2, 3]
        assert AuditLog.objects.filter(
            action=AuditLog.Action.SESSION_TERMINATED, target_object_id=str(session.id)
        ).count() == 1


class TestConcurrentCompletion:

    def test_parallel_submits_issue_one_certificate(self):
        candidate = make_user()
        course = make_course()
        questions = make_questions(course)
        session, attempt = start_exam(candidate, course)
        answer_questions(candidate, attempt, questions, correct=9)

        results, errors = run_together([
            lambda: complete_session(session_id=session.id, reason=ExamSession.EndReason.USER_SUBMIT)
            for _ in range(4)
        ])

        assert errors == [None] * 4
        assert sorted(r.already_finished for r in results) == [False, True, True, True]
        assert len({r.certificate.id for r in results}) == 1
        assert Certificate.objects.filter(user=candidate, course=course).count() == 1

    def test_submit_racing_direct_issue(self):
        candidate = make_user()
        course = make_course()
        questions = make_questions(course)
        session, attempt = start_exam(candidate, course)
        answer_questions(candidate, attempt, questions, correct=10)
        with transaction.atomic():
            score_attempt(attempt.id)

        def issue():
            return issue_if_passed(ExamAttempt.objects.select_related('course').get(id=attempt.id))

        def submit():
            return complete_session(session_id=session.id, reason=ExamSession.EndReason.USER_SUBMIT).certificate

        results, errors = run_together([submit, issue, submit, issue, issue, submit])

        assert errors == [None] * 6
        assert len({certificate.id for certificate in results}) == 1
        assert Certificate.objects.filter(user=candidate, course=course).count() == 1
