from datetime import timedelta
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.utils import timezone

from assessments.models import ExamSession
from assessments.services.answers import record_answer
from assessments.services import sessions
from assessments.services.sessions import create_session, expire_overdue_sessions
from cores.exceptions import AttemptNotActive

from factories import answer_questions, make_user, start_exam

pytestmark = pytest.mark.django_db


def backdate(session, minutes):
    ExamSession.objects.filter(id=session.id).update(start_time=timezone.now() - timedelta(minutes=minutes))
    session.refresh_from_db()


class TestTimeExpiry:

    def test_overdue_session_is_completed_and_scored(self, candidate, course, questions):
        session, attempt = start_exam(candidate, course)
        answer_questions(candidate, attempt, questions, correct=9)
        # 60 minute exam plus 10 minutes of grace
        backdate(session, 71)

        out = StringIO()
        call_command("expire_exam_sessions", stdout=out)

        session.refresh_from_db()
        attempt.refresh_from_db()
        assert "Expired 1 exam session(s)" in out.getvalue()
        assert session.status == ExamSession.Status.COMPLETED
        assert session.end_reason == ExamSession.EndReason.TIME_EXPIRED
        assert attempt.score == 90
        assert attempt.certificate is not None

    def test_within_grace_is_left_alone(self, candidate, course, questions):
        session, _ = start_exam(candidate, course)
        backdate(session, 65)

        assert expire_overdue_sessions() == 0
        session.refresh_from_db()
        assert session.status == ExamSession.Status.IN_PROGRESS

    def test_pending_sessions_never_expire(self, candidate, course):
        create_session(user_id=candidate.id, course_id=course.id)
        assert expire_overdue_sessions(now=timezone.now() + timedelta(days=2)) == 0

    def test_answer_on_overdue_session_expires_it(self, candidate, course, questions):
        session, attempt = start_exam(candidate, course)
        backdate(session, 120)

        with pytest.raises(AttemptNotActive):
            record_answer(attempt_id=attempt.id, user_id=candidate.id, question_id=questions[0].id, selected_choice=0)

        session.refresh_from_db()
        assert session.status == ExamSession.Status.COMPLETED
        assert session.end_reason == ExamSession.EndReason.TIME_EXPIRED

    def test_unpublished_course_still_expires_and_scores(self, candidate, course, questions):
        session, attempt = start_exam(candidate, course)
        answer_questions(candidate, attempt, questions, correct=8)
        course.is_published = False
        course.save()
        backdate(session, 71)

        assert expire_overdue_sessions() == 1

        session.refresh_from_db()
        attempt.refresh_from_db()
        assert session.status == ExamSession.Status.COMPLETED
        assert attempt.score == 80
        assert attempt.passed is True

    def test_one_failing_session_does_not_stop_the_sweep(self, candidate, course, questions):
        broken, broken_attempt = start_exam(candidate, course)
        healthy, _ = start_exam(make_user(), course)
        backdate(broken, 90)
        backdate(healthy, 90)
        real_score_attempt = sessions.score_attempt

        def score(attempt_id):
            if attempt_id == broken_attempt.id:
                raise AttemptNotActive()
            return real_score_attempt(attempt_id)

        with mock.patch("assessments.services.sessions.score_attempt", side_effect=score), \
                mock.patch("assessments.services.sessions.logger") as logger:
            assert expire_overdue_sessions() == 1

        broken.refresh_from_db()
        healthy.refresh_from_db()
        assert broken.status == ExamSession.Status.IN_PROGRESS
        assert healthy.status == ExamSession.Status.COMPLETED
        logger.exception.assert_called_once()

        # The next sweep picks it up again
        assert expire_overdue_sessions() == 1
        broken.refresh_from_db()
        assert broken.status == ExamSession.Status.COMPLETED
