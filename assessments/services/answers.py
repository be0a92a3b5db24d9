# assessments/services/answers.py
from __future__ import annotations

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from cores.exceptions import AttemptNotActive, InvalidSession
from exams.models import Question

from ..models import Answer, ExamAttempt, ExamSession
from .sessions import expire_if_overdue


def record_answer(
    *,
    attempt_id: int,
    user_id: int,
    question_id: int,
    selected_choice: int,
    time_spent: int = 0,
) -> Answer:
    """
    Save the candidate's choice for one question.

    Resubmitting for the same question overwrites the earlier choice.
    Correctness is left unset until the attempt is scored.
    """
    attempt = (
        ExamAttempt.objects.select_related('session', 'session__course')
        .filter(id=attempt_id, user_id=user_id)
        .first()
    )
    if attempt is None:
        raise InvalidSession("Exam attempt not found.")
    if attempt.session.status != ExamSession.Status.IN_PROGRESS or expire_if_overdue(attempt.session):
        raise AttemptNotActive()

    question = Question.objects.filter(id=question_id, course_id=attempt.course_id, is_active=True).first()
    if question is None:
        raise ValidationError({"question_id": "Question is not part of this exam."})
    if selected_choice >= len(question.choices):
        raise ValidationError({"selected_choice": "Choice is out of range for this question."})

    with transaction.atomic():
        # Hold the session row so completion cannot interleave with the write
        session = ExamSession.objects.select_for_update().get(id=attempt.session_id)
        if session.status != ExamSession.Status.IN_PROGRESS:
            raise AttemptNotActive()

        answer, _ = Answer.objects.update_or_create(
            attempt=attempt,
            question=question,
            defaults={
                'selected_choice': selected_choice,
                'time_spent': time_spent,
                'is_correct': None,
            },
        )
        ExamSession.objects.filter(id=session.id).update(last_seen_at=timezone.now())
    return answer
