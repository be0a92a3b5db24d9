# exams/services.py
"""
Course policy and question bank lookups used by the exam engine.

``list_active_questions`` is what candidates see; ``get_answer_key`` is the
privileged variant used only by scoring.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

from cores.exceptions import CourseNotFound

from .models import Course, Question


@dataclass(frozen=True)
class CoursePolicy:
    course_id: int
    passing_score: int
    exam_duration: int
    total_questions: int
    certificate_enabled: bool
    certificate_price: Decimal
    currency: str = "USD"

    @property
    def requires_payment(self) -> bool:
        return self.certificate_price > 0


@dataclass(frozen=True)
class BankQuestion:
    id: int
    prompt: str
    choices: List[str]
    order: int


def get_course_policy(course_id: int) -> CoursePolicy:
    course = Course.objects.filter(id=course_id, is_published=True).first()
    if course is None:
        raise CourseNotFound()
    return CoursePolicy(
        course_id=course.id,
        passing_score=course.passing_score,
        exam_duration=course.exam_duration,
        total_questions=course.total_questions,
        certificate_enabled=course.certificate_enabled,
        certificate_price=course.certificate_price,
        currency=course.currency,
    )


def list_active_questions(course_id: int) -> List[BankQuestion]:
    """Active questions in exam order, without the answer key."""
    rows = Question.objects.filter(course_id=course_id, is_active=True).values(
        'id', 'prompt', 'choices', 'order'
    )
    return [BankQuestion(**row) for row in rows]


def get_answer_key(course_id: int) -> Dict[int, int]:
    # Inactive questions stay in the key so answers recorded before a
    # question was retired are still marked.
    return dict(
        Question.objects.filter(course_id=course_id).values_list('id', 'correct_choice')
    )
