# assessments/services/scoring.py
"""
Scoring engine.

Correctness is derived here, from the stored answer key, and nowhere else.
Scoring runs once, inside session completion; an attempt that is already
scored returns its stored outcome unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from django.db import transaction
from django.utils import timezone

from cores.exceptions import AttemptNotActive
from exams.models import Course
from exams.services import get_answer_key

from ..models import Answer, ExamAttempt

# Fixed grading scale: (minimum score, grade), highest first.
GRADE_THRESHOLDS = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)
FAILING_GRADE = "F"


@dataclass(frozen=True)
class ScoreResult:
    score: float
    passed: bool
    grade: str
    correct_count: int
    total_count: int

    @classmethod
    def from_attempt(cls, attempt: ExamAttempt) -> "ScoreResult":
        return cls(
            score=attempt.score,
            passed=attempt.passed,
            grade=attempt.grade,
            correct_count=attempt.correct_count,
            total_count=attempt.total_count,
        )


def grade_for(score: float) -> str:
    for minimum, grade in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return FAILING_GRADE


def compute_score(
    selections: Iterable[Tuple[int, int]],
    answer_key: Dict[int, int],
    passing_score: float,
) -> ScoreResult:
    """Pure scoring over ``(question_id, selected_choice)`` pairs."""
    total = 0
    correct = 0
    for question_id, selected in selections:
        total += 1
        if answer_key.get(question_id) == selected:
            correct += 1

    score = 100 * correct / total if total > 0 else 0.0
    return ScoreResult(
        score=score,
        passed=score >= passing_score,
        grade=grade_for(score),
        correct_count=correct,
        total_count=total,
    )


@transaction.atomic
def score_attempt(attempt_id: int) -> ScoreResult:
    attempt = ExamAttempt.objects.select_for_update().filter(id=attempt_id).first()
    if attempt is None:
        raise AttemptNotActive("Exam attempt not found.")
    if attempt.is_scored:
        return ScoreResult.from_attempt(attempt)

    # Policy of the course the attempt was sat under, published or not
    passing_score = Course.objects.values_list('passing_score', flat=True).get(id=attempt.course_id)
    answer_key = get_answer_key(attempt.course_id)

    answers = list(attempt.answers.all())
    for answer in answers:
        answer.is_correct = answer_key.get(answer.question_id) == answer.selected_choice
    Answer.objects.bulk_update(answers, ['is_correct'])

    result = compute_score(
        ((a.question_id, a.selected_choice) for a in answers),
        answer_key,
        passing_score,
    )

    attempt.score = result.score
    attempt.passed = result.passed
    attempt.grade = result.grade
    attempt.correct_count = result.correct_count
    attempt.total_count = result.total_count
    attempt.scored_at = timezone.now()
    attempt.save(update_fields=['score', 'passed', 'grade', 'correct_count', 'total_count', 'scored_at'])
    return result
