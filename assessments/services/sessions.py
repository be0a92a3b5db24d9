# assessments/services/sessions.py
"""
Session manager: owns the exam session state machine.

    PENDING -> IN_PROGRESS -> COMPLETED | TERMINATED

Every transition out of an active state is a conditional UPDATE keyed by
session id and current status, so exactly one caller performs it; the rest
read back the terminal state and get it returned unchanged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from certificates.models import Certificate
from certificates.services import issue_if_passed
from cores.exceptions import InvalidSession, NotEligible, PlatformError
from cores.models import AuditLog, PlatformSetting
from exams.services import list_active_questions

from ..models import ExamAttempt, ExamSession
from .eligibility import check_eligibility
from .scoring import ScoreResult, score_attempt

logger = logging.getLogger(__name__)

Status = ExamSession.Status
EndReason = ExamSession.EndReason

# Reasons that end an exam normally; all others terminate it.
COMPLETING_REASONS = (EndReason.USER_SUBMIT, EndReason.TIME_EXPIRED)


@dataclass
class CompletionResult:
    session: ExamSession
    attempt: Optional[ExamAttempt]
    result: Optional[ScoreResult]
    certificate: Optional[Certificate]
    already_finished: bool = False


def _active_session(user_id: int, course_id: int) -> Optional[ExamSession]:
    return ExamSession.objects.filter(
        user_id=user_id, course_id=course_id, status__in=ExamSession.ACTIVE_STATUSES
    ).first()


def create_session(*, user_id: int, course_id: int, ip_address: Optional[str] = None) -> Tuple[ExamSession, bool]:
    """
    Open a PENDING session. Returns ``(session, created)``.

    A retry while a PENDING/IN_PROGRESS session exists for the same course
    returns that session with ``created=False``.
    """
    eligibility = check_eligibility(user_id, course_id)
    if not eligibility.eligible:
        raise NotEligible(eligibility.reason)

    existing = _active_session(user_id, course_id)
    if existing is not None:
        return existing, False

    try:
        with transaction.atomic():
            session = ExamSession.objects.create(
                user_id=user_id,
                course_id=course_id,
                ip_address=ip_address,
            )
    except IntegrityError:
        # Lost the race against a concurrent create for the same course
        existing = _active_session(user_id, course_id)
        if existing is None:
            raise
        return existing, False

    logger.info("Exam session %s created for user %s course %s", session.id, user_id, course_id)
    return session, True


def start_session(*, session_id: int, user_id: int, browser_fingerprint: str = "") -> ExamSession:
    """
    Move a PENDING session to IN_PROGRESS and open its attempt.

    Starting a session that is already in progress is a no-op that returns it.
    """
    with transaction.atomic():
        session = (
            ExamSession.objects.select_for_update()
            .filter(id=session_id, user_id=user_id, status__in=ExamSession.ACTIVE_STATUSES)
            .first()
        )
        if session is None:
            raise InvalidSession()
        if session.status == Status.IN_PROGRESS:
            return session

        now = timezone.now()
        started = ExamSession.objects.filter(id=session.id, status=Status.PENDING).update(
            status=Status.IN_PROGRESS,
            start_time=now,
            last_seen_at=now,
            browser_fingerprint=browser_fingerprint or session.browser_fingerprint,
            updated_at=now,
        )
        if started:
            ExamAttempt.objects.create(
                user_id=session.user_id,
                course_id=session.course_id,
                session=session,
                started_at=now,
            )
            logger.info("Exam session %s started", session.id)
        session.refresh_from_db()
    return session


def _finished(session: ExamSession) -> CompletionResult:
    attempt = ExamAttempt.objects.filter(session=session).first()
    result = ScoreResult.from_attempt(attempt) if attempt and attempt.is_scored else None
    certificate = Certificate.objects.filter(attempt=attempt).first() if attempt else None
    return CompletionResult(session, attempt, result, certificate, already_finished=True)


def complete_session(
    *,
    session_id: int,
    reason: str,
    user_id: Optional[int] = None,
    actor=None,
) -> CompletionResult:
    """
    End a session, score its attempt and issue a certificate if it passed.

    ``USER_SUBMIT`` and ``TIME_EXPIRED`` complete the session;
    ``VIOLATION_LIMIT`` and ``ADMIN_TERMINATED`` terminate it. A terminated
    attempt is closed but not scored. When ``user_id`` is given the caller
    must own the session. Calling this on a session that has already ended
    returns its existing outcome.
    """
    if reason not in EndReason.values:
        raise ValueError(f"Unknown end reason: {reason!r}")

    target = Status.COMPLETED if reason in COMPLETING_REASONS else Status.TERMINATED

    with transaction.atomic():
        session = ExamSession.objects.select_for_update().filter(id=session_id).first()
        if session is None or (user_id is not None and session.user_id != user_id):
            raise InvalidSession()
        if session.is_terminal:
            return _finished(session)
        if session.status == Status.PENDING and target == Status.COMPLETED:
            raise InvalidSession("This exam has not been started.")

        now = timezone.now()
        won = ExamSession.objects.filter(id=session.id, status__in=ExamSession.ACTIVE_STATUSES).update(
            status=target,
            end_reason=reason,
            end_time=now,
            updated_at=now,
        )
        session.refresh_from_db()
        if not won:
            return _finished(session)

        attempt = ExamAttempt.objects.filter(session=session).first()
        result = None
        certificate = None
        if attempt is not None:
            attempt.completed_at = now
            attempt.time_spent = attempt.answers.aggregate(total=Sum('time_spent'))['total'] or 0
            attempt.save(update_fields=['completed_at', 'time_spent'])
            if target == Status.COMPLETED:
                result = score_attempt(attempt.id)
                attempt.refresh_from_db()
                certificate = issue_if_passed(attempt)

        if target == Status.TERMINATED:
            AuditLog.record(
                AuditLog.Action.SESSION_TERMINATED,
                session,
                details=f"Reason: {reason}; violations: {session.violation_count}",
                actor=actor,
            )

    if target == Status.TERMINATED:
        logger.warning("Exam session %s terminated (%s)", session.id, reason)
    else:
        logger.info(
            "Exam session %s completed (%s) score=%s passed=%s",
            session.id, reason, result.score if result else None, result.passed if result else None,
        )
    return CompletionResult(session, attempt, result, certificate)


def expire_if_overdue(session: ExamSession, now=None) -> bool:
    """Complete ``session`` with TIME_EXPIRED if its deadline has passed."""
    grace = PlatformSetting.load().expiry_grace_minutes
    if not session.is_overdue(grace, now):
        return False
    complete_session(session_id=session.id, reason=EndReason.TIME_EXPIRED)
    return True


def expire_overdue_sessions(now=None) -> int:
    grace = PlatformSetting.load().expiry_grace_minutes
    expired = 0
    for session in ExamSession.objects.filter(status=Status.IN_PROGRESS).select_related('course'):
        if not session.is_overdue(grace, now):
            continue
        try:
            outcome = complete_session(session_id=session.id, reason=EndReason.TIME_EXPIRED)
        except PlatformError:
            # Left IN_PROGRESS for the next sweep; the others still expire
            logger.exception("Could not expire exam session %s", session.id)
            continue
        if not outcome.already_finished:
            expired += 1
    return expired


def get_owned_session(session_id: int, user_id: int) -> ExamSession:
    session = ExamSession.objects.select_related('course').filter(id=session_id, user_id=user_id).first()
    if session is None:
        raise InvalidSession()
    return session


def session_questions(*, session_id: int, user_id: int):
    """Questions for a session the caller is currently sitting."""
    session = get_owned_session(session_id, user_id)
    if session.status != Status.IN_PROGRESS or expire_if_overdue(session):
        raise InvalidSession()
    return list_active_questions(session.course_id)
