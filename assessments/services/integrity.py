# assessments/services/integrity.py
"""
Integrity monitor.

Violations are a hard signal: the session is terminated as soon as its count
reaches the platform's ``violation_limit``. A fingerprint mismatch is a soft
signal: it is logged and audited for later review but never ends the exam.
Safe Exam Browser key checks are soft signals in the same way.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from cores.exceptions import InvalidSession
from cores.models import AuditLog, PlatformSetting

from ..models import ExamSession, Violation
from . import seb
from .sessions import complete_session, expire_if_overdue, get_owned_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViolationOutcome:
    violation_count: int
    terminated: bool


def record_violation(
    *,
    session_id: int,
    user_id: int,
    kind: str,
    detail: Optional[dict] = None,
    occurred_at=None,
) -> ViolationOutcome:
    session = get_owned_session(session_id, user_id)
    if session.status != ExamSession.Status.IN_PROGRESS or expire_if_overdue(session):
        raise InvalidSession()

    limit = PlatformSetting.load().violation_limit

    with transaction.atomic():
        now = timezone.now()
        # The increment takes the row lock; concurrent reports queue behind it
        # and each sees a distinct count.
        bumped = ExamSession.objects.filter(
            id=session_id, user_id=user_id, status=ExamSession.Status.IN_PROGRESS
        ).update(violation_count=F('violation_count') + 1, last_seen_at=now, updated_at=now)
        if not bumped:
            raise InvalidSession()

        count = ExamSession.objects.values_list('violation_count', flat=True).get(id=session_id)
        Violation.objects.create(
            session_id=session_id,
            sequence=count,
            kind=kind,
            detail=detail or {},
            occurred_at=occurred_at or now,
        )

        terminated = count >= limit
        if terminated:
            complete_session(session_id=session_id, reason=ExamSession.EndReason.VIOLATION_LIMIT)

    logger.info("Violation %s recorded on session %s (%s/%s)", kind, session_id, count, limit)
    return ViolationOutcome(violation_count=count, terminated=terminated)


def validate_fingerprint(
    *,
    session_id: int,
    user_id: int,
    observed_fingerprint: str,
    ip_address: Optional[str] = None,
) -> bool:
    """Heartbeat check. Returns False on fingerprint drift without ending the exam."""
    session = get_owned_session(session_id, user_id)
    if session.status != ExamSession.Status.IN_PROGRESS or expire_if_overdue(session):
        raise InvalidSession()

    ExamSession.objects.filter(id=session_id).update(last_seen_at=timezone.now())

    stored = session.browser_fingerprint
    if not stored or stored == observed_fingerprint:
        return True

    logger.warning("Browser fingerprint mismatch for session %s", session_id)
    AuditLog.record(
        AuditLog.Action.INTEGRITY_WARNING,
        session,
        details="Browser fingerprint mismatch",
        actor=session.user,
        ip_address=ip_address,
    )
    return False


@dataclass(frozen=True)
class SebValidation:
    is_valid: bool
    method: str
    security_level: str
    issues: Tuple[str, ...] = ()


def _same_key(presented: str, expected: str) -> bool:
    return hmac.compare_digest(presented.encode(), expected.encode())


def validate_seb(
    *,
    session_id: int,
    user_id: int,
    browser_exam_key: Optional[str] = None,
    config_key: Optional[str] = None,
    request_hash: Optional[str] = None,
    config_key_hash: Optional[str] = None,
    user_agent: str = "",
    ip_address: Optional[str] = None,
) -> SebValidation:
    """
    Check that the candidate is running the Safe Exam Browser config issued
    for this session. Strongest evidence wins: both keys from the SEB
    JavaScript API, then the SEB request headers, then the user agent.
    A failed check is audited but never ends the exam.
    """
    session = get_owned_session(session_id, user_id)
    if session.is_terminal or expire_if_overdue(session):
        raise InvalidSession()

    if browser_exam_key and config_key:
        issues = []
        expected_bek = seb.expected_browser_exam_key(session.id, session.course_id, session.user_id)
        expected_ck = seb.expected_config_key(session.course_id, seb.exam_url(session.course_id, session.id))
        if not _same_key(browser_exam_key, expected_bek):
            issues.append("Invalid Browser Exam Key")
        if not _same_key(config_key, expected_ck):
            issues.append("Invalid Config Key")
        result = SebValidation(
            is_valid=not issues,
            method="JAVASCRIPT_API",
            security_level="medium" if issues else "high",
            issues=tuple(issues),
        )
    elif request_hash or config_key_hash:
        result = SebValidation(is_valid=True, method="HTTP_HEADERS", security_level="medium")
    elif seb.is_seb_user_agent(user_agent):
        result = SebValidation(
            is_valid=True,
            method="USER_AGENT",
            security_level="low",
            issues=("Using fallback validation method",),
        )
    else:
        result = SebValidation(
            is_valid=False,
            method="NONE",
            security_level="none",
            issues=("Safe Exam Browser not detected",),
        )

    ExamSession.objects.filter(id=session_id).update(last_seen_at=timezone.now())

    if result.is_valid:
        logger.info("SEB check passed for session %s via %s", session_id, result.method)
        return result

    logger.warning("SEB check failed for session %s: %s", session_id, "; ".join(result.issues))
    AuditLog.record(
        AuditLog.Action.INTEGRITY_WARNING,
        session,
        details=f"Safe Exam Browser check failed ({result.method}): {'; '.join(result.issues)}",
        actor=session.user,
        ip_address=ip_address,
    )
    return result


def seb_config_file(*, session_id: int, user_id: int) -> Tuple[str, bytes]:
    """Filename and contents of the ``.seb`` file that launches this session."""
    session = get_owned_session(session_id, user_id)
    if session.is_terminal or expire_if_overdue(session):
        raise InvalidSession()
    data = seb.config_file(seb.build_config(session.course_id, session.id))
    return f"secure_exam_{session.course_id}_{session.id}.seb", data
