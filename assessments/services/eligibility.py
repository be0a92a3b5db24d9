# assessments/services/eligibility.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from certificates.models import Certificate
from cores.exceptions import CourseNotFound
from cores.models import PlatformSetting
from exams.services import get_course_policy
from payments.services import has_completed_payment

ALREADY_CERTIFIED = "ALREADY_CERTIFIED"
PAYMENT_REQUIRED = "PAYMENT_REQUIRED"


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: Optional[str] = None


def check_eligibility(user_id: int, course_id: int) -> Eligibility:
    """
    Decide whether ``user_id`` may open an exam session for ``course_id``.

    Rules, in order:
      1. a non-revoked certificate for the course -> ALREADY_CERTIFIED
      2. a paid course without a completed payment -> PAYMENT_REQUIRED,
         unless payment is switched off platform-wide
      3. otherwise eligible

    Read-only. Raises ``CourseNotFound`` when the course is missing,
    unpublished or has certification disabled.
    """
    policy = get_course_policy(course_id)
    if not policy.certificate_enabled:
        raise CourseNotFound()

    if Certificate.objects.filter(user_id=user_id, course_id=course_id, is_revoked=False).exists():
        return Eligibility(False, ALREADY_CERTIFIED)

    if (
        policy.requires_payment
        and PlatformSetting.load().require_payment
        and not has_completed_payment(user_id, course_id)
    ):
        return Eligibility(False, PAYMENT_REQUIRED)

    return Eligibility(True)
