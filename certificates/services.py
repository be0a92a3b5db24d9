# certificates/services.py
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from pathlib import Path
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from cores.exceptions import CertificateNotFound, DependencyUnavailable
from cores.models import AuditLog, PlatformSetting

from .models import Certificate
from .rendering import get_renderer

logger = logging.getLogger(__name__)

# Fresh identifiers tried before minting gives up
ISSUE_RETRIES = 5


def generate_certificate_number(course) -> str:
    prefix = "".join(ch for ch in course.code.upper() if ch.isalnum())[:8] or "COURSE"
    return f"CERT-{prefix}-{timezone.now():%Y%m%d}-{secrets.token_hex(4).upper()}"


def generate_verification_code() -> str:
    return secrets.token_hex(6).upper()


def issue_if_passed(attempt) -> Optional[Certificate]:
    """
    Mint the certificate for a passing, scored attempt.

    Returns None for a failing attempt. If the candidate already holds a
    valid certificate for the course it is returned unchanged, so retried
    completions never produce a second one.
    """
    if not attempt.passed:
        return None

    existing = Certificate.objects.filter(
        user_id=attempt.user_id, course_id=attempt.course_id, is_revoked=False
    ).first()
    if existing is not None:
        return existing

    issued_at = timezone.now()
    validity = PlatformSetting.load().certificate_validity_days
    certificate = None
    for _ in range(ISSUE_RETRIES):
        try:
            with transaction.atomic():
                certificate = Certificate.objects.create(
                    user_id=attempt.user_id,
                    course_id=attempt.course_id,
                    attempt=attempt,
                    certificate_number=generate_certificate_number(attempt.course),
                    verification_code=generate_verification_code(),
                    score=attempt.score,
                    grade=attempt.grade,
                    issued_at=issued_at,
                    valid_until=issued_at + timedelta(days=validity) if validity else None,
                )
            break
        except IntegrityError:
            # A concurrent completion issued it first, or a random identifier collided
            existing = Certificate.objects.filter(
                user_id=attempt.user_id, course_id=attempt.course_id, is_revoked=False
            ).first()
            if existing is not None:
                return existing
            logger.warning("Certificate identifier collision for attempt %s, retrying", attempt.id)
    if certificate is None:
        raise DependencyUnavailable("Could not allocate a unique certificate number. Please retry.")

    AuditLog.record(
        AuditLog.Action.CERTIFICATE,
        certificate,
        details=f"Issued {certificate.certificate_number} (score {certificate.score:.1f}, grade {certificate.grade})",
    )
    logger.info("Certificate %s issued to user %s", certificate.certificate_number, certificate.user_id)

    certificate_id = certificate.id
    transaction.on_commit(lambda: render_pending_pdf(certificate_id))
    return certificate


def render_certificate_pdf(certificate: Certificate) -> str:
    try:
        pdf_path = get_renderer().render(certificate, certificate.user, certificate.course)
    except Exception as exc:
        logger.exception("PDF render failed for certificate %s", certificate.certificate_number)
        raise DependencyUnavailable("Certificate PDF could not be generated. Please retry.") from exc

    Certificate.objects.filter(id=certificate.id).update(pdf_path=pdf_path)
    certificate.pdf_path = pdf_path
    return pdf_path


def render_pending_pdf(certificate_id: int) -> None:
    """Post-commit hook. A failure leaves ``pdf_path`` empty for the next download to retry."""
    certificate = Certificate.objects.select_related('user', 'course').filter(id=certificate_id).first()
    if certificate is None or certificate.pdf_path:
        return
    try:
        render_certificate_pdf(certificate)
    except DependencyUnavailable:
        pass


def pdf_file(certificate: Certificate) -> Path:
    """Absolute path of the certificate PDF, rendering it first if it is missing."""
    if certificate.pdf_path:
        path = Path(settings.MEDIA_ROOT) / certificate.pdf_path
        if path.exists():
            return path
    return Path(settings.MEDIA_ROOT) / render_certificate_pdf(certificate)


def get_user_certificate(*, certificate_id: int, user_id: int) -> Certificate:
    certificate = (
        Certificate.objects.select_related('user', 'course')
        .filter(id=certificate_id, user_id=user_id, is_revoked=False)
        .first()
    )
    if certificate is None:
        raise CertificateNotFound()
    return certificate


def certificate_status(*, user_id: int, course_id: int) -> Optional[Certificate]:
    return Certificate.objects.filter(user_id=user_id, course_id=course_id, is_revoked=False).first()


def verify_certificate(certificate_number: str, verification_code: Optional[str] = None) -> Certificate:
    certificate = (
        Certificate.objects.select_related('user', 'course')
        .filter(certificate_number=certificate_number, is_revoked=False)
        .first()
    )
    if certificate is None:
        raise CertificateNotFound()
    if verification_code and verification_code.strip().upper() != certificate.verification_code:
        raise CertificateNotFound()
    return certificate


@transaction.atomic
def revoke_certificate(*, certificate_id: int, reason: str, actor=None) -> Certificate:
    certificate = Certificate.objects.select_for_update().filter(id=certificate_id).first()
    if certificate is None:
        raise CertificateNotFound()
    if certificate.is_revoked:
        return certificate

    certificate.is_revoked = True
    certificate.revoked_at = timezone.now()
    certificate.revoked_reason = reason
    certificate.save(update_fields=['is_revoked', 'revoked_at', 'revoked_reason'])

    AuditLog.record(AuditLog.Action.REVOKE, certificate, details=reason, actor=actor)
    logger.info("Certificate %s revoked", certificate.certificate_number)
    return certificate
