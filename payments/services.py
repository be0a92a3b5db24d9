# payments/services.py
from __future__ import annotations

import logging
from decimal import Decimal

import requests
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from cores.exceptions import (
    AlreadyCertified,
    ApplicationConflict,
    ApplicationNotFound,
    CourseNotFound,
    DependencyUnavailable,
    PaymentRequired,
)
from exams.services import get_course_policy
from certificates.models import Certificate

from .models import Application, Payment

logger = logging.getLogger(__name__)


def has_completed_payment(user_id: int, course_id: int) -> bool:
    return Payment.objects.filter(
        user_id=user_id, course_id=course_id, status=Payment.Status.COMPLETED
    ).exists()


def _get_application(user_id: int, application_id: int) -> Application:
    application = Application.objects.filter(id=application_id, user_id=user_id).first()
    if application is None:
        raise ApplicationNotFound()
    return application


@transaction.atomic
def apply_for_exam(*, user, course_id: int) -> Application:
    policy = get_course_policy(course_id)
    if not policy.certificate_enabled:
        raise CourseNotFound()

    if Certificate.objects.filter(user=user, course_id=course_id, is_revoked=False).exists():
        raise AlreadyCertified()

    if Application.objects.filter(user=user, course_id=course_id).exclude(
        status=Application.Status.CANCELLED
    ).exists():
        raise ApplicationConflict("You have already applied for this certificate exam.")

    free = not policy.requires_payment
    try:
        with transaction.atomic():
            application = Application.objects.create(
                user=user,
                course_id=course_id,
                amount=policy.certificate_price,
                currency=policy.currency,
                status=Application.Status.PAYMENT_CONFIRMED if free else Application.Status.APPLIED,
                payment_status=Application.PaymentStatus.COMPLETED if free else Application.PaymentStatus.PENDING,
            )
    except IntegrityError:
        raise ApplicationConflict("You have already applied for this certificate exam.")

    if not free:
        Payment.objects.create(
            user=user,
            course_id=course_id,
            application=application,
            amount=policy.certificate_price,
        )

    logger.info("Application %s created for user %s course %s", application.id, user.id, course_id)
    return application


def fetch_provider_transaction(reference: str) -> dict:
    """Look a payment reference up with the provider. Timeout-bounded."""
    if not settings.PAYSTACK_SECRET_KEY:
        logger.error("PAYSTACK_SECRET_KEY missing in settings.")
        raise DependencyUnavailable("Payment verification is not configured.")

    headers = {"Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}"}
    url = settings.PAYMENT_VERIFY_URL.format(reference=reference)

    try:
        resp = requests.get(url, headers=headers, timeout=settings.PAYMENT_VERIFY_TIMEOUT)
        return resp.json()
    except requests.exceptions.Timeout:
        logger.error("Payment verification timed out for reference %s", reference)
        raise DependencyUnavailable("Verification timed out. The payment provider is slow right now.")
    except requests.exceptions.ConnectionError:
        logger.error("Could not connect to payment provider for reference %s", reference)
        raise DependencyUnavailable("Network error. Could not connect to the payment provider.")
    except ValueError:
        logger.error("Payment provider returned a non-JSON body for reference %s", reference)
        raise DependencyUnavailable("The payment provider returned an unexpected response.")


def verify_payment(*, user, application_id: int, reference: str) -> Application:
    application = _get_application(user.id, application_id)
    if application.payment_status == Application.PaymentStatus.COMPLETED:
        return application
    if application.status == Application.Status.CANCELLED:
        raise ApplicationConflict("This application has been cancelled.")

    if Payment.objects.filter(reference=reference).exists():
        raise ApplicationConflict("This payment receipt has already been used.")

    resp_data = fetch_provider_transaction(reference)
    data = resp_data.get('data') or {}
    if not (resp_data.get('status') and data.get('status') == 'success'):
        raise PaymentRequired("Invalid or failed transaction reference.")

    # Provider amounts are in the minor currency unit
    amount_paid = Decimal(data.get('amount', 0)) / 100
    if amount_paid < application.amount:
        raise PaymentRequired(
            f"Incomplete payment. Exam costs {application.amount} but you paid {amount_paid}"
        )

    with transaction.atomic():
        application = Application.objects.select_for_update().get(id=application.id)
        if application.payment_status == Application.PaymentStatus.COMPLETED:
            return application

        payment = application.payments.filter(status=Payment.Status.PENDING).first()
        if payment is None:
            payment = Payment(user=user, course_id=application.course_id, application=application)
        payment.amount = amount_paid
        payment.reference = reference
        payment.status = Payment.Status.COMPLETED
        payment.verified_at = timezone.now()
        try:
            with transaction.atomic():
                payment.save()
        except IntegrityError:
            raise ApplicationConflict("This payment receipt has already been used.")

        application.payment_status = Application.PaymentStatus.COMPLETED
        application.status = Application.Status.PAYMENT_CONFIRMED
        application.save(update_fields=['payment_status', 'status', 'updated_at'])

    logger.info("Payment %s confirmed for application %s", reference, application.id)
    return application


def schedule_application(*, user, application_id: int, scheduled_at) -> Application:
    application = _get_application(user.id, application_id)
    if application.payment_status != Application.PaymentStatus.COMPLETED:
        raise PaymentRequired("Payment not confirmed.")
    if application.status not in (Application.Status.PAYMENT_CONFIRMED, Application.Status.SCHEDULED):
        raise ApplicationConflict()

    application.status = Application.Status.SCHEDULED
    application.scheduled_at = scheduled_at
    application.save(update_fields=['status', 'scheduled_at', 'updated_at'])
    return application


@transaction.atomic
def cancel_application(*, user, application_id: int) -> Application:
    application = _get_application(user.id, application_id)
    if application.status != Application.Status.APPLIED:
        # Paid applications are refunded out of band, not cancelled here
        raise ApplicationConflict("Only unpaid applications can be cancelled.")

    application.status = Application.Status.CANCELLED
    application.save(update_fields=['status', 'updated_at'])
    application.payments.filter(status=Payment.Status.PENDING).update(status=Payment.Status.FAILED)
    return application
