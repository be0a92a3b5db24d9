# cores/exceptions.py
"""
Typed errors shared by the exam, payment and certificate apps.

Each error carries a stable ``default_code`` that clients switch on, and
may carry extra structured fields (e.g. the eligibility ``reason``).
"""
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class PlatformError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "PLATFORM_ERROR"
    default_detail = "Request could not be completed."

    def __init__(self, detail=None, **extra):
        super().__init__(detail=detail, code=self.default_code)
        self.extra = extra

    @property
    def code(self):
        return self.default_code


class NotEligible(PlatformError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "NOT_ELIGIBLE"
    default_detail = "You are not eligible to take this exam."

    def __init__(self, reason, detail=None):
        super().__init__(detail=detail, reason=reason)
        self.reason = reason


class InvalidSession(PlatformError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "INVALID_SESSION"
    default_detail = "Invalid or expired exam session."


class AttemptNotActive(PlatformError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "ATTEMPT_NOT_ACTIVE"
    default_detail = "This exam attempt is no longer accepting answers."


class CourseNotFound(PlatformError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "COURSE_NOT_FOUND"
    default_detail = "Course not found or not available for certification."


class AlreadyCertified(PlatformError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "ALREADY_CERTIFIED"
    default_detail = "You already hold a valid certificate for this course."


class PaymentRequired(PlatformError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_code = "PAYMENT_REQUIRED"
    default_detail = "Payment is required before this exam can be taken."


class DependencyUnavailable(PlatformError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "DEPENDENCY_UNAVAILABLE"
    default_detail = "A required service is temporarily unavailable. Please retry."


class CertificateNotFound(PlatformError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "CERTIFICATE_NOT_FOUND"
    default_detail = "Certificate not found or revoked."


class ApplicationNotFound(PlatformError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "APPLICATION_NOT_FOUND"
    default_detail = "Application not found."


class ApplicationConflict(PlatformError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "APPLICATION_CONFLICT"
    default_detail = "The application is not in a state that allows this action."


def api_exception_handler(exc, context):
    """DRF exception handler rendering platform errors as ``{"error": {...}}``."""
    response = exception_handler(exc, context)
    if response is None or not isinstance(exc, PlatformError):
        return response

    response.data = {
        "error": {
            "code": exc.code,
            "message": str(exc.detail),
            **exc.extra,
        }
    }
    return response
