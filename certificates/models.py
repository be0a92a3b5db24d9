# certificates/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q


class Certificate(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='certificates')
    course = models.ForeignKey('exams.Course', on_delete=models.CASCADE, related_name='certificates')
    attempt = models.OneToOneField('assessments.ExamAttempt', on_delete=models.PROTECT, related_name='certificate')

    # Public identifiers for external verification
    certificate_number = models.CharField(max_length=64, unique=True)
    verification_code = models.CharField(max_length=32, unique=True)

    score = models.FloatField()
    grade = models.CharField(max_length=1)
    issued_at = models.DateTimeField()
    valid_until = models.DateTimeField(null=True, blank=True)

    # Filled in lazily by the PDF renderer
    pdf_path = models.CharField(max_length=255, blank=True)

    is_revoked = models.BooleanField(default=False)
    revoked_at = models.DateTimeField(null=True, blank=True)
    revoked_reason = models.TextField(blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'course'],
                condition=Q(is_revoked=False),
                name='one_valid_certificate_per_course',
            ),
        ]

    def __str__(self):
        return f"Cert {self.certificate_number} for {self.user}"

    @property
    def verification_url(self):
        return f"{settings.CERTIFICATE_VERIFY_BASE_URL.rstrip('/')}/{self.certificate_number}"
