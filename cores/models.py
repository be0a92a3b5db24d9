from django.db import models
from django.core.cache import cache
from django.conf import settings


class PlatformSetting(models.Model):
    # --- General & Branding ---
    site_name = models.CharField(max_length=100, default="CertExam")
    support_email = models.EmailField(default="support@certexam.local")

    # --- Exam Policy ---
    require_payment = models.BooleanField(
        default=True, help_text="Require a completed payment before a paid course's exam can be opened"
    )
    violation_limit = models.PositiveIntegerField(
        default=3, help_text="Proctoring violations that terminate a session"
    )
    expiry_grace_minutes = models.PositiveIntegerField(
        default=10, help_text="Minutes allowed past the exam duration before a session is expired"
    )

    # --- Certificates ---
    certificate_validity_days = models.PositiveIntegerField(default=365)
    certificate_signer_name = models.CharField(max_length=100, default="Director of Studies")
    certificate_signer_title = models.CharField(max_length=100, default="Registrar")

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    class Action(models.TextChoices):
        SESSION_TERMINATED = "SESSION_TERMINATED", "Session Terminated"
        INTEGRITY_WARNING = "INTEGRITY_WARNING", "Integrity Warning"
        CERTIFICATE = "CERTIFICATE", "Certificate Issued"
        REVOKE = "REVOKE", "Certificate Revoked"
        SETTINGS = "SETTINGS", "Settings Changed"

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=30, choices=Action.choices)
    target_model = models.CharField(max_length=50, help_text="e.g., ExamSession, Certificate")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"

    @classmethod
    def record(cls, action, target, details="", actor=None, ip_address=None):
        return cls.objects.create(
            actor=actor,
            action=action,
            target_model=type(target).__name__,
            target_object_id=str(target.pk),
            details=details,
            ip_address=ip_address,
        )
