# assessments/models.py
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from exams.models import Course, Question


class ExamSession(models.Model):
    """One proctored sitting of a course's certification exam."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        COMPLETED = "COMPLETED", "Completed"
        TERMINATED = "TERMINATED", "Terminated"

    class EndReason(models.TextChoices):
        USER_SUBMIT = "USER_SUBMIT", "Submitted"
        TIME_EXPIRED = "TIME_EXPIRED", "Time Expired"
        VIOLATION_LIMIT = "VIOLATION_LIMIT", "Violation Limit Reached"
        ADMIN_TERMINATED = "ADMIN_TERMINATED", "Terminated by Admin"

    ACTIVE_STATUSES = (Status.PENDING, Status.IN_PROGRESS)
    TERMINAL_STATUSES = (Status.COMPLETED, Status.TERMINATED)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_sessions')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='exam_sessions')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    end_reason = models.CharField(max_length=20, choices=EndReason.choices, blank=True)

    browser_fingerprint = models.CharField(max_length=512, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    # Maintained under the session row lock together with Violation inserts
    violation_count = models.PositiveIntegerField(default=0)

    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)
    last_seen_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'course'],
                condition=Q(status__in=["PENDING", "IN_PROGRESS"]),
                name='one_active_session_per_course',
            ),
        ]

    def __str__(self):
        return f"{self.user} - {self.course} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def deadline(self, grace_minutes=0):
        if self.start_time is None:
            return None
        return self.start_time + timedelta(minutes=self.course.exam_duration + grace_minutes)

    def is_overdue(self, grace_minutes, now=None):
        deadline = self.deadline(grace_minutes)
        if deadline is None or self.status != self.Status.IN_PROGRESS:
            return False
        return (now or timezone.now()) > deadline


class Violation(models.Model):
    """A proctoring integrity event. Append-only, ordered by ``sequence``."""

    class Kind(models.TextChoices):
        TAB_SWITCH = "TAB_SWITCH", "Tab Switch"
        WINDOW_BLUR = "WINDOW_BLUR", "Window Lost Focus"
        FULLSCREEN_EXIT = "FULLSCREEN_EXIT", "Exited Fullscreen"
        COPY_PASTE = "COPY_PASTE", "Copy / Paste"
        CAMERA_LOST = "CAMERA_LOST", "Camera Lost"
        MULTIPLE_FACES = "MULTIPLE_FACES", "Multiple Faces"
        DEVTOOLS_OPEN = "DEVTOOLS_OPEN", "Developer Tools Opened"
        OTHER = "OTHER", "Other"

    session = models.ForeignKey(ExamSession, related_name='violations', on_delete=models.CASCADE)
    sequence = models.PositiveIntegerField()
    kind = models.CharField(max_length=20, choices=Kind.choices)
    detail = models.JSONField(default=dict, blank=True)
    occurred_at = models.DateTimeField()
    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['sequence']
        unique_together = ('session', 'sequence')

    def __str__(self):
        return f"{self.session_id}#{self.sequence} {self.kind}"


class ExamAttempt(models.Model):
    """The gradable record tied 1:1 to a started session."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_attempts')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='exam_attempts')
    session = models.OneToOneField(ExamSession, on_delete=models.CASCADE, related_name='attempt')

    started_at = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)
    time_spent = models.PositiveIntegerField(default=0, help_text="Seconds, summed over answers")

    # Outcome, written once by scoring
    score = models.FloatField(null=True, blank=True)
    passed = models.BooleanField(null=True)
    grade = models.CharField(max_length=1, blank=True)
    correct_count = models.PositiveIntegerField(default=0)
    total_count = models.PositiveIntegerField(default=0)
    scored_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Attempt {self.pk} - {self.user} - {self.course}"

    @property
    def is_scored(self):
        return self.scored_at is not None


class Answer(models.Model):
    attempt = models.ForeignKey(ExamAttempt, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE)
    selected_choice = models.PositiveIntegerField()

    # Derived at scoring time, never taken from the client
    is_correct = models.BooleanField(null=True)
    time_spent = models.PositiveIntegerField(default=0, help_text="Seconds")
    answered_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('attempt', 'question')
        ordering = ['question__order', 'question_id']
