# exams/models.py
from django.db import models


class Course(models.Model):
    code = models.CharField(max_length=32, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    is_published = models.BooleanField(default=True)

    # Certification policy
    passing_score = models.PositiveIntegerField(default=70, help_text="Minimum percentage to pass")
    exam_duration = models.PositiveIntegerField(default=60, help_text="Duration in minutes")
    total_questions = models.PositiveIntegerField(default=10)
    certificate_enabled = models.BooleanField(default=True)
    certificate_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="USD")

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    @property
    def requires_payment(self):
        return self.certificate_price > 0


class Question(models.Model):
    course = models.ForeignKey(Course, related_name='questions', on_delete=models.CASCADE)
    prompt = models.TextField()
    choices = models.JSONField(default=list, help_text="Ordered list of answer choices")

    # Answer key: index into choices. Never exposed to candidates before scoring.
    correct_choice = models.PositiveIntegerField()
    explanation = models.TextField(blank=True)

    order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.prompt[:50]}..."
