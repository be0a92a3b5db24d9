from rest_framework import serializers

from certificates.models import Certificate
from certificates.serializers import CertificateSerializer
from cores.models import PlatformSetting
from .models import ExamSession, ExamAttempt, Answer, Violation


# --- Input ---

class CreateSessionSerializer(serializers.Serializer):
    course_id = serializers.IntegerField()

class StartSessionSerializer(serializers.Serializer):
    browser_fingerprint = serializers.CharField(max_length=512, required=False, allow_blank=True, default="")

class ValidateSessionSerializer(serializers.Serializer):
    browser_fingerprint = serializers.CharField(max_length=512, allow_blank=True)

class SebValidateSerializer(serializers.Serializer):
    browser_exam_key = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    config_key = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")

class RecordViolationSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Violation.Kind.choices)
    occurred_at = serializers.DateTimeField(required=False)
    detail = serializers.DictField(required=False, default=dict)

class RecordAnswerSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    selected_choice = serializers.IntegerField(min_value=0)
    time_spent = serializers.IntegerField(min_value=0, required=False, default=0)


# --- Output ---

class ViolationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Violation
        fields = ['sequence', 'kind', 'detail', 'occurred_at', 'recorded_at']

class ExamSessionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    course_title = serializers.CharField(source='course.title', read_only=True)
    duration_minutes = serializers.IntegerField(source='course.exam_duration', read_only=True)
    attempt_id = serializers.SerializerMethodField()
    expires_at = serializers.SerializerMethodField()

    class Meta:
        model = ExamSession
        fields = [
            'id', 'course', 'course_title', 'status', 'end_reason', 'violation_count',
            'duration_minutes', 'start_time', 'end_time', 'expires_at', 'attempt_id', 'created_at'
        ]
        read_only_fields = fields

    def get_attempt_id(self, obj):
        return ExamAttempt.objects.filter(session=obj).values_list('id', flat=True).first()

    def get_expires_at(self, obj):
        return obj.deadline(PlatformSetting.load().expiry_grace_minutes)

class ExamSessionDetailSerializer(ExamSessionSerializer):
    violations = ViolationSerializer(many=True, read_only=True)

    class Meta(ExamSessionSerializer.Meta):
        fields = ExamSessionSerializer.Meta.fields + ['violations']
        read_only_fields = fields

class AnswerResultSerializer(serializers.ModelSerializer):
    """Per-question breakdown. The key is only revealed once the attempt is scored."""
    prompt = serializers.CharField(source='question.prompt', read_only=True)
    choices = serializers.ListField(source='question.choices', read_only=True)

    class Meta:
        model = Answer
        fields = ['question', 'prompt', 'choices', 'selected_choice', 'time_spent', 'is_correct']

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.attempt.is_scored:
            data['correct_choice'] = instance.question.correct_choice
            data['explanation'] = instance.question.explanation
        else:
            data.pop('is_correct')
        return data

class ExamResultSerializer(serializers.ModelSerializer):
    session_id = serializers.IntegerField(source='id', read_only=True)
    course_title = serializers.CharField(source='course.title', read_only=True)
    passing_score = serializers.IntegerField(source='course.passing_score', read_only=True)
    outcome = serializers.SerializerMethodField()
    answers = serializers.SerializerMethodField()
    certificate = serializers.SerializerMethodField()

    class Meta:
        model = ExamSession
        fields = [
            'session_id', 'course', 'course_title', 'status', 'end_reason', 'violation_count',
            'start_time', 'end_time', 'passing_score', 'outcome', 'answers', 'certificate'
        ]

    def _attempt(self, obj):
        return ExamAttempt.objects.filter(session=obj).first()

    def get_outcome(self, obj):
        attempt = self._attempt(obj)
        if attempt is None or not attempt.is_scored:
            return None
        return {
            "score": attempt.score,
            "passed": attempt.passed,
            "grade": attempt.grade,
            "correct_count": attempt.correct_count,
            "total_count": attempt.total_count,
            "time_spent": attempt.time_spent,
        }

    def get_answers(self, obj):
        attempt = self._attempt(obj)
        if attempt is None:
            return []
        answers = attempt.answers.select_related('question', 'attempt')
        return AnswerResultSerializer(answers, many=True).data

    def get_certificate(self, obj):
        certificate = Certificate.objects.filter(attempt__session=obj).select_related('user', 'course').first()
        return CertificateSerializer(certificate).data if certificate else None
