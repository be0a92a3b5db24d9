# exams/serializers.py
from rest_framework import serializers
from .models import Course, Question

# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    """Admin view of the question bank, answer key included."""
    course_title = serializers.CharField(source='course.title', read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'course', 'course_title', 'prompt', 'choices',
            'correct_choice', 'explanation', 'order', 'is_active'
        ]

    def validate(self, attrs):
        choices = attrs.get('choices', getattr(self.instance, 'choices', None)) or []
        correct = attrs.get('correct_choice', getattr(self.instance, 'correct_choice', None))
        if len(choices) < 2:
            raise serializers.ValidationError({"choices": "At least two choices are required."})
        if not all(isinstance(c, str) and c.strip() for c in choices):
            raise serializers.ValidationError({"choices": "Choices must be non-empty strings."})
        if correct is None or correct >= len(choices):
            raise serializers.ValidationError({"correct_choice": "Must be the index of one of the choices."})
        return attrs

class CandidateQuestionSerializer(serializers.Serializer):
    """What a candidate sees during an exam: no key, no explanation."""
    id = serializers.IntegerField()
    prompt = serializers.CharField()
    choices = serializers.ListField(child=serializers.CharField())
    order = serializers.IntegerField()

# --- Course Serializers ---

class CourseSerializer(serializers.ModelSerializer):
    # Read-only count of the questions currently in rotation
    active_questions = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = [
            'id', 'code', 'title', 'description', 'is_published',
            'passing_score', 'exam_duration', 'total_questions',
            'certificate_enabled', 'certificate_price', 'currency',
            'active_questions'
        ]

    def get_active_questions(self, obj):
        return obj.questions.filter(is_active=True).count()

    def validate_passing_score(self, value):
        if value > 100:
            raise serializers.ValidationError("Passing score is a percentage (0-100).")
        return value

class CourseListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ['id', 'code', 'title', 'certificate_price', 'currency', 'exam_duration', 'passing_score']
