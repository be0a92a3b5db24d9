import csv
import io
import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, permissions, filters, status
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from .models import Course, Question
from .serializers import CourseSerializer, CourseListSerializer, QuestionSerializer

logger = logging.getLogger(__name__)


class CourseViewSet(viewsets.ModelViewSet):
    # Enable search on code and title
    filter_backends = [filters.SearchFilter]
    search_fields = ['code', 'title']

    def get_queryset(self):
        queryset = Course.objects.all().order_by('-created_at')
        if not self.request.user.is_staff:
            queryset = queryset.filter(is_published=True, certificate_enabled=True)
        return queryset

    def get_serializer_class(self):
        if self.action == 'list' and not self.request.user.is_staff:
            # Candidates get the simple list
            return CourseListSerializer
        return CourseSerializer

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            return [permissions.AllowAny()]
        return [permissions.IsAdminUser()]


class QuestionViewSet(viewsets.ModelViewSet):
    queryset = Question.objects.select_related('course').all()
    serializer_class = QuestionSerializer
    permission_classes = [permissions.IsAdminUser]

    # Enable Search and Filtering for the Question Bank
    filter_backends = [filters.SearchFilter]
    search_fields = ['prompt']

    def get_queryset(self):
        queryset = super().get_queryset()
        # Filter by course if provided ?course_id=1
        course_id = self.request.query_params.get('course_id')
        if course_id:
            queryset = queryset.filter(course_id=course_id)
        return queryset

    def perform_destroy(self, instance):
        # Retire instead of deleting so recorded answers keep their key
        instance.is_active = False
        instance.save(update_fields=['is_active'])

    @action(detail=False, methods=['post'], url_path='bulk-upload', parser_classes=[MultiPartParser, FormParser])
    def bulk_upload(self, request):
        """
        Upload questions for one course via CSV.
        Expected CSV Header: prompt, choices, correct_answer, explanation, order
        ``choices`` is pipe separated; ``correct_answer`` is the text of the right choice.
        """
        course_id = str(request.data.get("course_id", ""))
        if not course_id.isdigit():
            return Response({"error": "course_id is required"}, status=status.HTTP_400_BAD_REQUEST)
        course = get_object_or_404(Course, pk=int(course_id))
        file_obj = request.FILES.get('file')
        if not file_obj:
            return Response({"error": "No file uploaded"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            reader = csv.DictReader(io.StringIO(file_obj.read().decode('utf-8')))
            rows = list(reader)
        except (UnicodeDecodeError, csv.Error) as exc:
            return Response({"error": f"Unreadable CSV: {exc}"}, status=status.HTTP_400_BAD_REQUEST)

        pending = []
        errors = {}
        for line, row in enumerate(rows, start=2):
            choices = [c.strip() for c in (row.get('choices') or '').split('|') if c.strip()]
            answer = (row.get('correct_answer') or '').strip().lower()
            correct = next((i for i, c in enumerate(choices) if c.lower() == answer), None)
            serializer = QuestionSerializer(data={
                'course': course.id,
                'prompt': (row.get('prompt') or '').strip(),
                'choices': choices,
                'correct_choice': correct,
                'explanation': (row.get('explanation') or '').strip(),
                'order': row.get('order') or line - 1,
            })
            if serializer.is_valid():
                pending.append(serializer)
            else:
                errors[line] = serializer.errors

        if errors:
            return Response({"error": "Invalid rows", "rows": errors}, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            for serializer in pending:
                serializer.save()
        logger.info("Uploaded %s questions to course %s", len(pending), course.code)
        return Response({"status": f"Successfully uploaded {len(pending)} questions"}, status=status.HTTP_201_CREATED)
