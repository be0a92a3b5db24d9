from django.http import HttpResponse
from rest_framework import generics, permissions, status, views
from rest_framework.response import Response

from certificates.serializers import CertificateSerializer
from exams.serializers import CandidateQuestionSerializer
from .models import ExamSession
from .permissions import IsProctorOrAdmin
from .serializers import (
    CreateSessionSerializer,
    StartSessionSerializer,
    ValidateSessionSerializer,
    SebValidateSerializer,
    RecordViolationSerializer,
    RecordAnswerSerializer,
    ExamSessionSerializer,
    ExamSessionDetailSerializer,
    ExamResultSerializer,
)
from .services import answers, integrity, seb, sessions
from .services.eligibility import check_eligibility


def client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def completion_payload(outcome):
    result = outcome.result
    return {
        "session": ExamSessionSerializer(outcome.session).data,
        "already_finished": outcome.already_finished,
        "results": {
            "score": result.score,
            "passed": result.passed,
            "grade": result.grade,
            "correct_count": result.correct_count,
            "total_count": result.total_count,
        } if result else None,
        "certificate": CertificateSerializer(outcome.certificate).data if outcome.certificate else None,
    }


# --- STUDENT VIEWS ---

class EligibilityView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, course_id):
        eligibility = check_eligibility(request.user.id, course_id)
        return Response({"eligible": eligibility.eligible, "reason": eligibility.reason})


class ExamSessionListCreateView(views.APIView):
    """
    GET lists the candidate's sessions. POST opens a session for a course,
    or returns the one already open for it.
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        queryset = ExamSession.objects.filter(user=request.user).select_related('course').order_by('-created_at')
        return Response(ExamSessionSerializer(queryset, many=True).data)

    def post(self, request):
        serializer = CreateSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session, created = sessions.create_session(
            user_id=request.user.id,
            course_id=serializer.validated_data['course_id'],
            ip_address=client_ip(request),
        )
        return Response(
            ExamSessionSerializer(session).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class ExamSessionDetailView(generics.RetrieveAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ExamSessionDetailSerializer

    def get_object(self):
        return sessions.get_owned_session(self.kwargs['pk'], self.request.user.id)


class StartSessionView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        serializer = StartSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = sessions.start_session(
            session_id=pk,
            user_id=request.user.id,
            browser_fingerprint=serializer.validated_data['browser_fingerprint'],
        )
        return Response(ExamSessionSerializer(session).data)


class SessionQuestionsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        questions = sessions.session_questions(session_id=pk, user_id=request.user.id)
        return Response(CandidateQuestionSerializer(questions, many=True).data)


class RecordViolationView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        serializer = RecordViolationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        outcome = integrity.record_violation(
            session_id=pk,
            user_id=request.user.id,
            kind=data['kind'],
            detail=data['detail'],
            occurred_at=data.get('occurred_at'),
        )
        return Response({
            "violation_count": outcome.violation_count,
            "terminated": outcome.terminated,
            "end_reason": ExamSession.EndReason.VIOLATION_LIMIT if outcome.terminated else None,
        })


class ValidateSessionView(views.APIView):
    """Heartbeat: refreshes activity and checks the browser fingerprint."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        serializer = ValidateSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        matches = integrity.validate_fingerprint(
            session_id=pk,
            user_id=request.user.id,
            observed_fingerprint=serializer.validated_data['browser_fingerprint'],
            ip_address=client_ip(request),
        )
        return Response({"success": True, "fingerprint_match": matches})


class SebValidateView(views.APIView):
    """Checks the Safe Exam Browser keys and headers sent with the request."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        serializer = SebValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = integrity.validate_seb(
            session_id=pk,
            user_id=request.user.id,
            browser_exam_key=serializer.validated_data["browser_exam_key"],
            config_key=serializer.validated_data["config_key"],
            request_hash=request.headers.get(seb.REQUEST_HASH_HEADER),
            config_key_hash=request.headers.get(seb.CONFIG_KEY_HEADER),
            user_agent=request.headers.get("User-Agent", ""),
            ip_address=client_ip(request),
        )
        return Response({
            "is_valid": result.is_valid,
            "validation_method": result.method,
            "security_level": result.security_level,
            "issues": list(result.issues),
        })


class SebConfigView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        filename, data = integrity.seb_config_file(session_id=pk, user_id=request.user.id)
        response = HttpResponse(data, content_type="application/seb")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


class RecordAnswerView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, attempt_id):
        serializer = RecordAnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        answer = answers.record_answer(
            attempt_id=attempt_id,
            user_id=request.user.id,
            question_id=data['question_id'],
            selected_choice=data['selected_choice'],
            time_spent=data['time_spent'],
        )
        return Response({"success": True, "answer_id": answer.id, "question_id": answer.question_id})


class CompleteSessionView(views.APIView):
    """Candidate submits the exam."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        outcome = sessions.complete_session(
            session_id=pk,
            reason=ExamSession.EndReason.USER_SUBMIT,
            user_id=request.user.id,
        )
        return Response(completion_payload(outcome))


class SessionResultsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        session = sessions.get_owned_session(pk, request.user.id)
        return Response(ExamResultSerializer(session).data)


# --- ADMIN VIEWS ---

class AdminTerminateSessionView(views.APIView):
    permission_classes = [IsProctorOrAdmin]

    def post(self, request, pk):
        outcome = sessions.complete_session(
            session_id=pk,
            reason=ExamSession.EndReason.ADMIN_TERMINATED,
            actor=request.user,
        )
        return Response(completion_payload(outcome))


class AdminSessionListView(generics.ListAPIView):
    permission_classes = [IsProctorOrAdmin]
    serializer_class = ExamSessionDetailSerializer

    def get_queryset(self):
        queryset = ExamSession.objects.select_related('course').prefetch_related('violations').order_by('-created_at')
        session_status = self.request.query_params.get('status')
        if session_status:
            queryset = queryset.filter(status=session_status)
        return queryset
