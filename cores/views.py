from django.db.models import Avg, Count
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAdminUser

from assessments.models import ExamSession, ExamAttempt
from certificates.models import Certificate
from .models import PlatformSetting, AuditLog
from .serializers import PlatformSettingSerializer, AuditLogSerializer


class PlatformSettingView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        settings = PlatformSetting.load()
        serializer = PlatformSettingSerializer(settings)
        return Response(serializer.data)

    def put(self, request):
        settings = PlatformSetting.load()
        serializer = PlatformSettingSerializer(settings, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            AuditLog.record(
                AuditLog.Action.SETTINGS,
                settings,
                details=f"Updated: {', '.join(sorted(request.data.keys()))}",
                actor=request.user,
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class AuditLogListView(generics.ListAPIView):
    # Select related avoids N+1 queries when fetching users
    queryset = AuditLog.objects.select_related('actor').all().order_by('-timestamp')
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = super().get_queryset()
        action = self.request.query_params.get('action')
        if action:
            queryset = queryset.filter(action=action)
        return queryset


class AdminStatsView(APIView):
    """
    Returns aggregated exam statistics for the Admin Dashboard.
    Optional ?course_id= narrows every figure to a single course.
    """
    permission_classes = [IsAdminUser]

    def get(self, request):
        sessions = ExamSession.objects.all()
        attempts = ExamAttempt.objects.filter(scored_at__isnull=False)
        certificates = Certificate.objects.filter(is_revoked=False)

        course_id = request.query_params.get('course_id')
        if course_id:
            sessions = sessions.filter(course_id=course_id)
            attempts = attempts.filter(course_id=course_id)
            certificates = certificates.filter(course_id=course_id)

        by_status = {row['status']: row['total'] for row in sessions.values('status').annotate(total=Count('id'))}
        scored = attempts.count()
        passed = attempts.filter(passed=True).count()

        return Response({
            "sessions_by_status": {choice: by_status.get(choice, 0) for choice in ExamSession.Status.values},
            "scored_attempts": scored,
            "passed_attempts": passed,
            "pass_rate": (100 * passed / scored) if scored else 0,
            "average_score": attempts.aggregate(avg=Avg('score'))['avg'] or 0,
            "issued_certificates": certificates.count(),
        })
