from rest_framework import generics, views, permissions, status
from rest_framework.response import Response

from .models import Application
from .serializers import (
    ApplicationSerializer, ApplySerializer, VerifyPaymentSerializer, ScheduleSerializer
)
from . import services


class ApplicationListCreateView(views.APIView):
    """List the candidate's applications, or apply for a course's exam."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        applications = Application.objects.filter(user=request.user).select_related('course').order_by('-created_at')
        return Response(ApplicationSerializer(applications, many=True).data)

    def post(self, request):
        serializer = ApplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = services.apply_for_exam(user=request.user, course_id=serializer.validated_data['course_id'])
        return Response(ApplicationSerializer(application).data, status=status.HTTP_201_CREATED)


class ApplicationDetailView(generics.RetrieveAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ApplicationSerializer

    def get_queryset(self):
        return Application.objects.filter(user=self.request.user)


class ScheduleApplicationView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, application_id):
        serializer = ScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = services.schedule_application(
            user=request.user,
            application_id=application_id,
            scheduled_at=serializer.validated_data['scheduled_at'],
        )
        return Response(ApplicationSerializer(application).data)


class CancelApplicationView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, application_id):
        application = services.cancel_application(user=request.user, application_id=application_id)
        return Response(ApplicationSerializer(application).data)


class VerifyPaymentView(views.APIView):
    """
    Verifies a provider reference code supplied by the candidate and
    confirms the application's payment.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = services.verify_payment(
            user=request.user,
            application_id=serializer.validated_data['application_id'],
            reference=serializer.validated_data['reference'],
        )
        return Response({
            "status": "success",
            "message": "Payment verified! You can now schedule your exam.",
            "application": ApplicationSerializer(application).data,
        })
