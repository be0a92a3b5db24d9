# certificates/views.py
from django.http import FileResponse
from rest_framework import generics, permissions, views
from rest_framework.response import Response

from .models import Certificate
from .serializers import CertificateSerializer, PublicCertificateSerializer, RevokeSerializer
from . import services


class StudentCertificateListView(generics.ListAPIView):
    """List all valid certificates owned by the logged-in candidate."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = CertificateSerializer

    def get_queryset(self):
        return (
            Certificate.objects.select_related('user', 'course')
            .filter(user=self.request.user, is_revoked=False)
            .order_by('-issued_at')
        )


class CertificateStatusView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, course_id):
        certificate = services.certificate_status(user_id=request.user.id, course_id=course_id)
        return Response({
            "has_certificate": certificate is not None,
            "certificate": CertificateSerializer(certificate).data if certificate else None,
        })


class CertificateDownloadView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        certificate = services.get_user_certificate(certificate_id=pk, user_id=request.user.id)
        path = services.pdf_file(certificate)
        return FileResponse(
            open(path, 'rb'),
            as_attachment=True,
            filename=f"certificate-{certificate.certificate_number}.pdf",
            content_type='application/pdf',
        )


class CertificateVerifyView(views.APIView):
    """Public verification by certificate number, optionally with ?code=."""
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request, certificate_number):
        certificate = services.verify_certificate(certificate_number, request.query_params.get('code'))
        data = PublicCertificateSerializer(certificate).data
        data['valid'] = True
        return Response(data)


class CertificateInventoryView(generics.ListAPIView):
    permission_classes = [permissions.IsAdminUser]
    serializer_class = CertificateSerializer
    queryset = Certificate.objects.select_related('user', 'course').all().order_by('-issued_at')


class RevokeCertificateView(views.APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, pk):
        serializer = RevokeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        certificate = services.revoke_certificate(
            certificate_id=pk, reason=serializer.validated_data['reason'], actor=request.user
        )
        return Response(CertificateSerializer(certificate).data)
