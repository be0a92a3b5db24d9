from django.urls import path
from .views import (
    StudentCertificateListView,
    CertificateStatusView,
    CertificateDownloadView,
    CertificateVerifyView,
)

urlpatterns = [
    path('', StudentCertificateListView.as_view(), name='student-certificates'),
    path('status/<int:course_id>/', CertificateStatusView.as_view(), name='certificate-status'),
    path('<int:pk>/download/', CertificateDownloadView.as_view(), name='certificate-download'),
    path('verify/<str:certificate_number>/', CertificateVerifyView.as_view(), name='certificate-verify'),
]
