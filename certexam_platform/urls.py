from django.contrib import admin
from django.urls import path, include

from assessments.views import AdminTerminateSessionView, AdminSessionListView
from certificates.views import CertificateInventoryView, RevokeCertificateView

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication ---
    path('api/auth/', include('users.urls')),

    # --- Courses & Question Bank ---
    path('api/', include('exams.urls')),

    # --- Applications & Payments ---
    path('api/', include('payments.urls')),

    # --- Exam Taking ---
    path('api/exams/', include('assessments.urls')),

    # --- Certificates ---
    path('api/certificates/', include('certificates.urls')),

    # --- Admin ---
    path('api/admin/', include('cores.urls')),
    path('api/admin/sessions/', AdminSessionListView.as_view(), name='admin-sessions'),
    path('api/admin/sessions/<int:pk>/terminate/', AdminTerminateSessionView.as_view(), name='admin-session-terminate'),
    path('api/admin/certificates/', CertificateInventoryView.as_view(), name='admin-certificates'),
    path('api/admin/certificates/<int:pk>/revoke/', RevokeCertificateView.as_view(), name='admin-certificate-revoke'),
]
