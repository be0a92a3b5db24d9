from django.urls import path
from .views import PlatformSettingView, AuditLogListView, AdminStatsView

urlpatterns = [
    path('settings/', PlatformSettingView.as_view(), name='platform-settings'),
    path('audit-logs/', AuditLogListView.as_view(), name='audit-logs'),
    path('stats/', AdminStatsView.as_view(), name='admin-stats'),
]
