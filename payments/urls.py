from django.urls import path
from .views import (
    ApplicationListCreateView,
    ApplicationDetailView,
    ScheduleApplicationView,
    CancelApplicationView,
    VerifyPaymentView,
)

urlpatterns = [
    path('applications/', ApplicationListCreateView.as_view(), name='applications'),
    path('applications/<int:pk>/', ApplicationDetailView.as_view(), name='application-detail'),
    path('applications/<int:application_id>/schedule/', ScheduleApplicationView.as_view(), name='application-schedule'),
    path('applications/<int:application_id>/cancel/', CancelApplicationView.as_view(), name='application-cancel'),
    path('payments/verify/', VerifyPaymentView.as_view(), name='verify-payment'),
]
