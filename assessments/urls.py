from django.urls import path
from .views import (
    EligibilityView,
    ExamSessionListCreateView,
    ExamSessionDetailView,
    StartSessionView,
    SessionQuestionsView,
    RecordViolationView,
    ValidateSessionView,
    SebValidateView,
    SebConfigView,
    RecordAnswerView,
    CompleteSessionView,
    SessionResultsView,
)

urlpatterns = [
    path('eligibility/<int:course_id>/', EligibilityView.as_view(), name='exam-eligibility'),

    # Student Exam Flow
    path('sessions/', ExamSessionListCreateView.as_view(), name='exam-sessions'),
    path('sessions/<int:pk>/', ExamSessionDetailView.as_view(), name='exam-session-detail'),
    path('sessions/<int:pk>/start/', StartSessionView.as_view(), name='exam-session-start'),
    path('sessions/<int:pk>/questions/', SessionQuestionsView.as_view(), name='exam-session-questions'),
    path('sessions/<int:pk>/violations/', RecordViolationView.as_view(), name='exam-session-violations'),
    path('sessions/<int:pk>/validate/', ValidateSessionView.as_view(), name='exam-session-validate'),
    path('sessions/<int:pk>/seb/validate/', SebValidateView.as_view(), name='exam-session-seb-validate'),
    path('sessions/<int:pk>/seb/config/', SebConfigView.as_view(), name='exam-session-seb-config'),
    path('sessions/<int:pk>/complete/', CompleteSessionView.as_view(), name='exam-session-complete'),
    path('sessions/<int:pk>/results/', SessionResultsView.as_view(), name='exam-session-results'),
    path('attempts/<int:attempt_id>/answers/', RecordAnswerView.as_view(), name='exam-attempt-answers'),
]
