from django.urls import path
from .views import (
    AssessmentStatisticsView, AssessmentSubmissionsView, AttemptDetailView, AutosaveView,
    BeginAttemptView, GradeAttemptView, PendingGradingListView, ResumeStatusView,
    StudentAttemptsView, SubmissionDetailView, SubmitAttemptView,
)

urlpatterns = [
    # --- Student Attempt Flow ---
    path('assessments/<int:assessment_id>/begin/', BeginAttemptView.as_view(), name='begin-attempt'),
    path('assessments/<int:assessment_id>/resume-status/', ResumeStatusView.as_view(), name='resume-status'),
    path('attempts/', StudentAttemptsView.as_view(), name='student-attempts'),
    path('attempts/<int:attempt_id>/', AttemptDetailView.as_view(), name='attempt-detail'),
    path('attempts/<int:attempt_id>/autosave/', AutosaveView.as_view(), name='attempt-autosave'),
    path('attempts/<int:attempt_id>/submit/', SubmitAttemptView.as_view(), name='attempt-submit'),

    # --- Instructor Analytics & Review ---
    path('assessments/<int:assessment_id>/statistics/', AssessmentStatisticsView.as_view(), name='assessment-statistics'),
    path('assessments/<int:assessment_id>/submissions/', AssessmentSubmissionsView.as_view(), name='assessment-submissions'),
    path('submissions/<int:attempt_id>/', SubmissionDetailView.as_view(), name='submission-detail'),

    # --- Manual Grading ---
    path('grading/pending/', PendingGradingListView.as_view(), name='pending-grading'),
    path('attempts/<int:attempt_id>/grade/', GradeAttemptView.as_view(), name='attempt-grade'),
]
