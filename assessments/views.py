import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status, views
from rest_framework.exceptions import APIException
from rest_framework.response import Response

from exams.models import Assessment
from exams.serializers import StudentQuestionSerializer
from . import services
from .models import Attempt
from .permissions import IsInstructorOrAdmin, owned
from .serializers import (
    AttemptProgressSerializer, AttemptSerializer, AttemptTicketSerializer, AutosaveSerializer,
    GradeSerializer, SubmissionDetailSerializer, SubmissionResultSerializer, SubmissionSerializer,
    SubmitSerializer,
)
from .services.errors import AttemptError

logger = logging.getLogger(__name__)


class AttemptErrorMixin:
    """Turn the engine's typed errors into `{"error", "code"}` responses."""

    def handle_exception(self, exc):
        if isinstance(exc, AttemptError):
            return Response(exc.as_payload(), status=exc.status_code)
        if not isinstance(exc, (APIException, Http404, PermissionDenied)):
            logger.exception("Unhandled error in %s", self.__class__.__name__)
        return super().handle_exception(exc)


# --- STUDENT VIEWS ---

class BeginAttemptView(AttemptErrorMixin, views.APIView):
    """
    Student starts an assessment, or resumes the attempt already running.
    Returns the timer state together with the questions (no answer keys).
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, assessment_id):
        ticket = services.begin_attempt(assessment_id, request.user.id)

        data = AttemptTicketSerializer(ticket).data
        assessment = Assessment.objects.get(pk=assessment_id)
        data['questions'] = StudentQuestionSerializer(
            assessment.questions.prefetch_related('options'), many=True,
        ).data

        code = status.HTTP_200_OK if ticket.resumed else status.HTTP_201_CREATED
        return Response(data, status=code)


class ResumeStatusView(AttemptErrorMixin, views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, assessment_id):
        return Response(services.resume_status(assessment_id, request.user.id))


class AutosaveView(AttemptErrorMixin, views.APIView):
    """Periodic save of in-progress answers; safe to call as often as the client likes."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, attempt_id):
        serializer = AutosaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        receipt = services.save_progress(
            attempt_id,
            serializer.validated_data['answers'],
            serializer.validated_data.get('current_question'),
            student_id=request.user.id,
        )
        return Response({"status": "saved", **receipt})


class SubmitAttemptView(AttemptErrorMixin, views.APIView):
    """
    Student submits the final answers.
    Objective questions are scored immediately; a retry returns the same result.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, attempt_id):
        serializer = SubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.submit(attempt_id, serializer.validated_data['answers'], student_id=request.user.id)
        return Response(SubmissionResultSerializer(result).data)


class AttemptDetailView(AttemptErrorMixin, views.APIView):
    """Current state of one of the student's attempts, with saved answers."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, attempt_id):
        progress = services.attempt_progress(attempt_id, student_id=request.user.id)
        return Response(AttemptProgressSerializer(progress).data)


class StudentAttemptsView(generics.ListAPIView):
    """List all attempts for the logged-in student (Lightweight)."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = AttemptSerializer

    def get_queryset(self):
        return Attempt.objects.filter(student=self.request.user).select_related('assessment')


# --- INSTRUCTOR VIEWS ---

class AssessmentStatisticsView(AttemptErrorMixin, views.APIView):
    """Score distribution and summary figures for one assessment."""
    permission_classes = [IsInstructorOrAdmin]

    def get(self, request, assessment_id):
        assessment = get_object_or_404(Assessment, pk=assessment_id)
        self.check_object_permissions(request, assessment)
        return Response(services.get_statistics(assessment.pk))


class AssessmentSubmissionsView(generics.ListAPIView):
    """Every attempt at one of the instructor's assessments. Filter with ?status=submitted."""
    permission_classes = [IsInstructorOrAdmin]
    serializer_class = SubmissionSerializer

    def get_queryset(self):
        assessment = get_object_or_404(Assessment, pk=self.kwargs['assessment_id'])
        self.check_object_permissions(self.request, assessment)
        queryset = Attempt.objects.filter(assessment=assessment).select_related('student')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class SubmissionDetailView(generics.RetrieveAPIView):
    """One attempt with every answer, its key and its outcome."""
    permission_classes = [IsInstructorOrAdmin]
    serializer_class = SubmissionDetailSerializer
    queryset = Attempt.objects.select_related('assessment', 'student').prefetch_related('answers__question')
    lookup_url_kwarg = 'attempt_id'


class PendingGradingListView(generics.ListAPIView):
    """Submitted attempts with essay answers waiting for a grade."""
    permission_classes = [IsInstructorOrAdmin]
    serializer_class = SubmissionSerializer

    def get_queryset(self):
        queryset = owned(services.pending_attempts(), self.request.user, field='assessment__instructor')
        assessment_id = self.request.query_params.get('assessment_id')
        if assessment_id:
            queryset = queryset.filter(assessment_id=assessment_id)
        return queryset


class GradeAttemptView(AttemptErrorMixin, views.APIView):
    """
    Instructor marks essay answers.
    Payload: { "grades": [{ "question_id": 7, "marks": 4, "is_correct": true }] }
    """
    permission_classes = [IsInstructorOrAdmin]

    def post(self, request, attempt_id):
        attempt = get_object_or_404(Attempt.objects.select_related('assessment'), pk=attempt_id)
        self.check_object_permissions(request, attempt)

        serializer = GradeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        outcome = services.grade_attempt(attempt.pk, serializer.validated_data['grades'], grader=request.user)
        data = SubmissionResultSerializer(outcome['result']).data
        data['pending'] = outcome['pending']
        return Response(data)
