import logging

from django.db import transaction
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from assessments.permissions import IsInstructorOrAdmin, owned
from cores.models import AuditLog
from .models import Assessment, Question, Enrollment
from .serializers import (
    AssessmentSerializer, AssessmentDetailSerializer, QuestionSerializer, EnrollSerializer,
)

logger = logging.getLogger(__name__)


class AssessmentViewSet(viewsets.ModelViewSet):
    queryset = Assessment.objects.all().order_by('-created_at')
    permission_classes = [IsInstructorOrAdmin]

    # Enable search on title
    filter_backends = [filters.SearchFilter]
    search_fields = ['title']

    def get_queryset(self):
        return owned(super().get_queryset(), self.request.user)

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return AssessmentDetailSerializer
        return AssessmentSerializer

    def perform_create(self, serializer):
        serializer.save(instructor=self.request.user)

    @action(detail=True, methods=['post'], url_path='enroll')
    def enroll(self, request, pk=None):
        """
        Enrolls students in this assessment. Already-enrolled students are skipped.
        Payload: { "student_ids": [1, 2, 3] }
        """
        assessment = self.get_object()
        serializer = EnrollSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        created = 0
        with transaction.atomic():
            for student_id in serializer.validated_data['student_ids']:
                _, was_created = Enrollment.objects.get_or_create(assessment=assessment, student_id=student_id)
                created += int(was_created)

        AuditLog.record('ENROLL', assessment, actor=request.user, details=f"Enrolled {created} student(s)")
        logger.info("Enrolled %s student(s) in assessment %s", created, assessment.pk)
        return Response({"status": f"Enrolled {created} student(s) in {assessment.title}", "enrolled": created})

    @action(detail=True, methods=['post'], url_path='unenroll')
    def unenroll(self, request, pk=None):
        assessment = self.get_object()
        serializer = EnrollSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        removed, _ = Enrollment.objects.filter(
            assessment=assessment, student_id__in=serializer.validated_data['student_ids'],
        ).delete()
        return Response({"status": "Students removed", "removed": removed}, status=status.HTTP_200_OK)


class QuestionViewSet(viewsets.ModelViewSet):
    queryset = Question.objects.select_related('assessment').prefetch_related('options').order_by('assessment_id', 'order', 'id')
    serializer_class = QuestionSerializer
    permission_classes = [IsInstructorOrAdmin]

    filter_backends = [filters.SearchFilter]
    search_fields = ['text']

    def get_queryset(self):
        queryset = owned(super().get_queryset(), self.request.user, field='assessment__instructor')
        # Filter by assessment if provided ?assessment_id=1
        assessment_id = self.request.query_params.get('assessment_id')
        if assessment_id:
            queryset = queryset.filter(assessment_id=assessment_id)
        return queryset

    def perform_create(self, serializer):
        assessment = serializer.validated_data['assessment']
        self.check_object_permissions(self.request, assessment)
        serializer.save()

    def perform_update(self, serializer):
        # Moving a question counts as writing to the destination assessment too
        assessment = serializer.validated_data.get('assessment', serializer.instance.assessment)
        self.check_object_permissions(self.request, assessment)
        serializer.save()
