"""
Read-side interfaces the attempt engine consumes from the authoring side.

The attempt lifecycle only ever sees an assessment through these three calls,
so the authoring models can change without touching the engine.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from cores.models import PlatformSetting

from .models import Assessment, Enrollment, Question


@dataclass(frozen=True)
class AssessmentWindow:
    assessment_id: int
    duration_minutes: int
    is_published: bool
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    pass_mark_percentage: int

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


def is_enrolled(assessment_id, student_id) -> bool:
    return Enrollment.objects.filter(assessment_id=assessment_id, student_id=student_id).exists()


def get_assessment_window(assessment_id) -> Optional[AssessmentWindow]:
    """Timing and availability of an assessment, or None if it does not exist.

    Missing duration / pass mark fall back to the platform defaults.
    """
    assessment = (Assessment.objects
                  .filter(pk=assessment_id)
                  .only('id', 'duration_minutes', 'pass_mark_percentage',
                        'is_published', 'start_date', 'end_date')
                  .first())
    if assessment is None:
        return None

    platform = PlatformSetting.load()
    return AssessmentWindow(
        assessment_id=assessment.pk,
        duration_minutes=assessment.duration_minutes or platform.default_exam_duration,
        is_published=assessment.is_published,
        start_date=assessment.start_date,
        end_date=assessment.end_date,
        pass_mark_percentage=assessment.pass_mark_percentage or platform.default_pass_mark,
    )


def get_questions(assessment_id) -> List[Question]:
    """Ordered questions of an assessment with their options prefetched."""
    return list(
        Question.objects
        .filter(assessment_id=assessment_id)
        .prefetch_related('options')
        .order_by('order', 'id')
    )
