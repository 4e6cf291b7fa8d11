from exams import services as exam_services

from . import clock
from .errors import AssessmentNotFound, Expired, NotEnrolled, NotPublished, NotYetOpen


def can_start(assessment_id, student_id, now=None, window=None):
    """
    Decide whether a student may start (or resume) an assessment.

    Returns None when allowed, otherwise the error describing the first failed
    check. Checks run in order: enrollment, published, opened, not closed.
    Raises AssessmentNotFound if the assessment does not exist.
    """
    now = now or clock.now()
    window = window or exam_services.get_assessment_window(assessment_id)
    if window is None:
        raise AssessmentNotFound(assessment_id=assessment_id)

    if not exam_services.is_enrolled(assessment_id, student_id):
        return NotEnrolled()
    if not window.is_published:
        return NotPublished()
    if window.start_date and now < window.start_date:
        return NotYetOpen(opens_at=window.start_date.isoformat())
    if window.end_date and now > window.end_date:
        return Expired(closed_at=window.end_date.isoformat())
    return None


def check_can_start(assessment_id, student_id, now=None, window=None):
    denial = can_start(assessment_id, student_id, now=now, window=window)
    if denial is not None:
        raise denial
