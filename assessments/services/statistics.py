from datetime import timedelta
from decimal import Decimal

from django.db.models import Avg, Count, Max, Min

from exams.models import Enrollment

from ..models import Attempt
from . import clock
from .lifecycle import window_or_404

BUCKETS = 10


def bucket_for(percentage):
    """0-9.99 -> 0, 10-19.99 -> 1, ... 90-100 -> 9 (a perfect score shares the top bucket)."""
    return min(int(Decimal(percentage) // 10), BUCKETS - 1)


def bucket_label(bucket):
    low = bucket * 10
    high = 100 if bucket == BUCKETS - 1 else low + 9
    return f"{low}-{high}"


def score_distribution(percentages):
    """Histogram of percentages; buckets nobody fell into are left out."""
    counts = {}
    for value in percentages:
        if value is None:
            continue
        bucket = bucket_for(value)
        counts[bucket] = counts.get(bucket, 0) + 1
    return [
        {'bucket': bucket, 'range': bucket_label(bucket), 'count': counts[bucket]}
        for bucket in sorted(counts)
    ]


def _rounded(value):
    if value is None:
        return None
    return round(float(value), 2)


def get_statistics(assessment_id, now=None):
    """
    Aggregate view of every attempt at an assessment.

    Score and time figures only consider submitted attempts. ``active_attempts``
    is re-derived from start time and duration because a stale attempt can sit
    in_progress until someone touches it.
    """
    now = now or clock.now()
    window = window_or_404(assessment_id)

    attempts = Attempt.objects.filter(assessment_id=assessment_id)
    submitted = attempts.filter(status=Attempt.Status.SUBMITTED)

    total_enrolled = Enrollment.objects.filter(assessment_id=assessment_id).count()
    total_attempted = attempts.order_by().values('student').distinct().count()
    submitters = submitted.order_by().values('student').distinct().count()

    scores = submitted.aggregate(
        total=Count('id'),
        average_score=Avg('percentage'),
        min_score=Min('percentage'),
        max_score=Max('percentage'),
        average_time=Avg('time_taken'),
    )

    pending = (Enrollment.objects
               .filter(assessment_id=assessment_id)
               .exclude(student__attempts__assessment_id=assessment_id)
               .count())

    active_attempts = attempts.filter(
        status=Attempt.Status.IN_PROGRESS,
        start_time__gt=now - timedelta(seconds=window.duration_seconds),
    ).count()

    return {
        'assessment_id': assessment_id,
        'total_enrolled': total_enrolled,
        'total_attempted': total_attempted,
        'total_attempts': attempts.count(),
        'total_submitted': scores['total'],
        'average_score': _rounded(scores['average_score']),
        'min_score': _rounded(scores['min_score']),
        'max_score': _rounded(scores['max_score']),
        'average_time': _rounded(scores['average_time']),
        'score_distribution': score_distribution(submitted.values_list('percentage', flat=True)),
        'pending': pending,
        'completion_rate': round(submitters * 100 / total_enrolled) if total_enrolled else 0,
        'active_attempts': active_attempts,
    }
