import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction

from exams import services as exam_services
from exams.models import Question

from ..models import Attempt, StudentAnswer
from . import clock
from .errors import AttemptNotActive, AttemptNotFound, InvalidAnswer
from .scoring import normalize_options

logger = logging.getLogger(__name__)


def grace_seconds():
    return max(0, int(getattr(settings, 'ASSESSMENT_SUBMIT_GRACE_SECONDS', 0)))


def is_past_deadline(attempt, duration_minutes, now):
    """True once the attempt's window plus the grace period has passed."""
    cutoff = attempt.deadline(duration_minutes) + timedelta(seconds=grace_seconds())
    return now > cutoff


def load_attempt(attempt_id, student_id=None):
    qs = Attempt.objects.select_related('assessment').filter(pk=attempt_id)
    if student_id is not None:
        # Someone else's attempt looks exactly like a missing one
        qs = qs.filter(student_id=student_id)
    attempt = qs.first()
    if attempt is None:
        raise AttemptNotFound(attempt_id=attempt_id)
    return attempt


def persist_answers(attempt, answers):
    """
    Upsert answers keyed by (attempt, question).

    Re-saving a question overwrites the previous answer. Raises InvalidAnswer
    for a question that is not part of the attempt's assessment.
    """
    answers = list(answers or [])
    if not answers:
        return 0

    valid_ids = set(
        Question.objects
        .filter(assessment_id=attempt.assessment_id)
        .values_list('id', flat=True)
    )

    saved = 0
    for item in answers:
        question_id = item.get('question_id')
        if question_id not in valid_ids:
            raise InvalidAnswer(question_id=question_id)

        StudentAnswer.objects.update_or_create(
            attempt=attempt,
            question_id=question_id,
            defaults={
                'answer_text': item.get('answer_text') or '',
                'selected_options': sorted(normalize_options(item.get('selected_options'))),
            },
        )
        saved += 1
    return saved


def save_progress(attempt_id, answers, current_question=None, now=None, student_id=None):
    """
    Persist in-progress answers and the student's position.

    Only touches answers, last_saved and current_question. Fails with
    AttemptNotActive, writing nothing, once the attempt is submitted, expired or
    past its deadline.
    """
    now = now or clock.now()
    attempt = load_attempt(attempt_id, student_id=student_id)

    if attempt.status != Attempt.Status.IN_PROGRESS:
        raise AttemptNotActive(status=attempt.status)

    window = exam_services.get_assessment_window(attempt.assessment_id)
    if is_past_deadline(attempt, window.duration_minutes, now):
        raise AttemptNotActive(status=attempt.status, reason='time_up')

    fields = {'last_saved': now}
    if current_question is not None:
        fields['current_question'] = current_question

    with transaction.atomic():
        # Status-guarded write first: a submit that won the race leaves 0 rows and we bail out
        updated = Attempt.objects.filter(
            pk=attempt.pk, status=Attempt.Status.IN_PROGRESS,
        ).update(**fields)
        if not updated:
            raise AttemptNotActive()
        saved = persist_answers(attempt, answers)

    logger.debug("Autosaved %s answer(s) for attempt %s", saved, attempt.pk)
    return {
        'attempt_id': attempt.pk,
        'saved_answers': saved,
        'last_saved': now,
        'current_question': fields.get('current_question', attempt.current_question),
    }
