"""
Hand marking of essay answers.

Submission scores everything it can and leaves essays ungraded with the attempt
flagged ``needs_manual_grading``. Instructors grade those answers here. Once
nothing is pending, the attempt's totals are recomputed over every question of
the assessment, ``passed`` is decided and the flag is cleared.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from cores.models import AuditLog
from exams.models import Question

from ..models import Attempt, StudentAnswer
from . import scoring
from .errors import AttemptNotFound, InvalidAnswer, NotAwaitingGrading
from .lifecycle import SubmissionResult, window_or_404

logger = logging.getLogger(__name__)


def pending_attempts():
    """Submitted attempts still waiting on a human grader, oldest submission first."""
    return (Attempt.objects
            .filter(status=Attempt.Status.SUBMITTED, needs_manual_grading=True)
            .select_related('assessment', 'student')
            .order_by('submitted_at', 'id'))


def is_essay_correct(marks, out_of):
    # at least half the available marks
    return Decimal(marks) * 2 >= out_of


def _ungraded_essays(attempt):
    return StudentAnswer.objects.filter(
        attempt=attempt,
        question__question_type=scoring.ESSAY,
        is_correct__isnull=True,
    )


def _pending_count(attempt):
    # blank essays are not worth a grader's time; they are marked wrong on finalize
    return sum(1 for answer in _ungraded_essays(attempt) if answer.answer_text.strip())


def _finalize(attempt):
    window = window_or_404(attempt.assessment_id)
    _ungraded_essays(attempt).update(is_correct=False, awarded_marks=0)

    questions = Question.objects.filter(assessment_id=attempt.assessment_id)
    answers = StudentAnswer.objects.filter(attempt=attempt)

    total = questions.count()
    correct = answers.filter(is_correct=True).count()
    result = scoring.percentage(correct, total)
    fields = {
        'correct_answers': correct,
        'total_questions': total,
        'grade': answers.aggregate(s=Sum('awarded_marks'))['s'] or Decimal('0'),
        'total_marks': questions.aggregate(s=Sum('marks'))['s'] or 0,
        'percentage': result,
        'passed': result >= window.pass_mark_percentage,
        'needs_manual_grading': False,
    }
    Attempt.objects.filter(pk=attempt.pk).update(**fields)
    for name, value in fields.items():
        setattr(attempt, name, value)


def grade_attempt(attempt_id, grades, grader=None):
    """
    Record marks for essay answers of a submitted attempt.

    ``grades`` is a list of ``{"question_id", "marks", "is_correct"?}``. Marks
    must lie between 0 and the question's marks; ``is_correct`` defaults to
    "at least half the marks". Grading may be spread over several calls; the
    attempt is finalized by the call that leaves nothing pending.

    Returns ``{"result": SubmissionResult, "pending": int}``.
    """
    grades = list(grades or [])
    with transaction.atomic():
        attempt = (Attempt.objects.select_for_update()
                   .filter(pk=attempt_id).first())
        if attempt is None:
            raise AttemptNotFound(attempt_id=attempt_id)
        if attempt.status != Attempt.Status.SUBMITTED or not attempt.needs_manual_grading:
            raise NotAwaitingGrading(status=attempt.status)

        essays = {
            q.pk: q for q in Question.objects.filter(
                assessment_id=attempt.assessment_id, question_type=scoring.ESSAY,
            )
        }
        for item in grades:
            question = essays.get(item.get('question_id'))
            if question is None:
                raise InvalidAnswer("Only essay questions of this assessment are graded by hand.",
                                    question_id=item.get('question_id'))
            marks = Decimal(item['marks'])
            if marks < 0 or marks > question.marks:
                raise InvalidAnswer("Marks must be between 0 and the question's marks.",
                                    question_id=question.pk, max_marks=question.marks)

            is_correct = item.get('is_correct')
            if is_correct is None:
                is_correct = is_essay_correct(marks, question.marks)
            StudentAnswer.objects.update_or_create(
                attempt=attempt, question=question,
                defaults={'awarded_marks': marks, 'is_correct': is_correct},
            )

        pending = _pending_count(attempt)
        if not pending:
            _finalize(attempt)

    logger.info("Graded %s essay answer(s) on attempt %s, %s pending", len(grades), attempt.pk, pending)
    AuditLog.record(
        'ATTEMPT_GRADE', attempt, actor=grader,
        details=f"graded={len(grades)} pending={pending}"
                + ("" if pending else f" percentage={attempt.percentage} passed={attempt.passed}"),
    )
    return {'result': SubmissionResult.from_attempt(attempt), 'pending': pending}
