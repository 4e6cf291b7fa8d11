"""
Attempt state machine: start / resume, submit, lazy expiry.

    in_progress --submit--> submitted
    in_progress --timeout-> expired

There is no scheduler: an attempt whose time has run out is only marked
expired when something next touches it (begin, submit, or the optional
``expire_attempts`` command).
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from cores.models import AuditLog
from exams import services as exam_services

from ..models import Attempt, StudentAnswer
from . import clock, scoring
from .autosave import is_past_deadline, load_attempt, persist_answers
from .errors import AssessmentNotFound, AttemptExpired, InvalidTransition
from .gate import check_can_start

logger = logging.getLogger(__name__)


class _LostRace(Exception):
    pass


@dataclass(frozen=True)
class AttemptTicket:
    attempt_id: int
    resumed: bool
    time_remaining_seconds: int
    start_time: datetime


@dataclass(frozen=True)
class SubmissionResult:
    attempt_id: int
    time_taken_seconds: int
    submitted_at: datetime
    correct_answers: int
    total_questions: int
    percentage: Decimal
    grade: Decimal
    total_marks: int
    passed: Optional[bool]
    needs_manual_grading: bool

    @classmethod
    def from_attempt(cls, attempt):
        return cls(
            attempt_id=attempt.pk,
            time_taken_seconds=attempt.time_taken,
            submitted_at=attempt.submitted_at,
            correct_answers=attempt.correct_answers,
            total_questions=attempt.total_questions,
            percentage=attempt.percentage,
            grade=attempt.grade,
            total_marks=attempt.total_marks,
            passed=attempt.passed,
            needs_manual_grading=attempt.needs_manual_grading,
        )


def window_or_404(assessment_id):
    window = exam_services.get_assessment_window(assessment_id)
    if window is None:
        raise AssessmentNotFound(assessment_id=assessment_id)
    return window


def _live_attempt(assessment_id, student_id):
    return (Attempt.objects
            .filter(assessment_id=assessment_id, student_id=student_id,
                    status=Attempt.Status.IN_PROGRESS)
            .first())


def _ticket(attempt, window, now, resumed):
    return AttemptTicket(
        attempt_id=attempt.pk,
        resumed=resumed,
        time_remaining_seconds=attempt.remaining_seconds(window.duration_minutes, now),
        start_time=attempt.start_time,
    )


def transition(attempt, to, **fields):
    """
    Move an in-progress attempt to ``to`` with a single guarded UPDATE.

    Returns True if this call made the change, False if another request got
    there first (the row is no longer in_progress).
    """
    if not attempt.can_transition(to):
        raise InvalidTransition(status=attempt.status, to=str(to))

    updated = Attempt.objects.filter(
        pk=attempt.pk, status=Attempt.Status.IN_PROGRESS,
    ).update(status=to, **fields)
    if updated:
        attempt.status = to
        for name, value in fields.items():
            setattr(attempt, name, value)
    return bool(updated)


def expire(attempt, reason=''):
    if transition(attempt, Attempt.Status.EXPIRED):
        logger.info("Attempt %s expired %s", attempt.pk, reason)
        AuditLog.record('ATTEMPT_EXPIRE', attempt, actor=attempt.student,
                        details=reason or 'Time limit reached')
        return True
    return False


def begin_attempt(assessment_id, student_id, now=None):
    """
    Start a new attempt or resume the live one.

    Repeated calls within the time window always return the same attempt.
    A live attempt whose time ran out is expired and replaced by a fresh one.
    """
    now = now or clock.now()
    window = window_or_404(assessment_id)
    check_can_start(assessment_id, student_id, now=now, window=window)

    existing = _live_attempt(assessment_id, student_id)
    if existing is not None:
        if existing.elapsed_seconds(now) < window.duration_seconds:
            logger.info("Resuming attempt %s for student %s", existing.pk, student_id)
            AuditLog.record('ATTEMPT_RESUME', existing, actor=existing.student)
            return _ticket(existing, window, now, resumed=True)
        expire(existing, reason='stale on begin')

    try:
        # Savepoint: a lost race must not poison an outer transaction
        with transaction.atomic():
            attempt = Attempt.objects.create(
                assessment_id=assessment_id,
                student_id=student_id,
                start_time=now,
                status=Attempt.Status.IN_PROGRESS,
            )
    except IntegrityError:
        # A concurrent begin inserted first; hand back the winner's attempt
        winner = _live_attempt(assessment_id, student_id)
        if winner is None:
            raise
        logger.info("Concurrent begin for student %s resolved to attempt %s", student_id, winner.pk)
        return _ticket(winner, window, now, resumed=True)

    logger.info("Started attempt %s for student %s on assessment %s", attempt.pk, student_id, assessment_id)
    AuditLog.record('ATTEMPT_START', attempt, actor=attempt.student)
    return AttemptTicket(
        attempt_id=attempt.pk,
        resumed=False,
        time_remaining_seconds=window.duration_seconds,
        start_time=attempt.start_time,
    )


def time_taken_seconds(attempt, duration_minutes, now):
    """Elapsed seconds, clamped to [0, duration]. Clock skew never yields more than the window."""
    elapsed = int(attempt.elapsed_seconds(now))
    return max(0, min(elapsed, duration_minutes * 60))


def _score_attempt(attempt):
    questions = [scoring.ScorableQuestion.from_question(q)
                 for q in exam_services.get_questions(attempt.assessment_id)]
    answers = [scoring.SubmittedAnswer.from_answer(a)
               for a in StudentAnswer.objects.filter(attempt=attempt)]
    include_essays = getattr(settings, 'ASSESSMENT_ESSAY_IN_DENOMINATOR', False)
    return scoring.score(questions, answers, include_essays=include_essays)


def _record_outcomes(attempt, result):
    for outcome in result.outcomes:
        StudentAnswer.objects.filter(attempt=attempt, question_id=outcome.question_id).update(
            is_correct=outcome.is_correct,
            awarded_marks=outcome.awarded_marks,
        )


def submit(attempt_id, final_answers, now=None, student_id=None):
    """
    Finalize an attempt and score it.

    Submitting an already-submitted attempt returns the stored result without
    changing it. Submitting after the time limit (plus grace) expires the
    attempt and raises AttemptExpired.
    """
    now = now or clock.now()
    attempt = load_attempt(attempt_id, student_id=student_id)

    if attempt.status == Attempt.Status.SUBMITTED:
        return SubmissionResult.from_attempt(attempt)
    if attempt.status == Attempt.Status.EXPIRED:
        raise AttemptExpired()

    window = window_or_404(attempt.assessment_id)
    if is_past_deadline(attempt, window.duration_minutes, now):
        expire(attempt, reason='late submission')
        raise AttemptExpired()

    try:
        with transaction.atomic():
            # Lock the live row so a late autosave or a second submit waits for us
            if not Attempt.objects.select_for_update().filter(
                    pk=attempt.pk, status=Attempt.Status.IN_PROGRESS).first():
                raise _LostRace()

            # Final answers go through the autosave upsert so nothing is lost
            persist_answers(attempt, final_answers)
            result = _score_attempt(attempt)

            passed = None
            if not result.needs_manual_grading:
                passed = result.percentage >= window.pass_mark_percentage

            won = transition(
                attempt, Attempt.Status.SUBMITTED,
                submitted_at=now,
                time_taken=time_taken_seconds(attempt, window.duration_minutes, now),
                correct_answers=result.correct_answers,
                total_questions=result.total_questions,
                grade=Decimal(result.marks_awarded),
                total_marks=result.total_marks,
                percentage=result.percentage,
                passed=passed,
                needs_manual_grading=result.needs_manual_grading,
            )
            if not won:
                raise _LostRace()
            _record_outcomes(attempt, result)
    except _LostRace:
        # Another request finished this attempt first; our writes were rolled back
        attempt = load_attempt(attempt_id)
        if attempt.status == Attempt.Status.SUBMITTED:
            return SubmissionResult.from_attempt(attempt)
        raise AttemptExpired()

    logger.info("Attempt %s submitted: %s/%s correct (%s%%) in %ss",
                attempt.pk, result.correct_answers, result.total_questions,
                result.percentage, attempt.time_taken)
    AuditLog.record(
        'ATTEMPT_SUBMIT', attempt, actor=attempt.student,
        details=f"correct={result.correct_answers}/{result.total_questions} "
                f"marks={result.marks_awarded}/{result.total_marks} percentage={result.percentage}",
    )
    return SubmissionResult.from_attempt(attempt)


def resume_status(assessment_id, student_id, now=None):
    """Read-only probe: is there a live attempt the student could resume?"""
    now = now or clock.now()
    window = window_or_404(assessment_id)
    attempt = _live_attempt(assessment_id, student_id)
    if attempt is None:
        return {'can_resume': False}

    remaining = attempt.remaining_seconds(window.duration_minutes, now)
    return {
        'can_resume': remaining > 0,
        'attempt_id': attempt.pk,
        'time_remaining_seconds': remaining,
        'start_time': attempt.start_time,
    }


def attempt_progress(attempt_id, now=None, student_id=None):
    now = now or clock.now()
    attempt = load_attempt(attempt_id, student_id=student_id)
    window = window_or_404(attempt.assessment_id)

    answers = list(StudentAnswer.objects.filter(attempt=attempt).select_related('question'))
    total = attempt.assessment.questions.count()
    answered = sum(1 for a in answers if a.selected_options or (a.answer_text or '').strip())

    return {
        'attempt': attempt,
        'answers': answers,
        'answered_count': answered,
        'total_questions': total,
        'progress_percentage': round(answered * 100 / total) if total else 0,
        'time_remaining_seconds': attempt.remaining_seconds(window.duration_minutes, now),
    }


def expire_stale_attempts(now=None):
    """
    Sweep every in-progress attempt whose window has passed.

    Optional companion to lazy expiry; returns how many attempts were expired.
    """
    now = now or clock.now()
    count = 0
    live = Attempt.objects.filter(status=Attempt.Status.IN_PROGRESS).select_related('assessment', 'student')
    for attempt in live.iterator():
        window = exam_services.get_assessment_window(attempt.assessment_id)
        if attempt.elapsed_seconds(now) >= window.duration_seconds and expire(attempt, reason='sweep'):
            count += 1
    return count
