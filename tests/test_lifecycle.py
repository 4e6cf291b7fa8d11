from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.db import IntegrityError, transaction

from assessments.models import Attempt, StudentAnswer
from assessments.services import lifecycle
from assessments.services.autosave import save_progress
from assessments.services.errors import (
    AttemptExpired, AttemptNotFound, InvalidTransition, NotEnrolled,
)
from assessments.services.lifecycle import (
    attempt_progress, begin_attempt, expire_stale_attempts, resume_status, submit,
)
from cores.models import AuditLog
from exams.models import Enrollment, Question
from factories import T0, add_choice_question, choose

pytestmark = pytest.mark.django_db


# --- begin / resume ---

def test_begin_twice_resumes_same_attempt(quiz, student, clock):
    first = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=10)
    second = begin_attempt(quiz.pk, student.pk)

    assert first.resumed is False
    assert first.time_remaining_seconds == 3600
    assert second.resumed is True
    assert second.attempt_id == first.attempt_id
    assert second.time_remaining_seconds == 3000
    assert Attempt.objects.filter(student=student).count() == 1
    assert list(AuditLog.objects.order_by('id').values_list('action', flat=True)) == [
        'ATTEMPT_START', 'ATTEMPT_RESUME',
    ]


def test_remaining_time_stays_within_duration(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    attempt = Attempt.objects.get(pk=ticket.attempt_id)

    assert attempt.remaining_seconds(60, T0 - timedelta(minutes=5)) == 3600
    assert attempt.remaining_seconds(60, T0 + timedelta(minutes=90)) == 0
    assert 0 <= attempt.remaining_seconds(60, T0 + timedelta(seconds=1)) <= 3600


def test_stale_attempt_is_expired_and_replaced(quiz, student, clock):
    old = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=61)

    fresh = begin_attempt(quiz.pk, student.pk)

    assert fresh.attempt_id != old.attempt_id
    assert fresh.resumed is False
    assert Attempt.objects.get(pk=old.attempt_id).status == Attempt.Status.EXPIRED
    assert Attempt.objects.filter(student=student, status=Attempt.Status.IN_PROGRESS).count() == 1


def test_begin_refused_when_not_enrolled(quiz, other_student, clock):
    with pytest.raises(NotEnrolled):
        begin_attempt(quiz.pk, other_student.pk)
    assert not Attempt.objects.exists()


def test_concurrent_begin_returns_the_winners_attempt(quiz, student, clock, monkeypatch):
    winner = Attempt.objects.create(assessment=quiz, student=student, start_time=T0)
    real_lookup = lifecycle._live_attempt
    calls = []

    def racing_lookup(assessment_id, student_id):
        # First lookup runs before the other request's insert lands
        calls.append(1)
        if len(calls) == 1:
            return None
        return real_lookup(assessment_id, student_id)

    monkeypatch.setattr(lifecycle, "_live_attempt", racing_lookup)

    ticket = begin_attempt(quiz.pk, student.pk)

    assert ticket.attempt_id == winner.pk
    assert ticket.resumed is True
    assert Attempt.objects.filter(student=student).count() == 1


def test_database_rejects_second_live_attempt(quiz, student):
    Attempt.objects.create(assessment=quiz, student=student, start_time=T0)

    with pytest.raises(IntegrityError), transaction.atomic():
        Attempt.objects.create(assessment=quiz, student=student, start_time=T0)


def test_finished_attempts_do_not_block_a_live_one(quiz, student):
    Attempt.objects.create(assessment=quiz, student=student, start_time=T0, status=Attempt.Status.SUBMITTED)
    Attempt.objects.create(assessment=quiz, student=student, start_time=T0, status=Attempt.Status.EXPIRED)
    Attempt.objects.create(assessment=quiz, student=student, start_time=T0)

    assert Attempt.objects.filter(student=student).count() == 3


# --- submit ---

def test_submit_scores_and_records_outcomes(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=20)

    result = submit(ticket.attempt_id, choose(quiz, "ABXD"))

    assert result.correct_answers == 3
    assert result.total_questions == 4
    assert result.percentage == Decimal("75.00")
    assert result.time_taken_seconds == 1200
    assert result.passed is True
    assert result.needs_manual_grading is False

    attempt = Attempt.objects.get(pk=ticket.attempt_id)
    assert attempt.status == Attempt.Status.SUBMITTED
    assert attempt.submitted_at == T0 + timedelta(minutes=20)
    assert list(StudentAnswer.objects.filter(attempt=attempt).values_list('is_correct', flat=True)) == [
        True, True, False, True,
    ]
    assert AuditLog.objects.filter(action='ATTEMPT_SUBMIT', target_object_id=str(attempt.pk)).exists()


def test_submit_below_pass_mark_fails(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)

    result = submit(ticket.attempt_id, choose(quiz, "AXXX"))

    assert result.percentage == Decimal("25.00")
    assert result.passed is False


def test_pass_mark_comes_from_assessment_when_set(quiz, student, clock):
    quiz.pass_mark_percentage = 80
    quiz.save()
    ticket = begin_attempt(quiz.pk, student.pk)

    assert submit(ticket.attempt_id, choose(quiz, "ABCX")).passed is False


def test_submit_is_idempotent(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=5)
    first = submit(ticket.attempt_id, choose(quiz, "ABCD"))

    clock.advance(minutes=5)
    second = submit(ticket.attempt_id, choose(quiz, "XXXX"))

    assert second == first
    assert second.submitted_at == T0 + timedelta(minutes=5)
    assert AuditLog.objects.filter(action='ATTEMPT_SUBMIT').count() == 1


def test_final_answers_override_autosaved_ones(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    save_progress(ticket.attempt_id, choose(quiz, "XXXX"))

    result = submit(ticket.attempt_id, choose(quiz, "ABCD")[:2])

    # questions 3 and 4 keep their autosaved (wrong) answers
    assert result.correct_answers == 2
    assert StudentAnswer.objects.filter(attempt_id=ticket.attempt_id).count() == 4


def test_submit_without_answers_scores_zero(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)

    result = submit(ticket.attempt_id, [])

    assert result.correct_answers == 0
    assert result.total_questions == 4
    assert result.percentage == Decimal("0.00")


def test_submit_within_grace_clamps_time_taken(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=60, seconds=10)

    result = submit(ticket.attempt_id, choose(quiz, "ABCD"))

    assert result.time_taken_seconds == 3600
    assert result.percentage == Decimal("100.00")


def test_late_submit_expires_attempt(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=62)

    with pytest.raises(AttemptExpired):
        submit(ticket.attempt_id, choose(quiz, "ABCD"))

    attempt = Attempt.objects.get(pk=ticket.attempt_id)
    assert attempt.status == Attempt.Status.EXPIRED
    assert attempt.percentage is None
    assert not StudentAnswer.objects.filter(attempt=attempt).exists()


def test_submitting_expired_attempt_raises(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    Attempt.objects.filter(pk=ticket.attempt_id).update(status=Attempt.Status.EXPIRED)

    with pytest.raises(AttemptExpired):
        submit(ticket.attempt_id, [])


def test_essay_question_flags_manual_grading(quiz, student, clock):
    essay = Question.objects.create(assessment=quiz, order=5, text="Discuss.",
                                    question_type=Question.QuestionType.ESSAY)
    ticket = begin_attempt(quiz.pk, student.pk)

    answers = choose(quiz, "ABCD") + [{"question_id": essay.pk, "answer_text": "My essay"}]
    result = submit(ticket.attempt_id, answers)

    assert result.total_questions == 4
    assert result.percentage == Decimal("100.00")
    assert result.needs_manual_grading is True
    assert result.passed is None
    assert StudentAnswer.objects.get(attempt_id=ticket.attempt_id, question=essay).is_correct is None


def test_essay_counted_when_configured(quiz, student, clock, settings):
    settings.ASSESSMENT_ESSAY_IN_DENOMINATOR = True
    essay = Question.objects.create(assessment=quiz, order=5, text="Discuss.",
                                    question_type=Question.QuestionType.ESSAY)
    ticket = begin_attempt(quiz.pk, student.pk)

    result = submit(ticket.attempt_id, choose(quiz, "ABCD") + [{"question_id": essay.pk, "answer_text": "x"}])

    assert result.total_questions == 5
    assert result.percentage == Decimal("80.00")


def test_multi_answer_question_needs_exact_set(make_assessment, student, clock):
    assessment = make_assessment()
    Enrollment.objects.create(assessment=assessment, student=student)
    question, options = add_choice_question(assessment, 1, correct="AC")
    ticket = begin_attempt(assessment.pk, student.pk)

    result = submit(ticket.attempt_id, [
        {"question_id": question.pk, "selected_options": [options["C"].pk, options["A"].pk]},
    ])

    assert result.correct_answers == 1


def test_submit_unknown_attempt(quiz, student, clock):
    with pytest.raises(AttemptNotFound):
        submit(424242, [])


def test_submit_someone_elses_attempt_looks_missing(quiz, student, other_student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)

    with pytest.raises(AttemptNotFound):
        submit(ticket.attempt_id, [], student_id=other_student.pk)
    assert Attempt.objects.get(pk=ticket.attempt_id).status == Attempt.Status.IN_PROGRESS


def test_terminal_attempts_cannot_transition(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    submit(ticket.attempt_id, [])
    attempt = Attempt.objects.get(pk=ticket.attempt_id)

    assert attempt.is_terminal
    with pytest.raises(InvalidTransition):
        lifecycle.transition(attempt, Attempt.Status.EXPIRED)


# --- resume status / progress / sweep ---

def test_resume_status(quiz, student, clock):
    assert resume_status(quiz.pk, student.pk) == {'can_resume': False}

    ticket = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=15)
    status = resume_status(quiz.pk, student.pk)

    assert status['can_resume'] is True
    assert status['attempt_id'] == ticket.attempt_id
    assert status['time_remaining_seconds'] == 2700

    clock.advance(hours=1)
    assert resume_status(quiz.pk, student.pk)['can_resume'] is False


def test_attempt_progress(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    save_progress(ticket.attempt_id, choose(quiz, "AB"), current_question=2)
    clock.advance(minutes=30)

    progress = attempt_progress(ticket.attempt_id, student_id=student.pk)

    assert progress['answered_count'] == 2
    assert progress['total_questions'] == 4
    assert progress['progress_percentage'] == 50
    assert progress['time_remaining_seconds'] == 1800
    assert progress['attempt'].current_question == 2


def test_expire_stale_attempts_sweeps_only_overdue(quiz, student, other_student, clock):
    Enrollment.objects.create(assessment=quiz, student=other_student)
    overdue = begin_attempt(quiz.pk, student.pk)
    clock.advance(minutes=30)
    running = begin_attempt(quiz.pk, other_student.pk)
    clock.advance(minutes=31)

    assert expire_stale_attempts() == 1
    assert Attempt.objects.get(pk=overdue.attempt_id).status == Attempt.Status.EXPIRED
    assert Attempt.objects.get(pk=running.attempt_id).status == Attempt.Status.IN_PROGRESS
    assert expire_stale_attempts() == 0


def test_expire_attempts_command(quiz, student, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    clock.advance(hours=2)

    call_command("expire_attempts", "--quiet")

    assert Attempt.objects.get(pk=ticket.attempt_id).status == Attempt.Status.EXPIRED
