from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from assessments.models import Attempt, StudentAnswer
from assessments.services.errors import AttemptNotFound, InvalidAnswer, NotAwaitingGrading
from assessments.services.grading import grade_attempt, pending_attempts
from assessments.services.lifecycle import begin_attempt, submit
from cores.models import AuditLog
from exams.models import Question
from factories import choose, make_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def essay(quiz):
    return Question.objects.create(assessment=quiz, order=5, text="Explain your method.",
                                   question_type=Question.QuestionType.ESSAY, marks=4)


def submitted_with_essay(quiz, student, essay, letters="ABCD", text="Because..."):
    ticket = begin_attempt(quiz.pk, student.pk)
    answers = choose(quiz, letters)
    if text is not None:
        answers.append({"question_id": essay.pk, "answer_text": text})
    submit(ticket.attempt_id, answers)
    return ticket.attempt_id


def test_submission_with_essay_waits_for_grading(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)

    attempt = Attempt.objects.get(pk=attempt_id)
    assert attempt.needs_manual_grading is True
    assert attempt.passed is None
    assert list(pending_attempts()) == [attempt]


def test_grading_the_last_essay_finalizes_the_attempt(quiz, student, essay, instructor, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)

    outcome = grade_attempt(attempt_id, [{"question_id": essay.pk, "marks": 3}], grader=instructor)

    assert outcome["pending"] == 0
    attempt = Attempt.objects.get(pk=attempt_id)
    assert attempt.needs_manual_grading is False
    assert attempt.total_questions == 5
    assert attempt.correct_answers == 5
    assert attempt.percentage == Decimal("100.00")
    assert attempt.grade == Decimal("7")
    assert attempt.total_marks == 8
    assert attempt.passed is True
    assert outcome["result"].percentage == Decimal("100.00")

    answer = StudentAnswer.objects.get(attempt_id=attempt_id, question=essay)
    assert answer.awarded_marks == Decimal("3")
    assert answer.is_correct is True
    assert not pending_attempts().exists()

    log = AuditLog.objects.get(action="ATTEMPT_GRADE")
    assert log.actor == instructor
    assert log.target_object_id == str(attempt_id)


def test_low_essay_marks_count_as_incorrect(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)

    grade_attempt(attempt_id, [{"question_id": essay.pk, "marks": 1}])

    attempt = Attempt.objects.get(pk=attempt_id)
    assert attempt.correct_answers == 4
    assert attempt.percentage == Decimal("80.00")
    assert attempt.grade == Decimal("5")


def test_explicit_verdict_overrides_marks(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay, letters="AXXX")

    grade_attempt(attempt_id, [{"question_id": essay.pk, "marks": 4, "is_correct": False}])

    attempt = Attempt.objects.get(pk=attempt_id)
    assert attempt.correct_answers == 1
    assert attempt.percentage == Decimal("20.00")
    assert attempt.passed is False


def test_grading_can_be_spread_over_several_calls(quiz, student, essay, clock):
    second = Question.objects.create(assessment=quiz, order=6, text="Reflect.",
                                     question_type=Question.QuestionType.ESSAY, marks=2)
    ticket = begin_attempt(quiz.pk, student.pk)
    submit(ticket.attempt_id, choose(quiz, "ABCD") + [
        {"question_id": essay.pk, "answer_text": "one"},
        {"question_id": second.pk, "answer_text": "two"},
    ])

    first = grade_attempt(ticket.attempt_id, [{"question_id": essay.pk, "marks": 4}])
    assert first["pending"] == 1
    assert Attempt.objects.get(pk=ticket.attempt_id).needs_manual_grading is True

    last = grade_attempt(ticket.attempt_id, [{"question_id": second.pk, "marks": 0}])
    assert last["pending"] == 0
    attempt = Attempt.objects.get(pk=ticket.attempt_id)
    assert attempt.total_questions == 6
    assert attempt.correct_answers == 5


def test_blank_and_missing_essays_are_not_pending(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay, text="   ")

    outcome = grade_attempt(attempt_id, [])

    assert outcome["pending"] == 0
    assert StudentAnswer.objects.get(attempt_id=attempt_id, question=essay).is_correct is False
    assert Attempt.objects.get(pk=attempt_id).correct_answers == 4


def test_unanswered_essay_counts_as_incorrect(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay, text=None)

    grade_attempt(attempt_id, [])

    attempt = Attempt.objects.get(pk=attempt_id)
    assert attempt.total_questions == 5
    assert attempt.percentage == Decimal("80.00")


def test_marks_above_the_question_are_rejected(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)

    with pytest.raises(InvalidAnswer):
        grade_attempt(attempt_id, [{"question_id": essay.pk, "marks": 5}])

    assert StudentAnswer.objects.get(attempt_id=attempt_id, question=essay).is_correct is None
    assert Attempt.objects.get(pk=attempt_id).needs_manual_grading is True


def test_only_essays_are_graded_by_hand(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)
    objective = quiz.choice_questions[0][0]

    with pytest.raises(InvalidAnswer):
        grade_attempt(attempt_id, [{"question_id": objective.pk, "marks": 1}])


def test_attempts_not_waiting_are_refused(quiz, student, essay, clock):
    ticket = begin_attempt(quiz.pk, student.pk)
    with pytest.raises(NotAwaitingGrading):
        grade_attempt(ticket.attempt_id, [])

    attempt_id = ticket.attempt_id
    submit(attempt_id, [{"question_id": essay.pk, "answer_text": "text"}])
    grade_attempt(attempt_id, [{"question_id": essay.pk, "marks": 2}])
    with pytest.raises(NotAwaitingGrading):
        grade_attempt(attempt_id, [{"question_id": essay.pk, "marks": 4}])


def test_grading_unknown_attempt(db):
    with pytest.raises(AttemptNotFound):
        grade_attempt(31337, [])


# --- HTTP ---

def test_pending_list_is_scoped_to_the_instructor(quiz, student, essay, instructor_client, student_client, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)
    stranger = APIClient()
    stranger.force_authenticate(user=make_user("other-teacher@example.com", role="instructor"))

    response = instructor_client.get("/api/grading/pending/")

    assert response.status_code == 200
    assert [row["id"] for row in response.data] == [attempt_id]
    assert response.data[0]["student_email"] == student.email
    assert stranger.get("/api/grading/pending/").data == []
    assert student_client.get("/api/grading/pending/").status_code == 403


def test_grade_endpoint(quiz, student, essay, instructor_client, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)

    response = instructor_client.post(f"/api/attempts/{attempt_id}/grade/", {
        "grades": [{"question_id": essay.pk, "marks": "2.5"}],
    }, format="json")

    assert response.status_code == 200
    assert response.data["pending"] == 0
    assert response.data["needs_manual_grading"] is False
    assert response.data["percentage"] == "100.00"
    assert response.data["passed"] is True


def test_grade_endpoint_errors(quiz, student, essay, instructor_client, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)

    empty = instructor_client.post(f"/api/attempts/{attempt_id}/grade/", {"grades": []}, format="json")
    too_many = instructor_client.post(f"/api/attempts/{attempt_id}/grade/", {
        "grades": [{"question_id": essay.pk, "marks": 9}],
    }, format="json")

    assert empty.status_code == 400
    assert too_many.status_code == 400
    assert too_many.data["code"] == "invalid_answer"


def test_other_instructors_cannot_grade(quiz, student, essay, clock):
    attempt_id = submitted_with_essay(quiz, student, essay)
    stranger = APIClient()
    stranger.force_authenticate(user=make_user("other-teacher@example.com", role="instructor"))

    response = stranger.post(f"/api/attempts/{attempt_id}/grade/", {
        "grades": [{"question_id": essay.pk, "marks": 4}],
    }, format="json")

    assert response.status_code == 403
    assert Attempt.objects.get(pk=attempt_id).needs_manual_grading is True
