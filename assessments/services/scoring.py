"""
Deterministic scoring of objectively-gradable answers.

Nothing in here touches the database: callers pass plain question and answer
records and get a ScoreResult back, so the rules can be tested in isolation.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import FrozenSet, Iterable, List, Optional

MULTIPLE_CHOICE = 'multiple_choice'
TRUE_FALSE = 'true_false'
SHORT_ANSWER = 'short_answer'
ESSAY = 'essay'

CHOICE_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE)

TWO_PLACES = Decimal('0.01')


@dataclass(frozen=True)
class ScorableQuestion:
    id: int
    question_type: str
    marks: int = 1
    correct_options: FrozenSet[str] = frozenset()
    correct_answer: str = ''

    @classmethod
    def from_question(cls, question):
        return cls(
            id=question.pk,
            question_type=question.question_type,
            marks=question.marks,
            correct_options=frozenset(str(o.pk) for o in question.options.all() if o.is_correct),
            correct_answer=question.correct_answer or '',
        )


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    answer_text: str = ''
    selected_options: FrozenSet[str] = frozenset()

    @classmethod
    def from_answer(cls, answer):
        return cls(
            question_id=answer.question_id,
            answer_text=answer.answer_text or '',
            selected_options=normalize_options(answer.selected_options),
        )


@dataclass(frozen=True)
class QuestionOutcome:
    question_id: int
    answered: bool
    # None for essays: not decided by the engine
    is_correct: Optional[bool]
    awarded_marks: int


@dataclass(frozen=True)
class ScoreResult:
    correct_answers: int
    total_questions: int
    percentage: Decimal
    marks_awarded: int
    total_marks: int
    needs_manual_grading: bool
    outcomes: List[QuestionOutcome] = field(default_factory=list)


def normalize_options(options: Optional[Iterable]) -> FrozenSet[str]:
    return frozenset(str(o).strip() for o in (options or ()) if str(o).strip())


def normalize_text(text: Optional[str]) -> str:
    return (text or '').strip().lower()


def percentage(correct: int, total: int) -> Decimal:
    """correct/total as a percentage, rounded half-up to two places; 0 when total is 0."""
    if total <= 0:
        return Decimal('0.00')
    value = Decimal(correct) * 100 / Decimal(total)
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def is_answer_correct(question: ScorableQuestion, answer: Optional[SubmittedAnswer]) -> Optional[bool]:
    if question.question_type == ESSAY:
        return None
    if answer is None:
        return False

    if question.question_type in CHOICE_TYPES:
        if question.correct_options:
            # Exact set equality; a partially right selection is wrong
            return answer.selected_options == question.correct_options
        # Choice question authored without option rows: compare the answer text
        return bool(answer.answer_text.strip()) and \
            normalize_text(answer.answer_text) == normalize_text(question.correct_answer)

    if question.question_type == SHORT_ANSWER:
        expected = normalize_text(question.correct_answer)
        return bool(expected) and normalize_text(answer.answer_text) == expected

    return False


def _is_answered(answer: Optional[SubmittedAnswer]) -> bool:
    return answer is not None and (bool(answer.selected_options) or bool(answer.answer_text.strip()))


def score(questions: Iterable[ScorableQuestion], answers: Iterable[SubmittedAnswer],
          include_essays: bool = False) -> ScoreResult:
    """
    Score answers against questions.

    Unanswered questions count as incorrect. Essays are never auto-scored; with
    include_essays=False they are left out of total_questions and total_marks,
    with include_essays=True they count there as incorrect. Either way their
    presence flags the result for manual grading.
    """
    by_question = {}
    for answer in answers:
        by_question[answer.question_id] = answer

    outcomes = []
    correct = total = marks_awarded = total_marks = 0
    has_essay = False

    for question in questions:
        answer = by_question.get(question.id)
        verdict = is_answer_correct(question, answer)

        if question.question_type == ESSAY:
            has_essay = True
            if include_essays:
                total += 1
                total_marks += question.marks
            outcomes.append(QuestionOutcome(question.id, _is_answered(answer), None, 0))
            continue

        total += 1
        total_marks += question.marks
        awarded = question.marks if verdict else 0
        if verdict:
            correct += 1
            marks_awarded += awarded
        outcomes.append(QuestionOutcome(question.id, _is_answered(answer), verdict, awarded))

    return ScoreResult(
        correct_answers=correct,
        total_questions=total,
        percentage=percentage(correct, total),
        marks_awarded=marks_awarded,
        total_marks=total_marks,
        needs_manual_grading=has_essay,
        outcomes=outcomes,
    )
