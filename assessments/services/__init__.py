from .autosave import save_progress
from .gate import can_start, check_can_start
from .grading import grade_attempt, pending_attempts
from .lifecycle import (
    AttemptTicket,
    SubmissionResult,
    attempt_progress,
    begin_attempt,
    expire_stale_attempts,
    resume_status,
    submit,
)
from .scoring import score
from .statistics import get_statistics

__all__ = [
    'AttemptTicket',
    'SubmissionResult',
    'attempt_progress',
    'begin_attempt',
    'can_start',
    'check_can_start',
    'expire_stale_attempts',
    'get_statistics',
    'grade_attempt',
    'pending_attempts',
    'resume_status',
    'save_progress',
    'score',
    'submit',
]
