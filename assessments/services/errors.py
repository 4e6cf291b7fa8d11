"""
Typed failures of the attempt engine.

Every error carries a stable ``code`` for API clients and the HTTP status the
views answer with. None of them mean the server is broken: they describe
something the student or instructor can act on.
"""
from rest_framework import status


class AttemptError(Exception):
    code = 'attempt_error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request could not be completed."

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def as_payload(self):
        payload = {"error": self.message, "code": self.code}
        if self.context:
            payload.update(self.context)
        return payload


# --- Enrollment gate ---

class AssessmentNotFound(AttemptError):
    code = 'assessment_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Assessment not found."


class NotEnrolled(AttemptError):
    code = 'not_enrolled'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not enrolled in this assessment."


class NotPublished(AttemptError):
    code = 'not_published'
    default_message = "This assessment is not published yet."


class NotYetOpen(AttemptError):
    code = 'not_yet_open'
    default_message = "This assessment has not opened yet."


class Expired(AttemptError):
    code = 'window_closed'
    default_message = "This assessment has closed."


# --- Attempt lifecycle ---

class AttemptNotFound(AttemptError):
    code = 'attempt_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Attempt not found."


class AttemptNotActive(AttemptError):
    code = 'attempt_not_active'
    status_code = status.HTTP_409_CONFLICT
    default_message = "This attempt is no longer in progress."


class AttemptExpired(AttemptError):
    code = 'attempt_expired'
    status_code = status.HTTP_409_CONFLICT
    default_message = "Time expired: the attempt can no longer be submitted."


class InvalidTransition(AttemptError):
    code = 'invalid_transition'
    status_code = status.HTTP_409_CONFLICT
    default_message = "Illegal attempt status change."


class InvalidAnswer(AttemptError):
    code = 'invalid_answer'
    default_message = "Answer does not belong to this assessment."


# --- Manual grading ---

class NotAwaitingGrading(AttemptError):
    code = 'not_awaiting_grading'
    status_code = status.HTTP_409_CONFLICT
    default_message = "This attempt has no answers waiting to be graded."
