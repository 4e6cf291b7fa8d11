# assessments/models.py
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from exams.models import Assessment, Question


class Attempt(models.Model):
    """One student's single timed pass at one assessment."""

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        SUBMITTED = "submitted", "Submitted"
        EXPIRED = "expired", "Expired"

    # The only legal moves; submitted and expired are terminal
    TRANSITIONS = {
        Status.IN_PROGRESS: {Status.SUBMITTED, Status.EXPIRED},
        Status.SUBMITTED: set(),
        Status.EXPIRED: set(),
    }

    assessment = models.ForeignKey(Assessment, related_name='attempts', on_delete=models.CASCADE)
    student = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='attempts', on_delete=models.CASCADE)

    start_time = models.DateTimeField(default=timezone.now, editable=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS, db_index=True)

    # Autosave bookkeeping (advisory only)
    current_question = models.PositiveIntegerField(default=0)
    last_saved = models.DateTimeField(null=True, blank=True)

    # Filled in on submission
    submitted_at = models.DateTimeField(null=True, blank=True)
    time_taken = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")
    correct_answers = models.PositiveIntegerField(null=True, blank=True)
    total_questions = models.PositiveIntegerField(null=True, blank=True)
    grade = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, help_text="Marks awarded")
    total_marks = models.PositiveIntegerField(null=True, blank=True)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    passed = models.BooleanField(null=True)

    # True when essay answers still need a human grader
    needs_manual_grading = models.BooleanField(default=False)

    class Meta:
        ordering = ['-start_time']
        constraints = [
            # at most one live attempt per (assessment, student), enforced by the DB
            models.UniqueConstraint(
                fields=['assessment', 'student'],
                condition=Q(status='in_progress'),
                name='unique_in_progress_attempt_per_student',
            ),
        ]

    def __str__(self):
        return f"{self.student} - {self.assessment.title} ({self.status})"

    @property
    def is_terminal(self):
        return not self.TRANSITIONS[self.Status(self.status)]

    def can_transition(self, to):
        return to in self.TRANSITIONS[self.Status(self.status)]

    def deadline(self, duration_minutes):
        return self.start_time + timedelta(minutes=duration_minutes)

    def elapsed_seconds(self, now):
        return (now - self.start_time).total_seconds()

    def remaining_seconds(self, duration_minutes, now):
        if self.status != self.Status.IN_PROGRESS:
            return 0
        total = duration_minutes * 60
        return max(0, min(total, int(total - self.elapsed_seconds(now))))


class StudentAnswer(models.Model):
    attempt = models.ForeignKey(Attempt, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE)

    # Free text (short answer / essay, or true/false without options)
    answer_text = models.TextField(blank=True, default='')
    # Option ids for multiple choice / true-false
    selected_options = models.JSONField(default=list, blank=True)

    # Scoring outcome, null until the attempt is submitted
    is_correct = models.BooleanField(null=True)
    awarded_marks = models.DecimalField(max_digits=6, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('attempt', 'question')
        ordering = ['question__order', 'question_id']

    def __str__(self):
        return f"Attempt {self.attempt_id} / Q{self.question_id}"
