# exams/models.py
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class Assessment(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    instructor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='authored_assessments',
    )

    # 0 means "use the platform default" (PlatformSetting.default_exam_duration)
    duration_minutes = models.PositiveIntegerField(default=0)
    pass_mark_percentage = models.PositiveIntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(100)],
        help_text="Leave empty to use the platform default pass mark.",
    )

    is_published = models.BooleanField(default=False)
    # Validity window; either end may be open
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = "multiple_choice", "Multiple Choice"
        TRUE_FALSE = "true_false", "True / False"
        SHORT_ANSWER = "short_answer", "Short Answer"
        ESSAY = "essay", "Essay"  # Never auto-scored

    assessment = models.ForeignKey(Assessment, related_name='questions', on_delete=models.CASCADE)
    order = models.PositiveIntegerField(default=1)

    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MULTIPLE_CHOICE)
    marks = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    # Canonical answer for short_answer; fallback for choice questions without options
    correct_answer = models.TextField(blank=True)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"Q{self.order}: {self.text[:50]}"


class Option(models.Model):
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    text = models.CharField(max_length=255)
    is_correct = models.BooleanField(default=False)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.text}{' (correct)' if self.is_correct else ''}"


class Enrollment(models.Model):
    assessment = models.ForeignKey(Assessment, related_name='enrollments', on_delete=models.CASCADE)
    student = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='enrollments', on_delete=models.CASCADE)
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('assessment', 'student')

    def __str__(self):
        return f"{self.student} -> {self.assessment}"
