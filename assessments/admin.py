from django.contrib import admin

from .models import Attempt, StudentAnswer


class StudentAnswerInline(admin.TabularInline):
    model = StudentAnswer
    extra = 0
    readonly_fields = ("question", "answer_text", "selected_options", "is_correct", "awarded_marks", "updated_at")
    can_delete = False


@admin.register(Attempt)
class AttemptAdmin(admin.ModelAdmin):
    list_display = ("id", "assessment", "student", "status", "start_time", "submitted_at", "percentage")
    list_filter = ("status",)
    readonly_fields = ("start_time", "submitted_at", "time_taken", "correct_answers",
                       "total_questions", "grade", "total_marks", "percentage", "passed")
    inlines = [StudentAnswerInline]
