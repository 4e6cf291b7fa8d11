from django.contrib import admin

from .models import Assessment, Question, Option, Enrollment


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ("assessment", "order", "question_type", "marks")
    list_filter = ("question_type",)
    inlines = [OptionInline]


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0
    fields = ("order", "text", "question_type", "marks", "correct_answer")


@admin.register(Assessment)
class AssessmentAdmin(admin.ModelAdmin):
    list_display = ("title", "duration_minutes", "is_published", "start_date", "end_date")
    list_filter = ("is_published",)
    inlines = [QuestionInline]


admin.site.register(Enrollment)
