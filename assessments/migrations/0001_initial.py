import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("exams", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Attempt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_time", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("status", models.CharField(choices=[("in_progress", "In Progress"), ("submitted", "Submitted"), ("expired", "Expired")], db_index=True, default="in_progress", max_length=20)),
                ("current_question", models.PositiveIntegerField(default=0)),
                ("last_saved", models.DateTimeField(blank=True, null=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("time_taken", models.PositiveIntegerField(blank=True, help_text="Seconds", null=True)),
                ("correct_answers", models.PositiveIntegerField(blank=True, null=True)),
                ("total_questions", models.PositiveIntegerField(blank=True, null=True)),
                ("grade", models.DecimalField(blank=True, decimal_places=2, help_text="Marks awarded", max_digits=8, null=True)),
                ("total_marks", models.PositiveIntegerField(blank=True, null=True)),
                ("percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("passed", models.BooleanField(null=True)),
                ("needs_manual_grading", models.BooleanField(default=False)),
                ("assessment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="attempts", to="exams.assessment")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="attempts", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-start_time"],
            },
        ),
        migrations.CreateModel(
            name="StudentAnswer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("answer_text", models.TextField(blank=True, default="")),
                ("selected_options", models.JSONField(blank=True, default=list)),
                ("is_correct", models.BooleanField(null=True)),
                ("awarded_marks", models.DecimalField(decimal_places=2, default=0, max_digits=6)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("attempt", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="answers", to="assessments.attempt")),
                ("question", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="exams.question")),
            ],
            options={
                "ordering": ["question__order", "question_id"],
                "unique_together": {("attempt", "question")},
            },
        ),
        migrations.AddConstraint(
            model_name="attempt",
            constraint=models.UniqueConstraint(condition=models.Q(("status", "in_progress")), fields=("assessment", "student"), name="unique_in_progress_attempt_per_student"),
        ),
    ]
