import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PlatformSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("site_name", models.CharField(default="Assessment Platform", max_length=100)),
                ("support_email", models.EmailField(default="support@example.com", max_length=254)),
                ("default_pass_mark", models.IntegerField(default=50, help_text="Default pass mark percentage")),
                ("default_exam_duration", models.IntegerField(default=60, help_text="Default duration in minutes")),
            ],
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("ATTEMPT_START", "Attempt Started"), ("ATTEMPT_RESUME", "Attempt Resumed"), ("ATTEMPT_EXPIRE", "Attempt Expired"), ("ATTEMPT_SUBMIT", "Attempt Submitted"), ("ENROLL", "Students Enrolled"), ("SETTINGS", "Settings Changed")], max_length=20)),
                ("target_model", models.CharField(help_text="e.g., Attempt, Assessment", max_length=50)),
                ("target_object_id", models.CharField(blank=True, max_length=100, null=True)),
                ("details", models.TextField(blank=True, help_text="Description of changes")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("actor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="audit_logs", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-timestamp"],
            },
        ),
    ]
