from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("cores", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="auditlog",
            name="action",
            field=models.CharField(choices=[("ATTEMPT_START", "Attempt Started"), ("ATTEMPT_RESUME", "Attempt Resumed"), ("ATTEMPT_EXPIRE", "Attempt Expired"), ("ATTEMPT_SUBMIT", "Attempt Submitted"), ("ATTEMPT_GRADE", "Attempt Graded"), ("ENROLL", "Students Enrolled"), ("SETTINGS", "Settings Changed")], max_length=20),
        ),
    ]
