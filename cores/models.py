from django.db import models
from django.core.cache import cache
from django.conf import settings

CACHE_KEY = 'platform_settings'


class PlatformSetting(models.Model):
    # --- General ---
    site_name = models.CharField(max_length=100, default="Assessment Platform")
    support_email = models.EmailField(default="support@example.com")

    # --- Assessment Defaults ---
    default_pass_mark = models.IntegerField(default=50, help_text="Default pass mark percentage")
    default_exam_duration = models.IntegerField(default=60, help_text="Default duration in minutes")

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set(CACHE_KEY, self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get(CACHE_KEY)
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set(CACHE_KEY, obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('ATTEMPT_START', 'Attempt Started'),
        ('ATTEMPT_RESUME', 'Attempt Resumed'),
        ('ATTEMPT_EXPIRE', 'Attempt Expired'),
        ('ATTEMPT_SUBMIT', 'Attempt Submitted'),
        ('ATTEMPT_GRADE', 'Attempt Graded'),
        ('ENROLL', 'Students Enrolled'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., Attempt, Assessment")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"

    @classmethod
    def record(cls, action, target, actor=None, details=''):
        return cls.objects.create(
            actor=actor,
            action=action,
            target_model=type(target).__name__,
            target_object_id=str(target.pk),
            details=details,
        )
