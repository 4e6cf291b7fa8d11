from rest_framework import serializers
from .models import PlatformSetting, AuditLog

class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = ['site_name', 'support_email', 'default_pass_mark', 'default_exam_duration']

    def validate_default_exam_duration(self, value):
        if value < 1:
            raise serializers.ValidationError("Duration must be at least one minute.")
        return value

    def validate_default_pass_mark(self, value):
        if not 1 <= value <= 100:
            raise serializers.ValidationError("Pass mark must be between 1 and 100.")
        return value

class AuditLogSerializer(serializers.ModelSerializer):
    actor_email = serializers.CharField(source='actor.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'actor', 'actor_email', 'action', 'target_model', 'target_object_id', 'timestamp', 'details']
