from django.urls import path
from .views import PlatformSettingView, AuditLogListView

urlpatterns = [
    # --- Platform administration ---
    path('admin/platform-settings/', PlatformSettingView.as_view(), name='platform-settings'),
    path('admin/audit-logs/', AuditLogListView.as_view(), name='audit-logs'),
]
