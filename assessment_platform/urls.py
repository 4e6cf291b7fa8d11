from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication ---
    path('api/', include('users.urls')),

    # --- Attempt taking & analytics ---
    path('api/', include('assessments.urls')),

    # --- Authoring (instructors) ---
    path('api/', include('exams.urls')),

    # --- Platform settings & audit trail ---
    path('api/', include('cores.urls')),
]
