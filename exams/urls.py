from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AssessmentViewSet, QuestionViewSet

# Instructor authoring; students never reach these
router = DefaultRouter()
router.register(r'exams', AssessmentViewSet, basename='exams')
router.register(r'questions', QuestionViewSet, basename='questions')

urlpatterns = [
    path('', include(router.urls)),
]
