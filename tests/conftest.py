import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from assessments.services import clock as clock_module
from exams.models import Assessment, Enrollment
from factories import T0, add_choice_question, make_user

User = get_user_model()


@pytest.fixture(autouse=True)
def _clear_cache():
    # PlatformSetting.load() caches the singleton across tests otherwise
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clock():
    fixed = clock_module.FixedClock(T0)
    previous = clock_module.set_clock(fixed)
    yield fixed
    clock_module.set_clock(previous)


@pytest.fixture
def student(db):
    return make_user("student@example.com")


@pytest.fixture
def other_student(db):
    return make_user("other@example.com")


@pytest.fixture
def instructor(db):
    return make_user("instructor@example.com", role=User.Role.INSTRUCTOR)


@pytest.fixture
def make_assessment(db, instructor):
    def _make(duration=60, published=True, **kwargs):
        return Assessment.objects.create(
            title=kwargs.pop("title", "Algebra quiz"),
            instructor=instructor,
            duration_minutes=duration,
            is_published=published,
            **kwargs,
        )
    return _make


@pytest.fixture
def quiz(make_assessment, student):
    """Published 60 minute quiz, four 1-mark multiple choice questions keyed A, B, C, D."""
    assessment = make_assessment()
    questions = [add_choice_question(assessment, i + 1, correct=letter)
                 for i, letter in enumerate("ABCD")]
    Enrollment.objects.create(assessment=assessment, student=student)
    assessment.choice_questions = questions
    return assessment


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def student_client(api_client, student):
    api_client.force_authenticate(user=student)
    return api_client


@pytest.fixture
def instructor_client(instructor):
    client = APIClient()
    client.force_authenticate(user=instructor)
    return client
