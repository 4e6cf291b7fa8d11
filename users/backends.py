# users/backends.py
from django.contrib.auth.backends import ModelBackend
from django.contrib.auth import get_user_model

User = get_user_model()

class EmailBackend(ModelBackend):
    """Log students and instructors in by email, case-insensitively."""

    def authenticate(self, request, username=None, password=None, **kwargs):
        email = (username or kwargs.get(User.USERNAME_FIELD) or "").strip()
        if not email or password is None:
            return None

        user = User.objects.filter(email__iexact=email).order_by('id').first()
        if user is None:
            # Run the hasher anyway so response time does not reveal unknown emails
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
