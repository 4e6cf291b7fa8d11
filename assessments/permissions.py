from rest_framework import permissions


def is_platform_admin(user):
    return user.is_staff or getattr(user, 'role', '') == 'admin'


def owned(queryset, user, field='instructor'):
    """Admins see everything; instructors only rows under their own assessments."""
    if is_platform_admin(user):
        return queryset
    return queryset.filter(**{field: user})


class IsInstructorOrAdmin(permissions.BasePermission):
    """
    Allows access to Admins and Instructors.
    Strictly blocks Students.
    """
    message = "Only instructors can do this."

    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Check Role
        return request.user.is_instructor

    def has_object_permission(self, request, view, obj):
        # Instructors only manage their own assessments; admins manage everything
        user = request.user
        if is_platform_admin(user):
            return True
        assessment = getattr(obj, 'assessment', obj)
        return assessment.instructor_id == user.id
