from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import models


class Instructor(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    is_admin_instructor = models.BooleanField(default=False)

    def __str__(self) -> str:
        return self.user.get_username()

    @property
    def username(self) -> str:
        return self.user.get_username()

    @property
    def display_name(self) -> str:
        return display_name_for(self.user)


class Student(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.user.get_username()

    @property
    def display_name(self) -> str:
        return display_name_for(self.user)


User = get_user_model()


def display_name_for(user) -> str:
    first_name = user.first_name or ''
    last_name = user.last_name or ''
    name = f"{first_name} {last_name}".strip()
    return name or user.get_username()


def ensure_instructor(user: User) -> 'Instructor':
    instructor, _ = Instructor.objects.get_or_create(user=user)
    return instructor


def roles_for(user: User) -> list:
    """Role claims for an authenticated user, as reported to clients on login."""
    roles = []
    if user.is_superuser or hasattr(user, 'instructor'):
        roles.append('instructor')
    if hasattr(user, 'student'):
        roles.append('student')
    return roles
