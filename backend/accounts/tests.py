from django.test import TestCase
from django.contrib.auth import get_user_model
from .models import Instructor, Student, ensure_instructor, roles_for

User = get_user_model()

class InstructorModelTests(TestCase):
    def test_create_instructor(self):
        user = User.objects.create_user(username='testuser', password='password')
        instructor = Instructor.objects.create(user=user)
        self.assertEqual(instructor.user, user)
        self.assertEqual(str(instructor), 'testuser')
        self.assertEqual(instructor.username, 'testuser')
        self.assertEqual(instructor.display_name, 'testuser')

    def test_display_name_with_names(self):
        user = User.objects.create_user(username='nameduser', password='password', first_name='Lan', last_name='Tran')
        instructor = Instructor.objects.create(user=user)
        self.assertEqual(instructor.display_name, 'Lan Tran')

    def test_ensure_instructor_returns_existing(self):
        user = User.objects.create_user(username='existinguser', password='password')
        existing_instructor = Instructor.objects.create(user=user)
        instructor = ensure_instructor(user)
        self.assertEqual(instructor, existing_instructor)
        self.assertEqual(Instructor.objects.filter(user=user).count(), 1)


class StudentModelTests(TestCase):
    def test_create_student(self):
        user = User.objects.create_user(username='learner', password='password', first_name='Mai', last_name='Le')
        student = Student.objects.create(user=user)
        self.assertEqual(str(student), 'learner')
        self.assertEqual(student.display_name, 'Mai Le')


class RoleClaimTests(TestCase):
    def test_roles_for_plain_user_is_empty(self):
        user = User.objects.create_user(username='nobody', password='password')
        self.assertEqual(roles_for(user), [])

    def test_roles_for_student_and_instructor(self):
        user = User.objects.create_user(username='both', password='password')
        Instructor.objects.create(user=user)
        Student.objects.create(user=user)
        user.refresh_from_db()
        self.assertEqual(roles_for(user), ['instructor', 'student'])

    def test_superuser_counts_as_instructor(self):
        user = User.objects.create_superuser(username='root', password='password')
        self.assertEqual(roles_for(user), ['instructor'])
