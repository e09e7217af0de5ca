from django.contrib.auth.models import User
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import Instructor, Student
from assignments.models import Classroom


class ClassroomTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='instructor', password='password')
        self.instructor = Instructor.objects.create(user=self.user)
        self.client.force_authenticate(user=self.user)
        self.list_url = reverse('classroom-list')

    def test_create_classroom(self):
        response = self.client.post(self.list_url, {'name': 'Physics', 'subject': 'Science'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        classroom = Classroom.objects.get(id=response.data['id'])
        self.assertEqual(classroom.teacher, self.instructor)
        self.assertEqual(response.data['teacher_username'], 'instructor')

    def test_list_only_own_classrooms(self):
        Classroom.objects.create(name='Mine', teacher=self.instructor)
        other_user = User.objects.create_user(username='other', password='password')
        other = Instructor.objects.create(user=other_user)
        Classroom.objects.create(name='Theirs', teacher=other)

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data], ['Mine'])

    def test_students_cannot_manage_classrooms(self):
        learner = User.objects.create_user(username='learner', password='password')
        Student.objects.create(user=learner)
        self.client.force_authenticate(user=learner)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_enroll_and_remove_student(self):
        classroom = Classroom.objects.create(name='Mine', teacher=self.instructor)
        learner = User.objects.create_user(username='learner', password='password')
        Student.objects.create(user=learner)
        url = reverse('classroom-students', args=[classroom.id])

        response = self.client.post(url, {'username': 'learner'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(classroom.students.filter(id=learner.id).exists())

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['username'], 'learner')

        response = self.client.delete(url, {'username': 'learner'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(classroom.students.exists())

    def test_enroll_requires_student_profile(self):
        classroom = Classroom.objects.create(name='Mine', teacher=self.instructor)
        User.objects.create_user(username='nobody', password='password')
        url = reverse('classroom-students', args=[classroom.id])
        response = self.client.post(url, {'username': 'nobody'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'username': 'ghost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
