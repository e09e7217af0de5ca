from decimal import Decimal
from io import BytesIO

from django.contrib.auth.models import User
from django.urls import reverse
from openpyxl import load_workbook
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import Instructor, Student
from assignments.models import Assignment, Choice, Classroom, Question
from assignments.services import finish_attempt, record_answer, start_or_resume_attempt


class GradingTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='instructor', password='password')
        self.instructor = Instructor.objects.create(user=self.user)
        self.client.force_authenticate(user=self.user)
        self.classroom = Classroom.objects.create(name='Math', teacher=self.instructor)
        self.assignment = Assignment.objects.create(classroom=self.classroom, title='Midterm', max_attempts=2)
        self.mcq = Question.objects.create(
            assignment=self.assignment, kind=Question.Kind.MCQ, prompt='Pick', points=Decimal('1.00'), order=1
        )
        self.right = Choice.objects.create(question=self.mcq, text='A', is_correct=True, order=1)
        Choice.objects.create(question=self.mcq, text='B', is_correct=False, order=2)
        Question.objects.create(
            assignment=self.assignment, kind=Question.Kind.ESSAY, prompt='Discuss', points=Decimal('2.00'), order=2
        )

        self.student = User.objects.create_user(
            username='learner', password='password', first_name='Mai', last_name='Le'
        )
        Student.objects.create(user=self.student)
        self.classroom.students.add(self.student)
        attempt = start_or_resume_attempt(self.assignment, self.student)
        record_answer(attempt.id, self.student, self.mcq.id, selected_choice_id=self.right.id)
        self.attempt = finish_attempt(attempt.id, self.student)

        self.grade_url = reverse('attempt-grade', args=[self.assignment.id, self.attempt.id])
        self.regrade_url = reverse('attempt-regrade', args=[self.assignment.id, self.attempt.id])

    def test_attempt_listing(self):
        response = self.client.get(reverse('assignment-attempts', args=[self.assignment.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        entry = response.data[0]
        self.assertEqual(entry['username'], 'learner')
        self.assertEqual(entry['student_name'], 'Mai Le')
        self.assertEqual(entry['status'], 'submitted')
        self.assertTrue(entry['is_pending'])

    def test_grade_attempt(self):
        response = self.client.post(self.grade_url, {'final_score': '2.50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'graded')
        self.assertEqual(response.data['final_score'], '2.50')
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.graded_by, self.instructor)

        response = self.client.post(self.grade_url, {'final_score': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_grade_out_of_range(self):
        response = self.client.post(self.grade_url, {'final_score': '3.50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('final_score', response.data)
        response = self.client.post(self.grade_url, {'final_score': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_instructor_cannot_grade(self):
        other_user = User.objects.create_user(username='other', password='password')
        Instructor.objects.create(user=other_user)
        self.client.force_authenticate(user=other_user)
        response = self.client.post(self.grade_url, {'final_score': '2.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_instructor_can_regrade_any_assignment(self):
        admin_user = User.objects.create_user(username='admin', password='password')
        Instructor.objects.create(user=admin_user, is_admin_instructor=True)
        self.client.force_authenticate(user=admin_user)
        response = self.client.post(self.regrade_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['auto_score'], '1.00')
        self.assertIsNone(response.data['final_score'])

    def test_regrade_in_progress_conflicts(self):
        self.client.post(self.grade_url, {'final_score': '2.00'}, format='json')
        attempt = start_or_resume_attempt(self.assignment, self.student)
        url = reverse('attempt-regrade', args=[self.assignment.id, attempt.id])
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_gradebook_export(self):
        response = self.client.get(reverse('assignment-gradebook', args=[self.assignment.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response['Content-Type'],
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )
        self.assertIn('gradebook.xlsx', response['Content-Disposition'])
        wb = load_workbook(BytesIO(response.content))
        rows = list(wb.active.iter_rows(values_only=True))
        self.assertEqual(rows[0][0], 'Student')
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][0], 'Mai Le')
        self.assertEqual(rows[1][8], 1.0)
        self.assertEqual(rows[1][12], 'Pending')
