from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import Instructor, Student
from assignments.models import Assignment, Attempt, Choice, Classroom, Question


class StudentAttemptTests(APITestCase):
    def setUp(self):
        teacher = User.objects.create_user(username='instructor', password='password')
        self.instructor = Instructor.objects.create(user=teacher)
        self.classroom = Classroom.objects.create(name='Math', teacher=self.instructor)
        self.user = User.objects.create_user(username='learner', password='password')
        Student.objects.create(user=self.user)
        self.classroom.students.add(self.user)
        self.client.force_authenticate(user=self.user)

        self.assignment = Assignment.objects.create(
            classroom=self.classroom, title='Quiz', duration_minutes=15, max_attempts=1
        )
        self.mcq = Question.objects.create(
            assignment=self.assignment, kind=Question.Kind.MCQ, prompt='Pick one', points=Decimal('1.00'), order=1
        )
        self.right = Choice.objects.create(question=self.mcq, text='Yes', is_correct=True, order=1)
        self.wrong = Choice.objects.create(question=self.mcq, text='No', is_correct=False, order=2)
        self.essay = Question.objects.create(
            assignment=self.assignment, kind=Question.Kind.ESSAY, prompt='Why?', points=Decimal('2.00'), order=2
        )
        self.assignment.refresh_kind()
        self.start_url = reverse('student-assignment-start', args=[self.assignment.id])

    def start(self):
        response = self.client.post(self.start_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response.data

    def test_listing_shows_enrolled_assignments(self):
        other_classroom = Classroom.objects.create(name='Other', teacher=self.instructor)
        Assignment.objects.create(classroom=other_classroom, title='Hidden')
        response = self.client.get(reverse('student-assignments'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['title'], 'Quiz')
        self.assertEqual(response.data[0]['status'], 'Open')
        self.assertEqual(response.data[0]['attempts_used'], 0)

        self.start()
        response = self.client.get(reverse('student-assignments'))
        self.assertEqual(response.data[0]['attempts_used'], 1)

    def test_start_hides_answer_key(self):
        data = self.start()
        self.assertEqual(data['status'], 'in_progress')
        self.assertEqual(data['attempt_number'], 1)
        self.assertEqual(len(data['answers']), 2)
        self.assertEqual(data['answered_count'], 0)
        first = data['answers'][0]
        self.assertEqual(first['question_id'], self.mcq.id)
        self.assertEqual(len(first['choices']), 2)
        self.assertNotIn('is_correct', first['choices'][0])

    def test_start_twice_resumes(self):
        first = self.start()
        second = self.start()
        self.assertEqual(first['id'], second['id'])
        self.assertEqual(Attempt.objects.filter(user=self.user).count(), 1)

    def test_unenrolled_assignment_is_not_found(self):
        other_classroom = Classroom.objects.create(name='Other', teacher=self.instructor)
        hidden = Assignment.objects.create(classroom=other_classroom, title='Hidden')
        response = self.client.post(reverse('student-assignment-start', args=[hidden.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_not_open_returns_forbidden(self):
        self.assignment.open_at = timezone.now() + timedelta(days=1)
        self.assignment.save()
        response = self.client.post(self.start_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['detail'], 'This assignment is not open yet.')

    def test_answer_finish_and_history(self):
        attempt = self.start()
        answer_url = reverse('student-attempt-answer', args=[attempt['id']])

        response = self.client.post(
            answer_url, {'question': self.mcq.id, 'selected_choice': self.right.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['selected_choice'], self.right.id)
        self.assertIsNone(response.data['text_answer'])

        response = self.client.post(answer_url, {'question': self.essay.id, 'text_answer': 'Because.'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_answered'])

        detail = self.client.get(reverse('student-attempt-detail', args=[attempt['id']]))
        self.assertEqual(detail.data['answered_count'], 2)

        response = self.client.post(reverse('student-attempt-finish', args=[attempt['id']]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'submitted')
        self.assertEqual(response.data['auto_score'], '1.00')
        self.assertIsNone(response.data['final_score'])

        response = self.client.post(reverse('student-attempt-finish', args=[attempt['id']]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(answer_url, {'question': self.essay.id, 'text_answer': 'Late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.get(reverse('student-assignment-history', args=[self.assignment.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Quiz')
        self.assertEqual(response.data['max_attempts'], 1)
        summary = response.data['attempts'][0]
        self.assertEqual(summary['mcq_correct'], 1)
        self.assertEqual(summary['mcq_score'], '1.00')
        self.assertIsNone(summary['essay_score'])
        self.assertTrue(summary['is_pending'])

        response = self.client.post(self.start_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['detail'], 'You have reached the attempt limit (1 / 1).')

    def test_history_hides_correctness_while_in_progress(self):
        attempt = self.start()
        answer_url = reverse('student-attempt-answer', args=[attempt['id']])
        history_url = reverse('student-assignment-history', args=[self.assignment.id])

        self.client.post(answer_url, {'question': self.mcq.id, 'selected_choice': self.wrong.id}, format='json')
        after_wrong = self.client.get(history_url).data['attempts'][0]
        self.client.post(answer_url, {'question': self.mcq.id, 'selected_choice': self.right.id}, format='json')
        after_right = self.client.get(history_url).data['attempts'][0]

        self.assertEqual(after_wrong, after_right)
        self.assertEqual(after_right['status'], 'in_progress')
        self.assertIsNone(after_right['mcq_correct'])
        self.assertIsNone(after_right['mcq_score'])
        self.assertIsNone(after_right['final_score'])

    def test_answer_with_both_fields_rejected(self):
        attempt = self.start()
        response = self.client.post(
            reverse('student-attempt-answer', args=[attempt['id']]),
            {'question': self.mcq.id, 'selected_choice': self.right.id, 'text_answer': 'both'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_answer_too_long_rejected(self):
        attempt = self.start()
        response = self.client.post(
            reverse('student-attempt-answer', args=[attempt['id']]),
            {'question': self.essay.id, 'text_answer': 'x' * 8001},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_expired_attempt_rejects_answers(self):
        attempt = self.start()
        Attempt.objects.filter(id=attempt['id']).update(started_at=timezone.now() - timedelta(minutes=16))
        response = self.client.post(
            reverse('student-attempt-answer', args=[attempt['id']]),
            {'question': self.mcq.id, 'selected_choice': self.right.id},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.client.post(reverse('student-attempt-finish', args=[attempt['id']]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_other_students_attempt_is_not_found(self):
        attempt = self.start()
        intruder = User.objects.create_user(username='intruder', password='password')
        Student.objects.create(user=intruder)
        self.client.force_authenticate(user=intruder)
        response = self.client.get(reverse('student-attempt-detail', args=[attempt['id']]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.post(reverse('student-attempt-finish', args=[attempt['id']]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_instructor_without_student_profile_cannot_start(self):
        self.client.force_authenticate(user=self.instructor.user)
        response = self.client.post(self.start_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
