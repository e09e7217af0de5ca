from django.contrib.auth.models import User
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import Instructor
from assignments.models import Assignment, Attempt, Classroom


def assignment_payload(classroom_id, **overrides):
    payload = {
        'classroom': classroom_id,
        'title': 'Week 1',
        'description': 'Warm-up questions',
        'duration_minutes': 20,
        'max_attempts': 2,
        'questions': [
            {
                'kind': 'mcq',
                'prompt': '2 + 2 = ?',
                'points': '1.00',
                'choices': [
                    {'text': '4', 'is_correct': True},
                    {'text': '5', 'is_correct': False},
                ],
            },
            {'kind': 'essay', 'prompt': 'Explain addition.', 'points': '2.00'},
        ],
    }
    payload.update(overrides)
    return payload


class AssignmentAuthoringTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='instructor', password='password')
        self.instructor = Instructor.objects.create(user=self.user)
        self.client.force_authenticate(user=self.user)
        self.classroom = Classroom.objects.create(name='Math', teacher=self.instructor)
        self.list_url = reverse('assignment-list')

    def test_create_assignment_with_questions(self):
        response = self.client.post(self.list_url, assignment_payload(self.classroom.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        assignment = Assignment.objects.get(id=response.data['id'])
        self.assertEqual(assignment.kind, Assignment.Kind.MIXED)
        self.assertEqual(assignment.created_by, self.instructor)
        self.assertEqual(list(assignment.questions.values_list('order', flat=True)), [1, 2])
        mcq = assignment.questions.get(order=1)
        self.assertEqual(mcq.choices.count(), 2)
        self.assertEqual(mcq.choices.filter(is_correct=True).count(), 1)
        self.assertEqual(response.data['kind'], 'mixed')

    def test_questions_required(self):
        payload = assignment_payload(self.classroom.id)
        payload.pop('questions')
        response = self.client.post(self.list_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('questions', response.data)

    def test_mcq_needs_exactly_one_correct_choice(self):
        payload = assignment_payload(self.classroom.id)
        payload['questions'][0]['choices'][1]['is_correct'] = True
        response = self.client.post(self.list_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('choices', response.data['questions'][0])
        self.assertFalse(Assignment.objects.exists())

    def test_mcq_needs_two_choices(self):
        payload = assignment_payload(self.classroom.id)
        payload['questions'][0]['choices'] = [{'text': '4', 'is_correct': True}]
        response = self.client.post(self.list_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_close_must_follow_open(self):
        now = timezone.now()
        payload = assignment_payload(
            self.classroom.id,
            open_at=now.isoformat(),
            close_at=(now - timezone.timedelta(hours=1)).isoformat(),
        )
        response = self.client.post(self.list_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('close_at', response.data)

    def test_cannot_use_foreign_classroom(self):
        other_user = User.objects.create_user(username='other', password='password')
        other = Instructor.objects.create(user=other_user)
        foreign = Classroom.objects.create(name='Theirs', teacher=other)
        response = self.client.post(self.list_url, assignment_payload(foreign.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('classroom', response.data)

    def test_metadata_edit_allowed_after_attempts(self):
        response = self.client.post(self.list_url, assignment_payload(self.classroom.id), format='json')
        assignment = Assignment.objects.get(id=response.data['id'])
        student = User.objects.create_user(username='learner', password='password')
        Attempt.objects.create(assignment=assignment, user=student, duration_minutes=20)
        url = reverse('assignment-detail', args=[assignment.id])

        response = self.client.patch(url, {'title': 'Week 1 (revised)', 'duration_minutes': 40}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Attempt.objects.get(assignment=assignment).duration_minutes, 20)

        response = self.client.patch(
            url, {'questions': assignment_payload(self.classroom.id)['questions']}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(assignment.questions.count(), 2)

    def test_replace_questions_without_attempts(self):
        response = self.client.post(self.list_url, assignment_payload(self.classroom.id), format='json')
        url = reverse('assignment-detail', args=[response.data['id']])
        questions = [{'kind': 'essay', 'prompt': 'Reflect.', 'points': '5.00'}]
        response = self.client.patch(url, {'questions': questions}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['kind'], 'essay')
        self.assertEqual(len(response.data['questions']), 1)
