from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from accounts.models import Instructor, Student
from . import services
from .eligibility import Eligibility, availability_status, check_eligibility, eligibility_message
from .exceptions import AttemptClosed, NotEligible, NotGradable, TimeExpired
from .history import build_history, summarize_attempt
from .models import Answer, Assignment, Attempt, Choice, Classroom, Question
from .scoring import apply_score, score_answers

User = get_user_model()


def add_mcq(assignment, order, points='1.00', prompt=None):
    question = Question.objects.create(
        assignment=assignment,
        kind=Question.Kind.MCQ,
        prompt=prompt or f'Question {order}',
        points=Decimal(points),
        order=order,
    )
    right = Choice.objects.create(question=question, text='Right', is_correct=True, order=1)
    wrong = Choice.objects.create(question=question, text='Wrong', is_correct=False, order=2)
    return question, right, wrong


def add_essay(assignment, order, points='2.00'):
    return Question.objects.create(
        assignment=assignment,
        kind=Question.Kind.ESSAY,
        prompt=f'Essay {order}',
        points=Decimal(points),
        order=order,
    )


class CourseworkTestCase(TestCase):
    def setUp(self):
        teacher = User.objects.create_user(username='teacher', password='password')
        self.instructor = Instructor.objects.create(user=teacher)
        self.classroom = Classroom.objects.create(name='Algebra', teacher=self.instructor)
        self.student = User.objects.create_user(username='student', password='password')
        Student.objects.create(user=self.student)
        self.classroom.students.add(self.student)
        self.now = timezone.now()

    def make_assignment(self, **kwargs):
        kwargs.setdefault('title', 'Quiz 1')
        kwargs.setdefault('duration_minutes', 30)
        kwargs.setdefault('max_attempts', 1)
        return Assignment.objects.create(classroom=self.classroom, created_by=self.instructor, **kwargs)


class AssignmentModelTests(CourseworkTestCase):
    def test_refresh_kind_follows_questions(self):
        assignment = self.make_assignment()
        add_mcq(assignment, 1)
        self.assertEqual(assignment.refresh_kind(), Assignment.Kind.MCQ)
        add_essay(assignment, 2)
        self.assertEqual(assignment.refresh_kind(), Assignment.Kind.MIXED)
        assignment.refresh_from_db()
        self.assertEqual(assignment.kind, Assignment.Kind.MIXED)

    def test_essay_only_kind(self):
        assignment = self.make_assignment()
        add_essay(assignment, 1)
        self.assertEqual(assignment.refresh_kind(save=False), Assignment.Kind.ESSAY)

    def test_correct_choice_id(self):
        assignment = self.make_assignment()
        question, right, _ = add_mcq(assignment, 1)
        self.assertEqual(question.correct_choice_id(), right.id)

    def test_attempt_due_and_expiry(self):
        assignment = self.make_assignment(duration_minutes=10)
        attempt = Attempt.objects.create(
            assignment=assignment, user=self.student, started_at=self.now, duration_minutes=10
        )
        self.assertEqual(attempt.due_at, self.now + timedelta(minutes=10))
        self.assertFalse(attempt.is_expired(self.now + timedelta(minutes=10)))
        self.assertTrue(attempt.is_expired(self.now + timedelta(minutes=10, seconds=1)))


class EligibilityTests(CourseworkTestCase):
    def test_open_assignment_is_eligible(self):
        assignment = self.make_assignment()
        self.assertEqual(check_eligibility(assignment, 0, now=self.now), Eligibility.ELIGIBLE)

    def test_not_yet_open(self):
        assignment = self.make_assignment(open_at=self.now + timedelta(hours=1))
        self.assertEqual(check_eligibility(assignment, 0, now=self.now), Eligibility.NOT_YET_OPEN)
        self.assertEqual(availability_status(assignment, now=self.now), 'Not Open')

    def test_closed(self):
        assignment = self.make_assignment(close_at=self.now - timedelta(minutes=1))
        self.assertEqual(check_eligibility(assignment, 0, now=self.now), Eligibility.CLOSED)
        self.assertEqual(availability_status(assignment, now=self.now), 'Closed')

    def test_closed_ignored_with_attempt_in_progress(self):
        assignment = self.make_assignment(close_at=self.now - timedelta(minutes=1), max_attempts=2)
        outcome = check_eligibility(assignment, 1, now=self.now, has_in_progress=True)
        self.assertEqual(outcome, Eligibility.ELIGIBLE)

    def test_attempts_exhausted(self):
        assignment = self.make_assignment(max_attempts=2)
        self.assertEqual(check_eligibility(assignment, 2, now=self.now), Eligibility.ATTEMPTS_EXHAUSTED)
        self.assertEqual(
            eligibility_message(Eligibility.ATTEMPTS_EXHAUSTED, assignment, 2),
            'You have reached the attempt limit (2 / 2).',
        )

    def test_window_reported_before_quota(self):
        assignment = self.make_assignment(close_at=self.now - timedelta(minutes=1), max_attempts=1)
        self.assertEqual(check_eligibility(assignment, 1, now=self.now), Eligibility.CLOSED)
        self.assertEqual(
            eligibility_message(Eligibility.CLOSED, assignment, 1),
            'This assignment is closed. You cannot start a new attempt.',
        )


class ScoringTests(CourseworkTestCase):
    def setUp(self):
        super().setUp()
        self.assignment = self.make_assignment()
        self.q1, self.q1_right, self.q1_wrong = add_mcq(self.assignment, 1, points='1.50')
        self.q2, self.q2_right, self.q2_wrong = add_mcq(self.assignment, 2, points='1.25')
        self.essay = add_essay(self.assignment, 3)
        self.attempt = services.start_or_resume_attempt(self.assignment, self.student, now=self.now)

    def test_score_answers_is_pure(self):
        answers = list(self.attempt.answers.all())
        for answer in answers:
            if answer.question_id == self.q1.id:
                answer.selected_choice_id = self.q1_right.id
            elif answer.question_id == self.q2.id:
                answer.selected_choice_id = self.q2_wrong.id
        result = score_answers([self.q1, self.q2, self.essay], answers)
        self.assertEqual(result.auto_score, Decimal('1.50'))
        self.assertEqual(len(result.correctness), 2)
        self.assertFalse(Answer.objects.filter(attempt=self.attempt, is_correct__isnull=False).exists())

    def test_apply_score_sets_flags_and_is_idempotent(self):
        Answer.objects.filter(attempt=self.attempt, question=self.q1).update(selected_choice=self.q1_right)
        Answer.objects.filter(attempt=self.attempt, question=self.q2).update(selected_choice=self.q2_right)
        first = apply_score(self.attempt)
        second = apply_score(self.attempt)
        self.assertEqual(first.auto_score, Decimal('2.75'))
        self.assertEqual(first.auto_score, second.auto_score)
        self.assertEqual(self.attempt.auto_score, Decimal('2.75'))
        essay_answer = Answer.objects.get(attempt=self.attempt, question=self.essay)
        self.assertIsNone(essay_answer.is_correct)
        self.assertTrue(Answer.objects.get(attempt=self.attempt, question=self.q1).is_correct)

    def test_unanswered_mcq_is_incorrect(self):
        apply_score(self.attempt)
        self.assertEqual(self.attempt.auto_score, Decimal('0.00'))
        self.assertFalse(Answer.objects.get(attempt=self.attempt, question=self.q2).is_correct)


class StartAttemptTests(CourseworkTestCase):
    def test_start_snapshots_and_seeds_answers(self):
        assignment = self.make_assignment(duration_minutes=45)
        q1, _, _ = add_mcq(assignment, 1, points='1.00')
        essay = add_essay(assignment, 2, points='2.00')
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        self.assertEqual(attempt.attempt_number, 1)
        self.assertEqual(attempt.duration_minutes, 45)
        self.assertEqual(attempt.max_score, Decimal('3.00'))
        self.assertTrue(attempt.requires_manual_grading)
        self.assertEqual(attempt.status, Attempt.Status.IN_PROGRESS)
        seeded = list(attempt.answers.values_list('question_id', flat=True))
        self.assertEqual(seeded, [q1.id, essay.id])
        self.assertFalse(attempt.answers.filter(selected_choice__isnull=False).exists())

    def test_resume_returns_same_attempt_untouched(self):
        assignment = self.make_assignment(duration_minutes=20, max_attempts=3)
        add_mcq(assignment, 1)
        first = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        assignment.duration_minutes = 90
        assignment.save()
        second = services.start_or_resume_attempt(assignment, self.student, now=self.now + timedelta(minutes=5))
        self.assertEqual(first.id, second.id)
        self.assertEqual(second.attempt_number, 1)
        self.assertEqual(second.duration_minutes, 20)
        self.assertEqual(Attempt.objects.filter(assignment=assignment, user=self.student).count(), 1)

    def test_not_eligible_creates_nothing(self):
        assignment = self.make_assignment(open_at=self.now + timedelta(days=1))
        add_mcq(assignment, 1)
        with self.assertRaises(NotEligible) as ctx:
            services.start_or_resume_attempt(assignment, self.student, now=self.now)
        self.assertEqual(ctx.exception.reason, Eligibility.NOT_YET_OPEN)
        self.assertFalse(Attempt.objects.exists())
        self.assertFalse(Answer.objects.exists())

    def test_attempt_numbers_increase(self):
        assignment = self.make_assignment(max_attempts=2)
        add_mcq(assignment, 1)
        first = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        services.finish_attempt(first.id, self.student, now=self.now)
        second = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        self.assertEqual(second.attempt_number, 2)
        self.assertNotEqual(first.id, second.id)

    def test_start_does_not_lock_assignment_row(self):
        assignment = self.make_assignment()
        add_mcq(assignment, 1)
        classmate = User.objects.create_user(username='classmate', password='password')
        with mock.patch.object(Assignment.objects, 'select_for_update', side_effect=AssertionError('locked')):
            mine = services.start_or_resume_attempt(assignment, self.student, now=self.now)
            theirs = services.start_or_resume_attempt(assignment, classmate, now=self.now)
        self.assertNotEqual(mine.id, theirs.id)
        self.assertEqual(mine.attempt_number, 1)
        self.assertEqual(theirs.attempt_number, 1)

    def test_concurrent_start_resumes_winner(self):
        assignment = self.make_assignment(max_attempts=3)
        add_mcq(assignment, 1)
        winner = Attempt.objects.create(
            assignment=assignment,
            user=self.student,
            attempt_number=1,
            started_at=self.now,
            duration_minutes=assignment.duration_minutes,
        )
        real_lookup = services._in_progress_attempt
        calls = []

        def racing_lookup(assignment, user):
            calls.append(user)
            # The first check runs before the other request has committed.
            if len(calls) == 1:
                return None
            return real_lookup(assignment, user)

        with mock.patch('assignments.services._in_progress_attempt', side_effect=racing_lookup):
            attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)

        self.assertEqual(attempt.id, winner.id)
        in_progress = Attempt.objects.filter(
            assignment=assignment, user=self.student, status=Attempt.Status.IN_PROGRESS
        )
        self.assertEqual(in_progress.count(), 1)
        self.assertEqual(Attempt.objects.filter(assignment=assignment, user=self.student).count(), 1)


class RecordAnswerTests(CourseworkTestCase):
    def setUp(self):
        super().setUp()
        self.assignment = self.make_assignment(duration_minutes=10)
        self.q1, self.right, self.wrong = add_mcq(self.assignment, 1)
        self.essay = add_essay(self.assignment, 2)
        self.attempt = services.start_or_resume_attempt(self.assignment, self.student, now=self.now)

    def test_choice_then_text_are_exclusive(self):
        answer = services.record_answer(
            self.attempt.id, self.student, self.q1.id, selected_choice_id=self.right.id, now=self.now
        )
        self.assertEqual(answer.selected_choice_id, self.right.id)
        self.assertIsNone(answer.text_answer)

        answer = services.record_answer(self.attempt.id, self.student, self.q1.id, text_answer='', now=self.now)
        answer.refresh_from_db()
        self.assertIsNone(answer.selected_choice_id)
        self.assertEqual(answer.text_answer, '')

        answer = services.record_answer(
            self.attempt.id, self.student, self.q1.id, selected_choice_id=self.wrong.id, now=self.now
        )
        answer.refresh_from_db()
        self.assertEqual(answer.selected_choice_id, self.wrong.id)
        self.assertIsNone(answer.text_answer)

    def test_both_fields_rejected(self):
        with self.assertRaises(ValidationError):
            services.record_answer(
                self.attempt.id, self.student, self.q1.id, selected_choice_id=self.right.id, text_answer='x'
            )

    def test_answered_depends_on_question_kind(self):
        mcq_text = services.record_answer(self.attempt.id, self.student, self.q1.id, text_answer='Right', now=self.now)
        self.assertFalse(mcq_text.is_answered)
        mcq_choice = services.record_answer(
            self.attempt.id, self.student, self.q1.id, selected_choice_id=self.right.id, now=self.now
        )
        self.assertTrue(mcq_choice.is_answered)
        blank_essay = services.record_answer(self.attempt.id, self.student, self.essay.id, text_answer='  ', now=self.now)
        self.assertFalse(blank_essay.is_answered)

    def test_neither_field_is_noop(self):
        answer = services.record_answer(self.attempt.id, self.student, self.essay.id, now=self.now)
        self.assertIsNone(answer.answered_at)
        self.assertFalse(answer.is_answered)

    def test_write_sets_answered_at(self):
        later = self.now + timedelta(minutes=2)
        answer = services.record_answer(
            self.attempt.id, self.student, self.essay.id, text_answer='My essay', now=later
        )
        answer.refresh_from_db()
        self.assertEqual(answer.answered_at, later)
        self.assertTrue(answer.is_answered)

    def test_other_user_gets_not_found(self):
        intruder = User.objects.create_user(username='intruder', password='password')
        with self.assertRaises(NotFound):
            services.record_answer(self.attempt.id, intruder, self.q1.id, selected_choice_id=self.right.id)

    def test_unknown_question_and_foreign_choice(self):
        other = self.make_assignment(title='Other')
        other_question, other_choice, _ = add_mcq(other, 1)
        with self.assertRaises(NotFound):
            services.record_answer(self.attempt.id, self.student, other_question.id, text_answer='x', now=self.now)
        with self.assertRaises(NotFound):
            services.record_answer(
                self.attempt.id, self.student, self.q1.id, selected_choice_id=other_choice.id, now=self.now
            )

    def test_finished_attempt_is_closed(self):
        services.finish_attempt(self.attempt.id, self.student, now=self.now)
        with self.assertRaises(AttemptClosed):
            services.record_answer(self.attempt.id, self.student, self.essay.id, text_answer='late', now=self.now)

    def test_expired_write_rejected_then_finish_scores_last_answers(self):
        services.record_answer(
            self.attempt.id,
            self.student,
            self.q1.id,
            selected_choice_id=self.right.id,
            now=self.now + timedelta(minutes=5),
        )
        expired = self.now + timedelta(minutes=11)
        with self.assertRaises(TimeExpired):
            services.record_answer(
                self.attempt.id, self.student, self.q1.id, selected_choice_id=self.wrong.id, now=expired
            )
        attempt = services.finish_attempt(self.attempt.id, self.student, now=expired)
        self.assertEqual(attempt.auto_score, Decimal('1.00'))
        self.assertEqual(attempt.status, Attempt.Status.SUBMITTED)
        self.assertEqual(attempt.submitted_at, expired)


class FinishAndGradeTests(CourseworkTestCase):
    def test_all_mcq_attempt_is_graded_on_finish(self):
        assignment = self.make_assignment(max_attempts=1)
        q1, q1_right, _ = add_mcq(assignment, 1)
        q2, q2_right, _ = add_mcq(assignment, 2)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        services.record_answer(attempt.id, self.student, q1.id, selected_choice_id=q1_right.id, now=self.now)
        services.record_answer(attempt.id, self.student, q2.id, selected_choice_id=q2_right.id, now=self.now)

        attempt = services.finish_attempt(attempt.id, self.student, now=self.now)
        self.assertEqual(attempt.auto_score, Decimal('2.00'))
        self.assertEqual(attempt.final_score, Decimal('2.00'))
        self.assertEqual(attempt.status, Attempt.Status.GRADED)
        self.assertEqual(attempt.graded_at, self.now)

        with self.assertRaises(NotEligible) as ctx:
            services.start_or_resume_attempt(assignment, self.student, now=self.now)
        self.assertEqual(ctx.exception.reason, Eligibility.ATTEMPTS_EXHAUSTED)

    def test_finish_twice_is_noop(self):
        assignment = self.make_assignment()
        add_mcq(assignment, 1)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        first = services.finish_attempt(attempt.id, self.student, now=self.now)
        second = services.finish_attempt(attempt.id, self.student, now=self.now + timedelta(minutes=3))
        self.assertEqual(second.submitted_at, first.submitted_at)
        self.assertEqual(second.status, first.status)

    def test_finish_by_other_user_not_found(self):
        assignment = self.make_assignment()
        add_mcq(assignment, 1)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        intruder = User.objects.create_user(username='intruder', password='password')
        with self.assertRaises(NotFound):
            services.finish_attempt(attempt.id, intruder)

    def test_mixed_attempt_waits_for_manual_grade(self):
        assignment = self.make_assignment()
        mcq, right, _ = add_mcq(assignment, 1, points='1.00')
        add_essay(assignment, 2, points='2.00')
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        services.record_answer(attempt.id, self.student, mcq.id, selected_choice_id=right.id, now=self.now)

        attempt = services.finish_attempt(attempt.id, self.student, now=self.now)
        self.assertEqual(attempt.status, Attempt.Status.SUBMITTED)
        self.assertEqual(attempt.auto_score, Decimal('1.00'))
        self.assertIsNone(attempt.final_score)

        attempt = services.record_manual_grade(attempt.id, Decimal('2.5'), grader=self.instructor)
        self.assertEqual(attempt.status, Attempt.Status.GRADED)
        self.assertEqual(attempt.final_score, Decimal('2.50'))
        self.assertEqual(attempt.graded_by, self.instructor)

        summary = build_history(assignment, self.student)[0]
        self.assertEqual(summary.mcq_score, Decimal('1.00'))
        self.assertEqual(summary.mcq_max, Decimal('1.00'))
        self.assertEqual(summary.essay_score, Decimal('1.50'))
        self.assertEqual(summary.essay_max, Decimal('2.00'))
        self.assertEqual(summary.final_score, Decimal('2.50'))
        self.assertEqual(summary.final_max, Decimal('3.00'))
        self.assertFalse(summary.is_pending)

    def test_manual_grade_rules(self):
        assignment = self.make_assignment(max_attempts=2)
        add_mcq(assignment, 1)
        add_essay(assignment, 2)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        with self.assertRaises(NotGradable):
            services.record_manual_grade(attempt.id, Decimal('1'))
        services.finish_attempt(attempt.id, self.student, now=self.now)
        with self.assertRaises(ValidationError):
            services.record_manual_grade(attempt.id, Decimal('3.01'))
        services.record_manual_grade(attempt.id, Decimal('3'))
        with self.assertRaises(NotGradable):
            services.record_manual_grade(attempt.id, Decimal('2'))

    def test_regrade_recomputes_after_answer_key_change(self):
        assignment = self.make_assignment()
        question, right, wrong = add_mcq(assignment, 1, points='2.00')
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        services.record_answer(attempt.id, self.student, question.id, selected_choice_id=wrong.id, now=self.now)
        attempt = services.finish_attempt(attempt.id, self.student, now=self.now)
        self.assertEqual(attempt.final_score, Decimal('0.00'))

        Choice.objects.filter(id=right.id).update(is_correct=False)
        Choice.objects.filter(id=wrong.id).update(is_correct=True)
        attempt = services.regrade_attempt(attempt.id)
        self.assertEqual(attempt.auto_score, Decimal('2.00'))
        self.assertEqual(attempt.final_score, Decimal('2.00'))
        again = services.regrade_attempt(attempt.id)
        self.assertEqual(again.auto_score, attempt.auto_score)

    def test_regrade_keeps_manual_final_score(self):
        assignment = self.make_assignment()
        add_mcq(assignment, 1)
        add_essay(assignment, 2)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        services.finish_attempt(attempt.id, self.student, now=self.now)
        services.record_manual_grade(attempt.id, Decimal('1.75'))
        attempt = services.regrade_attempt(attempt.id)
        self.assertEqual(attempt.final_score, Decimal('1.75'))
        self.assertEqual(attempt.status, Attempt.Status.GRADED)

    def test_regrade_rejects_in_progress(self):
        assignment = self.make_assignment()
        add_mcq(assignment, 1)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        with self.assertRaises(NotGradable):
            services.regrade_attempt(attempt.id)


class ClosedAssignmentTests(CourseworkTestCase):
    def test_resume_after_close_but_no_new_start(self):
        assignment = self.make_assignment(close_at=self.now + timedelta(minutes=30))
        add_mcq(assignment, 1)
        attempt = services.start_or_resume_attempt(assignment, self.student, now=self.now)

        assignment.close_at = self.now - timedelta(minutes=1)
        assignment.save()
        resumed = services.start_or_resume_attempt(assignment, self.student, now=self.now)
        self.assertEqual(resumed.id, attempt.id)

        latecomer = User.objects.create_user(username='latecomer', password='password')
        self.classroom.students.add(latecomer)
        with self.assertRaises(NotEligible) as ctx:
            services.start_or_resume_attempt(assignment, latecomer, now=self.now)
        self.assertEqual(ctx.exception.reason, Eligibility.CLOSED)
        self.assertEqual(ctx.exception.status_code, 403)


class HistoryTests(CourseworkTestCase):
    def setUp(self):
        super().setUp()
        self.assignment = self.make_assignment(max_attempts=5)
        self.mcq, self.right, self.wrong = add_mcq(self.assignment, 1, points='1.00')

    def legacy_attempt(self, number, **kwargs):
        kwargs.setdefault('status', Attempt.Status.SUBMITTED)
        kwargs.setdefault('started_at', self.now)
        kwargs.setdefault('submitted_at', self.now)
        return Attempt.objects.create(
            assignment=self.assignment,
            user=self.student,
            attempt_number=number,
            duration_minutes=30,
            **kwargs,
        )

    def test_legacy_attempt_without_stored_scores(self):
        attempt = self.legacy_attempt(1)
        Answer.objects.create(attempt=attempt, question=self.mcq, selected_choice=self.right)
        summary = build_history(self.assignment, self.student)[0]
        self.assertEqual(summary.mcq_total, 1)
        self.assertEqual(summary.mcq_correct, 1)
        self.assertEqual(summary.mcq_score, Decimal('1.00'))
        self.assertEqual(summary.essay_score, Decimal('0.00'))
        self.assertEqual(summary.final_score, Decimal('1.00'))

    def test_essay_score_is_clamped(self):
        essay = add_essay(self.assignment, 2, points='2.00')
        high = self.legacy_attempt(
            1, requires_manual_grading=True, auto_score=Decimal('1.00'), final_score=Decimal('9.00')
        )
        low = self.legacy_attempt(
            2,
            requires_manual_grading=True,
            auto_score=Decimal('1.00'),
            final_score=Decimal('0.25'),
            submitted_at=self.now + timedelta(minutes=1),
        )
        for attempt in (high, low):
            Answer.objects.create(attempt=attempt, question=self.mcq, selected_choice=self.right, is_correct=True)
            Answer.objects.create(attempt=attempt, question=essay, text_answer='text')
        history = build_history(self.assignment, self.student)
        self.assertEqual([summary.attempt_id for summary in history], [low.id, high.id])
        self.assertEqual(history[0].essay_score, Decimal('0.00'))
        self.assertEqual(history[1].essay_score, Decimal('2.00'))

    def test_pending_manual_grade(self):
        essay = add_essay(self.assignment, 2)
        attempt = self.legacy_attempt(1, requires_manual_grading=True, auto_score=Decimal('0.00'))
        Answer.objects.create(attempt=attempt, question=self.mcq)
        Answer.objects.create(attempt=attempt, question=essay)
        summary = summarize_attempt(attempt)
        self.assertIsNone(summary.essay_score)
        self.assertIsNone(summary.final_score)
        self.assertTrue(summary.is_pending)

    def test_in_progress_attempt_is_pending(self):
        attempt = services.start_or_resume_attempt(self.assignment, self.student, now=self.now)
        services.record_answer(attempt.id, self.student, self.mcq.id, selected_choice_id=self.right.id, now=self.now)
        summary = build_history(self.assignment, self.student)[0]
        self.assertEqual(summary.status, Attempt.Status.IN_PROGRESS)
        self.assertEqual(summary.mcq_total, 1)
        self.assertIsNone(summary.mcq_correct)
        self.assertIsNone(summary.mcq_score)
        self.assertIsNone(summary.essay_score)
        self.assertIsNone(summary.final_score)
        self.assertTrue(summary.is_pending)

    def test_stored_correct_flag_survives_answer_key_change(self):
        attempt = services.start_or_resume_attempt(self.assignment, self.student, now=self.now)
        services.record_answer(attempt.id, self.student, self.mcq.id, selected_choice_id=self.right.id, now=self.now)
        services.finish_attempt(attempt.id, self.student, now=self.now)

        Choice.objects.filter(id=self.right.id).update(is_correct=False)
        Choice.objects.filter(id=self.wrong.id).update(is_correct=True)
        summary = build_history(self.assignment, self.student)[0]
        self.assertEqual(summary.mcq_correct, 1)
        self.assertEqual(summary.mcq_score, Decimal('1.00'))
        self.assertEqual(summary.final_score, Decimal('1.00'))

    def test_stored_incorrect_flag_wins_over_matching_selection(self):
        attempt = self.legacy_attempt(1)
        Answer.objects.create(attempt=attempt, question=self.mcq, selected_choice=self.right, is_correct=False)
        summary = build_history(self.assignment, self.student)[0]
        self.assertEqual(summary.mcq_correct, 0)
        self.assertEqual(summary.mcq_score, Decimal('0.00'))
        self.assertEqual(summary.final_score, Decimal('0.00'))

    def test_history_uses_seeded_questions(self):
        attempt = services.start_or_resume_attempt(self.assignment, self.student, now=self.now)
        services.finish_attempt(attempt.id, self.student, now=self.now)
        add_essay(self.assignment, 2)
        summary = build_history(self.assignment, self.student)[0]
        self.assertEqual(summary.mcq_total, 1)
        self.assertEqual(summary.essay_max, Decimal('0.00'))
        self.assertEqual(summary.final_max, Decimal('1.00'))
