from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from accounts.models import Instructor


class Classroom(models.Model):
    name = models.CharField(max_length=160)
    subject = models.CharField(max_length=160, blank=True)
    teacher = models.ForeignKey(Instructor, on_delete=models.CASCADE, related_name='classrooms')
    students = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='enrolled_classrooms', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return self.name


class Assignment(models.Model):
    class Kind(models.TextChoices):
        MCQ = 'mcq', 'Multiple choice'
        ESSAY = 'essay', 'Essay'
        MIXED = 'mixed', 'Mixed'

    classroom = models.ForeignKey(Classroom, on_delete=models.CASCADE, related_name='assignments')
    title = models.CharField(max_length=160)
    description = models.CharField(max_length=400, blank=True)
    kind = models.CharField(max_length=16, choices=Kind.choices, default=Kind.MCQ, editable=False)
    duration_minutes = models.PositiveIntegerField(
        default=30, validators=[MinValueValidator(1), MaxValueValidator(600)]
    )
    max_attempts = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1), MaxValueValidator(20)])
    open_at = models.DateTimeField(null=True, blank=True)
    close_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        Instructor, on_delete=models.SET_NULL, null=True, blank=True, related_name='authored_assignments'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return self.title

    def refresh_kind(self, save=True):
        """Derive the assignment kind from its current questions."""
        kinds = set(self.questions.values_list('kind', flat=True))
        if Question.Kind.MCQ in kinds and Question.Kind.ESSAY in kinds:
            kind = self.Kind.MIXED
        elif Question.Kind.ESSAY in kinds:
            kind = self.Kind.ESSAY
        else:
            kind = self.Kind.MCQ
        self.kind = kind
        if save:
            self.save(update_fields=['kind'])
        return kind


class Question(models.Model):
    class Kind(models.TextChoices):
        MCQ = 'mcq', 'Multiple choice'
        ESSAY = 'essay', 'Essay'

    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='questions')
    kind = models.CharField(max_length=16, choices=Kind.choices, default=Kind.MCQ)
    prompt = models.CharField(max_length=1000)
    points = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('1.00'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
    )
    order = models.PositiveIntegerField()

    class Meta:
        ordering = ['order']
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'order'], name='unique_assignment_question_order')
        ]

    def __str__(self) -> str:
        return f"{self.assignment.title}: Q{self.order}"

    @property
    def is_mcq(self) -> bool:
        return self.kind == self.Kind.MCQ

    def correct_choice_id(self):
        # Iterate instead of filtering so prefetched choices are reused.
        for choice in self.choices.all():
            if choice.is_correct:
                return choice.id
        return None


class Choice(models.Model):
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='choices')
    text = models.CharField(max_length=400)
    is_correct = models.BooleanField(default=False)
    order = models.PositiveIntegerField()

    class Meta:
        ordering = ['order']
        constraints = [
            models.UniqueConstraint(fields=['question', 'order'], name='unique_question_choice_order')
        ]

    def __str__(self) -> str:
        return self.text


class Attempt(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = 'in_progress', 'In progress'
        SUBMITTED = 'submitted', 'Submitted'
        GRADED = 'graded', 'Graded'

    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='attempts')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='assignment_attempts')
    attempt_number = models.PositiveIntegerField(default=1)
    started_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField()
    requires_manual_grading = models.BooleanField(default=False)
    max_score = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    auto_score = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    final_score = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.IN_PROGRESS)
    graded_at = models.DateTimeField(null=True, blank=True)
    graded_by = models.ForeignKey(
        Instructor, on_delete=models.SET_NULL, null=True, blank=True, related_name='graded_attempts'
    )

    class Meta:
        ordering = ['-started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['assignment', 'user', 'attempt_number'], name='unique_attempt_number_per_user'
            ),
            models.UniqueConstraint(
                fields=['assignment', 'user'],
                condition=models.Q(status='in_progress'),
                name='unique_in_progress_attempt',
            ),
        ]

    def __str__(self) -> str:
        return f"Attempt {self.attempt_number} on {self.assignment.title}"

    @property
    def due_at(self):
        return self.started_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_in_progress(self) -> bool:
        return self.status == self.Status.IN_PROGRESS

    def is_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return now > self.due_at


class Answer(models.Model):
    attempt = models.ForeignKey(Attempt, on_delete=models.CASCADE, related_name='answers')
    question = models.ForeignKey(Question, on_delete=models.RESTRICT, related_name='answers')
    selected_choice = models.ForeignKey(
        Choice, on_delete=models.RESTRICT, null=True, blank=True, related_name='selections'
    )
    text_answer = models.TextField(null=True, blank=True)
    is_correct = models.BooleanField(null=True, blank=True)
    answered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['question__order']
        constraints = [
            models.UniqueConstraint(fields=['attempt', 'question'], name='unique_attempt_question_answer')
        ]

    def __str__(self) -> str:
        return f"Attempt {self.attempt_id} - Q{self.question_id}"

    @property
    def is_answered(self) -> bool:
        # Multiple-choice questions count a choice only; essays count non-blank text only.
        if self.question.is_mcq:
            return self.selected_choice_id is not None
        return bool((self.text_answer or '').strip())
