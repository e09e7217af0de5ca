import logging
from decimal import InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework import serializers
from rest_framework.exceptions import NotFound

from .eligibility import Eligibility, check_eligibility, eligibility_message
from .exceptions import AttemptClosed, NotEligible, NotGradable, TimeExpired
from .models import Answer, Attempt, Choice, Question
from .scoring import ZERO, apply_score, quantize_score

logger = logging.getLogger(__name__)


def _in_progress_attempt(assignment, user):
    return (
        Attempt.objects.filter(assignment=assignment, user=user, status=Attempt.Status.IN_PROGRESS)
        .order_by('-started_at')
        .first()
    )


def _owned_attempt(attempt_id, user):
    # Ownership mismatches look exactly like unknown attempts.
    attempt = Attempt.objects.select_for_update().filter(id=attempt_id, user=user).first()
    if attempt is None:
        raise NotFound('Attempt not found.')
    return attempt


def _locked_attempt(attempt_id):
    attempt = Attempt.objects.select_for_update().filter(id=attempt_id).first()
    if attempt is None:
        raise NotFound('Attempt not found.')
    return attempt


@transaction.atomic
def start_or_resume_attempt(assignment, user, now=None):
    """
    Return the caller's in-progress attempt, or start a new one.

    A resumed attempt is returned untouched, even after the assignment has
    closed. A new attempt snapshots duration, maximum score and whether manual
    grading is needed, and seeds one empty answer per question.
    """
    now = now or timezone.now()
    # Only the caller's own attempts are locked; a first-start race is settled by the unique constraint.
    prior_attempts = len(
        Attempt.objects.select_for_update().filter(assignment=assignment, user=user).values_list('id', flat=True)
    )

    existing = _in_progress_attempt(assignment, user)
    if existing is not None:
        return existing

    outcome = check_eligibility(assignment, prior_attempts, now=now)
    if outcome != Eligibility.ELIGIBLE:
        raise NotEligible(outcome, eligibility_message(outcome, assignment, prior_attempts))

    questions = list(assignment.questions.order_by('order'))
    try:
        with transaction.atomic():
            attempt = Attempt.objects.create(
                assignment=assignment,
                user=user,
                attempt_number=prior_attempts + 1,
                started_at=now,
                duration_minutes=assignment.duration_minutes,
                requires_manual_grading=any(q.kind == Question.Kind.ESSAY for q in questions),
                max_score=quantize_score(sum((q.points for q in questions), ZERO)),
            )
            Answer.objects.bulk_create([Answer(attempt=attempt, question=question) for question in questions])
    except IntegrityError:
        winner = _in_progress_attempt(assignment, user)
        if winner is None:
            raise
        logger.warning(
            'Concurrent start for assignment %s by user %s; resuming attempt %s',
            assignment.pk,
            user.pk,
            winner.pk,
        )
        return winner

    logger.info(
        'Started attempt %s (#%s) on assignment %s for user %s',
        attempt.pk,
        attempt.attempt_number,
        assignment.pk,
        user.pk,
    )
    return attempt


@transaction.atomic
def record_answer(attempt_id, user, question_id, selected_choice_id=None, text_answer=None, now=None):
    """
    Store the caller's answer to one question.

    A choice clears any text and a text (an empty string included) clears any
    choice. ``None`` means the field is not part of this write.
    """
    now = now or timezone.now()
    if selected_choice_id is not None and text_answer is not None:
        raise serializers.ValidationError({'detail': 'Send either a choice or a text answer, not both.'})

    attempt = _owned_attempt(attempt_id, user)
    if not attempt.is_in_progress:
        raise AttemptClosed()
    if attempt.is_expired(now):
        raise TimeExpired()

    answer = attempt.answers.filter(question_id=question_id).first()
    if answer is None:
        raise NotFound('Question not found for this attempt.')

    if selected_choice_id is not None:
        if not Choice.objects.filter(id=selected_choice_id, question_id=question_id).exists():
            raise NotFound('Choice not found for this question.')
        answer.selected_choice_id = selected_choice_id
        answer.text_answer = None
    elif text_answer is not None:
        answer.text_answer = text_answer
        answer.selected_choice_id = None
    else:
        return answer

    answer.answered_at = now
    answer.save(update_fields=['selected_choice', 'text_answer', 'answered_at'])
    return answer


@transaction.atomic
def finish_attempt(attempt_id, user, now=None):
    """
    Finalize an in-progress attempt. Finishing twice is a no-op.

    The answer set is re-read and scored under the attempt row lock, so no
    answer write can land between scoring and the status change.
    """
    now = now or timezone.now()
    attempt = _owned_attempt(attempt_id, user)
    if not attempt.is_in_progress:
        return attempt

    apply_score(attempt)
    attempt.submitted_at = now
    if attempt.requires_manual_grading:
        attempt.status = Attempt.Status.SUBMITTED
        attempt.final_score = None
    else:
        attempt.status = Attempt.Status.GRADED
        attempt.final_score = attempt.auto_score
        attempt.graded_at = now
    attempt.save(update_fields=['auto_score', 'final_score', 'submitted_at', 'status', 'graded_at'])
    logger.info(
        'Finished attempt %s with auto score %s (status %s)', attempt.pk, attempt.auto_score, attempt.status
    )
    return attempt


@transaction.atomic
def record_manual_grade(attempt_id, final_score, grader=None, now=None):
    """Set the final score of a submitted attempt and mark it graded."""
    now = now or timezone.now()
    attempt = _locked_attempt(attempt_id)
    if attempt.status != Attempt.Status.SUBMITTED:
        raise NotGradable('Only submitted attempts awaiting manual grading can be graded.')
    try:
        score = quantize_score(final_score)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise serializers.ValidationError({'final_score': ['A valid number is required.']}) from exc
    if score < ZERO or score > attempt.max_score:
        raise serializers.ValidationError(
            {'final_score': [f'Score must be between 0 and {attempt.max_score}.']}
        )
    attempt.final_score = score
    attempt.status = Attempt.Status.GRADED
    attempt.graded_at = now
    attempt.graded_by = grader
    attempt.save(update_fields=['final_score', 'status', 'graded_at', 'graded_by'])
    logger.info('Attempt %s graded manually with final score %s', attempt.pk, score)
    return attempt


@transaction.atomic
def regrade_attempt(attempt_id):
    """
    Recompute the automatic score of a finalized attempt.

    Running it again on unchanged answers yields the same score. A manually
    entered final score is left alone.
    """
    attempt = _locked_attempt(attempt_id)
    if attempt.is_in_progress:
        raise NotGradable('Attempts still in progress cannot be re-graded.')
    previous = attempt.auto_score
    apply_score(attempt)
    update_fields = ['auto_score']
    if not attempt.requires_manual_grading:
        attempt.final_score = attempt.auto_score
        update_fields.append('final_score')
    attempt.save(update_fields=update_fields)
    if previous != attempt.auto_score:
        logger.info('Re-graded attempt %s: auto score %s -> %s', attempt.pk, previous, attempt.auto_score)
    return attempt
