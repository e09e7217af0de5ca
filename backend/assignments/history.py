from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from django.db.models.functions import Coalesce

from .models import Attempt
from .scoring import ZERO, clamp_score, quantize_score


@dataclass
class AttemptSummary:
    attempt_id: int
    attempt_number: int
    status: str
    started_at: datetime
    submitted_at: Optional[datetime]
    duration_minutes: int
    requires_manual_grading: bool
    mcq_total: int
    mcq_correct: Optional[int]
    mcq_score: Optional[Decimal]
    mcq_max: Decimal
    essay_score: Optional[Decimal]
    essay_max: Decimal
    final_score: Optional[Decimal]
    final_max: Decimal

    @property
    def is_pending(self) -> bool:
        return self.final_score is None


def _answer_is_correct(answer) -> bool:
    if answer.is_correct is not None:
        return answer.is_correct
    if answer.selected_choice_id is None:
        return False
    return answer.selected_choice_id == answer.question.correct_choice_id()


def summarize_attempt(attempt) -> AttemptSummary:
    """
    Rebuild the score breakdown of one attempt for display.

    Stored ``auto_score`` and per-answer ``is_correct`` flags are preferred and
    recomputed from the selected choices when absent, so attempts recorded
    before those fields existed still report consistent numbers. Nothing is
    written back.
    """
    answers = list(attempt.answers.all())
    mcq_answers = [answer for answer in answers if answer.question.is_mcq]
    essay_answers = [answer for answer in answers if not answer.question.is_mcq]

    mcq_max = quantize_score(sum((answer.question.points for answer in mcq_answers), ZERO))
    essay_max = quantize_score(sum((answer.question.points for answer in essay_answers), ZERO))
    if attempt.status == Attempt.Status.IN_PROGRESS:
        # Live selections are never compared to the answer key.
        return _summary(attempt, len(mcq_answers), None, None, mcq_max, None, essay_max, None)

    correct_answers = [answer for answer in mcq_answers if _answer_is_correct(answer)]
    if attempt.auto_score is not None:
        mcq_score = quantize_score(attempt.auto_score)
    else:
        mcq_score = quantize_score(sum((answer.question.points for answer in correct_answers), ZERO))

    needs_manual = attempt.requires_manual_grading or bool(essay_answers)
    if needs_manual:
        final_score = attempt.final_score
        if final_score is None:
            essay_score = None
        else:
            # Legacy final scores may disagree with the MCQ part; clamp for display only.
            essay_score = quantize_score(clamp_score(final_score - mcq_score, ZERO, essay_max))
    else:
        essay_score = ZERO
        final_score = attempt.final_score if attempt.final_score is not None else mcq_score

    return _summary(
        attempt, len(mcq_answers), len(correct_answers), mcq_score, mcq_max, essay_score, essay_max, final_score
    )


def _summary(attempt, mcq_total, mcq_correct, mcq_score, mcq_max, essay_score, essay_max, final_score):
    return AttemptSummary(
        attempt_id=attempt.id,
        attempt_number=attempt.attempt_number,
        status=attempt.status,
        started_at=attempt.started_at,
        submitted_at=attempt.submitted_at,
        duration_minutes=attempt.duration_minutes,
        requires_manual_grading=attempt.requires_manual_grading,
        mcq_total=mcq_total,
        mcq_correct=mcq_correct,
        mcq_score=mcq_score,
        mcq_max=mcq_max,
        essay_score=essay_score,
        essay_max=essay_max,
        final_score=final_score,
        final_max=quantize_score(mcq_max + essay_max),
    )


def attempts_with_answers(queryset):
    return queryset.prefetch_related('answers__question__choices').order_by(
        Coalesce('submitted_at', 'started_at').desc(), '-id'
    )


def build_history(assignment, user) -> List[AttemptSummary]:
    """Summaries of one user's attempts on one assignment, newest first."""
    attempts = attempts_with_answers(Attempt.objects.filter(assignment=assignment, user=user))
    return [summarize_attempt(attempt) for attempt in attempts]
