from dataclasses import dataclass, field
from decimal import Decimal

from .models import Answer

SCORE_QUANTUM = Decimal('0.01')
ZERO = Decimal('0.00')


def quantize_score(value) -> Decimal:
    return Decimal(value).quantize(SCORE_QUANTUM)


def clamp_score(value, lower, upper) -> Decimal:
    return max(lower, min(value, upper))


@dataclass
class AttemptScore:
    auto_score: Decimal = ZERO
    # answer id -> correctness, multiple-choice answers only
    correctness: dict = field(default_factory=dict)


def score_answers(questions, answers) -> AttemptScore:
    """
    Compute the automatic score for one attempt.

    Each multiple-choice question earns its full points when the selected
    choice is the question's correct choice. Essay questions are never
    auto-scored and keep ``is_correct`` unset.
    """
    answers_by_question = {answer.question_id: answer for answer in answers}
    result = AttemptScore()
    total = ZERO
    for question in questions:
        if not question.is_mcq:
            continue
        answer = answers_by_question.get(question.id)
        if answer is None:
            continue
        correct_id = question.correct_choice_id()
        is_right = answer.selected_choice_id is not None and answer.selected_choice_id == correct_id
        result.correctness[answer.id] = is_right
        if is_right:
            total += question.points
    result.auto_score = quantize_score(total)
    return result


def apply_score(attempt) -> AttemptScore:
    """Score the attempt's stored answers and persist the outcome on the rows."""
    answers = list(attempt.answers.select_related('question').prefetch_related('question__choices'))
    questions = [answer.question for answer in answers]
    result = score_answers(questions, answers)
    updates = []
    for answer in answers:
        if answer.id in result.correctness:
            answer.is_correct = result.correctness[answer.id]
            updates.append(answer)
    if updates:
        Answer.objects.bulk_update(updates, ['is_correct'])
    attempt.auto_score = result.auto_score
    return result
