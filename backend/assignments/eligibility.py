from django.db import models
from django.utils import timezone


class Eligibility(models.TextChoices):
    ELIGIBLE = 'eligible', 'Eligible'
    NOT_YET_OPEN = 'not_yet_open', 'This assignment is not open yet.'
    CLOSED = 'closed', 'This assignment is closed. You cannot start a new attempt.'
    ATTEMPTS_EXHAUSTED = 'attempts_exhausted', 'You have reached the attempt limit.'


def check_eligibility(assignment, prior_attempts, now=None, has_in_progress=False):
    """
    Decide whether a new attempt may start.

    Window reasons are reported before the attempt quota: a closed assignment
    with no attempts left reports ``CLOSED``. An in-progress attempt keeps the
    caller past the close instant, since closing only stops new starts.
    """
    now = now or timezone.now()
    if assignment.open_at and now < assignment.open_at:
        return Eligibility.NOT_YET_OPEN
    if assignment.close_at and now > assignment.close_at and not has_in_progress:
        return Eligibility.CLOSED
    if assignment.max_attempts > 0 and prior_attempts >= assignment.max_attempts:
        return Eligibility.ATTEMPTS_EXHAUSTED
    return Eligibility.ELIGIBLE


def eligibility_message(outcome, assignment, prior_attempts):
    if outcome == Eligibility.ATTEMPTS_EXHAUSTED:
        return f'You have reached the attempt limit ({prior_attempts} / {assignment.max_attempts}).'
    return Eligibility(outcome).label


def availability_status(assignment, now=None):
    """Window status shown next to an assignment in the student listing."""
    now = now or timezone.now()
    if assignment.open_at and now < assignment.open_at:
        return 'Not Open'
    if assignment.close_at and now > assignment.close_at:
        return 'Closed'
    return 'Open'
