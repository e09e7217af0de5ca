from rest_framework import status
from rest_framework.exceptions import APIException


class NotEligible(APIException):
    """A new attempt may not start. ``reason`` carries the eligibility outcome."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You cannot start a new attempt for this assignment.'
    default_code = 'not_eligible'

    def __init__(self, reason, detail=None):
        self.reason = reason
        super().__init__(detail=detail, code=str(reason))


class TimeExpired(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Time is over for this attempt. Finish it to record your answers.'
    default_code = 'time_expired'


class AttemptClosed(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This attempt has already been submitted.'
    default_code = 'attempt_closed'


class NotGradable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This attempt cannot be graded in its current state.'
    default_code = 'not_gradable'
