from .auth import LoginView, LogoutView, CSRFTokenView
from .classroom import ClassroomViewSet
from .assignment import AssignmentViewSet
from .grading import AttemptGradeView, AttemptRegradeView
from .student import (
    StudentAssignmentList,
    StudentAssignmentStart,
    StudentAssignmentHistory,
    StudentAttemptDetail,
    StudentAttemptAnswer,
    StudentAttemptFinish,
)
