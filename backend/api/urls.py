from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AssignmentViewSet,
    AttemptGradeView,
    AttemptRegradeView,
    ClassroomViewSet,
    CSRFTokenView,
    LoginView,
    LogoutView,
    StudentAssignmentHistory,
    StudentAssignmentList,
    StudentAssignmentStart,
    StudentAttemptAnswer,
    StudentAttemptDetail,
    StudentAttemptFinish,
)

router = DefaultRouter()
router.register('classrooms', ClassroomViewSet, basename='classroom')
router.register('assignments', AssignmentViewSet, basename='assignment')

urlpatterns = [
    path('auth/csrf/', CSRFTokenView.as_view(), name='api-csrf'),
    path('auth/login/', LoginView.as_view(), name='api-login'),
    path('auth/logout/', LogoutView.as_view(), name='api-logout'),
    path('', include(router.urls)),
    path(
        'assignments/<int:assignment_id>/attempts/<int:attempt_id>/grade/',
        AttemptGradeView.as_view(),
        name='attempt-grade',
    ),
    path(
        'assignments/<int:assignment_id>/attempts/<int:attempt_id>/regrade/',
        AttemptRegradeView.as_view(),
        name='attempt-regrade',
    ),
    path('student/assignments/', StudentAssignmentList.as_view(), name='student-assignments'),
    path(
        'student/assignments/<int:assignment_id>/start/',
        StudentAssignmentStart.as_view(),
        name='student-assignment-start',
    ),
    path(
        'student/assignments/<int:assignment_id>/history/',
        StudentAssignmentHistory.as_view(),
        name='student-assignment-history',
    ),
    path('student/attempts/<int:attempt_id>/', StudentAttemptDetail.as_view(), name='student-attempt-detail'),
    path('student/attempts/<int:attempt_id>/answers/', StudentAttemptAnswer.as_view(), name='student-attempt-answer'),
    path('student/attempts/<int:attempt_id>/finish/', StudentAttemptFinish.as_view(), name='student-attempt-finish'),
]
