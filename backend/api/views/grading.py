from django.shortcuts import get_object_or_404
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import ensure_instructor
from accounts.permissions import IsInstructor
from assignments.models import Assignment, Attempt
from assignments.serializers import AttemptSerializer, ManualGradeSerializer
from assignments.services import record_manual_grade, regrade_attempt


def _gradable_attempt(request, assignment_id, attempt_id):
    instructor = ensure_instructor(request.user)
    assignments = Assignment.objects.all()
    if not (request.user.is_superuser or instructor.is_admin_instructor):
        assignments = assignments.filter(classroom__teacher=instructor)
    assignment = get_object_or_404(assignments, id=assignment_id)
    attempt = get_object_or_404(Attempt, assignment=assignment, id=attempt_id)
    return instructor, attempt


class AttemptGradeView(APIView):
    permission_classes = [IsInstructor]

    def post(self, request, assignment_id, attempt_id):
        instructor, attempt = _gradable_attempt(request, assignment_id, attempt_id)
        serializer = ManualGradeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attempt = record_manual_grade(attempt.id, serializer.validated_data['final_score'], grader=instructor)
        return Response(AttemptSerializer(attempt).data)


class AttemptRegradeView(APIView):
    permission_classes = [IsInstructor]

    def post(self, request, assignment_id, attempt_id):
        _, attempt = _gradable_attempt(request, assignment_id, attempt_id)
        attempt = regrade_attempt(attempt.id)
        return Response(AttemptSerializer(attempt).data)
