from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsStudent
from assignments.history import build_history
from assignments.models import Assignment, Attempt
from assignments.serializers import (
    AnswerSerializer,
    AnswerWriteSerializer,
    AttemptDetailSerializer,
    AttemptSerializer,
    AttemptSummarySerializer,
    StudentAssignmentSerializer,
)
from assignments.services import finish_attempt, record_answer, start_or_resume_attempt


def _enrolled_assignments(user):
    return Assignment.objects.filter(classroom__students=user).select_related('classroom')


def _attempt_detail(attempt_id, user):
    queryset = Attempt.objects.filter(user=user).select_related('assignment').prefetch_related(
        'answers__question__choices'
    )
    return get_object_or_404(queryset, id=attempt_id)


class StudentAssignmentList(APIView):
    permission_classes = [IsStudent]

    def get(self, request):
        assignments = (
            _enrolled_assignments(request.user)
            .annotate(attempts_used=Count('attempts', filter=Q(attempts__user=request.user)))
            .order_by('close_at', 'id')
        )
        serializer = StudentAssignmentSerializer(assignments, many=True, context={'now': timezone.now()})
        return Response(serializer.data)


class StudentAssignmentStart(APIView):
    permission_classes = [IsStudent]

    def post(self, request, assignment_id):
        assignment = get_object_or_404(_enrolled_assignments(request.user), id=assignment_id)
        attempt = start_or_resume_attempt(assignment, request.user)
        return Response(AttemptDetailSerializer(_attempt_detail(attempt.id, request.user)).data)


class StudentAssignmentHistory(APIView):
    permission_classes = [IsStudent]

    def get(self, request, assignment_id):
        assignment = get_object_or_404(_enrolled_assignments(request.user), id=assignment_id)
        summaries = build_history(assignment, request.user)
        return Response(
            {
                'assignment_id': assignment.id,
                'title': assignment.title,
                'max_attempts': assignment.max_attempts,
                'attempts': AttemptSummarySerializer(summaries, many=True).data,
            }
        )


class StudentAttemptDetail(APIView):
    permission_classes = [IsStudent]

    def get(self, request, attempt_id):
        attempt = _attempt_detail(attempt_id, request.user)
        return Response(AttemptDetailSerializer(attempt).data)


class StudentAttemptAnswer(APIView):
    permission_classes = [IsStudent]

    def post(self, request, attempt_id):
        serializer = AnswerWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        answer = record_answer(
            attempt_id,
            request.user,
            data['question'],
            selected_choice_id=data.get('selected_choice'),
            text_answer=data.get('text_answer'),
        )
        return Response(AnswerSerializer(answer).data)


class StudentAttemptFinish(APIView):
    permission_classes = [IsStudent]

    def post(self, request, attempt_id):
        attempt = finish_attempt(attempt_id, request.user)
        return Response(AttemptSerializer(attempt).data)
