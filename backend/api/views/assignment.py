import logging

from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.models import display_name_for, ensure_instructor
from accounts.permissions import IsInstructor
from assignments.history import attempts_with_answers, summarize_attempt
from assignments.models import Assignment
from assignments.serializers import AssignmentSerializer, AttemptSummarySerializer

logger = logging.getLogger(__name__)

GRADEBOOK_HEADERS = [
    'Student',
    'Username',
    'Attempt',
    'Status',
    'Started',
    'Submitted',
    'MCQ Correct',
    'MCQ Total',
    'MCQ Score',
    'MCQ Max',
    'Essay Score',
    'Essay Max',
    'Final Score',
    'Final Max',
]


def _excel_datetime(value):
    # openpyxl refuses timezone-aware datetimes.
    if value is None:
        return None
    return timezone.localtime(value).replace(tzinfo=None)


class AssignmentViewSet(viewsets.ModelViewSet):
    serializer_class = AssignmentSerializer
    permission_classes = [IsInstructor]

    def get_queryset(self):
        instructor = ensure_instructor(self.request.user)
        return (
            Assignment.objects.filter(classroom__teacher=instructor)
            .select_related('classroom')
            .prefetch_related('questions__choices')
        )

    def perform_create(self, serializer):
        serializer.save(created_by=ensure_instructor(self.request.user))

    @action(detail=True, methods=['get'])
    def attempts(self, request, pk=None):
        assignment = self.get_object()
        attempts = attempts_with_answers(assignment.attempts.select_related('user'))
        payload = []
        for attempt in attempts:
            entry = AttemptSummarySerializer(summarize_attempt(attempt)).data
            entry['user_id'] = attempt.user_id
            entry['username'] = attempt.user.get_username()
            entry['student_name'] = display_name_for(attempt.user)
            payload.append(entry)
        return Response(payload)

    @action(detail=True, methods=['get'])
    def gradebook(self, request, pk=None):
        assignment = self.get_object()
        attempts = list(attempts_with_answers(assignment.attempts.select_related('user')))

        wb = Workbook()
        ws = wb.active
        ws.title = 'Gradebook'
        ws.append(GRADEBOOK_HEADERS)
        for attempt in attempts:
            summary = summarize_attempt(attempt)
            ws.append(
                [
                    display_name_for(attempt.user),
                    attempt.user.get_username(),
                    summary.attempt_number,
                    attempt.get_status_display(),
                    _excel_datetime(summary.started_at),
                    _excel_datetime(summary.submitted_at),
                    summary.mcq_correct if summary.mcq_correct is not None else 'Pending',
                    summary.mcq_total,
                    float(summary.mcq_score) if summary.mcq_score is not None else 'Pending',
                    float(summary.mcq_max),
                    float(summary.essay_score) if summary.essay_score is not None else 'Pending',
                    float(summary.essay_max),
                    float(summary.final_score) if summary.final_score is not None else 'Pending',
                    float(summary.final_max),
                ]
            )

        response = HttpResponse(content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        response['Content-Disposition'] = f'attachment; filename=assignment_{assignment.id}_gradebook.xlsx'
        wb.save(response)
        logger.info('Exported gradebook for assignment %s with %s attempts', assignment.id, len(attempts))
        return response
