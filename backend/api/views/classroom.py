import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.models import Student, ensure_instructor
from accounts.permissions import IsInstructor
from accounts.serializers import StudentSerializer
from assignments.models import Classroom
from assignments.serializers import ClassroomSerializer

User = get_user_model()
logger = logging.getLogger(__name__)


class ClassroomViewSet(viewsets.ModelViewSet):
    serializer_class = ClassroomSerializer
    permission_classes = [IsInstructor]

    def get_queryset(self):
        instructor = ensure_instructor(self.request.user)
        return Classroom.objects.filter(teacher=instructor).select_related('teacher__user')

    def perform_create(self, serializer):
        serializer.save(teacher=ensure_instructor(self.request.user))

    @action(detail=True, methods=['get', 'post', 'delete'])
    def students(self, request, pk=None):
        classroom = self.get_object()
        if request.method == 'GET':
            enrolled = Student.objects.filter(user__enrolled_classrooms=classroom).select_related('user')
            return Response(StudentSerializer(enrolled, many=True).data)

        username = (request.data.get('username') or '').strip()
        if not username:
            return Response({'detail': 'username is required'}, status=status.HTTP_400_BAD_REQUEST)
        user = get_object_or_404(User, username=username)
        if request.method == 'DELETE':
            classroom.students.remove(user)
            logger.info('Removed %s from classroom %s', username, classroom.id)
            return Response(status=status.HTTP_204_NO_CONTENT)
        if not hasattr(user, 'student'):
            return Response({'detail': 'Only students can be enrolled.'}, status=status.HTTP_400_BAD_REQUEST)
        classroom.students.add(user)
        logger.info('Enrolled %s in classroom %s', username, classroom.id)
        return Response({'detail': 'Student enrolled'}, status=status.HTTP_201_CREATED)
