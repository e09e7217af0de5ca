from decimal import Decimal

from django.conf import settings
from django.db import transaction
from rest_framework import serializers

from .eligibility import availability_status
from .models import Answer, Assignment, Attempt, Choice, Classroom, Question


class ClassroomSerializer(serializers.ModelSerializer):
    teacher_username = serializers.CharField(source='teacher.username', read_only=True)
    student_count = serializers.SerializerMethodField()

    class Meta:
        model = Classroom
        fields = ['id', 'name', 'subject', 'teacher', 'teacher_username', 'student_count', 'created_at']
        read_only_fields = ['teacher', 'created_at']

    def get_student_count(self, obj):
        return obj.students.count()


class ChoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Choice
        fields = ['id', 'text', 'is_correct', 'order']
        read_only_fields = ['order']


class QuestionSerializer(serializers.ModelSerializer):
    choices = ChoiceSerializer(many=True, required=False)
    points = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'), default=Decimal('1.00')
    )

    class Meta:
        model = Question
        fields = ['id', 'kind', 'prompt', 'points', 'order', 'choices']
        read_only_fields = ['order']


class AssignmentSerializer(serializers.ModelSerializer):
    questions = QuestionSerializer(many=True, required=False)
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)
    attempt_count = serializers.SerializerMethodField()

    class Meta:
        model = Assignment
        fields = [
            'id',
            'classroom',
            'classroom_name',
            'title',
            'description',
            'kind',
            'duration_minutes',
            'max_attempts',
            'open_at',
            'close_at',
            'created_at',
            'attempt_count',
            'questions',
        ]
        read_only_fields = ['kind', 'created_at']

    def get_attempt_count(self, obj):
        return obj.attempts.count()

    def validate_classroom(self, value):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if user is not None and not user.is_superuser and value.teacher.user_id != user.id:
            raise serializers.ValidationError('You do not own this classroom.')
        return value

    def validate_questions(self, value):
        if not value:
            raise serializers.ValidationError('At least one question is required.')
        errors = []
        has_errors = False
        for question in value:
            question_errors = {}
            choices = question.get('choices') or []
            if question.get('kind', Question.Kind.MCQ) == Question.Kind.MCQ:
                if len(choices) < 2:
                    question_errors['choices'] = ['MCQ must have at least 2 choices.']
                elif sum(1 for choice in choices if choice.get('is_correct')) != 1:
                    question_errors['choices'] = ['Mark exactly one choice as correct.']
            elif choices:
                question_errors['choices'] = ['Essay questions cannot have choices.']
            if not (question.get('prompt') or '').strip():
                question_errors['prompt'] = ['Prompt is required.']
            has_errors = has_errors or bool(question_errors)
            errors.append(question_errors)
        if has_errors:
            raise serializers.ValidationError(errors)
        return value

    def validate(self, attrs):
        open_at = attrs.get('open_at', getattr(self.instance, 'open_at', None))
        close_at = attrs.get('close_at', getattr(self.instance, 'close_at', None))
        if open_at and close_at and close_at <= open_at:
            raise serializers.ValidationError({'close_at': 'Due date must be after Open date.'})
        if self.instance is None and 'questions' not in attrs:
            raise serializers.ValidationError({'questions': ['At least one question is required.']})
        return attrs

    def create(self, validated_data):
        questions = validated_data.pop('questions', [])
        with transaction.atomic():
            assignment = Assignment.objects.create(**validated_data)
            self._write_questions(assignment, questions)
        return assignment

    def update(self, instance, validated_data):
        questions = validated_data.pop('questions', None)
        with transaction.atomic():
            assignment = super().update(instance, validated_data)
            if questions is not None:
                # Attempts snapshot and reference the question set they started with.
                if assignment.attempts.exists():
                    raise serializers.ValidationError(
                        {'questions': ['Questions cannot be changed once students have started attempts.']}
                    )
                assignment.questions.all().delete()
                self._write_questions(assignment, questions)
        return assignment

    def _write_questions(self, assignment, questions):
        for order, question_data in enumerate(questions, start=1):
            choices = question_data.pop('choices', [])
            question = Question.objects.create(assignment=assignment, order=order, **question_data)
            if question.kind == Question.Kind.MCQ:
                Choice.objects.bulk_create(
                    [
                        Choice(
                            question=question,
                            order=index,
                            text=choice.get('text', ''),
                            is_correct=bool(choice.get('is_correct')),
                        )
                        for index, choice in enumerate(choices, start=1)
                    ]
                )
        assignment.refresh_kind()


class StudentAssignmentSerializer(serializers.ModelSerializer):
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)
    status = serializers.SerializerMethodField()
    attempts_used = serializers.SerializerMethodField()

    class Meta:
        model = Assignment
        fields = [
            'id',
            'classroom',
            'classroom_name',
            'title',
            'description',
            'kind',
            'duration_minutes',
            'max_attempts',
            'open_at',
            'close_at',
            'status',
            'attempts_used',
        ]

    def get_status(self, obj):
        return availability_status(obj, now=self.context.get('now'))

    def get_attempts_used(self, obj):
        # Annotated by the listing view for the requesting student.
        return getattr(obj, 'attempts_used', 0)


class TakeChoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Choice
        fields = ['id', 'text', 'order']


class TakeAnswerSerializer(serializers.ModelSerializer):
    question_id = serializers.IntegerField(source='question.id', read_only=True)
    order = serializers.IntegerField(source='question.order', read_only=True)
    kind = serializers.CharField(source='question.kind', read_only=True)
    prompt = serializers.CharField(source='question.prompt', read_only=True)
    points = serializers.DecimalField(source='question.points', max_digits=5, decimal_places=2, read_only=True)
    choices = TakeChoiceSerializer(source='question.choices', many=True, read_only=True)
    is_answered = serializers.BooleanField(read_only=True)

    class Meta:
        model = Answer
        fields = [
            'id',
            'question_id',
            'order',
            'kind',
            'prompt',
            'points',
            'choices',
            'selected_choice',
            'text_answer',
            'is_answered',
            'answered_at',
        ]


class AttemptSerializer(serializers.ModelSerializer):
    assignment_title = serializers.CharField(source='assignment.title', read_only=True)
    due_at = serializers.DateTimeField(read_only=True)

    class Meta:
        model = Attempt
        fields = [
            'id',
            'assignment',
            'assignment_title',
            'attempt_number',
            'status',
            'started_at',
            'submitted_at',
            'due_at',
            'duration_minutes',
            'requires_manual_grading',
            'max_score',
            'auto_score',
            'final_score',
        ]
        read_only_fields = fields


class AttemptDetailSerializer(AttemptSerializer):
    answers = TakeAnswerSerializer(many=True, read_only=True)
    answered_count = serializers.SerializerMethodField()

    class Meta(AttemptSerializer.Meta):
        fields = AttemptSerializer.Meta.fields + ['answered_count', 'answers']
        read_only_fields = fields

    def get_answered_count(self, obj):
        return sum(1 for answer in obj.answers.all() if answer.is_answered)


class AnswerWriteSerializer(serializers.Serializer):
    question = serializers.IntegerField()
    selected_choice = serializers.IntegerField(required=False, allow_null=True)
    text_answer = serializers.CharField(
        required=False,
        allow_null=True,
        allow_blank=True,
        trim_whitespace=False,
        max_length=settings.ANSWER_MAX_LENGTH,
    )

    def validate(self, attrs):
        if attrs.get('selected_choice') is not None and attrs.get('text_answer') is not None:
            raise serializers.ValidationError('Send either a choice or a text answer, not both.')
        return attrs


class AnswerSerializer(serializers.ModelSerializer):
    is_answered = serializers.BooleanField(read_only=True)

    class Meta:
        model = Answer
        fields = ['id', 'question', 'selected_choice', 'text_answer', 'is_answered', 'answered_at']
        read_only_fields = fields


class AttemptSummarySerializer(serializers.Serializer):
    attempt_id = serializers.IntegerField()
    attempt_number = serializers.IntegerField()
    status = serializers.CharField()
    started_at = serializers.DateTimeField()
    submitted_at = serializers.DateTimeField(allow_null=True)
    duration_minutes = serializers.IntegerField()
    requires_manual_grading = serializers.BooleanField()
    is_pending = serializers.BooleanField()
    mcq_total = serializers.IntegerField()
    mcq_correct = serializers.IntegerField(allow_null=True)
    mcq_score = serializers.DecimalField(max_digits=8, decimal_places=2, allow_null=True)
    mcq_max = serializers.DecimalField(max_digits=8, decimal_places=2)
    essay_score = serializers.DecimalField(max_digits=8, decimal_places=2, allow_null=True)
    essay_max = serializers.DecimalField(max_digits=8, decimal_places=2)
    final_score = serializers.DecimalField(max_digits=8, decimal_places=2, allow_null=True)
    final_max = serializers.DecimalField(max_digits=8, decimal_places=2)


class ManualGradeSerializer(serializers.Serializer):
    final_score = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=Decimal('0'))
