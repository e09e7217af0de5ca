from django.contrib import admin

from .models import Answer, Assignment, Attempt, Choice, Classroom, Question


@admin.register(Classroom)
class ClassroomAdmin(admin.ModelAdmin):
    list_display = ('name', 'subject', 'teacher', 'created_at')
    filter_horizontal = ('students',)


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('title', 'classroom', 'kind', 'duration_minutes', 'max_attempts', 'open_at', 'close_at')
    list_filter = ('kind',)
    inlines = [QuestionInline]


class ChoiceInline(admin.TabularInline):
    model = Choice
    extra = 0


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'order', 'kind', 'points')
    inlines = [ChoiceInline]


class AnswerInline(admin.TabularInline):
    model = Answer
    extra = 0
    can_delete = False
    readonly_fields = ('question', 'selected_choice', 'text_answer', 'is_correct', 'answered_at')


@admin.register(Attempt)
class AttemptAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'user', 'attempt_number', 'status', 'started_at', 'submitted_at', 'final_score')
    list_filter = ('status', 'requires_manual_grading')
    inlines = [AnswerInline]
