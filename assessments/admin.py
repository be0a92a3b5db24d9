from django.contrib import admin

from .models import ExamSession, Violation, ExamAttempt, Answer


class ViolationInline(admin.TabularInline):
    model = Violation
    extra = 0
    can_delete = False
    readonly_fields = ('sequence', 'kind', 'detail', 'occurred_at', 'recorded_at')


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'course', 'status', 'end_reason', 'violation_count', 'start_time')
    list_filter = ('status', 'end_reason')
    inlines = [ViolationInline]


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'course', 'score', 'grade', 'passed', 'scored_at')
    list_filter = ('passed', 'grade')


admin.site.register(Answer)
