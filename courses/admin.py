from django.contrib import admin

from .models import Course, Enrollment, Lesson, LessonProgress
from .models_feedback import Review
from .models_invitations import CourseInvitation


class LessonInline(admin.TabularInline):
    model = Lesson
    extra = 0
    fields = ("order_index", "title", "lesson_type", "is_free_preview")


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "instructor", "status", "visibility", "enrollment_count", "updated_at")
    list_filter = ("status", "visibility", "access_type")
    search_fields = ("title", "description", "instructor__email")
    readonly_fields = ("slug", "enrollment_count", "average_rating", "total_reviews", "published_at")
    inlines = [LessonInline]


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("course", "learner", "status", "progress_percentage", "enrolled_at")
    list_filter = ("status",)
    search_fields = ("course__title", "learner__email")


@admin.register(LessonProgress)
class LessonProgressAdmin(admin.ModelAdmin):
    list_display = ("enrollment", "lesson", "is_completed", "time_spent_minutes")


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("course", "learner", "rating", "is_published", "created_at")
    list_filter = ("rating", "is_published")


@admin.register(CourseInvitation)
class CourseInvitationAdmin(admin.ModelAdmin):
    list_display = ("course", "email", "status", "expires_at")
    list_filter = ("status",)
    search_fields = ("email", "course__title")
