from django.contrib import admin

from .models import AdminProfile, InstructorProfile, LearnerProfile, UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "external_id", "role", "updated_at")
    list_filter = ("role",)
    search_fields = ("external_id", "user__email", "user__first_name", "user__last_name")


@admin.register(LearnerProfile)
class LearnerProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "points", "level", "badges_count", "courses_completed")


@admin.register(InstructorProfile)
class InstructorProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "total_courses", "total_students", "average_rating")


admin.site.register(AdminProfile)
