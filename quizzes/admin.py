from django.contrib import admin

from .models import Badge, Quiz, QuizAttempt, QuizQuestion, QuizReward, UserBadge


class QuizQuestionInline(admin.TabularInline):
    model = QuizQuestion
    extra = 0
    fields = ("order_index", "question_text", "question_type", "correct_answer", "points")


class QuizRewardInline(admin.TabularInline):
    model = QuizReward
    extra = 0


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "lesson", "passing_score")
    search_fields = ("title", "course__title")
    inlines = [QuizQuestionInline, QuizRewardInline]


@admin.register(QuizAttempt)
class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ("quiz", "learner", "attempt_number", "score", "passed", "points_earned", "completed_at")
    list_filter = ("passed",)


@admin.register(Badge)
class BadgeAdmin(admin.ModelAdmin):
    list_display = ("name", "points_value", "rarity")


@admin.register(UserBadge)
class UserBadgeAdmin(admin.ModelAdmin):
    list_display = ("user", "badge", "earned_at")
