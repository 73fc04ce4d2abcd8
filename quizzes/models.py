"""Quizzes, questions, per-attempt rewards, attempts and badges."""
from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from courses.models import Course, Lesson


class QuestionType(models.TextChoices):
    MULTIPLE_CHOICE = "multiple_choice", "Multiple choice"
    TRUE_FALSE = "true_false", "True/false"
    SHORT_ANSWER = "short_answer", "Short answer"


class Quiz(models.Model):
    """A quiz attached to a course, one of its lessons, or both."""

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="quizzes", null=True, blank=True)
    lesson = models.ForeignKey(Lesson, on_delete=models.CASCADE, related_name="quizzes", null=True, blank=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    passing_score = models.PositiveSmallIntegerField(
        default=70, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    time_limit_minutes = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.title

    @property
    def owning_course_id(self):
        if self.course_id:
            return self.course_id
        return self.lesson.course_id if self.lesson_id else None


class QuizQuestion(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="questions")
    question_text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices)
    options = models.JSONField(default=list, blank=True)
    correct_answer = models.TextField()
    points = models.PositiveIntegerField(default=1)
    explanation = models.TextField(blank=True)
    order_index = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["order_index", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.question_text[:50]


class QuizReward(models.Model):
    """Points granted for passing on a given attempt number."""

    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="rewards")
    attempt_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    points_awarded = models.PositiveIntegerField()

    class Meta:
        ordering = ["attempt_number"]
        constraints = [
            models.UniqueConstraint(fields=["quiz", "attempt_number"], name="uniq_reward_quiz_attempt"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"#{self.attempt_number}: {self.points_awarded}"


class QuizAttempt(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="attempts")
    learner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="quiz_attempts")
    attempt_number = models.PositiveIntegerField()
    score = models.PositiveSmallIntegerField(default=0)
    passed = models.BooleanField(default=False)
    points_earned = models.PositiveIntegerField(default=0)
    answers = models.JSONField(default=dict, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-completed_at"]
        constraints = [
            models.UniqueConstraint(fields=["quiz", "learner", "attempt_number"], name="uniq_attempt_number"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.learner_id}@{self.quiz_id} #{self.attempt_number}"


class BadgeRarity(models.TextChoices):
    COMMON = "common", "Common"
    UNCOMMON = "uncommon", "Uncommon"
    RARE = "rare", "Rare"
    EPIC = "epic", "Epic"
    LEGENDARY = "legendary", "Legendary"


class Badge(models.Model):
    """A points tier. Earned once the learner's points reach `points_value`."""

    name = models.CharField(max_length=64, unique=True)
    description = models.CharField(max_length=255, blank=True)
    icon_url = models.CharField(max_length=500, blank=True)
    points_value = models.PositiveIntegerField()
    rarity = models.CharField(max_length=16, choices=BadgeRarity.choices, default=BadgeRarity.COMMON)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["points_value"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class UserBadge(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="badges")
    badge = models.ForeignKey(Badge, on_delete=models.CASCADE, related_name="holders")
    earned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-earned_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "badge"], name="uniq_user_badge"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.user_id}:{self.badge_id}"
