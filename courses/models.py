"""Courses, lessons, enrollments and lesson progress.

A `Course` is owned by one instructor (or admin). Lessons are ordered
within their course by a dense `order_index`. An `Enrollment` links one
learner to one course, and `LessonProgress` records per-lesson completion
for that enrollment.
"""
from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class CourseStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"
    ARCHIVED = "archived", "Archived"


class CourseVisibility(models.TextChoices):
    EVERYONE = "everyone", "Everyone"
    SIGNED_IN = "signed_in", "Signed-in users"


class AccessType(models.TextChoices):
    OPEN = "open", "Open"
    INVITATION = "invitation", "Invitation only"
    PAYMENT = "payment", "Paid"


class LessonType(models.TextChoices):
    VIDEO = "video", "Video"
    TEXT = "text", "Text"
    QUIZ = "quiz", "Quiz"
    ASSIGNMENT = "assignment", "Assignment"


class EnrollmentStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    DROPPED = "dropped", "Dropped"


class Course(models.Model):
    """A course authored by an instructor."""

    instructor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="owned_courses")
    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    thumbnail_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=16, choices=CourseStatus.choices, default=CourseStatus.DRAFT, db_index=True)
    visibility = models.CharField(max_length=16, choices=CourseVisibility.choices, default=CourseVisibility.EVERYONE)
    access_type = models.CharField(max_length=16, choices=AccessType.choices, default=AccessType.OPEN)
    category = models.CharField(max_length=100, blank=True)
    tags = models.JSONField(default=list, blank=True)
    difficulty_level = models.CharField(max_length=32, blank=True)
    estimated_duration_hours = models.DecimalField(max_digits=6, decimal_places=1, null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    is_free = models.BooleanField(default=True)

    # Denormalised counters maintained by signals
    enrollment_count = models.PositiveIntegerField(default=0)
    average_rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_reviews = models.PositiveIntegerField(default=0)

    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.title}"

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED


class Lesson(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="lessons")
    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100)
    description = models.TextField(blank=True)
    lesson_type = models.CharField(max_length=16, choices=LessonType.choices)
    content = models.TextField(blank=True)
    video_url = models.URLField(max_length=500, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    order_index = models.PositiveIntegerField(default=0)
    is_free_preview = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["order_index", "id"]
        constraints = [
            models.UniqueConstraint(fields=["course", "slug"], name="uniq_lesson_slug_per_course"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.order_index}: {self.title}"


class Enrollment(models.Model):
    """Link a learner to a course."""

    learner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="enrollments")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrollments")
    status = models.CharField(max_length=16, choices=EnrollmentStatus.choices, default=EnrollmentStatus.ACTIVE)
    progress_percentage = models.PositiveSmallIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    time_spent_minutes = models.PositiveIntegerField(default=0)
    enrolled_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_accessed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-enrolled_at"]
        constraints = [
            models.UniqueConstraint(fields=["learner", "course"], name="uniq_enrollment_learner_course"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.learner_id}->{self.course_id}"


class LessonProgress(models.Model):
    enrollment = models.ForeignKey(Enrollment, on_delete=models.CASCADE, related_name="lesson_progress")
    lesson = models.ForeignKey(Lesson, on_delete=models.CASCADE, related_name="progress")
    is_completed = models.BooleanField(default=False)
    time_spent_minutes = models.PositiveIntegerField(default=0)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["enrollment", "lesson"], name="uniq_progress_enrollment_lesson"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.enrollment_id}:{self.lesson_id}={'done' if self.is_completed else 'open'}"


# Register the models that live in sibling modules with the app.
from .models_feedback import Review  # noqa: E402,F401
from .models_invitations import CourseInvitation  # noqa: E402,F401
