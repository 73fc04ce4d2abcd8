"""Serializers for REST API v1.

Output serializers are plain `ModelSerializer`s. Write endpoints take a
separate input serializer that lists exactly the fields a caller may set;
anything else in the body is ignored.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from accounts.models import InstructorProfile, LearnerProfile
from accounts.roles import Role
from courses.models import (
    AccessType,
    Course,
    CourseStatus,
    CourseVisibility,
    Enrollment,
    Lesson,
    LessonProgress,
    LessonType,
)
from courses.models_feedback import Review
from courses.models_invitations import CourseInvitation
from quizzes.models import Badge, QuestionType, Quiz, QuizAttempt, QuizQuestion, QuizReward, UserBadge

User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    external_id = serializers.CharField(source="profile.external_id", read_only=True)
    role = serializers.CharField(source="profile.role", read_only=True)
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "external_id", "email", "first_name", "last_name", "full_name", "role")

    def get_full_name(self, obj) -> str:
        return obj.get_full_name() or obj.email


# Courses ---------------------------------------------------------------------

class CourseSerializer(serializers.ModelSerializer):
    lessons_count = serializers.IntegerField(read_only=True, default=0)
    views_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Course
        fields = (
            "id",
            "instructor",
            "title",
            "slug",
            "description",
            "thumbnail_url",
            "status",
            "visibility",
            "access_type",
            "category",
            "tags",
            "difficulty_level",
            "estimated_duration_hours",
            "price",
            "is_free",
            "enrollment_count",
            "average_rating",
            "total_reviews",
            "lessons_count",
            "views_count",
            "published_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class CourseWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    thumbnail_url = serializers.URLField(required=False, allow_blank=True, max_length=500)
    status = serializers.ChoiceField(choices=CourseStatus.choices, required=False)
    visibility = serializers.ChoiceField(choices=CourseVisibility.choices, required=False)
    access_type = serializers.ChoiceField(choices=AccessType.choices, required=False)
    category = serializers.CharField(required=False, allow_blank=True, max_length=100)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    difficulty_level = serializers.CharField(required=False, allow_blank=True, max_length=32)
    estimated_duration_hours = serializers.DecimalField(
        max_digits=6, decimal_places=1, required=False, allow_null=True, min_value=0
    )
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    is_free = serializers.BooleanField(required=False)


class LessonSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lesson
        fields = (
            "id",
            "course",
            "title",
            "slug",
            "description",
            "lesson_type",
            "content",
            "video_url",
            "duration_minutes",
            "order_index",
            "is_free_preview",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class LessonOutlineSerializer(serializers.ModelSerializer):
    """Lesson without its content, for learners not (yet) enrolled."""

    class Meta:
        model = Lesson
        fields = ("id", "title", "slug", "description", "lesson_type", "duration_minutes", "order_index", "is_free_preview")
        read_only_fields = fields


class LessonWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    lesson_type = serializers.ChoiceField(choices=LessonType.choices)
    content = serializers.CharField(required=False, allow_blank=True)
    video_url = serializers.URLField(required=False, allow_blank=True, max_length=500)
    duration_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    order_index = serializers.IntegerField(required=False, min_value=0)
    is_free_preview = serializers.BooleanField(required=False)


# Quizzes ---------------------------------------------------------------------

class QuizSerializer(serializers.ModelSerializer):
    questions_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Quiz
        fields = (
            "id",
            "course",
            "lesson",
            "title",
            "description",
            "passing_score",
            "time_limit_minutes",
            "questions_count",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class QuizWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    passing_score = serializers.IntegerField(required=False, min_value=0, max_value=100)
    time_limit_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    lesson_id = serializers.IntegerField(required=False, allow_null=True)


class QuizQuestionSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuizQuestion
        fields = (
            "id",
            "quiz",
            "question_text",
            "question_type",
            "options",
            "correct_answer",
            "points",
            "explanation",
            "order_index",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class LearnerQuestionSerializer(serializers.ModelSerializer):
    """Question as shown to a learner taking the quiz: no answer key."""

    class Meta:
        model = QuizQuestion
        fields = ("id", "question_text", "question_type", "options", "points", "order_index")
        read_only_fields = fields


class QuestionWriteSerializer(serializers.Serializer):
    question_text = serializers.CharField()
    question_type = serializers.ChoiceField(choices=QuestionType.choices)
    options = serializers.ListField(child=serializers.CharField(), required=False)
    correct_answer = serializers.CharField()
    points = serializers.IntegerField(required=False, min_value=0)
    explanation = serializers.CharField(required=False, allow_blank=True)
    order_index = serializers.IntegerField(required=False, min_value=0)


class QuizRewardSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuizReward
        fields = ("id", "attempt_number", "points_awarded")
        read_only_fields = fields


class RewardItemSerializer(serializers.Serializer):
    attempt_number = serializers.IntegerField(min_value=1)
    points_awarded = serializers.IntegerField(min_value=0)


class RewardsReplaceSerializer(serializers.Serializer):
    rewards = RewardItemSerializer(many=True, allow_empty=True)

    def validate_rewards(self, value):
        numbers = [item["attempt_number"] for item in value]
        if len(numbers) != len(set(numbers)):
            raise serializers.ValidationError("Attempt numbers must be unique.")
        return value


class QuizAttemptSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuizAttempt
        fields = (
            "id",
            "quiz",
            "attempt_number",
            "score",
            "passed",
            "points_earned",
            "answers",
            "started_at",
            "completed_at",
        )
        read_only_fields = fields


class AttemptInputSerializer(serializers.Serializer):
    answers = serializers.DictField(child=serializers.JSONField(allow_null=True))
    started_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate_answers(self, value):
        for key, answer in value.items():
            if isinstance(answer, (dict, list)):
                raise serializers.ValidationError({key: ["Expected a single answer value."]})
        return value


class BadgeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Badge
        fields = ("id", "name", "description", "icon_url", "points_value", "rarity")
        read_only_fields = fields


class UserBadgeSerializer(serializers.ModelSerializer):
    badge = BadgeSerializer(read_only=True)

    class Meta:
        model = UserBadge
        fields = ("id", "badge", "earned_at")
        read_only_fields = fields


# Enrollments, progress, reviews, invitations ----------------------------------

class CourseSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ("id", "title", "slug", "thumbnail_url", "category", "difficulty_level", "instructor")
        read_only_fields = fields


class EnrollmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Enrollment
        fields = (
            "id",
            "course",
            "learner",
            "status",
            "progress_percentage",
            "time_spent_minutes",
            "enrolled_at",
            "completed_at",
            "last_accessed_at",
        )
        read_only_fields = fields


class LearnerEnrollmentSerializer(EnrollmentSerializer):
    course = CourseSummarySerializer(read_only=True)


class AttendeeSerializer(EnrollmentSerializer):
    learner = UserSummarySerializer(read_only=True)


class LessonProgressSerializer(serializers.ModelSerializer):
    class Meta:
        model = LessonProgress
        fields = ("id", "enrollment", "lesson", "is_completed", "time_spent_minutes", "completed_at", "updated_at")
        read_only_fields = fields


class ProgressInputSerializer(serializers.Serializer):
    lesson_id = serializers.IntegerField()
    is_completed = serializers.BooleanField(default=False)
    time_spent_minutes = serializers.IntegerField(default=0, min_value=0)


class ReviewSerializer(serializers.ModelSerializer):
    learner_name = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = ("id", "course", "learner", "learner_name", "rating", "review_text", "helpful_count", "created_at", "updated_at")
        read_only_fields = fields

    def get_learner_name(self, obj) -> str:
        return obj.learner.get_full_name() or "Anonymous"


class ReviewInputSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review_text = serializers.CharField(required=False, allow_blank=True, default="")


class InvitationSerializer(serializers.ModelSerializer):
    class Meta:
        model = CourseInvitation
        fields = ("id", "course", "email", "status", "token", "expires_at", "accepted_at", "created_at")
        read_only_fields = fields


class InvitationCreateSerializer(serializers.Serializer):
    emails = serializers.ListField(child=serializers.EmailField(), allow_empty=False, max_length=200)


# Profiles --------------------------------------------------------------------

class LearnerProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = LearnerProfile
        fields = (
            "points",
            "level",
            "badges_count",
            "courses_completed",
            "total_learning_time_minutes",
            "streak_days",
            "last_activity_date",
            "bio",
        )
        read_only_fields = fields


class InstructorProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = InstructorProfile
        fields = (
            "bio",
            "expertise",
            "years_experience",
            "website_url",
            "linkedin_url",
            "average_rating",
            "total_students",
            "total_courses",
        )
        read_only_fields = ("average_rating", "total_students", "total_courses")
        extra_kwargs = {"expertise": {"required": False}}

    def validate_expertise(self, value):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise serializers.ValidationError("Expected a list of strings.")
        return value


# Users and roles -------------------------------------------------------------

class MirroredUserSerializer(serializers.ModelSerializer):
    """A mirrored identity provider user, keyed by the provider's id."""

    id = serializers.CharField(source="profile.external_id", read_only=True)
    role = serializers.CharField(source="profile.role", read_only=True)
    image_url = serializers.CharField(source="profile.avatar_url", read_only=True)
    created_at = serializers.DateTimeField(source="profile.created_at", read_only=True)
    updated_at = serializers.DateTimeField(source="profile.updated_at", read_only=True)

    class Meta:
        model = User
        fields = ("id", "email", "first_name", "last_name", "image_url", "role", "created_at", "updated_at")
        read_only_fields = fields


class UserCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True, allow_null=True)
    password = serializers.CharField(min_length=8, write_only=True, trim_whitespace=False)
    role = serializers.ChoiceField(choices=Role.choices, default=Role.LEARNER)


class UserUpdateSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    password = serializers.CharField(min_length=8, required=False, write_only=True, trim_whitespace=False)


class RoleInputSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices, error_messages={"invalid_choice": "Invalid role"})


class SelfRoleSerializer(RoleInputSerializer):
    admin_code = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
