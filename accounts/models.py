"""Accounts models: the local user mirror and role-specific profiles.

Users live in the hosted identity provider. Each one is mirrored as a
Django `User` plus a `UserProfile` carrying the provider's user id and the
platform role. Role profiles hold per-role data and are created when a
user takes on that role.
"""
from __future__ import annotations

from django.conf import settings
from django.db import models

from .roles import Role


class UserProfile(models.Model):
    """Profile linked to a Django auth user.

    - `external_id`: the identity provider's user id (the mirror key)
    - `role`: the platform role mirrored from provider metadata
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    external_id = models.CharField(max_length=64, unique=True, null=True, blank=True)
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.LEARNER, db_index=True)
    avatar_url = models.URLField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover (string repr convenience)
        return f"Profile<{self.user.username}:{self.role}>"


class LearnerProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="learner_profile")
    points = models.PositiveIntegerField(default=0)
    level = models.PositiveIntegerField(default=1)
    badges_count = models.PositiveIntegerField(default=0)
    courses_completed = models.PositiveIntegerField(default=0)
    total_learning_time_minutes = models.PositiveIntegerField(default=0)
    streak_days = models.PositiveIntegerField(default=0)
    last_activity_date = models.DateField(null=True, blank=True)
    bio = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"Learner<{self.user_id}:{self.points}pts>"


class InstructorProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="instructor_profile")
    bio = models.TextField(blank=True)
    expertise = models.JSONField(default=list, blank=True)
    years_experience = models.PositiveSmallIntegerField(null=True, blank=True)
    website_url = models.URLField(max_length=500, blank=True)
    linkedin_url = models.URLField(max_length=500, blank=True)
    average_rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_students = models.PositiveIntegerField(default=0)
    total_courses = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"Instructor<{self.user_id}>"


class AdminProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="admin_profile")
    permissions = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"Admin<{self.user_id}>"


ROLE_PROFILE_MODELS = {
    Role.LEARNER: LearnerProfile,
    Role.INSTRUCTOR: InstructorProfile,
    Role.ADMIN: AdminProfile,
}
