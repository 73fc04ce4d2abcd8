"""Platform roles and the helpers built on them.

Roles form a strict hierarchy: admin > instructor > learner. Helpers never
raise on unexpected input; unknown values fall back to neutral answers.
"""
from __future__ import annotations

from django.db import models


class Role(models.TextChoices):
    ADMIN = "admin", "Administrator"
    INSTRUCTOR = "instructor", "Instructor"
    LEARNER = "learner", "Learner"


DEFAULT_ROLE = Role.LEARNER

ROLE_DESCRIPTIONS = {
    Role.ADMIN: "Full access to platform management, user administration, and system settings",
    Role.INSTRUCTOR: "Create and manage courses, track student progress, and grade assignments",
    Role.LEARNER: "Enroll in courses, complete assignments, and track personal learning progress",
}

ROLE_PRIORITIES = {
    Role.ADMIN: 3,
    Role.INSTRUCTOR: 2,
    Role.LEARNER: 1,
}

UNKNOWN_ROLE_LABEL = "Unknown Role"


def is_valid_role(value) -> bool:
    return isinstance(value, str) and value in Role.values


def is_admin(value) -> bool:
    return value == Role.ADMIN


def is_instructor(value) -> bool:
    return value == Role.INSTRUCTOR


def is_learner(value) -> bool:
    return value == Role.LEARNER


def role_label(value) -> str:
    if is_valid_role(value):
        return Role(value).label
    return UNKNOWN_ROLE_LABEL


def role_description(value) -> str:
    if is_valid_role(value):
        return ROLE_DESCRIPTIONS[Role(value)]
    return ""


def role_priority(value) -> int:
    """Higher number means more privileges; unknown values rank 0."""
    if is_valid_role(value):
        return ROLE_PRIORITIES[Role(value)]
    return 0


def has_higher_or_equal_role(first, second) -> bool:
    return role_priority(first) >= role_priority(second)


def can_access_route(user_role, required_role) -> bool:
    """Hierarchical capability check.

    Admin passes every check, instructor passes instructor and learner
    checks, learner passes learner checks only. Anything else is denied.
    """
    if user_role == Role.ADMIN:
        return True
    if user_role == Role.INSTRUCTOR:
        return required_role in (Role.INSTRUCTOR, Role.LEARNER)
    if user_role == Role.LEARNER:
        return required_role == Role.LEARNER
    return False
