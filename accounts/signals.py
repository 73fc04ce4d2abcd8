"""Signals for automatic profile management.

On user creation, create a default `UserProfile` with the learner role.
Identity sync fills in the provider id and the real role right after.
"""
from django.contrib.auth.models import User
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import UserProfile
from .roles import DEFAULT_ROLE


@receiver(post_save, sender=User)
def create_user_profile(sender, instance: User, created: bool, **kwargs):  # noqa: D401
    """Create a profile for new users (default role: learner)."""
    if created:
        UserProfile.objects.get_or_create(user=instance, defaults={"role": DEFAULT_ROLE})
