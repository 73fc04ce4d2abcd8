"""Mirror identity provider users into the local store.

The webhook handler, the role endpoints and the admin user endpoints all
funnel through here so the mirror is written in one way only.
"""
from __future__ import annotations

import logging

from django.contrib.auth.models import User
from django.db import transaction

from .identity import IdentityUser
from .models import ROLE_PROFILE_MODELS, UserProfile
from .roles import DEFAULT_ROLE, Role, is_valid_role

logger = logging.getLogger(__name__)


@transaction.atomic
def sync_identity_user(remote: IdentityUser, role: str | None = None) -> User:
    """Insert or update the mirror row keyed by the provider's user id.

    `role` defaults to the role in the remote metadata.
    """
    role = role if is_valid_role(role) else remote.role
    profile = (
        UserProfile.objects.select_for_update()
        .select_related("user")
        .filter(external_id=remote.id)
        .first()
    )
    if profile is None:
        user = User.objects.create_user(username=remote.id)
        profile = user.profile
        profile.external_id = remote.id
        logger.info("Mirroring new identity user %s", remote.id)
    else:
        user = profile.user

    user.email = remote.email or ""
    user.first_name = (remote.first_name or "")[:150]
    user.last_name = (remote.last_name or "")[:150]
    user.save(update_fields=["email", "first_name", "last_name"])

    profile.role = role
    profile.avatar_url = remote.image_url or ""
    profile.save()
    return user


def ensure_role_profile(user: User, role: str):
    """Create the role-specific profile row if it does not exist yet."""
    if not is_valid_role(role):
        logger.warning("Skipping role profile for unknown role %r", role)
        return None
    model = ROLE_PROFILE_MODELS[Role(role)]
    obj, created = model.objects.get_or_create(user=user)
    if created:
        logger.info("Created %s for user %s", model.__name__, user.pk)
    return obj


def set_mirrored_role(user: User, role: str) -> None:
    profile = user.profile
    profile.role = role
    profile.save(update_fields=["role", "updated_at"])
    ensure_role_profile(user, role)


def delete_mirrored_user(external_id: str) -> bool:
    """Delete the mirror row; dependents go with it through FK cascades."""
    deleted, _ = User.objects.filter(profile__external_id=external_id).delete()
    if deleted:
        logger.info("Deleted mirrored user %s", external_id)
    return bool(deleted)


def mirror_and_profile(remote: IdentityUser, role: str | None = None) -> User:
    user = sync_identity_user(remote, role)
    ensure_role_profile(user, user.profile.role or DEFAULT_ROLE)
    return user
