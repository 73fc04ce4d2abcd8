"""Role policy for REST API v1.

Every view declares which roles may call it as a `Policy`; `RolePolicy`
enforces it. Ownership is not a permission here: it is folded into the
queryset of the view (`owner_filter`) so a non-owner simply finds nothing.
"""
from __future__ import annotations

from rest_framework import exceptions
from rest_framework.permissions import BasePermission

from accounts.roles import Role, can_access_route
from courses.models import Enrollment


class Policy(frozenset):
    """The set of roles allowed through."""

    @classmethod
    def only(cls, *roles) -> "Policy":
        return cls(Role(r) for r in roles)

    @classmethod
    def at_least(cls, role) -> "Policy":
        return cls(r for r in Role if can_access_route(r, role))

    def allows(self, role) -> bool:
        return role in self


PUBLIC = None
SIGNED_IN = Policy.at_least(Role.LEARNER)
INSTRUCTORS = Policy.at_least(Role.INSTRUCTOR)
ADMINS = Policy.only(Role.ADMIN)


class RolePolicy(BasePermission):
    """Check the caller's role against `view.policy`.

    - `view.policy_by_method` may override the policy per HTTP method;
      a policy of None means the method is public.
    - `view.live_role_check` (a bool or a set of methods) re-resolves the
      role from the identity provider instead of trusting the session claim.
    """

    message = "Forbidden"

    def _policy_for(self, request, view):
        by_method = getattr(view, "policy_by_method", None) or {}
        if request.method in by_method:
            return by_method[request.method]
        return getattr(view, "policy", SIGNED_IN)

    def _live_for(self, request, view) -> bool:
        live = getattr(view, "live_role_check", False)
        if isinstance(live, (set, frozenset, list, tuple)):
            return request.method in live
        return bool(live)

    def has_permission(self, request, view):
        policy = self._policy_for(request, view)
        if policy is PUBLIC:
            return True
        principal = request.user
        if not getattr(principal, "is_authenticated", False):
            raise exceptions.NotAuthenticated()
        role = principal.resolve_role(live=self._live_for(request, view))
        return policy.allows(role)


def is_admin_principal(principal) -> bool:
    return getattr(principal, "role", None) == Role.ADMIN


def owner_filter(principal, prefix: str = "") -> dict:
    """Queryset filter for courses the principal may manage; admins own all.

    `prefix` reaches the course through a relation, e.g. `"course__"`.
    """
    if is_admin_principal(principal):
        return {}
    return {f"{prefix}instructor": principal.require_user()}


def require_enrollment(principal, course_id) -> Enrollment:
    user = principal.require_user()
    enrollment = Enrollment.objects.filter(learner=user, course_id=course_id).first()
    if enrollment is None:
        raise exceptions.PermissionDenied("Not enrolled")
    return enrollment
