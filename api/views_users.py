"""User administration and role assignment.

Writes go to the identity provider first, then the local mirror is
refreshed from the provider's answer. Role changes and deletions check the
caller's role against the provider's live record.
"""
from __future__ import annotations

import hmac
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import exceptions, generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import identity
from accounts.roles import Role, is_valid_role, role_description, role_label
from accounts.sync import delete_mirrored_user, mirror_and_profile, sync_identity_user

from .permissions import ADMINS, SIGNED_IN
from .serializers import (
    MirroredUserSerializer,
    RoleInputSerializer,
    SelfRoleSerializer,
    UserCreateSerializer,
    UserUpdateSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def mirrored_users():
    return User.objects.filter(profile__external_id__isnull=False).select_related("profile")


class UserListCreateView(generics.ListAPIView):
    policy = ADMINS
    serializer_class = MirroredUserSerializer
    envelope_key = "users"
    search_fields = ["email", "first_name", "last_name"]
    ordering_fields = ["date_joined", "email"]

    def get_queryset(self):
        queryset = mirrored_users().order_by("-date_joined", "-id")
        if getattr(self, "swagger_fake_view", False):
            return queryset.none()
        role = self.request.query_params.get("role")
        if role:
            if not is_valid_role(role):
                raise exceptions.ValidationError({"role": ["Invalid role"]})
            queryset = queryset.filter(profile__role=role)
        return queryset

    def post(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        remote = identity.get_identity_client().create_user(
            email=data["email"],
            first_name=data["firstName"],
            last_name=data.get("lastName"),
            password=data["password"],
            role=data["role"],
        )
        user = mirror_and_profile(remote, data["role"])
        logger.info("Admin %s created user %s as %s", request.user.external_id, remote.id, data["role"])
        return Response({"user": MirroredUserSerializer(user).data}, status=status.HTTP_201_CREATED)


class UserDetailView(APIView):
    policy = ADMINS
    live_role_check = {"DELETE"}

    def get(self, request, external_id: str):
        user = get_object_or_404(mirrored_users(), profile__external_id=external_id)
        return Response({"user": MirroredUserSerializer(user).data})

    def put(self, request, external_id: str):
        serializer = UserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        fields = {}
        if "firstName" in data:
            fields["first_name"] = data["firstName"]
        if "lastName" in data:
            fields["last_name"] = data["lastName"]
        if data.get("password"):
            fields["password"] = data["password"]
        remote = identity.get_identity_client().update_user(external_id, **fields)
        user = sync_identity_user(remote)
        return Response({"user": MirroredUserSerializer(user).data})

    def delete(self, request, external_id: str):
        if external_id == request.user.external_id:
            raise exceptions.ValidationError("Cannot delete your own account")
        identity.get_identity_client().delete_user(external_id)
        delete_mirrored_user(external_id)
        logger.info("Admin %s deleted user %s", request.user.external_id, external_id)
        return Response({"success": True})


class UserRoleView(APIView):
    policy = ADMINS
    live_role_check = True

    def put(self, request, external_id: str):
        serializer = RoleInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        role = serializer.validated_data["role"]
        remote = identity.get_identity_client().update_metadata(external_id, {"role": role})
        user = mirror_and_profile(remote, role)
        logger.info("Admin %s set role of %s to %s", request.user.external_id, external_id, role)
        return Response({"user": MirroredUserSerializer(user).data})

    patch = put


class SelfRoleView(APIView):
    """Let a signed-in user pick their own role.

    The admin role needs the configured enrollment code.
    """

    policy = SIGNED_IN

    def get(self, request):
        role = request.user.role
        return Response({"role": role, "label": role_label(role), "description": role_description(role)})

    def post(self, request):
        serializer = SelfRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        role = serializer.validated_data["role"]
        if role == Role.ADMIN:
            expected = getattr(settings, "ADMIN_ENROLLMENT_CODE", "")
            given = serializer.validated_data.get("admin_code") or ""
            if not expected or not hmac.compare_digest(given.encode(), expected.encode()):
                logger.warning("Rejected admin self-assignment by %s", request.user.external_id)
                raise exceptions.PermissionDenied("Invalid admin code")
        remote = identity.get_identity_client().update_metadata(request.user.external_id, {"role": role})
        mirror_and_profile(remote, role)
        return Response({"success": True, "role": role})
