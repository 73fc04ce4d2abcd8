"""Session token authentication for the REST API.

The identity provider issues short-lived signed session tokens. This
authenticator verifies them once per request and exposes the caller as a
`Principal` on `request.user`; handlers read identity, role and the
internal user from it instead of resolving them again.
"""
from __future__ import annotations

import logging

import jwt
from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication

from . import identity
from .models import UserProfile
from .roles import Role

logger = logging.getLogger(__name__)


class Principal:
    """The authenticated caller.

    `user` is the internal mirror row, or None when the identity provider
    knows the caller but the local mirror does not (yet).
    """

    is_authenticated = True
    is_anonymous = False

    def __init__(self, external_id: str, claims: dict, user=None):
        self.external_id = external_id
        self.claims = claims
        self.user = user
        self.role: Role = identity.role_from_claims(claims)

    def __repr__(self) -> str:  # pragma: no cover
        return f"Principal<{self.external_id}:{self.role}>"

    @property
    def pk(self):
        return self.user.pk if self.user is not None else self.external_id

    @property
    def user_id(self):
        return self.user.pk if self.user is not None else None

    def require_user(self):
        if self.user is None:
            raise exceptions.NotFound("User not found")
        return self.user

    def resolve_role(self, live: bool = False) -> Role:
        if live:
            return identity.fetch_live_role(self.external_id)
        return self.role


def _token_from_request(request) -> str | None:
    header = request.META.get("HTTP_AUTHORIZATION", "")
    if header:
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise exceptions.AuthenticationFailed("Malformed authorization header")
        return token.strip()
    cookie_name = settings.IDENTITY_PROVIDER.get("SESSION_COOKIE")
    if cookie_name:
        return request.COOKIES.get(cookie_name) or None
    return None


def decode_session_token(token: str) -> dict:
    conf = settings.IDENTITY_PROVIDER
    audience = conf.get("JWT_AUDIENCE")
    claims = jwt.decode(
        token,
        conf["JWT_KEY"],
        algorithms=conf.get("JWT_ALGORITHMS", ["RS256"]),
        audience=audience,
        leeway=5,
        options={"require": ["exp", "sub"], "verify_aud": bool(audience)},
    )
    parties = conf.get("AUTHORIZED_PARTIES") or []
    if parties and claims.get("azp") not in parties:
        raise jwt.InvalidTokenError("Unauthorized party")
    return claims


class SessionTokenAuthentication(BaseAuthentication):
    """Authenticate `Authorization: Bearer <token>` or the session cookie."""

    www_authenticate_realm = "api"

    def authenticate(self, request):
        token = _token_from_request(request)
        if not token:
            return None
        try:
            claims = decode_session_token(token)
        except jwt.ExpiredSignatureError as exc:
            raise exceptions.AuthenticationFailed("Session expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected session token: %s", exc)
            raise exceptions.AuthenticationFailed("Invalid session token") from exc

        external_id = str(claims["sub"])
        profile = UserProfile.objects.select_related("user").filter(external_id=external_id).first()
        user = profile.user if profile else None
        return Principal(external_id, claims, user), claims

    def authenticate_header(self, request):
        return f'Bearer realm="{self.www_authenticate_realm}"'
