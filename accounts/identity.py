"""Adapter for the hosted identity provider.

Two ways to learn a caller's role:

- the session claim (`role_from_claims`): read from the verified session
  token, fast but possibly stale until the token is refreshed;
- the live record (`fetch_live_role`): a round trip to the provider's
  Backend API, authoritative but slower. Role-changing and destructive
  endpoints use this path.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from django.conf import settings

from .roles import DEFAULT_ROLE, Role, is_valid_role

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """A Backend API call failed or returned an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def role_from_claims(claims: Any) -> Role:
    """Return the role carried in session claims, or the default role."""
    try:
        role = (claims.get("metadata") or {}).get("role")
    except AttributeError:
        return DEFAULT_ROLE
    if is_valid_role(role):
        return Role(role)
    return DEFAULT_ROLE


@dataclass
class IdentityUser:
    id: str
    email: str = ""
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None
    public_metadata: dict = field(default_factory=dict)
    created_at: int | None = None
    last_sign_in_at: int | None = None

    @property
    def role(self) -> Role:
        role = (self.public_metadata or {}).get("role")
        return Role(role) if is_valid_role(role) else DEFAULT_ROLE

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_payload(cls, data: dict) -> "IdentityUser":
        """Build from a Backend API user object or a webhook `data` block."""
        if not isinstance(data, dict) or not data.get("id"):
            raise IdentityProviderError("User payload is missing an id")
        emails = data.get("email_addresses") or []
        primary_id = data.get("primary_email_address_id")
        email = ""
        for entry in emails:
            if primary_id and entry.get("id") == primary_id:
                email = entry.get("email_address") or ""
                break
        if not email and emails:
            email = emails[0].get("email_address") or ""
        return cls(
            id=data["id"],
            email=email,
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            image_url=data.get("image_url"),
            public_metadata=data.get("public_metadata") or {},
            created_at=data.get("created_at"),
            last_sign_in_at=data.get("last_sign_in_at"),
        )


class IdentityProviderClient:
    """Thin wrapper over the provider's Backend API."""

    def __init__(self, api_url: str, secret_key: str, timeout: float = 10, session: requests.Session | None = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.api_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Identity provider %s %s failed: %s", method, path, exc)
            raise IdentityProviderError("Identity provider unreachable") from exc
        if response.status_code >= 400:
            logger.warning("Identity provider %s %s returned %s", method, path, response.status_code)
            raise IdentityProviderError(
                f"Identity provider returned {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise IdentityProviderError("Identity provider returned invalid JSON") from exc

    def get_user(self, user_id: str) -> IdentityUser:
        return IdentityUser.from_payload(self._request("GET", f"/users/{user_id}"))

    def list_users(self, limit: int = 20, offset: int = 0) -> tuple[list[IdentityUser], int]:
        rows = self._request("GET", "/users", params={"limit": limit, "offset": offset, "order_by": "-created_at"})
        count = self._request("GET", "/users/count") or {}
        return [IdentityUser.from_payload(row) for row in rows or []], int(count.get("total_count", 0))

    def create_user(
        self,
        email: str,
        first_name: str,
        last_name: str | None,
        password: str,
        role: str = DEFAULT_ROLE,
    ) -> IdentityUser:
        payload = {
            "email_address": [email],
            "first_name": first_name,
            "last_name": last_name,
            "password": password,
            "public_metadata": {"role": role},
        }
        return IdentityUser.from_payload(self._request("POST", "/users", json=payload))

    def update_user(self, user_id: str, **fields) -> IdentityUser:
        return IdentityUser.from_payload(self._request("PATCH", f"/users/{user_id}", json=fields))

    def update_metadata(self, user_id: str, public_metadata: dict) -> IdentityUser:
        payload = {"public_metadata": public_metadata}
        return IdentityUser.from_payload(self._request("PATCH", f"/users/{user_id}/metadata", json=payload))

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/users/{user_id}")


def get_identity_client() -> IdentityProviderClient:
    conf = settings.IDENTITY_PROVIDER
    if not conf.get("SECRET_KEY"):
        raise IdentityProviderError("Identity provider secret key is not configured")
    return IdentityProviderClient(conf["API_URL"], conf["SECRET_KEY"], timeout=conf.get("TIMEOUT", 10))


def fetch_live_role(external_id: str) -> Role:
    """Authoritative role from the provider's live user record."""
    return get_identity_client().get_user(external_id).role
