"""Shared fixtures: users, signed session tokens, API clients and a fake
identity provider so no test reaches the network.
"""
from __future__ import annotations

import itertools
import logging
import time

import jwt
import pytest
from django.conf import settings
from django.core.cache import cache
from rest_framework.test import APIClient

from accounts import identity
from accounts.identity import IdentityProviderError, IdentityUser
from accounts.roles import Role
from accounts.sync import mirror_and_profile


@pytest.fixture(autouse=True)
def silence_django_request_logger():
    """Reduce noise from expected 4xx in passing tests.

    Many tests intentionally exercise 400/403/404 paths. Django logs these
    at WARNING via 'django.request'. Lower that logger to ERROR during tests
    to avoid clutter.
    """
    logger = logging.getLogger("django.request")
    old = logger.level
    logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        logger.setLevel(old)


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


class FakeIdentityClient:
    """In-memory stand-in for `IdentityProviderClient`."""

    def __init__(self):
        self.users: dict[str, IdentityUser] = {}
        self.calls: list[tuple] = []
        self._ids = itertools.count(1)

    def add(self, remote: IdentityUser) -> IdentityUser:
        self.users[remote.id] = remote
        return remote

    def get_user(self, user_id):
        self.calls.append(("get_user", user_id))
        if user_id not in self.users:
            raise IdentityProviderError("Identity provider returned 404", status_code=404)
        return self.users[user_id]

    def list_users(self, limit=20, offset=0):
        rows = list(self.users.values())
        return rows[offset:offset + limit], len(rows)

    def create_user(self, email, first_name, last_name, password, role=Role.LEARNER):
        self.calls.append(("create_user", email))
        remote = IdentityUser(
            id=f"user_fake{next(self._ids):04d}",
            email=email,
            first_name=first_name,
            last_name=last_name,
            public_metadata={"role": str(role)},
        )
        return self.add(remote)

    def update_user(self, user_id, **fields):
        self.calls.append(("update_user", user_id, tuple(sorted(fields))))
        remote = self.get_user(user_id)
        remote.first_name = fields.get("first_name", remote.first_name)
        remote.last_name = fields.get("last_name", remote.last_name)
        return remote

    def update_metadata(self, user_id, public_metadata):
        self.calls.append(("update_metadata", user_id, dict(public_metadata)))
        remote = self.get_user(user_id)
        remote.public_metadata = {**(remote.public_metadata or {}), **public_metadata}
        return remote

    def delete_user(self, user_id):
        self.calls.append(("delete_user", user_id))
        self.get_user(user_id)
        del self.users[user_id]


@pytest.fixture(autouse=True)
def fake_identity(monkeypatch):
    client = FakeIdentityClient()
    monkeypatch.setattr(identity, "get_identity_client", lambda: client)
    return client


_user_ids = itertools.count(1)


@pytest.fixture
def make_user(db, fake_identity):
    """Create a mirrored user with the given role (also known upstream)."""

    def _make(role=Role.LEARNER, email=None, first_name="Test", last_name="User", external_id=None):
        n = next(_user_ids)
        remote = IdentityUser(
            id=external_id or f"user_{str(role)}_{n}",
            email=email or f"{str(role)}{n}@example.com",
            first_name=first_name,
            last_name=last_name,
            public_metadata={"role": str(role)},
        )
        fake_identity.add(remote)
        return mirror_and_profile(remote, str(role))

    return _make


def make_token(external_id: str, role=Role.LEARNER, ttl: int = 3600, **extra) -> str:
    now = int(time.time())
    claims = {"sub": external_id, "iat": now, "exp": now + ttl, "metadata": {"role": str(role)}, **extra}
    key = settings.IDENTITY_PROVIDER["JWT_KEY"]
    return jwt.encode(claims, key, algorithm="HS256")


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def api_client_for():
    """APIClient authenticated as `user` (role taken from the mirror unless given)."""

    def _client(user, role=None):
        client = APIClient()
        profile = user.profile
        token = make_token(profile.external_id, role or profile.role)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client

    return _client


@pytest.fixture
def admin_account(make_user):
    return make_user(Role.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def instructor(make_user):
    return make_user(Role.INSTRUCTOR, first_name="Ivy", last_name="Tutor")


@pytest.fixture
def other_instructor(make_user):
    return make_user(Role.INSTRUCTOR, first_name="Olga", last_name="Other")


@pytest.fixture
def learner(make_user):
    return make_user(Role.LEARNER, first_name="Leo", last_name="Learner")
