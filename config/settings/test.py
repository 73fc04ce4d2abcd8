"""Test settings: in-memory SQLite, fast hashing, HS256 session tokens."""
from .base import *  # noqa


DEBUG = False
ALLOWED_HOSTS = ["testserver", "localhost"]
SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

IDENTITY_PROVIDER = {
    **IDENTITY_PROVIDER,  # noqa: F405
    "API_URL": "https://identity.test/v1",
    "SECRET_KEY": "sk_test_backend",
    "JWT_KEY": "test-session-signing-key-0123456789abcdef0123456789abcdef",
    "JWT_ALGORITHMS": ["HS256"],
    "JWT_AUDIENCE": None,
    "AUTHORIZED_PARTIES": [],
    # base64("coursehub-webhook-signing-secret")
    "WEBHOOK_SECRET": "whsec_Y291cnNlaHViLXdlYmhvb2stc2lnbmluZy1zZWNyZXQ=",
}

ADMIN_ENROLLMENT_CODE = "letmein-admin"
