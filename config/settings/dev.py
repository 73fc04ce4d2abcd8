"""Development settings for CourseHub.

Extends base settings with developer-friendly defaults. Session tokens can
be verified with a shared HS256 secret when no provider key is configured.
"""
from .base import *  # noqa
import os


DEBUG = True
ALLOWED_HOSTS = ["127.0.0.1", "localhost"]

# Development secret key fallback (safe only for local use)
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-key-change-me")

if not IDENTITY_PROVIDER["JWT_KEY"]:  # noqa: F405
    IDENTITY_PROVIDER = {  # noqa: F405
        **IDENTITY_PROVIDER,  # noqa: F405
        "JWT_KEY": os.environ.get("IDENTITY_DEV_HS256_SECRET", "dev-session-secret-change-me-0123456789abcdef"),
        "JWT_ALGORITHMS": ["HS256"],
    }

# Allow the admin self-assignment flow locally without extra setup
ADMIN_ENROLLMENT_CODE = os.environ.get("ADMIN_ENROLLMENT_CODE", "ADMIN2026")

# Looser throttles while clicking through the API by hand
REST_FRAMEWORK = {  # noqa: F405
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_RATES": {"user": "1000/min", "anon": "300/min"},
}

for _name in ("accounts", "courses", "quizzes", "api"):
    LOGGING["loggers"][_name]["level"] = "DEBUG"  # noqa: F405
