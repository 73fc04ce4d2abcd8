from __future__ import annotations

import json
import time

import pytest
from django.conf import settings
from django.contrib.auth.models import User
from django.test import override_settings
from rest_framework.test import APIClient

from accounts.models import InstructorProfile, LearnerProfile, UserProfile
from accounts.webhooks import WebhookVerificationError, sign_payload, verify_webhook
from courses.models import Course, Enrollment

URL = "/api/v1/webhooks/identity-provider/"


def _user_data(user_id="user_hook1", role=None, email="hook@example.com"):
    data = {
        "id": user_id,
        "first_name": "Hook",
        "last_name": "Person",
        "image_url": "https://img.example.com/a.png",
        "primary_email_address_id": "idn_1",
        "email_addresses": [
            {"id": "idn_0", "email_address": "secondary@example.com"},
            {"id": "idn_1", "email_address": email},
        ],
        "public_metadata": {"role": role} if role else {},
    }
    return data


def _post(event, *, secret=None, msg_id="msg_1", timestamp=None, signature=None):
    secret = secret or settings.IDENTITY_PROVIDER["WEBHOOK_SECRET"]
    body = json.dumps(event).encode()
    timestamp = str(int(time.time())) if timestamp is None else timestamp
    signature = signature or f"v1,{sign_payload(secret, msg_id, timestamp, body)}"
    return APIClient().post(
        URL,
        data=body,
        content_type="application/json",
        HTTP_SVIX_ID=msg_id,
        HTTP_SVIX_TIMESTAMP=timestamp,
        HTTP_SVIX_SIGNATURE=signature,
    )


@pytest.mark.django_db
def test_user_created_mirrors_learner_with_profile():
    r = _post({"type": "user.created", "data": _user_data()})
    assert r.status_code == 200
    assert r.json() == {"success": True}
    profile = UserProfile.objects.get(external_id="user_hook1")
    assert profile.role == "learner"
    assert profile.user.email == "hook@example.com"
    assert profile.avatar_url == "https://img.example.com/a.png"
    assert LearnerProfile.objects.filter(user=profile.user).exists()


@pytest.mark.django_db
def test_user_updated_upserts_and_creates_role_profile():
    _post({"type": "user.created", "data": _user_data()})
    r = _post({"type": "user.updated", "data": _user_data(role="instructor", email="new@example.com")}, msg_id="m2")
    assert r.status_code == 200
    profile = UserProfile.objects.get(external_id="user_hook1")
    assert profile.role == "instructor"
    assert profile.user.email == "new@example.com"
    assert InstructorProfile.objects.filter(user=profile.user).exists()
    assert User.objects.filter(profile__external_id="user_hook1").count() == 1


@pytest.mark.django_db
def test_user_updated_for_unknown_user_inserts_it():
    r = _post({"type": "user.updated", "data": _user_data(user_id="user_late")})
    assert r.status_code == 200
    assert UserProfile.objects.get(external_id="user_late").role == "learner"


@pytest.mark.django_db
def test_user_deleted_cascades_to_dependents(instructor):
    _post({"type": "user.created", "data": _user_data()})
    hooked = User.objects.get(profile__external_id="user_hook1")
    course = Course.objects.create(instructor=instructor, title="C", slug="c-1", status="published")
    Enrollment.objects.create(course=course, learner=hooked)

    r = _post({"type": "user.deleted", "data": {"id": "user_hook1", "deleted": True}}, msg_id="m3")
    assert r.status_code == 200
    assert not User.objects.filter(pk=hooked.pk).exists()
    assert not Enrollment.objects.filter(course=course).exists()


@pytest.mark.django_db
def test_unknown_event_is_acknowledged():
    r = _post({"type": "session.created", "data": {"id": "sess_1"}})
    assert r.status_code == 200
    assert r.json() == {"success": True}


@pytest.mark.django_db
@pytest.mark.security
def test_missing_headers_rejected():
    r = APIClient().post(URL, data={"type": "user.created"}, format="json")
    assert r.status_code == 400
    assert r.json()["error"] == "Missing svix headers"


@pytest.mark.django_db
@pytest.mark.security
def test_bad_signature_rejected():
    r = _post({"type": "user.created", "data": _user_data()}, signature="v1,bm90LWEtc2lnbmF0dXJl")
    assert r.status_code == 400
    assert not UserProfile.objects.filter(external_id="user_hook1").exists()


@pytest.mark.django_db
@pytest.mark.security
def test_stale_timestamp_rejected():
    stale = str(int(time.time()) - 3600)
    r = _post({"type": "user.created", "data": _user_data()}, timestamp=stale)
    assert r.status_code == 400


@pytest.mark.django_db
def test_any_matching_signature_entry_is_accepted():
    secret = settings.IDENTITY_PROVIDER["WEBHOOK_SECRET"]
    event = {"type": "user.created", "data": _user_data()}
    body = json.dumps(event).encode()
    ts = str(int(time.time()))
    good = sign_payload(secret, "msg_x", ts, body)
    r = APIClient().post(
        URL,
        data=body,
        content_type="application/json",
        HTTP_SVIX_ID="msg_x",
        HTTP_SVIX_TIMESTAMP=ts,
        HTTP_SVIX_SIGNATURE=f"v1,AAAA v1,{good}",
    )
    assert r.status_code == 200


@pytest.mark.django_db
def test_missing_secret_is_server_error():
    conf = {**settings.IDENTITY_PROVIDER, "WEBHOOK_SECRET": ""}
    with override_settings(IDENTITY_PROVIDER=conf):
        r = APIClient().post(URL, data=b"{}", content_type="application/json")
    assert r.status_code == 500
    assert "error" in r.json()


@pytest.mark.django_db
def test_event_without_user_id_is_bad_request():
    r = _post({"type": "user.created", "data": {"first_name": "No id"}})
    assert r.status_code == 400


def test_verify_webhook_requires_json_object():
    secret = "whsec_c2VjcmV0"
    body = b"[1, 2]"
    sig = sign_payload(secret, "id", "100", body)
    with pytest.raises(WebhookVerificationError):
        verify_webhook(secret, {"svix-id": "id", "svix-timestamp": "100", "svix-signature": f"v1,{sig}"}, body, now=100)
    ok = b'{"type": "x"}'
    sig = sign_payload(secret, "id", "100", ok)
    headers = {"svix-id": "id", "svix-timestamp": "100", "svix-signature": f"v1,{sig}"}
    assert verify_webhook(secret, headers, ok, now=100) == {"type": "x"}
