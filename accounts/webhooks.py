"""Identity provider lifecycle webhooks.

Deliveries are signed Svix-style: HMAC-SHA256 over
``"{svix-id}.{svix-timestamp}.{body}"`` keyed with the base64 secret that
follows the ``whsec_`` prefix, sent as one or more ``v1,<base64 sig>``
entries in the ``svix-signature`` header.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time

from .identity import IdentityProviderError, IdentityUser
from .roles import DEFAULT_ROLE, is_valid_role
from .sync import delete_mirrored_user, ensure_role_profile, sync_identity_user

logger = logging.getLogger(__name__)

SECRET_PREFIX = "whsec_"
HEADER_ID = "svix-id"
HEADER_TIMESTAMP = "svix-timestamp"
HEADER_SIGNATURE = "svix-signature"


class WebhookVerificationError(Exception):
    pass


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    try:
        return base64.b64decode(secret)
    except (binascii.Error, ValueError) as exc:
        raise WebhookVerificationError("Webhook secret is not valid base64") from exc


def sign_payload(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    signed = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook(secret: str, headers: dict, body: bytes, tolerance: int = 300, now: float | None = None) -> dict:
    """Return the decoded event, or raise `WebhookVerificationError`."""
    msg_id = headers.get(HEADER_ID)
    timestamp = headers.get(HEADER_TIMESTAMP)
    signatures = headers.get(HEADER_SIGNATURE)
    if not msg_id or not timestamp or not signatures:
        raise WebhookVerificationError("Missing svix headers")

    try:
        sent_at = int(timestamp)
    except ValueError as exc:
        raise WebhookVerificationError("Invalid timestamp header") from exc
    now = time.time() if now is None else now
    if abs(now - sent_at) > tolerance:
        raise WebhookVerificationError("Message timestamp outside tolerance")

    expected = sign_payload(secret, msg_id, timestamp, body)
    for entry in signatures.split():
        version, _, candidate = entry.partition(",")
        if version == "v1" and hmac.compare_digest(candidate, expected):
            break
    else:
        raise WebhookVerificationError("No matching signature")

    try:
        event = json.loads(body)
    except ValueError as exc:
        raise WebhookVerificationError("Body is not valid JSON") from exc
    if not isinstance(event, dict):
        raise WebhookVerificationError("Event must be a JSON object")
    return event


def _on_user_created(data: dict) -> None:
    remote = IdentityUser.from_payload(data)
    user = sync_identity_user(remote, DEFAULT_ROLE)
    ensure_role_profile(user, DEFAULT_ROLE)
    logger.info("User created and synced: %s", remote.id)


def _on_user_updated(data: dict) -> None:
    remote = IdentityUser.from_payload(data)
    role = (remote.public_metadata or {}).get("role")
    user = sync_identity_user(remote, role if is_valid_role(role) else DEFAULT_ROLE)
    if role:
        ensure_role_profile(user, role)
    logger.info("User updated and synced: %s", remote.id)


def _on_user_deleted(data: dict) -> None:
    external_id = (data or {}).get("id")
    if not external_id:
        raise IdentityProviderError("Deletion event is missing a user id")
    delete_mirrored_user(external_id)
    logger.info("User deleted: %s", external_id)


EVENT_HANDLERS = {
    "user.created": _on_user_created,
    "user.updated": _on_user_updated,
    "user.deleted": _on_user_deleted,
}


def dispatch_event(event: dict) -> bool:
    """Apply a verified event. Returns False for event types we ignore."""
    event_type = event.get("type")
    logger.info("Received identity webhook: %s", event_type)
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled webhook event: %s", event_type)
        return False
    handler(event.get("data") or {})
    return True
