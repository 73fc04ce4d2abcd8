"""Identity provider lifecycle webhook."""
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.identity import IdentityProviderError
from accounts.webhooks import (
    HEADER_ID,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    WebhookVerificationError,
    dispatch_event,
    verify_webhook,
)

from .permissions import PUBLIC

logger = logging.getLogger(__name__)


class IdentityWebhookView(APIView):
    """Receive signed user lifecycle events and mirror them locally."""

    authentication_classes: list = []
    throttle_classes: list = []
    policy = PUBLIC

    def post(self, request):
        conf = settings.IDENTITY_PROVIDER
        secret = conf.get("WEBHOOK_SECRET")
        if not secret:
            logger.error("Identity webhook received but no webhook secret is configured")
            return Response({"error": "Webhook secret not configured"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        headers = {name: request.headers.get(name) for name in (HEADER_ID, HEADER_TIMESTAMP, HEADER_SIGNATURE)}
        try:
            event = verify_webhook(
                secret,
                headers,
                request.body,
                tolerance=conf.get("WEBHOOK_TOLERANCE_SECONDS", 300),
            )
        except WebhookVerificationError as exc:
            logger.warning("Rejected identity webhook: %s", exc)
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            dispatch_event(event)
        except IdentityProviderError as exc:
            logger.warning("Unusable identity webhook payload: %s", exc)
            return Response({"error": "Invalid event payload"}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True})
