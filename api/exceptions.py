"""Error responses for REST API v1.

Every error body is `{"error": "<message>"}`. Validation failures also
carry the full field detail under `fields`. Unexpected exceptions are
logged with the request method and path and answered with an opaque 500.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

from accounts.identity import IdentityProviderError

logger = logging.getLogger(__name__)


class PaymentRequired(exceptions.APIException):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = "Payment required"
    default_code = "payment_required"


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
    default_code = "conflict"


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key in ("non_field_errors", "detail"):
                return message
            return f"{key}: {message}"
        return "Invalid input"
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid input"
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, ObjectDoesNotExist):
        exc = exceptions.NotFound()
    if isinstance(exc, IdentityProviderError):
        set_rollback()
        if exc.status_code == 404:
            return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)
        if exc.status_code in (400, 422):
            return Response({"error": "Identity provider rejected the request"}, status=status.HTTP_400_BAD_REQUEST)
        logger.error("Identity provider failure: %s", exc)
        return Response({"error": "Identity provider request failed"}, status=status.HTTP_502_BAD_GATEWAY)

    response = exception_handler(exc, context)
    if response is None:
        set_rollback()
        request = context.get("request")
        logger.exception(
            "Unhandled error on %s %s",
            getattr(request, "method", "?"),
            getattr(request, "path", "?"),
            exc_info=exc,
        )
        return Response({"error": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        response.data = {"error": "Unauthorized", "detail": str(exc.detail)}
        response.status_code = status.HTTP_401_UNAUTHORIZED
        response["WWW-Authenticate"] = 'Bearer realm="api"'
    elif isinstance(exc, exceptions.ValidationError):
        response.data = {"error": _first_message(exc.detail), "fields": exc.detail}
    elif isinstance(exc, Http404):
        response.data = {"error": "Not found"}
    else:
        response.data = {"error": _first_message(getattr(exc, "detail", response.data))}
    return response
