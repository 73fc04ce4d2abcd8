from __future__ import annotations

from django.utils.deprecation import MiddlewareMixin


class ApiSecurityHeadersMiddleware(MiddlewareMixin):
    """Add a strict Content-Security-Policy to JSON API responses.

    API responses never render markup, so the policy denies everything.
    Interactive docs load Swagger UI and ReDoc assets from a CDN and are
    left to their own policy.
    """

    DOC_PATHS = ("/docs/", "/redoc/")

    def process_response(self, request, response):  # noqa: D401
        if request.path.startswith(self.DOC_PATHS):
            return response
        if request.path.startswith("/api/"):
            response["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
            response.setdefault("Cache-Control", "no-store")
        response.setdefault("X-Content-Type-Options", "nosniff")
        return response
