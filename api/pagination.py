from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response


class EnvelopePagination(LimitOffsetPagination):
    """`limit`/`offset` pagination returning `{<key>: [...], total, limit, offset}`.

    - Default limit: 50 (COURSEHUB_PAGE_SIZE)
    - Client may request `?limit=N` up to `max_limit`
    - Views set `envelope_key` to name the list ("courses", "users", ...)
    """

    default_limit = getattr(settings, "COURSEHUB_PAGE_SIZE", 50)
    max_limit = getattr(settings, "COURSEHUB_MAX_PAGE_SIZE", 100)
    envelope_key = "results"

    def paginate_queryset(self, queryset, request, view=None):
        self.envelope_key = getattr(view, "envelope_key", self.envelope_key)
        return super().paginate_queryset(queryset, request, view)

    def get_paginated_response(self, data):
        return Response({
            self.envelope_key: data,
            "total": self.count,
            "limit": self.limit,
            "offset": self.offset,
        })

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": [self.envelope_key, "total", "limit", "offset"],
            "properties": {
                self.envelope_key: schema,
                "total": {"type": "integer", "example": 123},
                "limit": {"type": "integer", "example": self.default_limit},
                "offset": {"type": "integer", "example": 0},
            },
        }
