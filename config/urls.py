"""URL routing for CourseHub.

The REST API lives under /api/v1/; schema and interactive docs are served
by the `api` app as well.
"""
from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("api.urls")),
]
