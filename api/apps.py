from django.apps import AppConfig


class ApiConfig(AppConfig):
    """REST API v1: role policy, envelope pagination and error bodies."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "api"
    verbose_name = "CourseHub API"
