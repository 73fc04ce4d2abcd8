from django.apps import AppConfig


class CoursesConfig(AppConfig):
    """App configuration for courses, lessons, enrollments and reviews."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "courses"

    def ready(self) -> None:  # pragma: no cover (import-time hook)
        # Counter maintenance for enrollments and reviews.
        from . import signals  # noqa: F401
        return super().ready()
