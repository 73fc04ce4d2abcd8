from django.apps import AppConfig


class QuizzesConfig(AppConfig):
    """App configuration for quizzes, attempts, rewards and badges."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "quizzes"
