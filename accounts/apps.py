from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """Roles, the identity provider user mirror and role profiles."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"

    def ready(self) -> None:  # pragma: no cover (import-time hook)
        # Every mirrored User gets a UserProfile before sync fills it in
        from . import signals  # noqa: F401
        return super().ready()
