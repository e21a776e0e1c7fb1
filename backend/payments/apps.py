from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"

    def ready(self):
        """
        Import signals when the app is ready to ensure they are registered.
        """
        import payments.signals  # noqa
