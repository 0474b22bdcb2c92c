from django.apps import AppConfig


class BalancingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "balancing"
    verbose_name = "Balance group settlement"

    def ready(self):
        from balancing.application import lifecycle
        from balancing.signals import transaction_finalized

        transaction_finalized.connect(
            lifecycle.on_transaction_finalized,
            dispatch_uid="balancing.lifecycle.finalize_settlement",
        )
