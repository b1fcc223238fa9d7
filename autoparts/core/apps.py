from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'autoparts.core'

    def ready(self):
        """Import signals when app is ready"""
        import autoparts.core.cache_signals  # noqa: F401  # Lookup cache invalidation
