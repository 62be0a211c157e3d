from django.apps import AppConfig


class IntegrationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.integrations'
    verbose_name = 'External Integrations'
    
    def ready(self):
        # Connect notification receivers
        from . import notifications  # noqa: F401
