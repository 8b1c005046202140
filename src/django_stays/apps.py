"""Django app configuration for django-stays."""

from django.apps import AppConfig


class DjangoStaysConfig(AppConfig):
    """App configuration for django-stays."""

    name = 'django_stays'
    verbose_name = 'Django Stays'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        """Register system checks."""
        from . import checks  # noqa: F401
