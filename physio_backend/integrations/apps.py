"""
Integrations App Configuration
"""

from django.apps import AppConfig


class IntegrationsConfig(AppConfig):
    """Calendar sync and LINE/SMS/email notifications"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'physio_backend.integrations'
    verbose_name = 'Integrations (Calendar & Notifications)'
