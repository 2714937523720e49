"""
Core App Configuration
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Users, roles, clinics and the audit log"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'physio_backend.core'
    verbose_name = 'Core (Users, Roles & Clinics)'
