"""
Courses App Configuration
"""

from django.apps import AppConfig


class CoursesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'physio_backend.courses'
    verbose_name = 'Courses (Session Ledger)'
