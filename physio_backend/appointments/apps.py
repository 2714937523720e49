"""
Appointments App Configuration
"""

from django.apps import AppConfig


class AppointmentsConfig(AppConfig):
    """Appointments, conflict detection and the lifecycle manager"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'physio_backend.appointments'
    verbose_name = 'Appointments (Scheduling & Lifecycle)'
