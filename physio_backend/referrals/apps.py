"""
Referrals App Configuration
"""

from django.apps import AppConfig


class ReferralsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'physio_backend.referrals'
    verbose_name = 'Referrals (PN Cases)'
