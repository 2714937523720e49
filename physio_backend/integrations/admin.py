"""
Integrations App - Admin
"""

from django.contrib import admin

from physio_backend.core.admin import physio_admin_site
from physio_backend.integrations.models import NotificationSetting


@admin.register(NotificationSetting, site=physio_admin_site)
class NotificationSettingAdmin(admin.ModelAdmin):
    list_display = ("setting_type", "updated_at")
    readonly_fields = ("created_at", "updated_at")
