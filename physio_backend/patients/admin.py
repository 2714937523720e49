"""
Patients App - Admin
"""

from django.contrib import admin

from physio_backend.patients.models import Patient
from physio_backend.core.admin import physio_admin_site


@admin.register(Patient, site=physio_admin_site)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("id", "hn", "full_name", "clinic", "phone", "created_at")
    list_filter = ("clinic",)
    search_fields = ("hn", "first_name", "last_name", "email", "phone")
    ordering = ("last_name", "first_name")
    list_per_page = 50
    readonly_fields = ("id", "created_at", "updated_at")
