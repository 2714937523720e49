"""
Appointments App - Admin
"""

from django.contrib import admin

from physio_backend.appointments.models import Appointment
from physio_backend.core.admin import physio_admin_site


@admin.register(Appointment, site=physio_admin_site)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "appointment_date", "start_time", "end_time", "clinic", "practitioner", "status", "booking_type")
    list_filter = ("status", "booking_type", "clinic", "appointment_date")
    search_fields = ("walk_in_name", "walk_in_email", "patient__first_name", "patient__last_name", "patient__hn")
    raw_id_fields = ("patient", "practitioner", "referral", "course", "cancelled_by", "created_by")
    readonly_fields = ("status", "calendar_event_id", "cancelled_at", "client_ip_address", "created_at", "updated_at")
    date_hierarchy = "appointment_date"
