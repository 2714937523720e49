"""
Courses App - Admin

Counters are read-only here; sessions move only through the ledger service.
"""

from django.contrib import admin

from physio_backend.core.admin import physio_admin_site
from physio_backend.courses.models import Course, CourseSharedPatient, CourseUsage


class CourseSharedPatientInline(admin.TabularInline):
    model = CourseSharedPatient
    extra = 0
    raw_id_fields = ("patient",)


class CourseUsageInline(admin.TabularInline):
    model = CourseUsage
    extra = 0
    can_delete = False
    readonly_fields = ("action", "referral", "actor", "notes", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Course, site=physio_admin_site)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("course_code", "patient", "total_sessions", "used_sessions", "remaining_sessions", "status", "expiry_date")
    list_filter = ("status", "clinic")
    search_fields = ("course_code", "patient__first_name", "patient__last_name", "patient__hn")
    raw_id_fields = ("patient",)
    readonly_fields = ("used_sessions", "remaining_sessions", "created_at", "updated_at")
    inlines = [CourseSharedPatientInline, CourseUsageInline]


@admin.register(CourseUsage, site=physio_admin_site)
class CourseUsageAdmin(admin.ModelAdmin):
    list_display = ("created_at", "course", "action", "referral", "actor", "notes")
    list_filter = ("action",)
    search_fields = ("course__course_code", "referral__pn_code")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
