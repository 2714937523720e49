"""
Referrals App - Admin
"""

from django.contrib import admin

from physio_backend.core.admin import physio_admin_site
from physio_backend.referrals.models import ReferralCase, ReferralStatusHistory


class ReferralStatusHistoryInline(admin.TabularInline):
    model = ReferralStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("old_status", "new_status", "changed_by", "change_reason", "is_reversal", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ReferralCase, site=physio_admin_site)
class ReferralCaseAdmin(admin.ModelAdmin):
    list_display = ("pn_code", "patient", "source_clinic", "target_clinic", "status", "accepted_at", "created_at")
    list_filter = ("status", "source_clinic", "target_clinic")
    search_fields = ("pn_code", "patient__first_name", "patient__last_name", "patient__hn")
    raw_id_fields = ("patient", "course")
    readonly_fields = ("pn_code", "status", "accepted_at", "cancelled_at", "created_at", "updated_at")
    inlines = [ReferralStatusHistoryInline]
