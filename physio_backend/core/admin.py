"""
Custom admin site and admin classes for users, roles, clinics and audit logs.
"""

from django.contrib import admin
from django.contrib.admin import AdminSite
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.html import format_html
from django.utils.safestring import mark_safe

from .models import AuditLog, Clinic, Role, User


# ============================================================================
# Custom AdminSite
# ============================================================================
class PhysioAdminSite(AdminSite):
    site_header = "Physio Scheduling Admin"
    site_title = "Physio Admin"
    index_title = "System overview"
    site_url = None


physio_admin_site = PhysioAdminSite(name='physioadmin')


# ============================================================================
# Role Admin
# ============================================================================
@admin.register(Role, site=physio_admin_site)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "label", "user_count")
    search_fields = ("name", "label")
    ordering = ("name",)
    list_per_page = 50

    def user_count(self, obj):
        return obj.users.count()
    user_count.short_description = "Users"


# ============================================================================
# Clinic Admin
# ============================================================================
@admin.register(Clinic, site=physio_admin_site)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "email", "home_badge", "active")
    list_filter = ("active",)
    search_fields = ("code", "name")
    ordering = ("code",)

    def home_badge(self, obj):
        if obj.is_home:
            return mark_safe('<span class="status-badge status-success">Home</span>')
        return ""
    home_badge.short_description = "Home clinic"


# ============================================================================
# User Admin
# ============================================================================
@admin.register(User, site=physio_admin_site)
class UserAdmin(DjangoUserAdmin):
    list_display = (
        "username",
        "full_name_display",
        "email",
        "role_badge",
        "clinic",
        "is_active",
    )
    list_filter = ("role", "clinic", "is_staff", "is_active", "is_superuser")
    search_fields = ("username", "email", "first_name", "last_name")
    ordering = ("username",)
    list_per_page = 50

    fieldsets = (
        ("Authentication", {
            "fields": ("username", "password")
        }),
        ("Personal data", {
            "fields": ("first_name", "last_name", "email", "role", "clinic", "calendar_color")
        }),
        ("Permissions", {
            "fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions"),
            "classes": ("collapse",)
        }),
        ("Timestamps", {
            "fields": ("last_login", "date_joined"),
            "classes": ("collapse",)
        }),
    )

    add_fieldsets = (
        ("New user", {
            "classes": ("wide",),
            "fields": ("username", "password1", "password2", "email", "role", "clinic", "first_name", "last_name"),
        }),
    )

    readonly_fields = ("last_login", "date_joined")

    def full_name_display(self, obj):
        full_name = obj.get_full_name()
        if full_name.strip():
            return format_html('<strong>{}</strong>', full_name)
        return mark_safe('<span style="color: #9AA0A6; font-style: italic;">No name</span>')
    full_name_display.short_description = "Name"

    def role_badge(self, obj):
        if not obj.role:
            return mark_safe('<span class="status-badge status-neutral">No role</span>')
        colors = {
            "admin": "#EA4335",
            "pt": "#1A73E8",
            "clinic": "#34A853",
            "billing": "#FBBC05",
        }
        return format_html(
            '<span class="status-badge" style="background-color: {}; color: white;">{}</span>',
            colors.get(obj.role.name, "#5F6368"), obj.role.name
        )
    role_badge.short_description = "Role"


# ============================================================================
# AuditLog Admin
# ============================================================================
@admin.register(AuditLog, site=physio_admin_site)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only audit trail"""
    list_display = ("timestamp", "action", "entity_type", "entity_id", "role_name", "user")
    list_filter = ("action", "entity_type", "role_name")
    search_fields = ("action", "entity_type", "user__username")
    ordering = ("-timestamp",)
    readonly_fields = ("user", "role_name", "action", "entity_type", "entity_id", "before", "after", "timestamp")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
