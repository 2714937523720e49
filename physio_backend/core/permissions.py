"""Core permissions for RBAC (Role-Based Access Control).

This module provides the base permission class following the project's
RBAC pattern with read_roles/write_roles.

Standard roles: admin, pt, clinic, billing
"""

from rest_framework.permissions import BasePermission, SAFE_METHODS

ROLE_ADMIN = "admin"
ROLE_PT = "pt"
ROLE_CLINIC = "clinic"
ROLE_BILLING = "billing"

ELEVATED_ROLES = frozenset({ROLE_ADMIN})


def is_elevated(user) -> bool:
    role = getattr(user, "role", None)
    return getattr(role, "name", None) in ELEVATED_ROLES


class RBACPermission(BasePermission):
    """Base class for RBAC permissions with read_roles/write_roles pattern.

    Subclasses should define:
    - read_roles: set of role names that can perform GET/HEAD/OPTIONS
    - write_roles: set of role names that can perform POST/PUT/PATCH/DELETE

    Example:
        class MyPermission(RBACPermission):
            read_roles = {"admin", "pt", "clinic", "billing"}
            write_roles = {"admin", "pt"}
    """

    read_roles: set = set()
    write_roles: set = set()

    def _role_name(self, request):
        user = getattr(request, "user", None)
        role = getattr(user, "role", None)
        return getattr(role, "name", None)

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        role_name = self._role_name(request)
        if not role_name:
            return False

        if request.method in SAFE_METHODS:
            return role_name in self.read_roles

        return role_name in self.write_roles

    def has_object_permission(self, request, view, obj):
        # Subclasses override for object-level checks (e.g. PT owns record)
        return True
