from rest_framework.permissions import SAFE_METHODS

from physio_backend.core.permissions import RBACPermission


class AppointmentPermission(RBACPermission):
    """RBAC for appointments.

    - admin: everything, including reversing completions
    - pt: own appointments only (read/write)
    - clinic: read only
    - billing: read only
    """

    read_roles = {"admin", "pt", "clinic", "billing"}
    write_roles = {"admin", "pt"}

    def has_object_permission(self, request, view, obj):
        role_name = self._role_name(request)
        if not role_name:
            return False

        if request.method not in SAFE_METHODS and role_name not in self.write_roles:
            return False

        if role_name == "pt" and request.method not in SAFE_METHODS:
            return getattr(obj, "practitioner_id", None) == getattr(request.user, "id", None)

        return True


class SchedulingReadPermission(RBACPermission):
    """Conflict check and slot grid: any staff role, POST included."""

    read_roles = {"admin", "pt", "clinic", "billing"}
    write_roles = {"admin", "pt", "clinic"}


class PatientMessagePermission(RBACPermission):
    """Patient SMS: admin and front desk for any appointment, PTs for their own."""

    read_roles = set()
    write_roles = {"admin", "pt", "clinic"}

    def has_object_permission(self, request, view, obj):
        if self._role_name(request) == "pt":
            return getattr(obj, "practitioner_id", None) == getattr(request.user, "id", None)
        return True
