from physio_backend.core.permissions import RBACPermission


class ReferralPermission(RBACPermission):
    """RBAC for PN cases (read-only API; changes come from appointments).

    - admin, pt, clinic: read
    - billing: read
    """

    read_roles = {"admin", "pt", "clinic", "billing"}
    write_roles: set = set()
