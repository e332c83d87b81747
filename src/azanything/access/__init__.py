"""Role-gated access layer."""

from azanything.access.facade import AccessControlFacade, DashboardStats
from azanything.access.permissions import (
    ROLE_PERMISSIONS,
    Operation,
    is_permitted,
    permitted_operations,
    require_permission,
)

__all__ = [
    "ROLE_PERMISSIONS",
    "AccessControlFacade",
    "DashboardStats",
    "Operation",
    "is_permitted",
    "permitted_operations",
    "require_permission",
]
