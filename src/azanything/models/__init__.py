"""Record models for users, drivers and service requests."""

from azanything.models._base import AzBaseModel, AzEnum, UtcDatetime, utcnow
from azanything.models.request import (
    ACTIVE_STATUSES,
    ASSIGNED_STATUSES,
    EMERGENCY_TRANSPORT_SERVICES,
    CancellationSource,
    NewServiceRequest,
    RequestStats,
    RequestStatus,
    ServiceRequest,
    ServiceType,
    VehicleType,
    dump_requests,
    load_requests,
)
from azanything.models.user import (
    ApprovalStatus,
    DirectoryStats,
    Driver,
    ProfileUpdate,
    Registration,
    User,
    UserRole,
    UserStatus,
    parse_directory_record,
)

__all__ = [
    "ACTIVE_STATUSES",
    "ASSIGNED_STATUSES",
    "EMERGENCY_TRANSPORT_SERVICES",
    "ApprovalStatus",
    "AzBaseModel",
    "AzEnum",
    "CancellationSource",
    "DirectoryStats",
    "Driver",
    "NewServiceRequest",
    "ProfileUpdate",
    "Registration",
    "RequestStats",
    "RequestStatus",
    "ServiceRequest",
    "ServiceType",
    "User",
    "UserRole",
    "UserStatus",
    "UtcDatetime",
    "VehicleType",
    "dump_requests",
    "load_requests",
    "parse_directory_record",
    "utcnow",
]
