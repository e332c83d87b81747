"""azanything - service request lifecycle and role-gated access engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("azanything")
except PackageNotFoundError:
    __version__ = "0+local"
from azanything.access import AccessControlFacade, DashboardStats, Operation
from azanything.app import AzApp
from azanything.config import AzConfig
from azanything.directory import DirectoryStore
from azanything.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    AuthenticationFailedError,
    AzConfigError,
    AzError,
    AzStorageError,
    DuplicateIdentityError,
    ForbiddenError,
    IllegalTransitionError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
)
from azanything.ledger import RequestLedger, RequestQuery
from azanything.models import (
    ApprovalStatus,
    CancellationSource,
    Driver,
    NewServiceRequest,
    ProfileUpdate,
    Registration,
    RequestStatus,
    ServiceRequest,
    ServiceType,
    User,
    UserRole,
    UserStatus,
    VehicleType,
)
from azanything.pricing import RandomPriceEstimator, TablePriceEstimator
from azanything.session import Session, SessionManager, SharedSecretCredentialChecker
from azanything.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "__version__",
    "AccessControlFacade",
    "AccessDeniedError",
    "ApprovalStatus",
    "AuthenticationError",
    "AuthenticationFailedError",
    "AzApp",
    "AzConfig",
    "AzConfigError",
    "AzError",
    "AzStorageError",
    "CancellationSource",
    "DashboardStats",
    "DirectoryStore",
    "Driver",
    "DuplicateIdentityError",
    "ForbiddenError",
    "IllegalTransitionError",
    "InvalidRequestError",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "NewServiceRequest",
    "NotFoundError",
    "Operation",
    "ProfileUpdate",
    "RandomPriceEstimator",
    "Registration",
    "RequestLedger",
    "RequestQuery",
    "RequestStatus",
    "ServiceRequest",
    "ServiceType",
    "Session",
    "SessionManager",
    "SharedSecretCredentialChecker",
    "TablePriceEstimator",
    "UnauthenticatedError",
    "UnauthorizedError",
    "User",
    "UserRole",
    "UserStatus",
    "VehicleType",
]
