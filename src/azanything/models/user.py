"""Directory records: users, drivers and registration payloads."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from azanything.models._base import AzBaseModel, AzEnum, UtcDatetime, utcnow


class UserRole(AzEnum):
    REQUESTER = "requester"
    PROVIDER = "provider"
    ADMINISTRATOR = "administrator"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"user": "requester", "driver": "provider", "admin": "administrator"}


class UserStatus(AzEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ApprovalStatus(AzEnum):
    PENDING = "pending"
    APPROVED = "approved"


def normalize_email(value: str) -> str:
    return value.strip().lower()


class User(AzBaseModel):
    """A directory entry.

    Parameters
    ----------
    id : str
        Opaque unique identifier.
    email : str
        Unique within the role namespace (compared case-insensitively).
    role : UserRole
        Requester, provider or administrator.
    status : UserStatus
        Inactive users cannot log in.
    """

    id: str
    name: str
    email: str
    phone: str = ""
    role: UserRole
    address: str | None = None
    status: UserStatus = UserStatus.ACTIVE
    created_at: UtcDatetime = Field(default_factory=utcnow)

    @field_validator("id", "name", "email")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be non-empty")
        return value

    @property
    def email_key(self) -> str:
        return normalize_email(self.email)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class Driver(User):
    """A provider with vehicle details and an approval flag.

    The web client storage format used ``status`` for the approval state of
    drivers; it is accepted on input when it holds an approval value.
    """

    role: UserRole = UserRole.PROVIDER
    vehicle_type: str = ""
    license_number: str = ""
    is_available: bool = True
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    approval: ApprovalStatus = ApprovalStatus.PENDING

    @model_validator(mode="before")
    @classmethod
    def _legacy_approval(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "approval" in values:
            return values
        status = values.get("status")
        if isinstance(status, str) and status.strip().lower() in {"pending", "approved"}:
            working = dict(values)
            working["approval"] = working.pop("status")
            return working
        return values

    @field_validator("role")
    @classmethod
    def _provider_role(cls, value: UserRole) -> UserRole:
        if value != UserRole.PROVIDER:
            raise ValueError("drivers must have the provider role")
        return value

    @property
    def is_approved(self) -> bool:
        return self.approval == ApprovalStatus.APPROVED


def parse_directory_record(data: dict[str, Any]) -> User | Driver:
    """Build a :class:`Driver` for provider records and a :class:`User` otherwise."""
    role = data.get("role")
    try:
        is_provider = role is not None and UserRole(role) == UserRole.PROVIDER
    except ValueError:
        is_provider = False
    if is_provider:
        return Driver.model_validate(data)
    return User.model_validate(data)


class Registration(AzBaseModel):
    """Validated registration payload.

    Driver-only fields are ignored for other roles.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = ""
    role: UserRole = UserRole.REQUESTER
    address: str | None = None
    vehicle_type: str = ""
    license_number: str = ""

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("email must contain '@'")
        return value


class ProfileUpdate(AzBaseModel):
    """Fields a user may change on their own record."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    phone: str | None = None
    address: str | None = None

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str | None) -> str | None:
        if value is not None and "@" not in value:
            raise ValueError("email must contain '@'")
        return value

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DirectoryStats(AzBaseModel):
    """Directory counters shown on the administrator dashboard."""

    users: int = 0
    requesters: int = 0
    administrators: int = 0
    drivers: int = 0
    approved_drivers: int = 0
    pending_drivers: int = 0
