"""Service request records and creation payloads."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, ClassVar

from pydantic import ConfigDict, Field, TypeAdapter, field_validator, model_validator

from azanything.models._base import AzBaseModel, AzEnum, UtcDatetime, utcnow


class ServiceType(AzEnum):
    AMBULANCE = "ambulance"
    MEDICINE = "medicine"
    GAS = "gas"
    GROCERIES = "groceries"
    FOOD = "food"
    DOCUMENTS = "documents"
    OTHERS = "others"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"emergency-transport": "ambulance", "emergency_transport": "ambulance", "other": "others"}

    @property
    def is_emergency_transport(self) -> bool:
        return self in EMERGENCY_TRANSPORT_SERVICES


#: Service types that move a person and therefore need a destination.
EMERGENCY_TRANSPORT_SERVICES: frozenset[ServiceType] = frozenset({ServiceType.AMBULANCE})


class VehicleType(AzEnum):
    BIKE = "bike"
    AUTO = "auto"
    CAR = "car"
    AMBULANCE = "ambulance"
    MINI_TRUCK = "mini-truck"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"mini_truck": "mini-truck", "minitruck": "mini-truck"}


class RequestStatus(AzEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"in-progress": "in_progress", "canceled": "cancelled"}

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.CANCELLED)


#: Statuses in which a provider is attached to the request.
ASSIGNED_STATUSES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED}
)

#: Statuses the provider is still working on.
ACTIVE_STATUSES: frozenset[RequestStatus] = frozenset({RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS})


class CancellationSource(AzEnum):
    """Who terminated a request that ended in ``cancelled``."""

    REQUESTER = "requester"
    PROVIDER = "provider"


class ServiceRequest(AzBaseModel):
    """A request moving through the lifecycle.

    ``provider_id`` is set exactly when ``status`` is accepted, in progress
    or completed. ``actual_cost`` only appears on completed requests.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "userId": "requesterId",
        "driverId": "providerId",
    }

    id: str
    requester_id: str
    provider_id: str | None = None
    service_type: ServiceType
    vehicle_type: VehicleType
    pickup_location: str = Field(min_length=1)
    destination: str | None = None
    description: str
    contact_number: str
    requested_at: UtcDatetime
    scheduled_time: UtcDatetime | None = None
    status: RequestStatus = RequestStatus.PENDING
    estimated_cost: float = Field(ge=0)
    actual_cost: float | None = Field(default=None, ge=0)
    updated_at: UtcDatetime | None = None
    cancelled_by: str | None = None
    cancellation_source: CancellationSource | None = None

    @model_validator(mode="after")
    def _check_provider_invariant(self) -> ServiceRequest:
        if self.status in ASSIGNED_STATUSES and not self.provider_id:
            raise ValueError(f"providerId is required when status is {self.status}")
        if self.status not in ASSIGNED_STATUSES and self.provider_id:
            raise ValueError(f"providerId must be unset when status is {self.status}")
        if self.actual_cost is not None and self.status != RequestStatus.COMPLETED:
            raise ValueError("actualCost is only set on completed requests")
        return self

    @property
    def final_cost(self) -> float:
        """What the requester pays (or expects to): actual cost when known."""
        if self.actual_cost is not None:
            return self.actual_cost
        return self.estimated_cost

    def matches_text(self, text: str) -> bool:
        """Case-insensitive substring match used by dashboard search."""
        needle = text.strip().lower()
        if not needle:
            return True
        haystack = (
            self.id,
            self.service_type.value,
            self.pickup_location,
            self.destination or "",
            self.description,
            self.status.value,
        )
        return any(needle in value.lower() for value in haystack)


class NewServiceRequest(AzBaseModel):
    """Validated creation payload.

    ``destination`` is required for emergency transport (ambulance) and
    optional otherwise.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    service_type: ServiceType
    vehicle_type: VehicleType
    pickup_location: str = Field(min_length=1)
    destination: str | None = None
    description: str = Field(min_length=1)
    contact_number: str = Field(min_length=1)
    scheduled_time: UtcDatetime | None = None

    @field_validator("contact_number")
    @classmethod
    def _contact_has_digits(cls, value: str) -> str:
        if not any(ch.isdigit() for ch in value):
            raise ValueError("contact number must contain digits")
        return value

    @model_validator(mode="after")
    def _destination_for_transport(self) -> NewServiceRequest:
        if self.service_type.is_emergency_transport and not self.destination:
            raise ValueError(f"destination is required for {self.service_type} requests")
        return self


class RequestStats(AzBaseModel):
    """Counters shown on the administrator dashboard."""

    total: int = 0
    pending: int = 0
    accepted: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0

    @classmethod
    def from_requests(cls, requests: Iterable[ServiceRequest]) -> RequestStats:
        counts: dict[str, int] = {status.value: 0 for status in RequestStatus}
        total = 0
        for request in requests:
            counts[request.status.value] += 1
            total += 1
        return cls(total=total, **counts)


_REQUEST_LIST = TypeAdapter(list[ServiceRequest])


def dump_requests(requests: Sequence[ServiceRequest]) -> str:
    """Serialize an ordered request collection to the storage JSON array."""
    return _REQUEST_LIST.dump_json(list(requests), by_alias=True, exclude_none=True).decode("utf-8")


def load_requests(data: str | bytes | list[dict[str, Any]]) -> list[ServiceRequest]:
    """Parse the storage JSON array, preserving order."""
    if isinstance(data, list):
        return _REQUEST_LIST.validate_python(data)
    return _REQUEST_LIST.validate_json(data)
