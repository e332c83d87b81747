from __future__ import annotations

from datetime import UTC, datetime

import pytest

from azanything.exceptions import IllegalTransitionError, UnauthorizedError
from azanything.ledger.transitions import (
    ALLOWED_TRANSITIONS,
    LedgerEvent,
    allowed_targets,
    apply_event,
    is_valid_transition,
    resolve_event,
)
from azanything.models import (
    ApprovalStatus,
    CancellationSource,
    Driver,
    RequestStatus,
    ServiceRequest,
    ServiceType,
    User,
    UserRole,
    VehicleType,
)

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

REQUESTER = User(id="r1", name="Requester", email="r1@example.com", role=UserRole.REQUESTER)
OTHER_REQUESTER = User(id="r2", name="Other", email="r2@example.com", role=UserRole.REQUESTER)
PROVIDER = Driver(id="p", name="Provider P", email="p@example.com", approval=ApprovalStatus.APPROVED)
OTHER_PROVIDER = Driver(id="q", name="Provider Q", email="q@example.com", approval=ApprovalStatus.APPROVED)
UNAPPROVED = Driver(id="k", name="Provider K", email="k@example.com")


def _request(status: RequestStatus = RequestStatus.PENDING, provider_id: str | None = None) -> ServiceRequest:
    return ServiceRequest(
        id="1",
        requester_id=REQUESTER.id,
        provider_id=provider_id,
        service_type=ServiceType.MEDICINE,
        vehicle_type=VehicleType.BIKE,
        pickup_location="City Medical Store",
        description="Urgent medicine",
        contact_number="9876543210",
        requested_at=_NOW,
        status=status,
        estimated_cost=80,
    )


class TestGraph:
    def test_every_status_has_an_entry(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(RequestStatus)

    def test_terminal_statuses_have_no_edges(self) -> None:
        assert allowed_targets(RequestStatus.COMPLETED) == frozenset()
        assert allowed_targets("cancelled") == frozenset()

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("pending", "accepted"),
            ("pending", "cancelled"),
            ("accepted", "in_progress"),
            ("accepted", "completed"),
            ("accepted", "cancelled"),
            ("in_progress", "completed"),
            ("in_progress", "cancelled"),
        ],
    )
    def test_valid_edges(self, current: str, target: str) -> None:
        assert is_valid_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("pending", "pending"),
            ("pending", "in_progress"),
            ("pending", "completed"),
            ("accepted", "pending"),
            ("in_progress", "accepted"),
            ("completed", "cancelled"),
            ("cancelled", "accepted"),
            ("pending", "bogus"),
        ],
    )
    def test_invalid_edges(self, current: str, target: str) -> None:
        assert not is_valid_transition(current, target)


class TestResolveEvent:
    def test_approved_provider_assigns(self) -> None:
        assert resolve_event(_request(), RequestStatus.ACCEPTED, PROVIDER) is LedgerEvent.ASSIGN

    def test_unapproved_provider_cannot_assign(self) -> None:
        with pytest.raises(UnauthorizedError):
            resolve_event(_request(), RequestStatus.ACCEPTED, UNAPPROVED)

    def test_requester_cannot_assign(self) -> None:
        with pytest.raises(UnauthorizedError):
            resolve_event(_request(), RequestStatus.ACCEPTED, REQUESTER)

    def test_pending_cancel_by_owner(self) -> None:
        assert resolve_event(_request(), RequestStatus.CANCELLED, REQUESTER) is LedgerEvent.REQUESTER_CANCEL

    def test_pending_cancel_by_provider_is_decline(self) -> None:
        assert resolve_event(_request(), RequestStatus.CANCELLED, PROVIDER) is LedgerEvent.PROVIDER_DECLINE

    def test_pending_cancel_by_stranger(self) -> None:
        with pytest.raises(UnauthorizedError):
            resolve_event(_request(), RequestStatus.CANCELLED, OTHER_REQUESTER)

    def test_only_assigned_provider_starts(self) -> None:
        accepted = _request(RequestStatus.ACCEPTED, provider_id="p")
        assert resolve_event(accepted, RequestStatus.IN_PROGRESS, PROVIDER) is LedgerEvent.START_SERVICE
        with pytest.raises(UnauthorizedError):
            resolve_event(accepted, RequestStatus.IN_PROGRESS, OTHER_PROVIDER)

    def test_requester_cannot_cancel_after_acceptance(self) -> None:
        accepted = _request(RequestStatus.ACCEPTED, provider_id="p")
        with pytest.raises(UnauthorizedError):
            resolve_event(accepted, RequestStatus.CANCELLED, REQUESTER)
        assert resolve_event(accepted, RequestStatus.CANCELLED, PROVIDER) is LedgerEvent.ABANDON

    def test_missing_edge_is_illegal(self) -> None:
        completed = ServiceRequest.model_validate(
            {**_request().model_dump(), "status": "completed", "provider_id": "p"}
        )
        with pytest.raises(IllegalTransitionError) as excinfo:
            resolve_event(completed, RequestStatus.CANCELLED, PROVIDER)
        assert excinfo.value.current == "completed"
        assert excinfo.value.target == "cancelled"


class TestApplyEvent:
    def test_assign_sets_provider(self) -> None:
        original = _request()
        updated = apply_event(original, LedgerEvent.ASSIGN, actor_id="p", at=_NOW)
        assert updated.status is RequestStatus.ACCEPTED
        assert updated.provider_id == "p"
        assert updated.updated_at == _NOW
        assert original.status is RequestStatus.PENDING

    def test_complete_defaults_actual_cost(self) -> None:
        started = _request(RequestStatus.IN_PROGRESS, provider_id="p")
        completed = apply_event(started, LedgerEvent.COMPLETE, actor_id="p", at=_NOW)
        assert completed.actual_cost == 80
        explicit = apply_event(started, LedgerEvent.COMPLETE, actor_id="p", at=_NOW, actual_cost=65)
        assert explicit.actual_cost == 65

    def test_abandon_clears_provider(self) -> None:
        accepted = _request(RequestStatus.ACCEPTED, provider_id="p")
        cancelled = apply_event(accepted, LedgerEvent.ABANDON, actor_id="p", at=_NOW)
        assert cancelled.status is RequestStatus.CANCELLED
        assert cancelled.provider_id is None
        assert cancelled.cancelled_by == "p"
        assert cancelled.cancellation_source is CancellationSource.PROVIDER

    def test_requester_cancel_records_source(self) -> None:
        cancelled = apply_event(_request(), LedgerEvent.REQUESTER_CANCEL, actor_id="r1", at=_NOW)
        assert cancelled.cancellation_source is CancellationSource.REQUESTER
        assert cancelled.cancelled_by == "r1"
