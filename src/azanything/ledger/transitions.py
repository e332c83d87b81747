"""Request lifecycle policy.

Pure functions only: given a request snapshot, a target status and the
acting user, decide which lifecycle event is meant (or reject it), and
compute the resulting snapshot. The ledger store owns locking and
persistence.

Edges::

    pending     -> accepted      assign (approved provider)
    pending     -> cancelled     requester cancel / provider decline
    accepted    -> in_progress   start (assigned provider)
    accepted    -> completed     complete (assigned provider)
    in_progress -> completed     complete (assigned provider)
    accepted    -> cancelled     abandon (assigned provider)
    in_progress -> cancelled     abandon (assigned provider)

``completed`` and ``cancelled`` are terminal.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from azanything.exceptions import IllegalTransitionError, UnauthorizedError
from azanything.models.request import CancellationSource, RequestStatus, ServiceRequest
from azanything.models.user import Driver, User, UserRole


class LedgerEvent(StrEnum):
    ASSIGN = "assign"
    REQUESTER_CANCEL = "requester_cancel"
    PROVIDER_DECLINE = "provider_decline"
    START_SERVICE = "start_service"
    ABANDON = "abandon"
    COMPLETE = "complete"


# Allowed transitions map: {from_status: {to_status, ...}}
ALLOWED_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.CANCELLED}),
    RequestStatus.ACCEPTED: frozenset(
        {RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED, RequestStatus.CANCELLED}
    ),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


def is_valid_transition(current: RequestStatus | str, target: RequestStatus | str) -> bool:
    """Whether ``current → target`` is an edge of the graph (self-loops are not)."""
    try:
        current_status = RequestStatus(current)
        target_status = RequestStatus(target)
    except ValueError:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]


def allowed_targets(current: RequestStatus | str) -> frozenset[RequestStatus]:
    return ALLOWED_TRANSITIONS[RequestStatus(current)]


def coerce_target(request: ServiceRequest, target: RequestStatus | str) -> RequestStatus:
    """Parse *target* for *request*; an unknown status is never a valid edge."""
    try:
        return RequestStatus(target)
    except ValueError:
        raise IllegalTransitionError(
            f"unknown status {target!r} for request {request.id}",
            request_id=request.id,
            current=request.status.value,
            target=str(target),
        ) from None


def _is_approved_provider(actor: User) -> bool:
    return isinstance(actor, Driver) and actor.role == UserRole.PROVIDER and actor.is_approved


def _denied(request: ServiceRequest, actor: User, event: LedgerEvent, reason: str) -> UnauthorizedError:
    return UnauthorizedError(
        f"{reason} (request {request.id})",
        actor_id=actor.id,
        operation=event.value,
    )


def resolve_event(request: ServiceRequest, target: RequestStatus | str, actor: User) -> LedgerEvent:
    """Map ``(request.status, target)`` plus the actor onto a lifecycle event.

    Raises
    ------
    IllegalTransitionError
        ``target`` is not reachable from the current status.
    UnauthorizedError
        The edge exists but the actor does not satisfy its guard.
    """
    target_status = coerce_target(request, target)
    current = request.status
    if target_status not in ALLOWED_TRANSITIONS[current]:
        raise IllegalTransitionError(
            f"cannot move request {request.id} from {current} to {target_status}",
            request_id=request.id,
            current=current.value,
            target=target_status.value,
        )

    if target_status == RequestStatus.ACCEPTED:
        event = LedgerEvent.ASSIGN
        if not actor.is_active or not _is_approved_provider(actor):
            raise _denied(request, actor, event, "only approved providers may accept requests")
        return event

    if target_status == RequestStatus.CANCELLED and current == RequestStatus.PENDING:
        if actor.id == request.requester_id and actor.is_active:
            return LedgerEvent.REQUESTER_CANCEL
        if actor.is_active and _is_approved_provider(actor):
            return LedgerEvent.PROVIDER_DECLINE
        raise _denied(request, actor, LedgerEvent.REQUESTER_CANCEL, "only the requester or a provider may cancel")

    if target_status == RequestStatus.IN_PROGRESS:
        event = LedgerEvent.START_SERVICE
    elif target_status == RequestStatus.COMPLETED:
        event = LedgerEvent.COMPLETE
    else:
        event = LedgerEvent.ABANDON

    if actor.id != request.provider_id:
        raise _denied(request, actor, event, "only the assigned provider may do this")
    return event


def apply_event(
    request: ServiceRequest,
    event: LedgerEvent,
    *,
    actor_id: str,
    at: datetime,
    actual_cost: float | None = None,
) -> ServiceRequest:
    """Return the snapshot produced by *event*; *request* is left untouched."""
    changes: dict[str, Any] = {"updated_at": at}
    if event == LedgerEvent.ASSIGN:
        changes.update(status=RequestStatus.ACCEPTED, provider_id=actor_id)
    elif event == LedgerEvent.START_SERVICE:
        changes.update(status=RequestStatus.IN_PROGRESS)
    elif event == LedgerEvent.COMPLETE:
        cost = request.estimated_cost if actual_cost is None else actual_cost
        changes.update(status=RequestStatus.COMPLETED, actual_cost=cost)
    elif event == LedgerEvent.REQUESTER_CANCEL:
        changes.update(
            status=RequestStatus.CANCELLED,
            cancelled_by=actor_id,
            cancellation_source=CancellationSource.REQUESTER,
        )
    elif event in (LedgerEvent.PROVIDER_DECLINE, LedgerEvent.ABANDON):
        changes.update(
            status=RequestStatus.CANCELLED,
            provider_id=None,
            cancelled_by=actor_id,
            cancellation_source=CancellationSource.PROVIDER,
        )

    data = request.model_dump()
    data.update(changes)
    # Re-validate so the provider/cost invariants are checked on every write.
    return ServiceRequest.model_validate(data)
