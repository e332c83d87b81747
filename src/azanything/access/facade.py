"""Role-scoped gateway in front of the ledger and the directory.

Presentation code talks only to :class:`AccessControlFacade`. Every call
resolves the acting session, checks the role's permitted operations and
raises :class:`ForbiddenError` before the ledger is touched. Ledger and
directory errors propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from azanything.access.permissions import Operation, require_permission
from azanything.directory import DirectoryStore
from azanything.exceptions import (
    ForbiddenError,
    IllegalTransitionError,
    InvalidRequestError,
    UnauthorizedError,
)
from azanything.ledger.store import RequestLedger, RequestPredicate, RequestQuery
from azanything.ledger.transitions import coerce_target
from azanything.models._base import AzBaseModel
from azanything.models.request import (
    ACTIVE_STATUSES,
    NewServiceRequest,
    RequestStats,
    RequestStatus,
    ServiceRequest,
)
from azanything.models.user import (
    ApprovalStatus,
    DirectoryStats,
    Driver,
    ProfileUpdate,
    User,
    UserRole,
    UserStatus,
)
from azanything.session import Session, SessionManager

_logger = logging.getLogger(__name__)


def _status_filter(status: RequestStatus | str) -> RequestStatus:
    try:
        return RequestStatus(status)
    except ValueError:
        raise InvalidRequestError(f"unknown request status {status!r}") from None


class DashboardStats(AzBaseModel):
    requests: RequestStats
    directory: DirectoryStats


class AccessControlFacade:
    """Sole mutation gateway for presentation code.

    By default the acting session is the session manager's current one;
    :meth:`with_session` pins an explicit session instead.
    """

    def __init__(
        self,
        sessions: SessionManager,
        ledger: RequestLedger,
        directory: DirectoryStore,
        *,
        session: Session | None = None,
    ) -> None:
        self._sessions = sessions
        self._ledger = ledger
        self._directory = directory
        self._pinned = session

    def with_session(self, session: Session) -> AccessControlFacade:
        return AccessControlFacade(self._sessions, self._ledger, self._directory, session=session)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _session(self) -> Session:
        if self._pinned is not None:
            return self._pinned
        return self._sessions.current_session()

    def _authorize(self, operation: Operation) -> Session:
        session = self._session()
        require_permission(session.role, operation, actor_id=session.actor_id)
        return session

    def _require_assigned(self, request: ServiceRequest, session: Session, operation: Operation) -> None:
        if request.provider_id != session.actor_id:
            raise UnauthorizedError(
                f"request {request.id} is not assigned to you",
                actor_id=session.actor_id,
                operation=operation.value,
            )

    def _sync_session(self, session: Session, user: User) -> None:
        if self._pinned is not None:
            self._pinned = session.model_copy(update={"user": user})
            return
        self._sessions.update_user(user)

    # ------------------------------------------------------------------
    # Requester view
    # ------------------------------------------------------------------

    def my_requests(self, status: RequestStatus | str | None = None) -> RequestQuery:
        session = self._authorize(Operation.VIEW_OWN_REQUESTS)
        actor_id = session.actor_id
        query = self._ledger.query(lambda r: r.requester_id == actor_id)
        if status is not None:
            wanted = _status_filter(status)
            query = query.filter(lambda r: r.status == wanted)
        return query

    def create_request(self, payload: NewServiceRequest | Mapping[str, Any]) -> ServiceRequest:
        session = self._authorize(Operation.CREATE_REQUEST)
        return self._ledger.add_request(session.actor_id, payload)

    def cancel_request(self, request_id: str) -> ServiceRequest:
        """Cancel one of the requester's own pending requests."""
        session = self._authorize(Operation.CANCEL_REQUEST)
        request = self._ledger.get(request_id)
        if request.requester_id != session.actor_id:
            raise ForbiddenError(
                f"request {request_id} belongs to another requester",
                actor_id=session.actor_id,
                operation=Operation.CANCEL_REQUEST.value,
                role=session.role.value,
            )
        if request.status != RequestStatus.PENDING:
            raise IllegalTransitionError(
                f"only pending requests can be cancelled, request {request_id} is {request.status}",
                request_id=request_id,
                current=request.status.value,
                target=RequestStatus.CANCELLED.value,
            )
        return self._ledger.transition(request_id, RequestStatus.CANCELLED, session.actor_id)

    # ------------------------------------------------------------------
    # Provider view
    # ------------------------------------------------------------------

    def available_requests(self) -> RequestQuery:
        self._authorize(Operation.VIEW_AVAILABLE_REQUESTS)
        return self._ledger.query(lambda r: r.status == RequestStatus.PENDING)

    def my_assignments(self, status: RequestStatus | str | None = None) -> RequestQuery:
        session = self._authorize(Operation.VIEW_ASSIGNMENTS)
        actor_id = session.actor_id
        query = self._ledger.query(lambda r: r.provider_id == actor_id)
        if status is not None:
            wanted = _status_filter(status)
            query = query.filter(lambda r: r.status == wanted)
        return query

    def active_assignments(self) -> RequestQuery:
        return self.my_assignments().filter(lambda r: r.status in ACTIVE_STATUSES)

    def accept_request(self, request_id: str) -> ServiceRequest:
        session = self._authorize(Operation.ACCEPT_REQUEST)
        driver = self._directory.get_driver(session.actor_id)
        if not driver.is_approved:
            raise UnauthorizedError(
                "provider is awaiting approval",
                actor_id=session.actor_id,
                operation=Operation.ACCEPT_REQUEST.value,
            )
        return self._ledger.transition(request_id, RequestStatus.ACCEPTED, session.actor_id)

    def decline_request(self, request_id: str) -> ServiceRequest:
        session = self._authorize(Operation.DECLINE_REQUEST)
        request = self._ledger.get(request_id)
        if request.status != RequestStatus.PENDING:
            raise IllegalTransitionError(
                f"only pending requests can be declined, request {request_id} is {request.status}",
                request_id=request_id,
                current=request.status.value,
                target=RequestStatus.CANCELLED.value,
            )
        return self._ledger.transition(request_id, RequestStatus.CANCELLED, session.actor_id)

    def start_service(self, request_id: str) -> ServiceRequest:
        session = self._authorize(Operation.START_SERVICE)
        self._require_assigned(self._ledger.get(request_id), session, Operation.START_SERVICE)
        return self._ledger.transition(request_id, RequestStatus.IN_PROGRESS, session.actor_id)

    def complete_service(self, request_id: str, actual_cost: float | None = None) -> ServiceRequest:
        session = self._authorize(Operation.COMPLETE_SERVICE)
        self._require_assigned(self._ledger.get(request_id), session, Operation.COMPLETE_SERVICE)
        return self._ledger.transition(
            request_id,
            RequestStatus.COMPLETED,
            session.actor_id,
            actual_cost=actual_cost,
        )

    def abandon_service(self, request_id: str) -> ServiceRequest:
        session = self._authorize(Operation.ABANDON_SERVICE)
        self._require_assigned(self._ledger.get(request_id), session, Operation.ABANDON_SERVICE)
        return self._ledger.transition(request_id, RequestStatus.CANCELLED, session.actor_id)

    def set_availability(self, available: bool) -> Driver:
        session = self._authorize(Operation.SET_AVAILABILITY)
        driver = self._directory.set_availability(session.actor_id, available)
        self._sync_session(session, driver)
        return driver

    # ------------------------------------------------------------------
    # Administrator view
    # ------------------------------------------------------------------

    def all_requests(self, predicate: RequestPredicate | None = None) -> RequestQuery:
        self._authorize(Operation.VIEW_ALL_REQUESTS)
        return self._ledger.query(predicate)

    def search_requests(self, text: str) -> RequestQuery:
        self._authorize(Operation.VIEW_ALL_REQUESTS)
        return self._ledger.query(lambda r: r.matches_text(text))

    def delete_request(self, request_id: str) -> ServiceRequest | None:
        session = self._authorize(Operation.DELETE_REQUEST)
        removed = self._ledger.delete_request(request_id)
        if removed is not None:
            _logger.info("Administrator %s deleted request %s", session.actor_id, request_id)
        return removed

    def set_approval(self, driver_id: str, status: ApprovalStatus | str) -> Driver:
        self._authorize(Operation.SET_APPROVAL)
        return self._directory.set_approval(driver_id, status)

    def approve_provider(self, driver_id: str) -> Driver:
        return self.set_approval(driver_id, ApprovalStatus.APPROVED)

    def remove_user(self, user_id: str) -> int:
        """Remove an account; a requester's requests go with it.

        Returns the number of requests removed by the cascade.
        """
        session = self._authorize(Operation.REMOVE_USER)
        if user_id == session.actor_id:
            raise InvalidRequestError("administrators cannot remove their own account")
        removed = self._directory.remove(user_id)
        if removed is not None and removed.role != UserRole.REQUESTER:
            return 0
        cascaded = self._ledger.cascade_delete_by_requester(user_id)
        _logger.info("Administrator %s removed user %s (%d request(s))", session.actor_id, user_id, cascaded)
        return cascaded

    def list_users(self, role: UserRole | str | None = None, search: str | None = None) -> list[User]:
        self._authorize(Operation.LIST_USERS)
        if search:
            return self._directory.search(search, role)
        return self._directory.users(role)

    def list_drivers(self, approval: ApprovalStatus | str | None = None) -> list[Driver]:
        self._authorize(Operation.LIST_USERS)
        return self._directory.drivers(approval)

    def set_user_status(self, user_id: str, status: UserStatus | str) -> User:
        session = self._authorize(Operation.SET_USER_STATUS)
        if user_id == session.actor_id:
            raise InvalidRequestError("administrators cannot change their own status")
        return self._directory.set_status(user_id, status)

    def dashboard_stats(self) -> DashboardStats:
        self._authorize(Operation.VIEW_STATS)
        return DashboardStats(requests=self._ledger.stats(), directory=self._directory.stats())

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def update_profile(self, update: ProfileUpdate | Mapping[str, Any] | None = None, **changes: Any) -> User:
        """Edit the acting user's own name, email, phone or address."""
        session = self._authorize(Operation.UPDATE_PROFILE)
        payload: ProfileUpdate | Mapping[str, Any] = update if update is not None else changes
        user = self._directory.update_profile(session.actor_id, payload)
        self._sync_session(session, user)
        return user

    def update_request_status(
        self,
        request_id: str,
        status: RequestStatus | str,
        actual_cost: float | None = None,
    ) -> ServiceRequest:
        """Dispatch a raw target status to the role-appropriate operation."""
        session = self._session()
        current = self._ledger.get(request_id)
        target = coerce_target(current, status)
        if target == RequestStatus.PENDING:
            raise IllegalTransitionError(
                f"requests cannot return to pending (request {request_id} is {current.status})",
                request_id=request_id,
                current=current.status.value,
                target=target.value,
            )

        if session.role == UserRole.REQUESTER and target == RequestStatus.CANCELLED:
            return self.cancel_request(request_id)

        if session.role == UserRole.PROVIDER:
            if target == RequestStatus.ACCEPTED:
                return self.accept_request(request_id)
            if target == RequestStatus.IN_PROGRESS:
                return self.start_service(request_id)
            if target == RequestStatus.COMPLETED:
                return self.complete_service(request_id, actual_cost=actual_cost)
            if self._ledger.get(request_id).status == RequestStatus.PENDING:
                return self.decline_request(request_id)
            return self.abandon_service(request_id)

        raise ForbiddenError(
            f"{session.role.value} may not move requests to {target.value}",
            actor_id=session.actor_id,
            operation="update_request_status",
            role=session.role.value,
        )
